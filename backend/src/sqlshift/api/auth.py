"""
Authentication context and shared dependencies for API endpoints.

Every user-scoped endpoint depends on ``get_auth_context``; the user id it
carries is passed explicitly to the lifecycle controller, which scopes all
storage queries by it.
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from sqlshift.db.connection import get_db
from sqlshift.lifecycle import LifecycleController


@dataclass
class AuthContext:
    """
    Authentication context for API requests.

    Attributes:
        user_id: UUID of the authenticated user

    Example:
        >>> @router.get("/projects/{id}")
        >>> async def get_project(
        ...     id: UUID,
        ...     auth: AuthContext = Depends(get_auth_context),
        ...     controller: LifecycleController = Depends(get_controller),
        ... ):
        ...     return controller.get_project(auth.user_id, id)
    """

    user_id: UUID


def get_auth_context(
    x_user_id: Optional[str] = Header(
        None,
        description="Authenticated user UUID (required)",
        alias="X-User-Id",
    ),
) -> AuthContext:
    """
    FastAPI dependency to extract the user from the request.

    Args:
        x_user_id: User UUID from X-User-Id header

    Returns:
        AuthContext for the user

    Raises:
        HTTPException(401): If the header is missing
        HTTPException(400): If the header is not a UUID
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id header is required",
        )

    try:
        user_uuid = UUID(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid user ID format",
        )

    return AuthContext(user_id=user_uuid)


def get_controller(session: Session = Depends(get_db)) -> LifecycleController:
    """FastAPI dependency providing a controller bound to the request session."""
    return LifecycleController(session)
