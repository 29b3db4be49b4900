"""
Review holding-area API routes.

Files pulled into review can be edited, marked reviewed, promoted into
history or discarded without touching the file records they came from.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from sqlshift.api.auth import AuthContext, get_auth_context, get_controller
from sqlshift.api.schemas import (
    CompleteReviewRequest,
    EditUnreviewedRequest,
    FileRecordResponse,
    MarkReviewedRequest,
    OperationResult,
    UnreviewedFileResponse,
)
from sqlshift.lifecycle import LifecycleController
from sqlshift.models.db import ReviewStatus

router = APIRouter()


@router.get("/", response_model=list[UnreviewedFileResponse])
async def list_unreviewed(
    status: Optional[ReviewStatus] = Query(None, description="Filter by status"),
    search: Optional[str] = Query(None, description="Substring of the file name"),
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> list[UnreviewedFileResponse]:
    """List files in the holding area, newest first."""
    items = controller.list_unreviewed(auth.user_id, status=status, search=search)
    return [UnreviewedFileResponse.model_validate(item) for item in items]


@router.get("/{unreviewed_id}", response_model=UnreviewedFileResponse)
async def get_unreviewed(
    unreviewed_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> UnreviewedFileResponse:
    return UnreviewedFileResponse.model_validate(
        controller.get_unreviewed(auth.user_id, unreviewed_id)
    )


@router.put("/{unreviewed_id}", response_model=OperationResult)
async def edit_unreviewed(
    unreviewed_id: UUID,
    payload: EditUnreviewedRequest,
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> OperationResult:
    return OperationResult(
        success=controller.edit_unreviewed(
            auth.user_id, unreviewed_id, payload.converted_code
        )
    )


@router.post("/{unreviewed_id}/mark-reviewed", response_model=OperationResult)
async def mark_reviewed(
    unreviewed_id: UUID,
    payload: MarkReviewedRequest,
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> OperationResult:
    return OperationResult(
        success=controller.mark_reviewed(
            auth.user_id,
            unreviewed_id,
            final_code=payload.converted_code,
            final_original_code=payload.original_code,
        )
    )


@router.post("/{unreviewed_id}/complete", response_model=FileRecordResponse)
async def complete_review(
    unreviewed_id: UUID,
    payload: CompleteReviewRequest,
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> FileRecordResponse:
    """Write a reviewed file into migration history and drop it from review."""
    record = controller.complete_review(
        auth.user_id, unreviewed_id, project_id=payload.project_id
    )
    return FileRecordResponse.model_validate(record)


@router.delete("/{unreviewed_id}", response_model=OperationResult)
async def delete_unreviewed(
    unreviewed_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> OperationResult:
    return OperationResult(
        success=controller.delete_unreviewed(auth.user_id, unreviewed_id)
    )
