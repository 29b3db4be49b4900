"""
File comment API routes.

Tagged notes a user keeps on individual files, looked up by file path.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from sqlshift.api.auth import AuthContext, get_auth_context, get_controller
from sqlshift.api.schemas import (
    CommentCreate,
    CommentUpdate,
    FileCommentResponse,
    OperationResult,
)
from sqlshift.lifecycle import LifecycleController
from sqlshift.models.db import CommentTag

router = APIRouter()


@router.get("/", response_model=list[FileCommentResponse])
async def list_comments(
    file_path: str = Query(..., min_length=1, description="Path of the file"),
    tag: Optional[CommentTag] = Query(None, description="Filter by tag"),
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> list[FileCommentResponse]:
    """List the caller's comments on a file, oldest first."""
    comments = controller.list_comments(auth.user_id, file_path, tag=tag)
    return [FileCommentResponse.model_validate(c) for c in comments]


@router.post(
    "/", response_model=FileCommentResponse, status_code=status.HTTP_201_CREATED
)
async def add_comment(
    payload: CommentCreate,
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> FileCommentResponse:
    comment = controller.add_comment(
        auth.user_id, payload.file_path, payload.content, tag=payload.tag
    )
    return FileCommentResponse.model_validate(comment)


@router.put("/{comment_id}", response_model=FileCommentResponse)
async def update_comment(
    comment_id: UUID,
    payload: CommentUpdate,
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> FileCommentResponse:
    comment = controller.update_comment(
        auth.user_id, comment_id, payload.content, tag=payload.tag
    )
    return FileCommentResponse.model_validate(comment)


@router.delete("/{comment_id}", response_model=OperationResult)
async def delete_comment(
    comment_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> OperationResult:
    return OperationResult(success=controller.delete_comment(auth.user_id, comment_id))
