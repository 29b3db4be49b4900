"""
Migration history API routes.
"""

from fastapi import APIRouter, Depends, Query

from sqlshift.api.auth import AuthContext, get_auth_context, get_controller
from sqlshift.api.schemas import (
    ClearHistoryResponse,
    HistoryEntryResponse,
    ProjectSummaryResponse,
    UserSummaryResponse,
)
from sqlshift.lifecycle import LifecycleController

router = APIRouter()


@router.get("/", response_model=list[HistoryEntryResponse])
async def list_history(
    status: str = Query(
        "all",
        description="Filter: 'all' (default), 'success', 'failed' or 'pending_review'",
        pattern="^(all|success|failed|pending_review)$",
    ),
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> list[HistoryEntryResponse]:
    """
    List projects with converted files, newest first.

    Projects whose files are all still pending are in progress and are not
    part of the history.
    """
    entries = controller.list_history(auth.user_id, status_filter=status)
    return [
        HistoryEntryResponse(
            id=entry.id,
            project_name=entry.project_name,
            description=entry.description,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
            summary=ProjectSummaryResponse(**entry.summary.to_dict()),
        )
        for entry in entries
    ]


@router.delete("/", response_model=ClearHistoryResponse)
async def clear_history(
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> ClearHistoryResponse:
    """Delete all of the user's file records, projects and deployment logs."""
    result = controller.clear_all_history(auth.user_id)
    return ClearHistoryResponse(
        files_deleted=result.files_deleted,
        projects_deleted=result.projects_deleted,
        reports_deleted=result.reports_deleted,
        deployments_deleted=result.deployments_deleted,
    )


@router.get("/summary", response_model=UserSummaryResponse)
async def get_user_summary(
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> UserSummaryResponse:
    summary = controller.user_summary(auth.user_id)
    return UserSummaryResponse(
        project_count=summary.project_count,
        file_count=summary.file_count,
        success_count=summary.success_count,
        failed_count=summary.failed_count,
        pending_count=summary.pending_count,
        pending_review_count=summary.pending_review_count,
        deployed_count=summary.deployed_count,
        unreviewed_count=summary.unreviewed_count,
        reviewed_count=summary.reviewed_count,
        deployment_count=summary.deployment_count,
        success_rate=summary.success_rate,
    )
