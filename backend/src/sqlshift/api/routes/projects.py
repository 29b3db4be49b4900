"""
Migration project API routes.

Endpoints for creating projects, listing their deduplicated files, status
summaries, identity-based conversion and reports.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from sqlshift.api.auth import AuthContext, get_auth_context, get_controller
from sqlshift.api.schemas import (
    ConvertNamedRequest,
    FileRecordResponse,
    MigrationReportResponse,
    ProjectCreate,
    ProjectResponse,
    ProjectSummaryResponse,
    ProjectUpdate,
)
from sqlshift.lifecycle import LifecycleController

router = APIRouter()


@router.post("/", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    payload: ProjectCreate,
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> ProjectResponse:
    """Create a project; a timestamped name is used when none is given."""
    project = controller.start_project(
        auth.user_id, name=payload.name, description=payload.description
    )
    return ProjectResponse.model_validate(project)


@router.get("/", response_model=list[ProjectResponse])
async def list_projects(
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> list[ProjectResponse]:
    """List the user's projects, newest first."""
    return [
        ProjectResponse.model_validate(p) for p in controller.list_projects(auth.user_id)
    ]


@router.get("/active", response_model=ProjectResponse)
async def get_active_project(
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> ProjectResponse:
    """Get the user's most recent project, creating one if there is none."""
    project = controller.get_or_create_active_project(auth.user_id)
    return ProjectResponse.model_validate(project)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> ProjectResponse:
    return ProjectResponse.model_validate(
        controller.get_project(auth.user_id, project_id)
    )


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: UUID,
    payload: ProjectUpdate,
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> ProjectResponse:
    project = controller.update_project(
        auth.user_id, project_id, name=payload.name, description=payload.description
    )
    return ProjectResponse.model_validate(project)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> Response:
    """Delete a project together with its file records."""
    controller.delete_project(auth.user_id, project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{project_id}/files", response_model=list[FileRecordResponse])
async def list_project_files(
    project_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> list[FileRecordResponse]:
    """List a project's files, one per case-insensitive file name."""
    records = controller.list_files_for_project(auth.user_id, project_id)
    return [FileRecordResponse.model_validate(r) for r in records]


@router.get("/{project_id}/summary", response_model=ProjectSummaryResponse)
async def get_project_summary(
    project_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> ProjectSummaryResponse:
    summary = controller.project_summary(auth.user_id, project_id)
    return ProjectSummaryResponse(**summary.to_dict())


@router.post("/{project_id}/convert", response_model=FileRecordResponse)
def convert_named_file(
    project_id: UUID,
    payload: ConvertNamedRequest,
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> FileRecordResponse:
    """
    Convert a file identified by its name within the project.

    A record is created when none exists, including for failed conversions.
    """
    record = controller.convert_named_file(
        auth.user_id,
        project_id,
        file_name=payload.file_name,
        source_text=payload.source_text,
        file_path=payload.file_path,
    )
    return FileRecordResponse.model_validate(record)


@router.post(
    "/{project_id}/reports",
    response_model=MigrationReportResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_report(
    project_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> MigrationReportResponse:
    report = controller.generate_report(auth.user_id, project_id)
    return MigrationReportResponse.model_validate(report)


@router.get("/{project_id}/reports", response_model=list[MigrationReportResponse])
async def list_reports(
    project_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> list[MigrationReportResponse]:
    return [
        MigrationReportResponse.model_validate(r)
        for r in controller.list_reports(auth.user_id, project_id)
    ]
