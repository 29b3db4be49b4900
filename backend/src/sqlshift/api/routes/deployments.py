"""
Deployment API routes.

The deployment log is append-only: entries are recorded directly or as the
result of deploying converted files.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from sqlshift.api.auth import AuthContext, get_auth_context, get_controller
from sqlshift.api.schemas import (
    DeployRequest,
    DeploymentCreate,
    DeploymentLogResponse,
)
from sqlshift.lifecycle import LifecycleController

router = APIRouter()


@router.get("/", response_model=list[DeploymentLogResponse])
async def list_deployments(
    migration_id: Optional[UUID] = Query(None, description="Filter by project"),
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> list[DeploymentLogResponse]:
    """List deployment attempts, newest first."""
    logs = controller.list_deployments(auth.user_id, migration_id=migration_id)
    return [DeploymentLogResponse.model_validate(log) for log in logs]


@router.post(
    "/", response_model=DeploymentLogResponse, status_code=status.HTTP_201_CREATED
)
async def record_deployment(
    payload: DeploymentCreate,
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> DeploymentLogResponse:
    log = controller.record_deployment(
        auth.user_id,
        payload.status,
        file_count=payload.file_count,
        lines_of_sql=payload.lines_of_sql,
        error_message=payload.error_message,
        migration_id=payload.migration_id,
        deployment_config=payload.deployment_config,
    )
    return DeploymentLogResponse.model_validate(log)


@router.post("/deploy", response_model=DeploymentLogResponse)
def deploy_files(
    payload: DeployRequest,
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> DeploymentLogResponse:
    """
    Deploy converted files.

    A failed deployment is returned as a log entry with status 'Failed';
    the files keep their 'success' status.
    """
    log = controller.deploy_files(
        auth.user_id, payload.file_ids, deployment_config=payload.deployment_config
    )
    return DeploymentLogResponse.model_validate(log)
