"""
API schemas for SQLShift.

Pydantic models for request/response validation.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from sqlshift.models.db import (
    CommentTag,
    ConversionStatus,
    DeploymentStatus,
    FileType,
    ReviewStatus,
)

# ===== Projects =====


class ProjectCreate(BaseModel):
    """Request schema for creating a project."""

    name: Optional[str] = None
    description: Optional[str] = None


class ProjectUpdate(BaseModel):
    """Request schema for renaming a project."""

    name: Optional[str] = None
    description: Optional[str] = None


class ProjectResponse(BaseModel):
    """Response schema for MigrationProject."""

    id: UUID
    user_id: UUID
    project_name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProjectSummaryResponse(BaseModel):
    """Status counts over a project's deduplicated files."""

    file_count: int
    success_count: int
    failed_count: int
    pending_count: int
    pending_review_count: int
    deployed_count: int
    has_converted_files: bool


class HistoryEntryResponse(BaseModel):
    """Project row in the history view."""

    id: UUID
    project_name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    summary: ProjectSummaryResponse


# ===== File records =====


class FileRecordResponse(BaseModel):
    """Response schema for FileRecord."""

    id: UUID
    migration_id: UUID
    file_name: str
    file_path: str
    file_type: FileType
    conversion_status: ConversionStatus
    original_content: str
    converted_content: Optional[str] = None
    error_message: Optional[str] = None
    issues: Optional[list[dict[str, Any]]] = None
    data_type_mapping: Optional[list[dict[str, Any]]] = None
    performance_metrics: Optional[dict[str, Any]] = None
    deployment_timestamp: Optional[datetime] = None
    version: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ManualFileCreate(BaseModel):
    """Request schema for a file typed in by hand."""

    file_name: str
    content: str
    file_type: Optional[FileType] = None


class ConvertNamedRequest(BaseModel):
    """Request schema for converting a file by project and name."""

    file_name: str
    source_text: str
    file_path: Optional[str] = None


class UploadResult(BaseModel):
    """Result for a single uploaded file."""

    filename: str
    status: str  # 'success' or 'error'
    file_id: Optional[UUID] = None
    file_type: Optional[FileType] = None
    error: Optional[str] = None


class UploadResponse(BaseModel):
    """Response for file upload endpoint."""

    project_id: UUID
    success_count: int
    failed_count: int
    results: list[UploadResult]


# ===== Unreviewed holding area =====


class UnreviewedFileResponse(BaseModel):
    """Response schema for UnreviewedFile."""

    id: UUID
    user_id: UUID
    source_file_id: Optional[UUID] = None
    file_name: str
    original_code: str
    converted_code: str
    ai_generated_code: Optional[str] = None
    status: ReviewStatus
    issues: Optional[list[dict[str, Any]]] = None
    data_type_mapping: Optional[list[dict[str, Any]]] = None
    performance_metrics: Optional[dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class EditUnreviewedRequest(BaseModel):
    """Request schema for editing converted code under review."""

    converted_code: str


class MarkReviewedRequest(BaseModel):
    """Request schema for marking a file as reviewed."""

    converted_code: str
    original_code: str


class CompleteReviewRequest(BaseModel):
    """Request schema for promoting a reviewed file into history."""

    project_id: Optional[UUID] = None


class OperationResult(BaseModel):
    """Boolean result of a holding-area operation."""

    success: bool


# ===== Deployments =====


class DeploymentCreate(BaseModel):
    """Request schema for appending a deployment attempt."""

    status: DeploymentStatus
    file_count: int = Field(ge=0)
    lines_of_sql: int = Field(ge=0)
    error_message: Optional[str] = None
    migration_id: Optional[UUID] = None
    deployment_config: Optional[dict[str, Any]] = None


class DeployRequest(BaseModel):
    """Request schema for deploying converted files."""

    file_ids: list[UUID] = Field(min_length=1)
    deployment_config: Optional[dict[str, Any]] = None


class DeploymentLogResponse(BaseModel):
    """Response schema for DeploymentLog."""

    id: UUID
    user_id: UUID
    migration_id: Optional[UUID] = None
    status: DeploymentStatus
    file_count: int
    lines_of_sql: int
    error_message: Optional[str] = None
    deployment_config: Optional[dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True


# ===== History & reports =====


class ClearHistoryResponse(BaseModel):
    """Rows removed by a history clear."""

    files_deleted: int
    projects_deleted: int
    reports_deleted: int
    deployments_deleted: int


class UserSummaryResponse(BaseModel):
    """Totals across a user's projects."""

    project_count: int
    file_count: int
    success_count: int
    failed_count: int
    pending_count: int
    pending_review_count: int
    deployed_count: int
    unreviewed_count: int
    reviewed_count: int
    deployment_count: int
    success_rate: float


class MigrationReportResponse(BaseModel):
    """Response schema for MigrationReport."""

    id: UUID
    migration_id: UUID
    report_content: str
    efficiency_metrics: Optional[dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True


# ===== File comments =====


class CommentCreate(BaseModel):
    """Request schema for commenting on a file."""

    file_path: str = Field(min_length=1)
    content: str = Field(min_length=1)
    tag: CommentTag = CommentTag.NOTE


class CommentUpdate(BaseModel):
    """Request schema for editing a comment; the tag is kept when omitted."""

    content: str = Field(min_length=1)
    tag: Optional[CommentTag] = None


class FileCommentResponse(BaseModel):
    """Response schema for FileComment."""

    id: UUID
    user_id: UUID
    file_path: str
    content: str
    tag: CommentTag
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
