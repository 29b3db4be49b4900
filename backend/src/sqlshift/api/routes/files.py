"""
File record API routes.

Endpoints for uploading SQL files, converting them, flagging them for review
and downloading the result.
"""

import logging
import re
from typing import Optional
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import PlainTextResponse

from sqlshift.api.auth import AuthContext, get_auth_context, get_controller
from sqlshift.api.schemas import (
    FileRecordResponse,
    ManualFileCreate,
    UnreviewedFileResponse,
    UploadResponse,
    UploadResult,
)
from sqlshift.lifecycle import FileUpload, LifecycleController, UploadOutcome
from sqlshift.lifecycle.file_types import normalize_manual_file_name

logger = logging.getLogger(__name__)

router = APIRouter()

_UNSAFE_FILENAME_CHARS = re.compile(r'[^\x20-\x7e"\\]')


def _content_disposition(file_name: str) -> str:
    """
    Build an attachment header that survives any file name.

    The real name goes in an RFC 5987 ``filename*`` parameter; ``filename``
    carries an ASCII copy with quotes, backslashes and non-ASCII replaced.
    """
    fallback = _UNSAFE_FILENAME_CHARS.sub("_", file_name)
    return (
        f'attachment; filename="{fallback}"; '
        f"filename*=UTF-8''{quote(file_name, safe='')}"
    )


def _upload_response(
    outcome: UploadOutcome, extra_failures: Optional[list[UploadResult]] = None
) -> UploadResponse:
    results = [
        UploadResult(
            filename=record.file_name,
            status="success",
            file_id=record.id,
            file_type=record.file_type,
        )
        for record in outcome.created
    ]
    results.extend(
        UploadResult(filename=failure.file_name, status="error", error=failure.reason)
        for failure in outcome.failed
    )
    results.extend(extra_failures or [])
    return UploadResponse(
        project_id=outcome.project.id,
        success_count=len(outcome.created),
        failed_count=len(results) - len(outcome.created),
        results=results,
    )


@router.post("/upload", response_model=UploadResponse)
async def upload_files(
    files: list[UploadFile] = File(...),
    project_id: Optional[UUID] = Query(
        None, description="Target project (defaults to the most recent project)"
    ),
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> UploadResponse:
    """
    Upload one or more SQL files as pending file records.

    Unsupported or empty files are reported per file and do not create
    records. Each stored file is committed independently.
    """
    if not files:
        raise HTTPException(status_code=400, detail="No files provided")

    uploads: list[FileUpload] = []
    unreadable: list[UploadResult] = []

    for uploaded_file in files:
        filename = uploaded_file.filename or "unknown"
        raw = await uploaded_file.read()
        try:
            content = raw.decode("utf-8")
        except UnicodeDecodeError:
            unreadable.append(
                UploadResult(
                    filename=filename,
                    status="error",
                    error="File is not valid UTF-8 text",
                )
            )
            continue
        uploads.append(FileUpload(file_name=filename, content=content))

    outcome = controller.upload_files(auth.user_id, project_id, uploads)
    return _upload_response(outcome, unreadable)


@router.post("/manual", response_model=UploadResponse)
async def add_manual_file(
    payload: ManualFileCreate,
    project_id: Optional[UUID] = Query(None),
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> UploadResponse:
    """Add a file typed in by hand; a .sql suffix is added when missing."""
    upload = FileUpload(
        file_name=normalize_manual_file_name(payload.file_name),
        content=payload.content,
        file_type=payload.file_type,
    )
    outcome = controller.upload_files(auth.user_id, project_id, [upload])
    return _upload_response(outcome)


@router.get("/{file_id}", response_model=FileRecordResponse)
async def get_file(
    file_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> FileRecordResponse:
    return FileRecordResponse.model_validate(controller.get_file(auth.user_id, file_id))


@router.post("/{file_id}/convert", response_model=FileRecordResponse)
def convert_file(
    file_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> FileRecordResponse:
    """
    Convert a file.

    Conversion failures are stored on the record (status 'failed') and still
    return 200; only storage problems and concurrent writes are errors.
    """
    record = controller.convert_file(auth.user_id, file_id)
    return FileRecordResponse.model_validate(record)


@router.post("/{file_id}/pending-review", response_model=FileRecordResponse)
async def mark_pending_review(
    file_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> FileRecordResponse:
    record = controller.mark_pending_review(auth.user_id, file_id)
    return FileRecordResponse.model_validate(record)


@router.post(
    "/{file_id}/review",
    response_model=UnreviewedFileResponse,
    status_code=status.HTTP_201_CREATED,
)
async def pull_into_review(
    file_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> UnreviewedFileResponse:
    """Copy a converted file into the review holding area."""
    item = controller.pull_into_review(auth.user_id, file_id)
    return UnreviewedFileResponse.model_validate(item)


@router.get("/{file_id}/export", response_class=PlainTextResponse)
async def export_file(
    file_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    controller: LifecycleController = Depends(get_controller),
) -> PlainTextResponse:
    """Download the converted content, or the original if not converted."""
    exported = controller.export_file(auth.user_id, file_id)
    return PlainTextResponse(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": _content_disposition(exported.file_name)},
    )
