"""
File lifecycle: transitions, read-time deduplication and aggregation.
"""

from sqlshift.lifecycle.controller import (
    ClearHistoryResult,
    ExportedFile,
    FileUpload,
    LifecycleController,
    UploadFailure,
    UploadOutcome,
)
from sqlshift.lifecycle.dedup import dedupe_file_records
from sqlshift.lifecycle.summary import (
    ProjectHistoryEntry,
    ProjectSummary,
    UserSummary,
    filter_history,
    summarize,
)

__all__ = [
    "ClearHistoryResult",
    "ExportedFile",
    "FileUpload",
    "LifecycleController",
    "ProjectHistoryEntry",
    "ProjectSummary",
    "UploadFailure",
    "UploadOutcome",
    "UserSummary",
    "dedupe_file_records",
    "filter_history",
    "summarize",
]
