"""
Per-project aggregation for history views.
"""

import uuid
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from sqlshift.exceptions import ValidationError
from sqlshift.models.db import ConversionStatus, FileRecord, MigrationProject

HISTORY_FILTERS = ("all", "success", "failed", "pending_review")


@dataclass(frozen=True)
class ProjectSummary:
    """Status counts over a project's deduplicated files."""

    file_count: int = 0
    success_count: int = 0
    failed_count: int = 0
    pending_count: int = 0
    pending_review_count: int = 0
    deployed_count: int = 0

    @property
    def has_converted_files(self) -> bool:
        # Pending-only projects are in progress, not history
        return (
            self.success_count > 0
            or self.failed_count > 0
            or self.pending_review_count > 0
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["has_converted_files"] = self.has_converted_files
        return data


def summarize(records: Iterable[FileRecord]) -> ProjectSummary:
    """
    Count records per status.

    Args:
        records: Deduplicated file records of one project

    Returns:
        ProjectSummary whose file_count equals the sum of the status counts
    """
    counts = {status: 0 for status in ConversionStatus}
    for record in records:
        counts[record.conversion_status] += 1

    return ProjectSummary(
        file_count=sum(counts.values()),
        success_count=counts[ConversionStatus.SUCCESS],
        failed_count=counts[ConversionStatus.FAILED],
        pending_count=counts[ConversionStatus.PENDING],
        pending_review_count=counts[ConversionStatus.PENDING_REVIEW],
        deployed_count=counts[ConversionStatus.DEPLOYED],
    )


@dataclass(frozen=True)
class ProjectHistoryEntry:
    """A project row in the history view."""

    id: uuid.UUID
    project_name: str
    description: Optional[str]
    created_at: datetime
    updated_at: datetime
    summary: ProjectSummary

    @classmethod
    def from_project(
        cls, project: MigrationProject, summary: ProjectSummary
    ) -> "ProjectHistoryEntry":
        return cls(
            id=project.id,
            project_name=project.project_name,
            description=project.description,
            created_at=project.created_at,
            updated_at=project.updated_at,
            summary=summary,
        )


def filter_history(
    entries: Iterable[ProjectHistoryEntry], status_filter: str = "all"
) -> List[ProjectHistoryEntry]:
    """
    Select projects for the completed-history view.

    Only projects with files and at least one converted file are shown; the
    status filter further requires at least one file in that status.

    Args:
        entries: History entries, already ordered
        status_filter: 'all', 'success', 'failed' or 'pending_review'

    Returns:
        Filtered entries in input order

    Raises:
        ValidationError: If status_filter is unknown
    """
    if status_filter not in HISTORY_FILTERS:
        raise ValidationError(
            f"Unknown status filter: {status_filter} "
            f"(expected one of {', '.join(HISTORY_FILTERS)})"
        )

    visible = [
        entry
        for entry in entries
        if entry.summary.file_count > 0 and entry.summary.has_converted_files
    ]
    if status_filter == "success":
        return [e for e in visible if e.summary.success_count > 0]
    if status_filter == "failed":
        return [e for e in visible if e.summary.failed_count > 0]
    if status_filter == "pending_review":
        return [e for e in visible if e.summary.pending_review_count > 0]
    return visible


@dataclass(frozen=True)
class UserSummary:
    """Totals across all of a user's projects."""

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

    @property
    def success_rate(self) -> float:
        """Share of converted files (success or later) among all files."""
        if self.file_count == 0:
            return 0.0
        converted = self.success_count + self.pending_review_count + self.deployed_count
        return converted / self.file_count
