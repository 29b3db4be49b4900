"""Markdown migration reports."""

from datetime import datetime
from typing import Any, Sequence

from sqlshift.lifecycle.summary import ProjectSummary
from sqlshift.models.db import FileRecord, MigrationProject, utc_now


def efficiency_metrics(
    records: Sequence[FileRecord], summary: ProjectSummary
) -> dict[str, Any]:
    """Aggregate timing and issue counts stored with a report."""
    conversion_times = [
        (record.performance_metrics or {}).get("conversion_time_ms", 0)
        for record in records
    ]
    total_issues = sum(len(record.issues or []) for record in records)
    converted = summary.success_count + summary.pending_review_count + summary.deployed_count

    return {
        "total_files": summary.file_count,
        "converted_files": converted,
        "failed_files": summary.failed_count,
        "success_rate": round(converted / summary.file_count, 4)
        if summary.file_count
        else 0.0,
        "total_issues": total_issues,
        "total_conversion_time_ms": sum(conversion_times),
    }


def render_report(
    project: MigrationProject,
    records: Sequence[FileRecord],
    summary: ProjectSummary,
    generated_at: datetime | None = None,
) -> str:
    """
    Render a Markdown report for a project.

    Args:
        project: The migration project
        records: Deduplicated file records of the project
        summary: Counts over ``records``
        generated_at: Report timestamp (defaults to now)

    Returns:
        Markdown text
    """
    generated_at = generated_at or utc_now()
    lines = [
        f"# Migration Report: {project.project_name}",
        "",
        f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M:%S')} UTC",
        "",
        "## Summary",
        f"- Total Files: {summary.file_count}",
        f"- Successful: {summary.success_count}",
        f"- Failed: {summary.failed_count}",
        f"- Pending: {summary.pending_count}",
        f"- Pending Review: {summary.pending_review_count}",
        f"- Deployed: {summary.deployed_count}",
        "",
        "## File Details",
    ]

    for record in records:
        metrics = record.performance_metrics or {}
        lines.extend(
            [
                "",
                f"### {record.file_name}",
                f"- Type: {record.file_type.value}",
                f"- Status: {record.conversion_status.value}",
                f"- Conversion Time: {metrics.get('conversion_time_ms', 0)}ms",
                f"- Issues Found: {len(record.issues or [])}",
            ]
        )
        if record.error_message:
            lines.append(f"- Error: {record.error_message}")

    return "\n".join(lines) + "\n"
