"""
Read-time deduplication of file records.

Retries and re-uploads leave several FileRecords with the same name in one
project. History is never merged on write; instead every read goes through
``dedupe_file_records`` which keeps one record per case-insensitive name.
"""

from datetime import datetime, timezone
from typing import Iterable, List

from sqlshift.models.db import ConversionStatus, FileRecord


def _as_utc(value: datetime | None) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is None:
        return datetime.min.replace(tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _preference(record: FileRecord) -> tuple[bool, datetime]:
    return (
        record.conversion_status == ConversionStatus.SUCCESS,
        _as_utc(record.updated_at),
    )


def dedupe_file_records(records: Iterable[FileRecord]) -> List[FileRecord]:
    """
    Keep exactly one record per case-insensitive file name.

    A ``success`` record beats any other status. Between two non-success
    records the most recently updated one wins even when their statuses
    differ (a ``pending`` re-upload newer than a ``failed`` attempt replaces
    it), so the view tracks the latest attempt rather than the first one seen.
    Records with equal preference keep the first one seen. The result keeps
    the order in which each name was first seen, so callers' ordering (e.g. by
    creation time) is preserved.

    Args:
        records: File records of one project

    Returns:
        Deduplicated list
    """
    chosen: dict[str, FileRecord] = {}
    for record in records:
        key = record.file_name.lower()
        current = chosen.get(key)
        if current is None or _preference(record) > _preference(current):
            chosen[key] = record
    return list(chosen.values())
