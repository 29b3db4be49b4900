"""
File record repository.
"""

import uuid
from typing import List, Optional

from sqlalchemy import desc, func, update
from sqlalchemy.orm import Session

from sqlshift.db.repositories.base import BaseRepository
from sqlshift.models.conversion import ConversionOutcome
from sqlshift.models.db import (
    ConversionStatus,
    FileRecord,
    FileType,
    MigrationProject,
    utc_now,
)


class FileRecordRepository(BaseRepository[FileRecord]):
    """Repository for FileRecord model."""

    def __init__(self, session: Session):
        super().__init__(FileRecord, session)

    def get_for_user(
        self, file_id: uuid.UUID, user_id: uuid.UUID
    ) -> Optional[FileRecord]:
        """
        Get a file record only if its project belongs to the user.

        Args:
            file_id: FileRecord UUID
            user_id: Owning user UUID

        Returns:
            FileRecord instance or None
        """
        return (
            self.session.query(FileRecord)
            .join(MigrationProject, FileRecord.migration_id == MigrationProject.id)
            .filter(FileRecord.id == file_id, MigrationProject.user_id == user_id)
            .first()
        )

    def list_for_project(self, migration_id: uuid.UUID) -> List[FileRecord]:
        """
        List every record of a project, including re-upload duplicates.

        Args:
            migration_id: Project UUID

        Returns:
            List of file records ordered by creation time
        """
        return (
            self.session.query(FileRecord)
            .filter(FileRecord.migration_id == migration_id)
            .order_by(FileRecord.created_at)
            .all()
        )

    def list_for_projects(self, migration_ids: List[uuid.UUID]) -> List[FileRecord]:
        """List records for several projects in one query."""
        if not migration_ids:
            return []
        return (
            self.session.query(FileRecord)
            .filter(FileRecord.migration_id.in_(migration_ids))
            .order_by(FileRecord.created_at)
            .all()
        )

    def list_by_ids_for_user(
        self, file_ids: List[uuid.UUID], user_id: uuid.UUID
    ) -> List[FileRecord]:
        """Get the subset of the given records owned by the user."""
        if not file_ids:
            return []
        return (
            self.session.query(FileRecord)
            .join(MigrationProject, FileRecord.migration_id == MigrationProject.id)
            .filter(FileRecord.id.in_(file_ids), MigrationProject.user_id == user_id)
            .all()
        )

    def find_latest_by_name(
        self, migration_id: uuid.UUID, file_name: str
    ) -> Optional[FileRecord]:
        """
        Find the most recently updated record with a case-insensitive name match.

        Args:
            migration_id: Project UUID
            file_name: File name to look up

        Returns:
            FileRecord instance or None
        """
        return (
            self.session.query(FileRecord)
            .filter(
                FileRecord.migration_id == migration_id,
                func.lower(FileRecord.file_name) == file_name.lower(),
            )
            .order_by(desc(FileRecord.updated_at))
            .first()
        )

    def create_pending(
        self,
        migration_id: uuid.UUID,
        file_name: str,
        original_content: str,
        file_type: FileType,
        file_path: Optional[str] = None,
    ) -> FileRecord:
        """Create a record in the pending state with no converted content."""
        return self.create(
            migration_id=migration_id,
            file_name=file_name,
            file_path=file_path or file_name,
            file_type=file_type,
            original_content=original_content,
            converted_content=None,
            conversion_status=ConversionStatus.PENDING,
            error_message=None,
        )

    def apply_outcome(
        self,
        file_id: uuid.UUID,
        expected_version: int,
        outcome: ConversionOutcome,
        **extra_values,
    ) -> bool:
        """
        Write a conversion outcome with a compare-and-swap on ``version``.

        The UPDATE only matches if the record still has ``expected_version``,
        so of two concurrent conversions the slower writer matches nothing.

        Args:
            file_id: FileRecord UUID
            expected_version: Version read before the conversion started
            outcome: Converted or ConversionFailure
            **extra_values: Additional columns to write in the same UPDATE

        Returns:
            True if the write won, False if the record changed meanwhile
        """
        values = outcome.to_record_values()
        values.update(extra_values)
        values["version"] = expected_version + 1
        values["updated_at"] = utc_now()
        result = self.session.execute(
            update(FileRecord)
            .where(
                FileRecord.id == file_id,
                FileRecord.version == expected_version,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.session.flush()
        won = result.rowcount == 1
        if won:
            record = self.session.get(FileRecord, file_id)
            if record is not None:
                self.session.refresh(record)
        return won

    def delete_for_projects(self, migration_ids: List[uuid.UUID]) -> int:
        """
        Bulk delete every record belonging to the given projects.

        Returns:
            Number of deleted rows
        """
        if not migration_ids:
            return 0
        deleted = (
            self.session.query(FileRecord)
            .filter(FileRecord.migration_id.in_(migration_ids))
            .delete(synchronize_session=False)
        )
        self.session.flush()
        return deleted
