"""
Migration report repository.
"""

import uuid
from typing import List

from sqlalchemy import desc
from sqlalchemy.orm import Session

from sqlshift.db.repositories.base import BaseRepository
from sqlshift.models.db import MigrationReport


class MigrationReportRepository(BaseRepository[MigrationReport]):
    """Repository for MigrationReport model."""

    def __init__(self, session: Session):
        super().__init__(MigrationReport, session)

    def list_for_project(self, migration_id: uuid.UUID) -> List[MigrationReport]:
        """List a project's reports, newest first."""
        return (
            self.session.query(MigrationReport)
            .filter(MigrationReport.migration_id == migration_id)
            .order_by(desc(MigrationReport.created_at))
            .all()
        )

    def delete_for_projects(self, migration_ids: List[uuid.UUID]) -> int:
        """Bulk delete reports of the given projects."""
        if not migration_ids:
            return 0
        deleted = (
            self.session.query(MigrationReport)
            .filter(MigrationReport.migration_id.in_(migration_ids))
            .delete(synchronize_session=False)
        )
        self.session.flush()
        return deleted
