"""
Migration project repository.
"""

import uuid
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from sqlshift.db.repositories.base import BaseRepository
from sqlshift.models.db import MigrationProject, utc_now


class MigrationProjectRepository(BaseRepository[MigrationProject]):
    """Repository for MigrationProject model."""

    def __init__(self, session: Session):
        super().__init__(MigrationProject, session)

    def get_for_user(
        self, project_id: uuid.UUID, user_id: uuid.UUID
    ) -> Optional[MigrationProject]:
        """
        Get a project only if it belongs to the user.

        Args:
            project_id: Project UUID
            user_id: Owning user UUID

        Returns:
            MigrationProject instance or None
        """
        return (
            self.session.query(MigrationProject)
            .filter(
                MigrationProject.id == project_id,
                MigrationProject.user_id == user_id,
            )
            .first()
        )

    def list_for_user(
        self, user_id: uuid.UUID, limit: Optional[int] = None, offset: int = 0
    ) -> List[MigrationProject]:
        """
        List a user's projects, newest first.

        Args:
            user_id: Owning user UUID
            limit: Maximum number of records to return
            offset: Number of records to skip

        Returns:
            List of projects
        """
        query = (
            self.session.query(MigrationProject)
            .filter(MigrationProject.user_id == user_id)
            .order_by(desc(MigrationProject.created_at))
            .offset(offset)
        )
        if limit:
            query = query.limit(limit)
        return query.all()

    def get_latest_for_user(self, user_id: uuid.UUID) -> Optional[MigrationProject]:
        """Get the most recently created project for a user."""
        return (
            self.session.query(MigrationProject)
            .filter(MigrationProject.user_id == user_id)
            .order_by(desc(MigrationProject.created_at))
            .first()
        )

    def get_or_create_latest(
        self, user_id: uuid.UUID, project_name: str
    ) -> tuple[MigrationProject, bool]:
        """
        Get the user's most recent project or create one.

        Args:
            user_id: Owning user UUID
            project_name: Name used if a project has to be created

        Returns:
            Tuple of (project, created)
        """
        project = self.get_latest_for_user(user_id)
        if project:
            return project, False
        return self.create(user_id=user_id, project_name=project_name), True

    def rename(
        self, project: MigrationProject, project_name: str
    ) -> MigrationProject:
        """Rename a project and bump its updated_at."""
        project.project_name = project_name
        project.updated_at = utc_now()
        self.session.flush()
        return project

    def ids_for_user(self, user_id: uuid.UUID) -> List[uuid.UUID]:
        """Get ids of every project owned by the user."""
        rows = (
            self.session.query(MigrationProject.id)
            .filter(MigrationProject.user_id == user_id)
            .all()
        )
        return [row[0] for row in rows]

    def count_for_user(self, user_id: uuid.UUID) -> int:
        """Count projects owned by the user."""
        return (
            self.session.query(MigrationProject)
            .filter(MigrationProject.user_id == user_id)
            .count()
        )

    def delete_by_ids(self, project_ids: List[uuid.UUID]) -> int:
        """
        Bulk delete projects by id.

        The caller must delete the projects' FileRecords first; the foreign key
        rejects deleting a project that still has files.

        Returns:
            Number of deleted rows
        """
        if not project_ids:
            return 0
        deleted = (
            self.session.query(MigrationProject)
            .filter(MigrationProject.id.in_(project_ids))
            .delete(synchronize_session=False)
        )
        self.session.flush()
        return deleted
