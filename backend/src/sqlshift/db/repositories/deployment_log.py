"""
Deployment log repository.

Deployment logs are append-only: the only mutation is the bulk delete used
when a user clears their history.
"""

import uuid
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from sqlshift.db.repositories.base import BaseRepository
from sqlshift.models.db import DeploymentLog, DeploymentStatus


class DeploymentLogRepository(BaseRepository[DeploymentLog]):
    """Repository for DeploymentLog model."""

    def __init__(self, session: Session):
        super().__init__(DeploymentLog, session)

    def append(
        self,
        user_id: uuid.UUID,
        status: DeploymentStatus,
        file_count: int,
        lines_of_sql: int,
        error_message: Optional[str] = None,
        migration_id: Optional[uuid.UUID] = None,
        deployment_config: Optional[dict] = None,
    ) -> DeploymentLog:
        """Append a deployment attempt."""
        return self.create(
            user_id=user_id,
            status=status,
            file_count=file_count,
            lines_of_sql=lines_of_sql,
            error_message=error_message,
            migration_id=migration_id,
            deployment_config=deployment_config,
        )

    def list_for_user(
        self,
        user_id: uuid.UUID,
        migration_id: Optional[uuid.UUID] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[DeploymentLog]:
        """
        List a user's deployment attempts, newest first.

        Args:
            user_id: Owning user UUID
            migration_id: Optional project filter
            limit: Maximum number of records to return
            offset: Number of records to skip

        Returns:
            List of deployment logs
        """
        query = self.session.query(DeploymentLog).filter(
            DeploymentLog.user_id == user_id
        )
        if migration_id is not None:
            query = query.filter(DeploymentLog.migration_id == migration_id)
        query = query.order_by(desc(DeploymentLog.created_at)).offset(offset)
        if limit:
            query = query.limit(limit)
        return query.all()

    def delete_for_user(self, user_id: uuid.UUID) -> int:
        """Bulk delete every deployment log of a user."""
        deleted = (
            self.session.query(DeploymentLog)
            .filter(DeploymentLog.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self.session.flush()
        return deleted
