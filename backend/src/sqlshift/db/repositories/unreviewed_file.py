"""
Unreviewed file repository.
"""

import uuid
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from sqlshift.db.repositories.base import BaseRepository
from sqlshift.models.db import ReviewStatus, UnreviewedFile


class UnreviewedFileRepository(BaseRepository[UnreviewedFile]):
    """Repository for UnreviewedFile model."""

    def __init__(self, session: Session):
        super().__init__(UnreviewedFile, session)

    def get_for_user(
        self, unreviewed_id: uuid.UUID, user_id: uuid.UUID
    ) -> Optional[UnreviewedFile]:
        """Get a holding-area record only if it belongs to the user."""
        return (
            self.session.query(UnreviewedFile)
            .filter(
                UnreviewedFile.id == unreviewed_id,
                UnreviewedFile.user_id == user_id,
            )
            .first()
        )

    def list_for_user(
        self,
        user_id: uuid.UUID,
        status: Optional[ReviewStatus] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[UnreviewedFile]:
        """
        List a user's holding-area records, newest first.

        Args:
            user_id: Owning user UUID
            status: Optional status filter
            search: Optional case-insensitive substring of the file name
            limit: Maximum number of records to return
            offset: Number of records to skip

        Returns:
            List of unreviewed files
        """
        query = self.session.query(UnreviewedFile).filter(
            UnreviewedFile.user_id == user_id
        )
        if status is not None:
            query = query.filter(UnreviewedFile.status == status)
        if search:
            query = query.filter(UnreviewedFile.file_name.ilike(f"%{search}%"))
        query = query.order_by(desc(UnreviewedFile.created_at)).offset(offset)
        if limit:
            query = query.limit(limit)
        return query.all()

    def count_by_status(self, user_id: uuid.UUID) -> dict[str, int]:
        """Count a user's holding-area records per status."""
        counts = {status.value: 0 for status in ReviewStatus}
        for record in self.list_for_user(user_id):
            counts[record.status.value] += 1
        return counts

    def delete_for_user(self, user_id: uuid.UUID) -> int:
        """Bulk delete every holding-area record of a user."""
        deleted = (
            self.session.query(UnreviewedFile)
            .filter(UnreviewedFile.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self.session.flush()
        return deleted
