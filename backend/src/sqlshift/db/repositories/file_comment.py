"""
File comment repository.
"""

import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from sqlshift.db.repositories.base import BaseRepository
from sqlshift.models.db import CommentTag, FileComment


class FileCommentRepository(BaseRepository[FileComment]):
    """Repository for FileComment model."""

    def __init__(self, session: Session):
        super().__init__(FileComment, session)

    def get_for_user(
        self, comment_id: uuid.UUID, user_id: uuid.UUID
    ) -> Optional[FileComment]:
        """Get a comment only if the user wrote it."""
        return (
            self.session.query(FileComment)
            .filter(FileComment.id == comment_id, FileComment.user_id == user_id)
            .first()
        )

    def list_for_file(
        self,
        user_id: uuid.UUID,
        file_path: str,
        tag: Optional[CommentTag] = None,
    ) -> List[FileComment]:
        """
        List a user's comments on one file, oldest first.

        Args:
            user_id: Owning user UUID
            file_path: Exact file path the comments are attached to
            tag: Optional tag filter

        Returns:
            List of comments
        """
        query = self.session.query(FileComment).filter(
            FileComment.user_id == user_id,
            FileComment.file_path == file_path,
        )
        if tag is not None:
            query = query.filter(FileComment.tag == tag)
        return query.order_by(FileComment.created_at).all()
