"""Add file_comments table

Revision ID: 002_file_comments
Revises: 001_initial
Create Date: 2026-10-18
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "002_file_comments"
down_revision: Union[str, None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "file_comments",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("file_path", sa.Text, nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("tag", sa.String(32), nullable=False, server_default="Note"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "tag IN ('Issue', 'Suggestion', 'Question', 'Resolved', 'Note', "
            "'Todo', 'Praise')",
            name="ck_file_comments_tag",
        ),
    )
    op.create_index("ix_file_comments_user_id", "file_comments", ["user_id"])
    op.create_index(
        "ix_file_comments_user_file_path", "file_comments", ["user_id", "file_path"]
    )


def downgrade() -> None:
    op.drop_index("ix_file_comments_user_file_path", table_name="file_comments")
    op.drop_index("ix_file_comments_user_id", table_name="file_comments")
    op.drop_table("file_comments")
