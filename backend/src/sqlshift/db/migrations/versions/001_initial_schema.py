"""Initial schema for migration projects, file records and deployment logs

Revision ID: 001_initial
Revises:
Create Date: 2026-09-28

Status columns are plain VARCHARs holding the enum values so that new
lifecycle states don't need a type migration.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_column() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )


def _timestamp_column(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("NOW()"),
    )


def upgrade() -> None:
    op.create_table(
        "migration_projects",
        _id_column(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("project_name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        _timestamp_column("created_at"),
        _timestamp_column("updated_at"),
    )
    op.create_index(
        "ix_migration_projects_user_id", "migration_projects", ["user_id"]
    )
    op.create_index(
        "ix_migration_projects_created_at", "migration_projects", ["created_at"]
    )

    op.create_table(
        "file_records",
        _id_column(),
        sa.Column(
            "migration_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("migration_projects.id"),
            nullable=False,
        ),
        sa.Column("file_name", sa.String(512), nullable=False),
        sa.Column("file_path", sa.Text, nullable=False),
        sa.Column("file_type", sa.String(32), nullable=False, server_default="other"),
        sa.Column("original_content", sa.Text, nullable=False),
        sa.Column("converted_content", sa.Text, nullable=True),
        sa.Column(
            "conversion_status",
            sa.String(32),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("data_type_mapping", postgresql.JSONB, nullable=True),
        sa.Column("issues", postgresql.JSONB, nullable=True),
        sa.Column("performance_metrics", postgresql.JSONB, nullable=True),
        sa.Column("deployment_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        _timestamp_column("created_at"),
        _timestamp_column("updated_at"),
        sa.CheckConstraint(
            "(converted_content IS NOT NULL) = "
            "(conversion_status IN ('success', 'pending_review', 'deployed'))",
            name="ck_file_records_converted_content",
        ),
        sa.CheckConstraint(
            "(error_message IS NOT NULL) = (conversion_status = 'failed')",
            name="ck_file_records_error_message",
        ),
    )
    op.create_index("ix_file_records_migration_id", "file_records", ["migration_id"])
    op.create_index(
        "ix_file_records_conversion_status", "file_records", ["conversion_status"]
    )
    op.create_index(
        "ix_file_records_migration_file_name",
        "file_records",
        ["migration_id", "file_name"],
    )

    op.create_table(
        "unreviewed_files",
        _id_column(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "source_file_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("file_records.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("file_name", sa.String(512), nullable=False),
        sa.Column("original_code", sa.Text, nullable=False),
        sa.Column("converted_code", sa.Text, nullable=False),
        sa.Column("ai_generated_code", sa.Text, nullable=True),
        sa.Column(
            "status", sa.String(32), nullable=False, server_default="unreviewed"
        ),
        sa.Column("data_type_mapping", postgresql.JSONB, nullable=True),
        sa.Column("issues", postgresql.JSONB, nullable=True),
        sa.Column("performance_metrics", postgresql.JSONB, nullable=True),
        _timestamp_column("created_at"),
        _timestamp_column("updated_at"),
    )
    op.create_index("ix_unreviewed_files_user_id", "unreviewed_files", ["user_id"])
    op.create_index("ix_unreviewed_files_status", "unreviewed_files", ["status"])
    op.create_index(
        "ix_unreviewed_files_created_at", "unreviewed_files", ["created_at"]
    )

    op.create_table(
        "deployment_logs",
        _id_column(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "migration_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("migration_projects.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("file_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("lines_of_sql", sa.Integer, nullable=False, server_default="0"),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("deployment_config", postgresql.JSONB, nullable=True),
        _timestamp_column("created_at"),
    )
    op.create_index("ix_deployment_logs_user_id", "deployment_logs", ["user_id"])
    op.create_index(
        "ix_deployment_logs_migration_id", "deployment_logs", ["migration_id"]
    )
    op.create_index("ix_deployment_logs_status", "deployment_logs", ["status"])
    op.create_index(
        "ix_deployment_logs_created_at", "deployment_logs", ["created_at"]
    )

    op.create_table(
        "conversion_cache",
        _id_column(),
        sa.Column("content_hash", sa.String(64), nullable=False),
        sa.Column("original_code", sa.Text, nullable=False),
        sa.Column("converted_code", sa.Text, nullable=False),
        sa.Column("data_type_mapping", postgresql.JSONB, nullable=True),
        sa.Column("issues", postgresql.JSONB, nullable=True),
        sa.Column("performance_metrics", postgresql.JSONB, nullable=True),
        sa.Column("hit_count", sa.Integer, nullable=False, server_default="0"),
        _timestamp_column("created_at"),
    )
    op.create_index(
        "ix_conversion_cache_content_hash",
        "conversion_cache",
        ["content_hash"],
        unique=True,
    )

    op.create_table(
        "migration_reports",
        _id_column(),
        sa.Column(
            "migration_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("migration_projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("report_content", sa.Text, nullable=False),
        sa.Column("efficiency_metrics", postgresql.JSONB, nullable=True),
        _timestamp_column("created_at"),
    )
    op.create_index(
        "ix_migration_reports_migration_id", "migration_reports", ["migration_id"]
    )


def downgrade() -> None:
    op.drop_table("migration_reports")
    op.drop_table("conversion_cache")
    op.drop_table("deployment_logs")
    op.drop_table("unreviewed_files")
    op.drop_table("file_records")
    op.drop_table("migration_projects")
