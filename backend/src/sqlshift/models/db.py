"""
SQLAlchemy database models for SQLShift.

These models represent the database schema for migration projects, the files
inside them, the unreviewed holding area and the deployment log.
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class FileType(str, enum.Enum):
    """Kind of database artifact held in a file."""

    TABLE = "table"
    PROCEDURE = "procedure"
    TRIGGER = "trigger"
    OTHER = "other"


class ConversionStatus(str, enum.Enum):
    """Lifecycle state of a FileRecord."""

    PENDING = "pending"  # Uploaded, not converted yet
    SUCCESS = "success"  # Converted, content available
    FAILED = "failed"  # Conversion raised, timed out or returned garbage
    PENDING_REVIEW = "pending_review"  # Converted, flagged for manual review
    DEPLOYED = "deployed"  # Pushed to the target database


# Statuses that carry converted content
CONVERTED_STATUSES = frozenset(
    {
        ConversionStatus.SUCCESS,
        ConversionStatus.PENDING_REVIEW,
        ConversionStatus.DEPLOYED,
    }
)


class ReviewStatus(str, enum.Enum):
    """State of an UnreviewedFile in the holding area."""

    UNREVIEWED = "unreviewed"
    REVIEWED = "reviewed"


class DeploymentStatus(str, enum.Enum):
    """Outcome of a deployment attempt."""

    SUCCESS = "Success"
    FAILED = "Failed"


class CommentTag(str, enum.Enum):
    """Label on a file comment."""

    ISSUE = "Issue"
    SUGGESTION = "Suggestion"
    QUESTION = "Question"
    RESOLVED = "Resolved"
    NOTE = "Note"
    TODO = "Todo"
    PRAISE = "Praise"


def _enum_column(enum_cls: type[enum.Enum]) -> Enum:
    return Enum(
        enum_cls,
        native_enum=False,
        values_callable=lambda x: [e.value for e in x],
        length=32,
    )


class MigrationProject(Base):
    """A batch of files migrated together, owned by one user."""

    __tablename__ = "migration_projects"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True
    )
    project_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        onupdate=utc_now,
        nullable=False,
    )

    # Relationships (FileRecords are deleted explicitly before the project)
    files: Mapped[list["FileRecord"]] = relationship(
        back_populates="project", passive_deletes="all"
    )
    reports: Mapped[list["MigrationReport"]] = relationship(
        back_populates="project", passive_deletes=True
    )

    def __repr__(self) -> str:
        return (
            f"<MigrationProject(id={self.id}, project_name={self.project_name!r})>"
        )


class FileRecord(Base):
    """
    Per-file conversion state within a migration project.

    Conversion outcomes are written by FileRecordRepository.apply_outcome; the
    two CHECK constraints reject a half-written row (e.g. success without
    converted content) whichever path wrote it.
    """

    __tablename__ = "file_records"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    migration_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("migration_projects.id"),
        nullable=False,
        index=True,
    )
    file_name: Mapped[str] = mapped_column(String(512), nullable=False)
    file_path: Mapped[str] = mapped_column(Text, nullable=False)
    file_type: Mapped[FileType] = mapped_column(
        _enum_column(FileType), nullable=False, default=FileType.OTHER
    )
    original_content: Mapped[str] = mapped_column(Text, nullable=False)
    converted_content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    conversion_status: Mapped[ConversionStatus] = mapped_column(
        _enum_column(ConversionStatus),
        nullable=False,
        default=ConversionStatus.PENDING,
        index=True,
    )
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    data_type_mapping: Mapped[Optional[list]] = mapped_column(JSONB, nullable=True)
    issues: Mapped[Optional[list]] = mapped_column(JSONB, nullable=True)
    performance_metrics: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True)

    deployment_timestamp: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Compare-and-swap token, bumped on every lifecycle write
    version: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default="1"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        onupdate=utc_now,
        nullable=False,
    )

    project: Mapped["MigrationProject"] = relationship(back_populates="files")

    __table_args__ = (
        CheckConstraint(
            "(converted_content IS NOT NULL) = "
            "(conversion_status IN ('success', 'pending_review', 'deployed'))",
            name="ck_file_records_converted_content",
        ),
        CheckConstraint(
            "(error_message IS NOT NULL) = (conversion_status = 'failed')",
            name="ck_file_records_error_message",
        ),
        Index("ix_file_records_migration_file_name", "migration_id", "file_name"),
    )

    @property
    def has_converted_content(self) -> bool:
        return self.conversion_status in CONVERTED_STATUSES

    def _bump_version(self) -> None:
        self.version = (self.version or 1) + 1

    def mark_pending_review(self) -> None:
        """Flag a converted file for manual review, keeping its content."""
        self.conversion_status = ConversionStatus.PENDING_REVIEW
        self._bump_version()

    def mark_deployed(self, deployed_at: Optional[datetime] = None) -> None:
        """Record a successful deployment of the converted content."""
        self.conversion_status = ConversionStatus.DEPLOYED
        self.deployment_timestamp = deployed_at or utc_now()
        self._bump_version()

    def mark_reviewed_content(
        self, converted_content: str, original_content: Optional[str] = None
    ) -> None:
        """Replace content with reviewed code and settle on success."""
        self.converted_content = converted_content
        if original_content is not None:
            self.original_content = original_content
        self.conversion_status = ConversionStatus.SUCCESS
        self.error_message = None
        self._bump_version()

    def export_content(self) -> str:
        """Content offered for download: converted if available, else original."""
        if self.converted_content is not None:
            return self.converted_content
        return self.original_content

    def __repr__(self) -> str:
        return (
            f"<FileRecord(id={self.id}, file_name={self.file_name!r}, "
            f"status={self.conversion_status.value})>"
        )


class UnreviewedFile(Base):
    """Staging copy of a converted file, editable without touching history."""

    __tablename__ = "unreviewed_files"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True
    )
    source_file_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("file_records.id", ondelete="SET NULL"),
        nullable=True,
    )
    file_name: Mapped[str] = mapped_column(String(512), nullable=False)
    original_code: Mapped[str] = mapped_column(Text, nullable=False)
    converted_code: Mapped[str] = mapped_column(Text, nullable=False)
    ai_generated_code: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[ReviewStatus] = mapped_column(
        _enum_column(ReviewStatus),
        nullable=False,
        default=ReviewStatus.UNREVIEWED,
        index=True,
    )

    data_type_mapping: Mapped[Optional[list]] = mapped_column(JSONB, nullable=True)
    issues: Mapped[Optional[list]] = mapped_column(JSONB, nullable=True)
    performance_metrics: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        onupdate=utc_now,
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<UnreviewedFile(id={self.id}, file_name={self.file_name!r}, "
            f"status={self.status.value})>"
        )


class DeploymentLog(Base):
    """Append-only record of an attempt to push converted files to a target."""

    __tablename__ = "deployment_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True
    )
    migration_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("migration_projects.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    status: Mapped[DeploymentStatus] = mapped_column(
        _enum_column(DeploymentStatus), nullable=False, index=True
    )
    file_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    lines_of_sql: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    deployment_config: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSONB, nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return (
            f"<DeploymentLog(id={self.id}, status={self.status.value}, "
            f"file_count={self.file_count})>"
        )


class ConversionCacheEntry(Base):
    """Converted output keyed by a hash of the source text."""

    __tablename__ = "conversion_cache"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    content_hash: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True, index=True
    )
    original_code: Mapped[str] = mapped_column(Text, nullable=False)
    converted_code: Mapped[str] = mapped_column(Text, nullable=False)
    data_type_mapping: Mapped[Optional[list]] = mapped_column(JSONB, nullable=True)
    issues: Mapped[Optional[list]] = mapped_column(JSONB, nullable=True)
    performance_metrics: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True)
    hit_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<ConversionCacheEntry(content_hash={self.content_hash[:12]!r})>"


class MigrationReport(Base):
    """Rendered Markdown report for a migration project."""

    __tablename__ = "migration_reports"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    migration_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("migration_projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    report_content: Mapped[str] = mapped_column(Text, nullable=False)
    efficiency_metrics: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    )

    project: Mapped["MigrationProject"] = relationship(back_populates="reports")

    def __repr__(self) -> str:
        return f"<MigrationReport(id={self.id}, migration_id={self.migration_id})>"


class FileComment(Base):
    """
    Tagged note a user leaves on a file.

    Comments are keyed by file path rather than by FileRecord so they survive
    re-uploads and history clears.
    """

    __tablename__ = "file_comments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True
    )
    file_path: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    tag: Mapped[CommentTag] = mapped_column(
        _enum_column(CommentTag), nullable=False, default=CommentTag.NOTE
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    )
    # Only set once the comment has been edited
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        CheckConstraint(
            "tag IN ('Issue', 'Suggestion', 'Question', 'Resolved', 'Note', "
            "'Todo', 'Praise')",
            name="ck_file_comments_tag",
        ),
        Index("ix_file_comments_user_file_path", "user_id", "file_path"),
    )

    def __repr__(self) -> str:
        return (
            f"<FileComment(id={self.id}, file_path={self.file_path!r}, "
            f"tag={self.tag.value})>"
        )
