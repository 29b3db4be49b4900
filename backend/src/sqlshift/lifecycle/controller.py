"""
Lifecycle controller.

Owns every state transition of file records, the unreviewed holding area and
the deployment log. Each mutating operation commits its own transaction;
batch uploads commit once per file so a failure on one file leaves the others
in place.
"""

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sqlshift.config import settings
from sqlshift.conversion.base import Converter, Deployer
from sqlshift.conversion.loader import load_converter, load_deployer
from sqlshift.conversion.runner import run_conversion
from sqlshift.db.repositories import (
    ConversionCacheRepository,
    DeploymentLogRepository,
    FileCommentRepository,
    FileRecordRepository,
    MigrationProjectRepository,
    MigrationReportRepository,
    UnreviewedFileRepository,
)
from sqlshift.exceptions import (
    AuthRequiredError,
    InvalidTransitionError,
    NotFoundError,
    StaleWriteError,
    StorageError,
    ValidationError,
)
from sqlshift.lifecycle.dedup import dedupe_file_records
from sqlshift.lifecycle.file_types import detect_file_type, ensure_supported
from sqlshift.lifecycle.reports import efficiency_metrics, render_report
from sqlshift.lifecycle.summary import (
    HISTORY_FILTERS,
    ProjectHistoryEntry,
    ProjectSummary,
    UserSummary,
    filter_history,
    summarize,
)
from sqlshift.models.conversion import ConversionOutcome, Converted
from sqlshift.models.db import (
    CommentTag,
    ConversionStatus,
    DeploymentLog,
    DeploymentStatus,
    FileComment,
    FileRecord,
    FileType,
    MigrationProject,
    MigrationReport,
    ReviewStatus,
    UnreviewedFile,
    utc_now,
)

logger = logging.getLogger(__name__)

# Statuses a (re-)conversion may start from
CONVERTIBLE_STATUSES = frozenset(
    {ConversionStatus.PENDING, ConversionStatus.SUCCESS, ConversionStatus.FAILED}
)


@dataclass
class FileUpload:
    """One file submitted for upload."""

    file_name: str
    content: str
    file_path: Optional[str] = None
    file_type: Optional[FileType] = None


@dataclass
class UploadFailure:
    """A file that could not be stored, with the reason."""

    file_name: str
    reason: str


@dataclass
class UploadOutcome:
    """Result of a batch upload."""

    project: MigrationProject
    created: List[FileRecord] = field(default_factory=list)
    failed: List[UploadFailure] = field(default_factory=list)


@dataclass
class ClearHistoryResult:
    """Rows removed by a history clear."""

    files_deleted: int = 0
    projects_deleted: int = 0
    reports_deleted: int = 0
    deployments_deleted: int = 0


@dataclass
class ExportedFile:
    """Plain-text download payload."""

    file_name: str
    content: str
    media_type: str = "text/plain"


def default_project_name() -> str:
    return f"Migration {utc_now().strftime('%Y-%m-%d %H:%M:%S')}"


class LifecycleController:
    """
    Orchestrates file lifecycle transitions for one database session.

    Every operation takes the acting ``user_id`` explicitly; records owned by
    other users are reported as not found.

    Example:
        >>> with db_session() as session:
        ...     controller = LifecycleController(session)
        ...     project = controller.start_project(user_id)
        ...     outcome = controller.upload_files(user_id, project.id, files)
        ...     controller.convert_file(user_id, outcome.created[0].id)
    """

    def __init__(
        self,
        session: Session,
        converter: Optional[Converter] = None,
        deployer: Optional[Deployer] = None,
        cache_enabled: Optional[bool] = None,
        conversion_timeout: Optional[float] = None,
    ):
        self.session = session
        self._converter = converter
        self._deployer = deployer
        self.cache_enabled = (
            settings.conversion_cache_enabled if cache_enabled is None else cache_enabled
        )
        self.conversion_timeout = (
            conversion_timeout
            if conversion_timeout is not None
            else settings.conversion_timeout_seconds
        )

        self.projects = MigrationProjectRepository(session)
        self.files = FileRecordRepository(session)
        self.unreviewed = UnreviewedFileRepository(session)
        self.deployments = DeploymentLogRepository(session)
        self.cache = ConversionCacheRepository(session)
        self.reports = MigrationReportRepository(session)
        self.comments = FileCommentRepository(session)

    @property
    def converter(self) -> Converter:
        if self._converter is None:
            self._converter = load_converter()
        return self._converter

    @property
    def deployer(self) -> Deployer:
        if self._deployer is None:
            self._deployer = load_deployer()
        return self._deployer

    # ===== Internal helpers =====

    @contextmanager
    def _storage(self, action: str) -> Iterator[None]:
        """Roll back and re-raise database errors as StorageError."""
        try:
            yield
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Storage failure while trying to {action}: {e}", exc_info=True)
            raise StorageError(f"Failed to {action}: {e}") from e

    @staticmethod
    def _require_user(user_id: Optional[uuid.UUID]) -> uuid.UUID:
        if user_id is None:
            raise AuthRequiredError()
        return user_id

    def _get_project(self, user_id: uuid.UUID, project_id: uuid.UUID) -> MigrationProject:
        with self._storage("load project"):
            project = self.projects.get_for_user(project_id, user_id)
        if project is None:
            raise NotFoundError("MigrationProject", project_id)
        return project

    def _get_file(self, user_id: uuid.UUID, file_id: uuid.UUID) -> FileRecord:
        with self._storage("load file record"):
            record = self.files.get_for_user(file_id, user_id)
        if record is None:
            raise NotFoundError("FileRecord", file_id)
        return record

    @staticmethod
    def _ensure_convertible(record: FileRecord) -> None:
        if record.conversion_status not in CONVERTIBLE_STATUSES:
            raise InvalidTransitionError(
                "FileRecord", record.conversion_status.value, "convert"
            )

    def _get_unreviewed(
        self, user_id: uuid.UUID, unreviewed_id: uuid.UUID
    ) -> UnreviewedFile:
        with self._storage("load unreviewed file"):
            item = self.unreviewed.get_for_user(unreviewed_id, user_id)
        if item is None:
            raise NotFoundError("UnreviewedFile", unreviewed_id)
        return item

    def _convert(self, source_text: str) -> ConversionOutcome:
        """Run the converter, consulting the cache first when enabled."""
        if self.cache_enabled:
            cached = self.cache.lookup(source_text)
            if cached is not None:
                logger.debug("Conversion cache hit")
                return cached

        outcome = run_conversion(self.converter, source_text, self.conversion_timeout)

        if self.cache_enabled and isinstance(outcome, Converted):
            self.cache.store(source_text, outcome)
        return outcome

    # ===== Projects =====

    def start_project(
        self,
        user_id: Optional[uuid.UUID],
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> MigrationProject:
        """
        Create a migration project.

        Args:
            user_id: Acting user
            name: Project name; a timestamped name is used when blank
            description: Optional description

        Returns:
            The new project
        """
        user_id = self._require_user(user_id)
        project_name = name.strip() if name and name.strip() else default_project_name()

        with self._storage("create project"):
            project = self.projects.create(
                user_id=user_id, project_name=project_name, description=description
            )
            self.session.commit()

        logger.info(f"Started project {project.id} ({project_name!r}) for user {user_id}")
        return project

    def get_or_create_active_project(self, user_id: Optional[uuid.UUID]) -> MigrationProject:
        """Most recently created project of the user, created if there is none."""
        user_id = self._require_user(user_id)
        with self._storage("resolve active project"):
            project, created = self.projects.get_or_create_latest(
                user_id, default_project_name()
            )
            if created:
                self.session.commit()
                logger.info(f"Created active project {project.id} for user {user_id}")
        return project

    def list_projects(
        self, user_id: Optional[uuid.UUID], limit: Optional[int] = None, offset: int = 0
    ) -> List[MigrationProject]:
        user_id = self._require_user(user_id)
        with self._storage("list projects"):
            return self.projects.list_for_user(user_id, limit=limit, offset=offset)

    def get_project(
        self, user_id: Optional[uuid.UUID], project_id: uuid.UUID
    ) -> MigrationProject:
        return self._get_project(self._require_user(user_id), project_id)

    def update_project(
        self,
        user_id: Optional[uuid.UUID],
        project_id: uuid.UUID,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> MigrationProject:
        """Rename a project and/or change its description."""
        user_id = self._require_user(user_id)
        project = self._get_project(user_id, project_id)
        if name is not None and not name.strip():
            raise ValidationError("Project name cannot be empty")

        with self._storage("update project"):
            if name is not None:
                self.projects.rename(project, name.strip())
            if description is not None:
                project.description = description
                project.updated_at = utc_now()
            self.session.commit()
        return project

    def delete_project(self, user_id: Optional[uuid.UUID], project_id: uuid.UUID) -> None:
        """
        Delete a project and its file records.

        File records are removed first in the same transaction; reports go
        with the project through the foreign key cascade.
        """
        user_id = self._require_user(user_id)
        project = self._get_project(user_id, project_id)

        with self._storage("delete project"):
            deleted_files = self.files.delete_for_projects([project.id])
            self.session.delete(project)
            self.session.commit()

        logger.info(f"Deleted project {project_id} with {deleted_files} file(s)")

    # ===== Upload & conversion =====

    def _validate_upload(self, upload: FileUpload) -> None:
        ensure_supported(upload.file_name)
        if not upload.content or not upload.content.strip():
            raise ValidationError(f"File is empty: {upload.file_name}")
        if len(upload.content.encode("utf-8")) > settings.max_upload_bytes:
            raise ValidationError(
                f"File too large: {upload.file_name} "
                f"(max {settings.max_upload_bytes} bytes)"
            )

    def upload_files(
        self,
        user_id: Optional[uuid.UUID],
        project_id: Optional[uuid.UUID],
        files: Sequence[FileUpload],
    ) -> UploadOutcome:
        """
        Store uploaded files as pending file records.

        Invalid files are rejected before any record exists. Each valid file
        is committed on its own, so a storage failure only loses that file.

        Args:
            user_id: Acting user
            project_id: Target project, or None for the active project
            files: Files to store

        Returns:
            UploadOutcome listing created records and failures
        """
        user_id = self._require_user(user_id)
        if project_id is None:
            project = self.get_or_create_active_project(user_id)
        else:
            project = self._get_project(user_id, project_id)

        outcome = UploadOutcome(project=project)

        for upload in files:
            try:
                self._validate_upload(upload)
            except ValidationError as e:
                logger.info(f"Rejected upload {upload.file_name!r}: {e}")
                outcome.failed.append(UploadFailure(upload.file_name, str(e)))
                continue

            file_type = upload.file_type or detect_file_type(
                upload.file_name, upload.content
            )
            try:
                record = self.files.create_pending(
                    migration_id=project.id,
                    file_name=upload.file_name,
                    original_content=upload.content,
                    file_type=file_type,
                    file_path=upload.file_path,
                )
                self.session.commit()
            except SQLAlchemyError as e:
                self.session.rollback()
                logger.error(
                    f"Failed to store upload {upload.file_name!r}: {e}", exc_info=True
                )
                outcome.failed.append(
                    UploadFailure(upload.file_name, f"Storage error: {e}")
                )
                continue

            outcome.created.append(record)

        logger.info(
            f"Uploaded {len(outcome.created)} file(s) to project {project.id}, "
            f"{len(outcome.failed)} rejected"
        )
        return outcome

    def convert_file(self, user_id: Optional[uuid.UUID], file_id: uuid.UUID) -> FileRecord:
        """
        Convert a file record and persist the outcome.

        Failures (converter error, unusable result, timeout) are stored on the
        record as ``failed``; they are not raised. The write is a
        compare-and-swap on the record version taken before converting.

        Args:
            user_id: Acting user
            file_id: FileRecord to convert

        Returns:
            The updated FileRecord

        Raises:
            InvalidTransitionError: If the record is pending review or deployed
            StaleWriteError: If the record changed while converting
        """
        user_id = self._require_user(user_id)
        record = self._get_file(user_id, file_id)
        self._ensure_convertible(record)
        expected_version = record.version
        source_text = record.original_content

        with self._storage("save conversion"):
            outcome = self._convert(source_text)
            won = self.files.apply_outcome(record.id, expected_version, outcome)
            if not won:
                self.session.rollback()
                logger.warning(
                    f"Discarding conversion of {record.id}: version moved past "
                    f"{expected_version}"
                )
                raise StaleWriteError(record.id, expected_version)
            self.session.commit()

        self._log_outcome(record, outcome)
        return record

    def convert_named_file(
        self,
        user_id: Optional[uuid.UUID],
        project_id: uuid.UUID,
        file_name: str,
        source_text: str,
        file_path: Optional[str] = None,
    ) -> FileRecord:
        """
        Convert a file identified by project and name.

        The latest record with the same case-insensitive name is updated. If
        there is none, a record is inserted directly in its final state, so a
        failed conversion is still kept as history.

        Args:
            user_id: Acting user
            project_id: Project the file belongs to
            file_name: File name
            source_text: Source SQL to convert
            file_path: Optional path of the file within an uploaded folder

        Returns:
            The updated or inserted FileRecord

        Raises:
            InvalidTransitionError: If the matching record is pending review or deployed
        """
        user_id = self._require_user(user_id)
        project = self._get_project(user_id, project_id)
        if not file_name or not file_name.strip():
            raise ValidationError("File name is required")
        if not source_text or not source_text.strip():
            raise ValidationError(f"File is empty: {file_name}")

        with self._storage("load file record"):
            record = self.files.find_latest_by_name(project.id, file_name)
        if record is not None:
            self._ensure_convertible(record)
        expected_version = record.version if record is not None else None

        with self._storage("save conversion"):
            outcome = self._convert(source_text)

            if record is None:
                record = self.files.create(
                    migration_id=project.id,
                    file_name=file_name,
                    file_path=file_path or file_name,
                    file_type=detect_file_type(file_name, source_text),
                    original_content=source_text,
                    **outcome.to_record_values(),
                )
            elif not self.files.apply_outcome(
                record.id, expected_version, outcome, original_content=source_text
            ):
                self.session.rollback()
                raise StaleWriteError(record.id, expected_version)
            self.session.commit()

        self._log_outcome(record, outcome)
        return record

    def _log_outcome(self, record: FileRecord, outcome: ConversionOutcome) -> None:
        if isinstance(outcome, Converted):
            source = " (cached)" if outcome.from_cache else ""
            logger.info(f"Converted {record.file_name}{source}")
        else:
            logger.warning(
                f"Conversion of {record.file_name} failed: {outcome.error_message}"
            )

    # ===== Unreviewed holding area =====

    def pull_into_review(
        self, user_id: Optional[uuid.UUID], file_id: uuid.UUID
    ) -> UnreviewedFile:
        """
        Fork a converted record into the holding area.

        The source FileRecord is left untouched.
        """
        user_id = self._require_user(user_id)
        record = self._get_file(user_id, file_id)
        if not record.has_converted_content:
            raise InvalidTransitionError(
                "FileRecord", record.conversion_status.value, "pull into review"
            )

        with self._storage("create unreviewed file"):
            item = self.unreviewed.create(
                user_id=user_id,
                source_file_id=record.id,
                file_name=record.file_name,
                original_code=record.original_content,
                converted_code=record.converted_content,
                ai_generated_code=record.converted_content,
                status=ReviewStatus.UNREVIEWED,
                data_type_mapping=record.data_type_mapping,
                issues=record.issues,
                performance_metrics=record.performance_metrics,
            )
            self.session.commit()

        logger.info(f"Pulled {record.file_name} into review as {item.id}")
        return item

    def list_unreviewed(
        self,
        user_id: Optional[uuid.UUID],
        status: Optional[ReviewStatus] = None,
        search: Optional[str] = None,
    ) -> List[UnreviewedFile]:
        user_id = self._require_user(user_id)
        with self._storage("list unreviewed files"):
            return self.unreviewed.list_for_user(user_id, status=status, search=search)

    def get_unreviewed(
        self, user_id: Optional[uuid.UUID], unreviewed_id: uuid.UUID
    ) -> UnreviewedFile:
        return self._get_unreviewed(self._require_user(user_id), unreviewed_id)

    def edit_unreviewed(
        self,
        user_id: Optional[uuid.UUID],
        unreviewed_id: uuid.UUID,
        new_converted_code: str,
    ) -> bool:
        """Replace the converted code of an unreviewed file; status is unchanged."""
        user_id = self._require_user(user_id)
        item = self._get_unreviewed(user_id, unreviewed_id)
        if item.status != ReviewStatus.UNREVIEWED:
            raise InvalidTransitionError("UnreviewedFile", item.status.value, "edit")
        if not new_converted_code or not new_converted_code.strip():
            raise ValidationError("Converted code cannot be empty")

        with self._storage("save unreviewed file"):
            item.converted_code = new_converted_code
            item.updated_at = utc_now()
            self.session.commit()
        return True

    def mark_reviewed(
        self,
        user_id: Optional[uuid.UUID],
        unreviewed_id: uuid.UUID,
        final_code: str,
        final_original_code: str,
    ) -> bool:
        """
        Mark an unreviewed file as reviewed with its final code.

        The record stays in the holding area; promotion into history is
        ``complete_review``.
        """
        user_id = self._require_user(user_id)
        item = self._get_unreviewed(user_id, unreviewed_id)
        if item.status != ReviewStatus.UNREVIEWED:
            raise InvalidTransitionError(
                "UnreviewedFile", item.status.value, "mark reviewed"
            )
        if not final_code or not final_code.strip():
            raise ValidationError("Converted code cannot be empty")
        if not final_original_code or not final_original_code.strip():
            raise ValidationError("Original code cannot be empty")

        with self._storage("save unreviewed file"):
            item.converted_code = final_code
            item.original_code = final_original_code
            item.status = ReviewStatus.REVIEWED
            item.updated_at = utc_now()
            self.session.commit()

        logger.info(f"Marked {item.file_name} ({item.id}) as reviewed")
        return True

    def delete_unreviewed(
        self, user_id: Optional[uuid.UUID], unreviewed_id: uuid.UUID
    ) -> bool:
        user_id = self._require_user(user_id)
        item = self._get_unreviewed(user_id, unreviewed_id)
        with self._storage("delete unreviewed file"):
            self.session.delete(item)
            self.session.commit()
        return True

    def complete_review(
        self,
        user_id: Optional[uuid.UUID],
        unreviewed_id: uuid.UUID,
        project_id: Optional[uuid.UUID] = None,
    ) -> FileRecord:
        """
        Promote a reviewed file into migration history.

        The reviewed code is written to the FileRecord it was forked from, or
        to a new record in ``project_id`` (or the active project) when that
        record is gone. The holding-area record is then deleted.

        Args:
            user_id: Acting user
            unreviewed_id: Reviewed UnreviewedFile
            project_id: Project for a new record when the source is gone

        Returns:
            The FileRecord now holding the reviewed code
        """
        user_id = self._require_user(user_id)
        item = self._get_unreviewed(user_id, unreviewed_id)
        if item.status != ReviewStatus.REVIEWED:
            raise InvalidTransitionError(
                "UnreviewedFile", item.status.value, "complete review of"
            )

        with self._storage("load source file record"):
            record = (
                self.files.get_for_user(item.source_file_id, user_id)
                if item.source_file_id is not None
                else None
            )

        if record is None:
            project = (
                self._get_project(user_id, project_id)
                if project_id is not None
                else self.get_or_create_active_project(user_id)
            )

        with self._storage("promote reviewed file"):
            if record is not None:
                record.mark_reviewed_content(item.converted_code, item.original_code)
            else:
                record = self.files.create(
                    migration_id=project.id,
                    file_name=item.file_name,
                    file_path=item.file_name,
                    file_type=detect_file_type(item.file_name, item.original_code),
                    original_content=item.original_code,
                    converted_content=item.converted_code,
                    conversion_status=ConversionStatus.SUCCESS,
                    error_message=None,
                    data_type_mapping=item.data_type_mapping,
                    issues=item.issues,
                    performance_metrics=item.performance_metrics,
                )
            self.session.delete(item)
            self.session.commit()

        logger.info(f"Promoted reviewed {record.file_name} into file record {record.id}")
        return record

    # ===== File records =====

    def get_file(self, user_id: Optional[uuid.UUID], file_id: uuid.UUID) -> FileRecord:
        return self._get_file(self._require_user(user_id), file_id)

    def mark_pending_review(
        self, user_id: Optional[uuid.UUID], file_id: uuid.UUID
    ) -> FileRecord:
        """Flag a successful conversion for manual review, keeping its content."""
        user_id = self._require_user(user_id)
        record = self._get_file(user_id, file_id)
        if record.conversion_status != ConversionStatus.SUCCESS:
            raise InvalidTransitionError(
                "FileRecord", record.conversion_status.value, "mark pending review"
            )

        with self._storage("save file record"):
            record.mark_pending_review()
            self.session.commit()
        return record

    def list_files_for_project(
        self, user_id: Optional[uuid.UUID], project_id: uuid.UUID
    ) -> List[FileRecord]:
        """Files of a project, one per case-insensitive name."""
        user_id = self._require_user(user_id)
        project = self._get_project(user_id, project_id)
        with self._storage("list file records"):
            records = self.files.list_for_project(project.id)
        return dedupe_file_records(records)

    def project_summary(
        self, user_id: Optional[uuid.UUID], project_id: uuid.UUID
    ) -> ProjectSummary:
        return summarize(self.list_files_for_project(user_id, project_id))

    def list_history(
        self, user_id: Optional[uuid.UUID], status_filter: str = "all"
    ) -> List[ProjectHistoryEntry]:
        """
        Projects shown in the completed-history view, newest first.

        Args:
            user_id: Acting user
            status_filter: 'all', 'success', 'failed' or 'pending_review'

        Returns:
            History entries with their summaries
        """
        user_id = self._require_user(user_id)
        if status_filter not in HISTORY_FILTERS:
            raise ValidationError(f"Unknown status filter: {status_filter}")

        with self._storage("load history"):
            projects = self.projects.list_for_user(user_id)
            records = self.files.list_for_projects([p.id for p in projects])

        by_project: dict[uuid.UUID, list[FileRecord]] = {p.id: [] for p in projects}
        for record in records:
            by_project[record.migration_id].append(record)

        entries = [
            ProjectHistoryEntry.from_project(
                project, summarize(dedupe_file_records(by_project[project.id]))
            )
            for project in projects
        ]
        return filter_history(entries, status_filter)

    def export_file(
        self, user_id: Optional[uuid.UUID], file_id: uuid.UUID
    ) -> ExportedFile:
        """Download payload: converted content, else the original."""
        record = self.get_file(user_id, file_id)
        return ExportedFile(file_name=record.file_name, content=record.export_content())

    # ===== Deployments =====

    def record_deployment(
        self,
        user_id: Optional[uuid.UUID],
        status: DeploymentStatus | str,
        file_count: int,
        lines_of_sql: int,
        error_message: Optional[str] = None,
        migration_id: Optional[uuid.UUID] = None,
        deployment_config: Optional[dict] = None,
    ) -> DeploymentLog:
        """
        Append a deployment attempt to the log.

        Raises:
            ValidationError: If the status or counts are invalid
            StorageError: If the log cannot be written
        """
        user_id = self._require_user(user_id)
        try:
            status = DeploymentStatus(status)
        except ValueError as e:
            raise ValidationError(f"Invalid deployment status: {status}") from e
        if file_count < 0 or lines_of_sql < 0:
            raise ValidationError("file_count and lines_of_sql must be non-negative")
        if migration_id is not None:
            self._get_project(user_id, migration_id)

        with self._storage("record deployment"):
            log = self.deployments.append(
                user_id=user_id,
                status=status,
                file_count=file_count,
                lines_of_sql=lines_of_sql,
                error_message=error_message,
                migration_id=migration_id,
                deployment_config=deployment_config,
            )
            self.session.commit()

        logger.info(f"Recorded {status.value} deployment of {file_count} file(s)")
        return log

    def list_deployments(
        self, user_id: Optional[uuid.UUID], migration_id: Optional[uuid.UUID] = None
    ) -> List[DeploymentLog]:
        user_id = self._require_user(user_id)
        with self._storage("list deployments"):
            return self.deployments.list_for_user(user_id, migration_id=migration_id)

    def deploy_files(
        self,
        user_id: Optional[uuid.UUID],
        file_ids: Sequence[uuid.UUID],
        deployer: Optional[Deployer] = None,
        deployment_config: Optional[dict] = None,
    ) -> DeploymentLog:
        """
        Deploy successful conversions through a deployer.

        On success the records become ``deployed``. On failure they keep
        ``success`` and only the deployment log records the error.

        Args:
            user_id: Acting user
            file_ids: FileRecords to deploy (all must be ``success``)
            deployer: Deployer to use (defaults to the configured one)
            deployment_config: Free-form settings stored with the log

        Returns:
            The appended DeploymentLog
        """
        user_id = self._require_user(user_id)
        if not file_ids:
            raise ValidationError("No files selected for deployment")

        wanted = list(dict.fromkeys(file_ids))
        with self._storage("load file records"):
            records = self.files.list_by_ids_for_user(wanted, user_id)
        found = {record.id for record in records}
        for file_id in wanted:
            if file_id not in found:
                raise NotFoundError("FileRecord", file_id)
        for record in records:
            if record.conversion_status != ConversionStatus.SUCCESS:
                raise InvalidTransitionError(
                    "FileRecord", record.conversion_status.value, "deploy"
                )

        migration_ids = {record.migration_id for record in records}
        migration_id = migration_ids.pop() if len(migration_ids) == 1 else None
        lines_of_sql = sum(
            len(record.converted_content.splitlines()) for record in records
        )
        deployer = deployer or self.deployer

        try:
            deployer.deploy(records)
        except Exception as e:
            logger.warning(f"Deployment of {len(records)} file(s) failed: {e}")
            return self.record_deployment(
                user_id,
                DeploymentStatus.FAILED,
                file_count=len(records),
                lines_of_sql=lines_of_sql,
                error_message=str(e) or type(e).__name__,
                migration_id=migration_id,
                deployment_config=deployment_config,
            )

        with self._storage("record deployment"):
            deployed_at = utc_now()
            for record in records:
                record.mark_deployed(deployed_at)
            log = self.deployments.append(
                user_id=user_id,
                status=DeploymentStatus.SUCCESS,
                file_count=len(records),
                lines_of_sql=lines_of_sql,
                migration_id=migration_id,
                deployment_config=deployment_config,
            )
            self.session.commit()

        logger.info(f"Deployed {len(records)} file(s) ({lines_of_sql} lines)")
        return log

    # ===== History maintenance =====

    def clear_all_history(self, user_id: Optional[uuid.UUID]) -> ClearHistoryResult:
        """
        Delete a user's file records, projects and deployment logs.

        Each table is cleared in its own transaction, in that order. If file
        records cannot be deleted nothing else is touched, so no project is
        removed while files still reference it.

        Returns:
            ClearHistoryResult with per-table counts

        Raises:
            StorageError: If any step fails (earlier steps stay committed)
        """
        user_id = self._require_user(user_id)
        result = ClearHistoryResult()

        with self._storage("load projects"):
            project_ids = self.projects.ids_for_user(user_id)

        with self._storage("delete file records"):
            result.files_deleted = self.files.delete_for_projects(project_ids)
            self.session.commit()

        with self._storage("delete projects"):
            result.reports_deleted = self.reports.delete_for_projects(project_ids)
            result.projects_deleted = self.projects.delete_by_ids(project_ids)
            self.session.commit()

        with self._storage("delete deployment logs"):
            result.deployments_deleted = self.deployments.delete_for_user(user_id)
            self.session.commit()

        # Bulk deletes bypass the identity map
        self.session.expire_all()

        logger.info(
            f"Cleared history for user {user_id}: {result.files_deleted} files, "
            f"{result.projects_deleted} projects, "
            f"{result.deployments_deleted} deployment logs"
        )
        return result

    # ===== File comments =====

    @staticmethod
    def _comment_tag(tag) -> CommentTag:
        try:
            return CommentTag(tag)
        except ValueError:
            allowed = ", ".join(t.value for t in CommentTag)
            raise ValidationError(
                f"Unknown comment tag {tag!r} (expected one of {allowed})"
            ) from None

    def _get_comment(self, user_id: uuid.UUID, comment_id: uuid.UUID) -> FileComment:
        with self._storage("load comment"):
            comment = self.comments.get_for_user(comment_id, user_id)
        if comment is None:
            raise NotFoundError("FileComment", comment_id)
        return comment

    def add_comment(
        self,
        user_id: Optional[uuid.UUID],
        file_path: str,
        content: str,
        tag: CommentTag | str = CommentTag.NOTE,
    ) -> FileComment:
        """
        Attach a tagged comment to a file path.

        Args:
            user_id: Acting user
            file_path: Path of the commented file
            content: Comment text
            tag: One of the CommentTag values, Note by default

        Returns:
            The created FileComment
        """
        user_id = self._require_user(user_id)
        file_path = (file_path or "").strip()
        if not file_path:
            raise ValidationError("File path is required")
        if not content or not content.strip():
            raise ValidationError("Comment cannot be empty")
        tag = self._comment_tag(tag)

        with self._storage("save comment"):
            comment = self.comments.create(
                user_id=user_id, file_path=file_path, content=content, tag=tag
            )
            self.session.commit()

        logger.debug(f"Added {tag.value} comment {comment.id} on {file_path}")
        return comment

    def list_comments(
        self,
        user_id: Optional[uuid.UUID],
        file_path: str,
        tag: Optional[CommentTag] = None,
    ) -> List[FileComment]:
        user_id = self._require_user(user_id)
        with self._storage("list comments"):
            return self.comments.list_for_file(user_id, file_path.strip(), tag=tag)

    def update_comment(
        self,
        user_id: Optional[uuid.UUID],
        comment_id: uuid.UUID,
        content: str,
        tag: Optional[CommentTag | str] = None,
    ) -> FileComment:
        """Replace a comment's text, and its tag when one is given."""
        user_id = self._require_user(user_id)
        comment = self._get_comment(user_id, comment_id)
        if not content or not content.strip():
            raise ValidationError("Comment cannot be empty")
        new_tag = self._comment_tag(tag) if tag is not None else comment.tag

        with self._storage("save comment"):
            comment.content = content
            comment.tag = new_tag
            comment.updated_at = utc_now()
            self.session.commit()
        return comment

    def delete_comment(self, user_id: Optional[uuid.UUID], comment_id: uuid.UUID) -> bool:
        user_id = self._require_user(user_id)
        comment = self._get_comment(user_id, comment_id)
        with self._storage("delete comment"):
            self.session.delete(comment)
            self.session.commit()
        return True

    # ===== Reports & summaries =====

    def generate_report(
        self, user_id: Optional[uuid.UUID], project_id: uuid.UUID
    ) -> MigrationReport:
        """Render and store a Markdown report for a project."""
        user_id = self._require_user(user_id)
        project = self._get_project(user_id, project_id)
        records = self.list_files_for_project(user_id, project.id)
        summary = summarize(records)

        with self._storage("store report"):
            report = self.reports.create(
                migration_id=project.id,
                report_content=render_report(project, records, summary),
                efficiency_metrics=efficiency_metrics(records, summary),
            )
            self.session.commit()
        return report

    def list_reports(
        self, user_id: Optional[uuid.UUID], project_id: uuid.UUID
    ) -> List[MigrationReport]:
        user_id = self._require_user(user_id)
        project = self._get_project(user_id, project_id)
        with self._storage("list reports"):
            return self.reports.list_for_project(project.id)

    def user_summary(self, user_id: Optional[uuid.UUID]) -> UserSummary:
        """Totals over all projects, the holding area and deployments of a user."""
        user_id = self._require_user(user_id)
        with self._storage("load summary"):
            projects = self.projects.list_for_user(user_id)
            records = self.files.list_for_projects([p.id for p in projects])
            review_counts = self.unreviewed.count_by_status(user_id)
            deployment_count = len(self.deployments.list_for_user(user_id))

        by_project: dict[uuid.UUID, list[FileRecord]] = {p.id: [] for p in projects}
        for record in records:
            by_project[record.migration_id].append(record)
        summaries = [summarize(dedupe_file_records(r)) for r in by_project.values()]

        return UserSummary(
            project_count=len(projects),
            file_count=sum(s.file_count for s in summaries),
            success_count=sum(s.success_count for s in summaries),
            failed_count=sum(s.failed_count for s in summaries),
            pending_count=sum(s.pending_count for s in summaries),
            pending_review_count=sum(s.pending_review_count for s in summaries),
            deployed_count=sum(s.deployed_count for s in summaries),
            unreviewed_count=review_counts[ReviewStatus.UNREVIEWED.value],
            reviewed_count=review_counts[ReviewStatus.REVIEWED.value],
            deployment_count=deployment_count,
        )
