"""
Tests for the lifecycle controller.

Covers every FileRecord transition, the unreviewed holding area, deployments,
history aggregation and clearing, against a real (SQLite) session.
"""

import uuid

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from sqlshift.config import settings
from sqlshift.exceptions import (
    AuthRequiredError,
    InvalidTransitionError,
    NotFoundError,
    StaleWriteError,
    StorageError,
    UnsupportedFileTypeError,
    ValidationError,
)
from sqlshift.lifecycle import FileUpload, LifecycleController
from sqlshift.models.conversion import ConversionResult
from sqlshift.models.db import (
    CommentTag,
    ConversionStatus,
    DeploymentLog,
    DeploymentStatus,
    FileComment,
    FileRecord,
    FileType,
    MigrationProject,
    ReviewStatus,
    UnreviewedFile,
)

TABLE_DDL = "create table t1 (id int not null, name varchar(30))\n"
PROC_DDL = "create procedure p1 as\nbegin\n  select * from t1\nend\n"


def assert_record_invariants(record: FileRecord) -> None:
    converted_states = {
        ConversionStatus.SUCCESS,
        ConversionStatus.PENDING_REVIEW,
        ConversionStatus.DEPLOYED,
    }
    assert (record.converted_content is not None) == (
        record.conversion_status in converted_states
    )
    assert (record.error_message is not None) == (
        record.conversion_status == ConversionStatus.FAILED
    )


def add_record(
    session: Session,
    project: MigrationProject,
    file_name: str,
    status: ConversionStatus,
) -> FileRecord:
    converted = status in (
        ConversionStatus.SUCCESS,
        ConversionStatus.PENDING_REVIEW,
        ConversionStatus.DEPLOYED,
    )
    record = FileRecord(
        migration_id=project.id,
        file_name=file_name,
        file_path=file_name,
        file_type=FileType.OTHER,
        original_content="select 1",
        converted_content="SELECT 1 FROM dual" if converted else None,
        conversion_status=status,
        error_message="boom" if status == ConversionStatus.FAILED else None,
    )
    session.add(record)
    session.commit()
    return record


class StaticConverter:
    """Converter that returns a fixed result."""

    def __init__(self, result: ConversionResult):
        self.result = result

    def convert(self, source_text: str) -> ConversionResult:
        return self.result


class ConcurrentWriter:
    """Converter that lets another writer bump the record while it runs."""

    def __init__(self, session: Session, file_id: uuid.UUID):
        self.session = session
        self.file_id = file_id

    def convert(self, source_text: str) -> ConversionResult:
        self.session.execute(
            update(FileRecord)
            .where(FileRecord.id == self.file_id)
            .values(version=FileRecord.version + 1)
        )
        self.session.commit()
        return ConversionResult(converted_text="SELECT 1 FROM dual")


class TestAuth:
    """Every user-scoped operation requires a user."""

    @pytest.mark.parametrize(
        "call",
        [
            lambda c: c.start_project(None),
            lambda c: c.list_projects(None),
            lambda c: c.upload_files(None, None, []),
            lambda c: c.convert_file(None, uuid.uuid4()),
            lambda c: c.list_unreviewed(None),
            lambda c: c.list_history(None),
            lambda c: c.record_deployment(None, "Success", 1, 1),
            lambda c: c.clear_all_history(None),
            lambda c: c.user_summary(None),
            lambda c: c.add_comment(None, "a.sql", "note"),
            lambda c: c.list_comments(None, "a.sql"),
        ],
    )
    def test_auth_required(self, controller: LifecycleController, call):
        with pytest.raises(AuthRequiredError):
            call(controller)


class TestProjects:
    """Tests for project operations."""

    def test_start_project_with_name(self, controller, user_id):
        project = controller.start_project(user_id, "  Billing  ", "Billing procs")

        assert project.project_name == "Billing"
        assert project.description == "Billing procs"
        assert project.user_id == user_id

    def test_start_project_synthesizes_name(self, controller, user_id):
        project = controller.start_project(user_id, "   ")

        assert project.project_name.startswith("Migration ")

    def test_active_project_is_created_once(self, controller, user_id):
        first = controller.get_or_create_active_project(user_id)
        second = controller.get_or_create_active_project(user_id)

        assert first.id == second.id
        assert len(controller.list_projects(user_id)) == 1

    def test_other_users_project_not_found(
        self, controller, sample_project, other_user_id
    ):
        with pytest.raises(NotFoundError):
            controller.get_project(other_user_id, sample_project.id)

    def test_update_project(self, controller, user_id, sample_project):
        updated = controller.update_project(user_id, sample_project.id, name="Renamed")

        assert updated.project_name == "Renamed"
        assert updated.description == "Order management procedures"

    def test_update_project_rejects_blank_name(self, controller, user_id, sample_project):
        with pytest.raises(ValidationError):
            controller.update_project(user_id, sample_project.id, name=" ")

    def test_delete_project_removes_files(
        self, controller, db_session, user_id, sample_project, pending_file
    ):
        controller.delete_project(user_id, sample_project.id)

        assert db_session.query(FileRecord).count() == 0
        assert db_session.query(MigrationProject).count() == 0


class TestUpload:
    """Tests for upload_files."""

    def test_scenario_a_unsupported_file_rejected(
        self, controller, db_session, user_id, sample_project
    ):
        outcome = controller.upload_files(
            user_id,
            sample_project.id,
            [
                FileUpload("t1.sql", TABLE_DDL),
                FileUpload("p1.sql", PROC_DDL),
                FileUpload("x.bin", "\x00\x01"),
            ],
        )

        assert [r.file_name for r in outcome.created] == ["t1.sql", "p1.sql"]
        assert [f.file_name for f in outcome.failed] == ["x.bin"]
        assert "Unsupported file type" in outcome.failed[0].reason
        assert db_session.query(FileRecord).count() == 2
        for record in outcome.created:
            assert record.conversion_status == ConversionStatus.PENDING
            assert record.converted_content is None
            assert_record_invariants(record)
        assert outcome.created[0].file_type == FileType.TABLE
        assert outcome.created[1].file_type == FileType.PROCEDURE

    def test_upload_without_project_uses_active_project(
        self, controller, user_id, sample_project
    ):
        outcome = controller.upload_files(user_id, None, [FileUpload("t1.sql", TABLE_DDL)])

        assert outcome.project.id == sample_project.id

    def test_upload_without_any_project_creates_one(self, controller, user_id):
        outcome = controller.upload_files(user_id, None, [FileUpload("t1.sql", TABLE_DDL)])

        assert outcome.project.project_name.startswith("Migration ")
        assert len(outcome.created) == 1

    def test_upload_to_other_users_project(
        self, controller, other_user_id, sample_project
    ):
        with pytest.raises(NotFoundError):
            controller.upload_files(
                other_user_id, sample_project.id, [FileUpload("t1.sql", TABLE_DDL)]
            )

    def test_empty_and_oversized_files_rejected(
        self, controller, user_id, sample_project, monkeypatch
    ):
        monkeypatch.setattr(settings, "max_upload_bytes", 20)

        outcome = controller.upload_files(
            user_id,
            sample_project.id,
            [FileUpload("empty.sql", "  \n"), FileUpload("big.sql", TABLE_DDL)],
        )

        assert outcome.created == []
        assert "empty" in outcome.failed[0].reason
        assert "too large" in outcome.failed[1].reason

    def test_validation_helper_raises_unsupported(self, controller):
        with pytest.raises(UnsupportedFileTypeError):
            controller._validate_upload(FileUpload("x.bin", "data"))

    def test_storage_failure_keeps_other_files(
        self, controller, db_session, user_id, sample_project, monkeypatch
    ):
        original = controller.files.create_pending
        calls = {"n": 0}

        def flaky_create_pending(**kwargs):
            calls["n"] += 1
            if calls["n"] == 2:
                raise OperationalError("INSERT", {}, Exception("disk I/O error"))
            return original(**kwargs)

        monkeypatch.setattr(controller.files, "create_pending", flaky_create_pending)

        outcome = controller.upload_files(
            user_id,
            sample_project.id,
            [
                FileUpload("a.sql", TABLE_DDL),
                FileUpload("b.sql", TABLE_DDL),
                FileUpload("c.sql", TABLE_DDL),
            ],
        )

        assert [r.file_name for r in outcome.created] == ["a.sql", "c.sql"]
        assert outcome.failed[0].file_name == "b.sql"
        assert outcome.failed[0].reason.startswith("Storage error")
        assert db_session.query(FileRecord).count() == 2


class TestConvert:
    """Tests for convert_file and convert_named_file."""

    def test_scenario_b_success(self, controller, user_id, sample_project):
        record = controller.upload_files(
            user_id, sample_project.id, [FileUpload("t1.sql", TABLE_DDL)]
        ).created[0]

        converted = controller.convert_file(user_id, record.id)

        assert converted.conversion_status == ConversionStatus.SUCCESS
        assert converted.converted_content == "-- oracle\n" + TABLE_DDL.upper()
        assert converted.error_message is None
        assert converted.issues[0]["description"] == "Check date handling"
        assert converted.data_type_mapping[0]["source_type"] == "int"
        assert converted.performance_metrics == {"conversion_time_ms": 12}
        assert_record_invariants(converted)

    def test_scenario_b_failure_is_recorded(
        self, db_session, user_id, pending_file, failing_converter
    ):
        controller = LifecycleController(
            db_session, converter=failing_converter, cache_enabled=False
        )

        record = controller.convert_file(user_id, pending_file.id)

        assert record.conversion_status == ConversionStatus.FAILED
        assert record.error_message == "model unavailable"
        assert record.converted_content is None
        assert_record_invariants(record)

        db_session.expire_all()
        stored = db_session.get(FileRecord, pending_file.id)
        assert stored.conversion_status == ConversionStatus.FAILED

    def test_convert_is_idempotent(self, controller, user_id, pending_file):
        first = controller.convert_file(user_id, pending_file.id)
        status, content = first.conversion_status, first.converted_content

        second = controller.convert_file(user_id, pending_file.id)

        assert second.conversion_status == status
        assert second.converted_content == content

    def test_reconvert_overwrites_failure(
        self, db_session, controller, user_id, pending_file, failing_converter
    ):
        LifecycleController(
            db_session, converter=failing_converter, cache_enabled=False
        ).convert_file(user_id, pending_file.id)

        record = controller.convert_file(user_id, pending_file.id)

        assert record.conversion_status == ConversionStatus.SUCCESS
        assert record.error_message is None
        assert_record_invariants(record)

    def test_version_increments_per_conversion(self, controller, user_id, pending_file):
        assert pending_file.version == 1

        record = controller.convert_file(user_id, pending_file.id)

        assert record.version == 2

    def test_timeout_is_recorded_as_failure(
        self, db_session, user_id, pending_file, slow_converter
    ):
        controller = LifecycleController(
            db_session,
            converter=slow_converter,
            cache_enabled=False,
            conversion_timeout=0.05,
        )

        record = controller.convert_file(user_id, pending_file.id)

        assert record.conversion_status == ConversionStatus.FAILED
        assert "timed out" in record.error_message
        assert record.converted_content is None

    def test_concurrent_write_raises_stale_write(
        self, db_session, user_id, pending_file
    ):
        controller = LifecycleController(
            db_session,
            converter=ConcurrentWriter(db_session, pending_file.id),
            cache_enabled=False,
        )

        with pytest.raises(StaleWriteError):
            controller.convert_file(user_id, pending_file.id)

        db_session.expire_all()
        stored = db_session.get(FileRecord, pending_file.id)
        assert stored.conversion_status == ConversionStatus.PENDING
        assert stored.version == 2

    def test_cache_reuses_identical_source(
        self, db_session, user_id, sample_project, fake_converter
    ):
        controller = LifecycleController(
            db_session, converter=fake_converter, cache_enabled=True
        )
        outcome = controller.upload_files(
            user_id,
            sample_project.id,
            [FileUpload("a.sql", TABLE_DDL), FileUpload("b.sql", TABLE_DDL)],
        )

        first = controller.convert_file(user_id, outcome.created[0].id)
        second = controller.convert_file(user_id, outcome.created[1].id)

        assert len(fake_converter.calls) == 1
        assert second.converted_content == first.converted_content
        assert second.conversion_status == ConversionStatus.SUCCESS

    def test_failures_are_not_cached(
        self, db_session, user_id, pending_file, failing_converter
    ):
        controller = LifecycleController(
            db_session, converter=failing_converter, cache_enabled=True
        )

        controller.convert_file(user_id, pending_file.id)
        controller.convert_file(user_id, pending_file.id)

        assert failing_converter.calls == 2

    def test_convert_other_users_file(self, controller, other_user_id, pending_file):
        with pytest.raises(NotFoundError):
            controller.convert_file(other_user_id, pending_file.id)

    def test_convert_named_inserts_missing_record(
        self, controller, db_session, user_id, sample_project
    ):
        record = controller.convert_named_file(
            user_id, sample_project.id, "new_proc.sql", PROC_DDL
        )

        assert record.conversion_status == ConversionStatus.SUCCESS
        assert record.file_type == FileType.PROCEDURE
        assert db_session.query(FileRecord).count() == 1

    def test_convert_named_inserts_failed_record(
        self, db_session, user_id, sample_project, failing_converter
    ):
        controller = LifecycleController(
            db_session, converter=failing_converter, cache_enabled=False
        )

        record = controller.convert_named_file(
            user_id, sample_project.id, "new_proc.sql", PROC_DDL
        )

        assert record.conversion_status == ConversionStatus.FAILED
        assert record.error_message == "model unavailable"
        assert db_session.query(FileRecord).count() == 1

    def test_convert_named_updates_existing_record(
        self, controller, user_id, sample_project, pending_file
    ):
        record = controller.convert_named_file(
            user_id, sample_project.id, "GET_ORDERS.sql", "select 2"
        )

        assert record.id == pending_file.id
        assert record.original_content == "select 2"
        assert record.converted_content == "-- oracle\nSELECT 2"

    def test_convert_named_requires_content(self, controller, user_id, sample_project):
        with pytest.raises(ValidationError):
            controller.convert_named_file(user_id, sample_project.id, "x.sql", " ")

    @pytest.mark.parametrize(
        "result",
        [
            ConversionResult(converted_text="SELECT 1", issues=[{"severity": "info"}]),
            ConversionResult(converted_text="SELECT 1", performance_metrics="fast"),
        ],
    )
    def test_malformed_result_is_recorded_as_failure(
        self, db_session, user_id, pending_file, result
    ):
        controller = LifecycleController(
            db_session, converter=StaticConverter(result), cache_enabled=False
        )

        record = controller.convert_file(user_id, pending_file.id)

        assert record.conversion_status == ConversionStatus.FAILED
        assert "malformed metadata" in record.error_message
        assert_record_invariants(record)
        db_session.expire_all()
        stored = db_session.get(FileRecord, pending_file.id)
        assert stored.conversion_status == ConversionStatus.FAILED

    def test_loose_metadata_is_normalized(self, db_session, user_id, pending_file):
        result = ConversionResult(
            converted_text="SELECT 1 FROM dual",
            issues=[{"description": "uses dual"}],
            performance_metrics=None,
        )
        controller = LifecycleController(
            db_session, converter=StaticConverter(result), cache_enabled=False
        )

        record = controller.convert_file(user_id, pending_file.id)

        assert record.conversion_status == ConversionStatus.SUCCESS
        assert record.issues[0]["description"] == "uses dual"
        assert record.performance_metrics == {}

    @pytest.mark.parametrize(
        "status", [ConversionStatus.PENDING_REVIEW, ConversionStatus.DEPLOYED]
    )
    def test_convert_rejects_settled_records(
        self, db_session, controller, fake_converter, user_id, sample_project, status
    ):
        record = add_record(db_session, sample_project, "settled.sql", status)
        version = record.version

        with pytest.raises(InvalidTransitionError):
            controller.convert_file(user_id, record.id)

        assert fake_converter.calls == []
        db_session.expire_all()
        stored = db_session.get(FileRecord, record.id)
        assert stored.conversion_status == status
        assert stored.version == version

    def test_deployed_record_keeps_deployment_after_rejected_convert(
        self, db_session, user_id, converted_file, failing_converter, deployer
    ):
        controller = LifecycleController(
            db_session,
            converter=failing_converter,
            deployer=deployer,
            cache_enabled=False,
        )
        controller.deploy_files(user_id, [converted_file.id])

        with pytest.raises(InvalidTransitionError):
            controller.convert_file(user_id, converted_file.id)

        db_session.expire_all()
        stored = db_session.get(FileRecord, converted_file.id)
        assert stored.conversion_status == ConversionStatus.DEPLOYED
        assert stored.deployment_timestamp is not None
        assert failing_converter.calls == 0

    def test_convert_named_rejects_deployed_record(
        self, db_session, controller, fake_converter, user_id, sample_project
    ):
        add_record(db_session, sample_project, "shipped.sql", ConversionStatus.DEPLOYED)

        with pytest.raises(InvalidTransitionError):
            controller.convert_named_file(
                user_id, sample_project.id, "SHIPPED.sql", "select 2"
            )

        assert fake_converter.calls == []
        assert db_session.query(FileRecord).count() == 1


class TestReviewHoldingArea:
    """Tests for the unreviewed holding area."""

    def test_scenario_c_fork_edit_mark_reviewed(
        self, controller, db_session, user_id, converted_file
    ):
        original_content = converted_file.converted_content

        item = controller.pull_into_review(user_id, converted_file.id)
        assert item.status == ReviewStatus.UNREVIEWED
        assert item.converted_code == original_content
        assert item.ai_generated_code == original_content
        assert item.original_code == converted_file.original_content
        assert item.source_file_id == converted_file.id

        assert controller.edit_unreviewed(user_id, item.id, "EDITED") is True
        assert controller.get_unreviewed(user_id, item.id).status == ReviewStatus.UNREVIEWED

        assert controller.mark_reviewed(user_id, item.id, "FINAL", "orig") is True

        db_session.expire_all()
        reviewed = controller.get_unreviewed(user_id, item.id)
        assert reviewed.status == ReviewStatus.REVIEWED
        assert reviewed.converted_code == "FINAL"
        assert reviewed.original_code == "orig"
        assert reviewed.ai_generated_code == original_content

        source = controller.get_file(user_id, converted_file.id)
        assert source.converted_content == original_content
        assert source.conversion_status == ConversionStatus.SUCCESS

    def test_edit_keeps_edit_until_marked(self, controller, user_id, converted_file):
        item = controller.pull_into_review(user_id, converted_file.id)

        controller.edit_unreviewed(user_id, item.id, "EDITED")

        assert controller.get_unreviewed(user_id, item.id).converted_code == "EDITED"

    def test_pull_pending_file_rejected(self, controller, user_id, pending_file):
        with pytest.raises(InvalidTransitionError):
            controller.pull_into_review(user_id, pending_file.id)

    def test_edit_rejects_empty_code(self, controller, user_id, converted_file):
        item = controller.pull_into_review(user_id, converted_file.id)

        with pytest.raises(ValidationError):
            controller.edit_unreviewed(user_id, item.id, "   ")

    def test_reviewed_is_terminal_for_edits(self, controller, user_id, converted_file):
        item = controller.pull_into_review(user_id, converted_file.id)
        controller.mark_reviewed(user_id, item.id, "FINAL", "orig")

        with pytest.raises(InvalidTransitionError):
            controller.edit_unreviewed(user_id, item.id, "AGAIN")
        with pytest.raises(InvalidTransitionError):
            controller.mark_reviewed(user_id, item.id, "AGAIN", "orig")

    def test_delete_unreviewed(self, controller, user_id, converted_file):
        item = controller.pull_into_review(user_id, converted_file.id)

        assert controller.delete_unreviewed(user_id, item.id) is True
        with pytest.raises(NotFoundError):
            controller.delete_unreviewed(user_id, item.id)
        assert controller.get_file(user_id, converted_file.id) is not None

    def test_other_user_cannot_see_review(
        self, controller, user_id, other_user_id, converted_file
    ):
        item = controller.pull_into_review(user_id, converted_file.id)

        assert controller.list_unreviewed(other_user_id) == []
        with pytest.raises(NotFoundError):
            controller.edit_unreviewed(other_user_id, item.id, "X")

    def test_list_unreviewed_filters(self, controller, user_id, converted_file):
        first = controller.pull_into_review(user_id, converted_file.id)
        controller.pull_into_review(user_id, converted_file.id)
        controller.mark_reviewed(user_id, first.id, "FINAL", "orig")

        reviewed = controller.list_unreviewed(user_id, status=ReviewStatus.REVIEWED)
        assert [i.id for i in reviewed] == [first.id]
        assert len(controller.list_unreviewed(user_id, search="ORDERS")) == 2
        assert controller.list_unreviewed(user_id, search="customers") == []

    def test_complete_review_requires_reviewed(self, controller, user_id, converted_file):
        item = controller.pull_into_review(user_id, converted_file.id)

        with pytest.raises(InvalidTransitionError):
            controller.complete_review(user_id, item.id)

    def test_complete_review_writes_back_to_source(
        self, controller, db_session, user_id, converted_file
    ):
        item = controller.pull_into_review(user_id, converted_file.id)
        controller.mark_reviewed(user_id, item.id, "FINAL", "orig")

        record = controller.complete_review(user_id, item.id)

        assert record.id == converted_file.id
        assert record.converted_content == "FINAL"
        assert record.original_content == "orig"
        assert record.conversion_status == ConversionStatus.SUCCESS
        assert db_session.query(UnreviewedFile).count() == 0
        assert_record_invariants(record)

    def test_complete_review_recreates_deleted_source(
        self, controller, db_session, user_id, sample_project, converted_file
    ):
        item = controller.pull_into_review(user_id, converted_file.id)
        controller.mark_reviewed(user_id, item.id, "FINAL", "orig")
        db_session.delete(converted_file)
        db_session.commit()

        record = controller.complete_review(user_id, item.id)

        assert record.id != converted_file.id
        assert record.migration_id == sample_project.id
        assert record.file_name == "get_orders.sql"
        assert record.converted_content == "FINAL"

    def test_complete_review_promotes_failed_source(
        self, db_session, user_id, sample_project, controller
    ):
        failed = add_record(db_session, sample_project, "broken.sql", ConversionStatus.FAILED)
        item = UnreviewedFile(
            user_id=user_id,
            source_file_id=failed.id,
            file_name=failed.file_name,
            original_code="select 1",
            converted_code="SELECT 1 FROM dual",
            status=ReviewStatus.REVIEWED,
        )
        db_session.add(item)
        db_session.commit()

        record = controller.complete_review(user_id, item.id)

        assert record.conversion_status == ConversionStatus.SUCCESS
        assert record.error_message is None
        assert_record_invariants(record)


class TestFileRecordViews:
    """Tests for file listing, summaries, history and export."""

    def test_mark_pending_review(self, controller, user_id, converted_file):
        record = controller.mark_pending_review(user_id, converted_file.id)

        assert record.conversion_status == ConversionStatus.PENDING_REVIEW
        assert record.converted_content is not None
        assert_record_invariants(record)

    def test_mark_pending_review_requires_success(
        self, controller, user_id, pending_file
    ):
        with pytest.raises(InvalidTransitionError):
            controller.mark_pending_review(user_id, pending_file.id)

    def test_dedup_law_success_wins(
        self, controller, db_session, user_id, sample_project
    ):
        success = add_record(db_session, sample_project, "orders.sql", ConversionStatus.SUCCESS)
        add_record(db_session, sample_project, "ORDERS.sql", ConversionStatus.FAILED)

        records = controller.list_files_for_project(user_id, sample_project.id)

        assert [r.id for r in records] == [success.id]

    def test_aggregation_law(self, controller, db_session, user_id, sample_project):
        for name, status in [
            ("a.sql", ConversionStatus.SUCCESS),
            ("b.sql", ConversionStatus.FAILED),
            ("c.sql", ConversionStatus.PENDING),
            ("d.sql", ConversionStatus.PENDING_REVIEW),
            ("a.sql", ConversionStatus.FAILED),
        ]:
            add_record(db_session, sample_project, name, status)

        summary = controller.project_summary(user_id, sample_project.id)

        assert summary.file_count == 4
        assert summary.file_count == (
            summary.success_count
            + summary.failed_count
            + summary.pending_count
            + summary.pending_review_count
            + summary.deployed_count
        )
        assert summary.success_count == 1
        assert summary.has_converted_files is True

    def test_history_hides_pending_only_projects(
        self, controller, db_session, user_id, sample_project
    ):
        in_progress = controller.start_project(user_id, "In progress")
        add_record(db_session, in_progress, "p.sql", ConversionStatus.PENDING)
        add_record(db_session, sample_project, "f.sql", ConversionStatus.FAILED)
        controller.start_project(user_id, "Empty")

        history = controller.list_history(user_id)

        assert [e.id for e in history] == [sample_project.id]
        assert history[0].summary.failed_count == 1

    def test_history_status_filters(self, controller, db_session, user_id):
        ok = controller.start_project(user_id, "ok")
        add_record(db_session, ok, "a.sql", ConversionStatus.SUCCESS)
        bad = controller.start_project(user_id, "bad")
        add_record(db_session, bad, "b.sql", ConversionStatus.FAILED)

        assert [e.id for e in controller.list_history(user_id, "success")] == [ok.id]
        assert [e.id for e in controller.list_history(user_id, "failed")] == [bad.id]
        assert controller.list_history(user_id, "pending_review") == []
        assert {e.id for e in controller.list_history(user_id)} == {ok.id, bad.id}

    def test_history_unknown_filter(self, controller, user_id):
        with pytest.raises(ValidationError):
            controller.list_history(user_id, "deployed")

    def test_export_prefers_converted(self, controller, user_id, converted_file):
        exported = controller.export_file(user_id, converted_file.id)

        assert exported.file_name == "get_orders.sql"
        assert exported.content == converted_file.converted_content
        assert exported.media_type == "text/plain"

    def test_export_falls_back_to_original(self, controller, user_id, pending_file):
        exported = controller.export_file(user_id, pending_file.id)

        assert exported.content == pending_file.original_content


class TestDeployments:
    """Tests for recording and running deployments."""

    def test_record_deployment(self, controller, user_id, sample_project):
        log = controller.record_deployment(
            user_id, "Success", 2, 80, migration_id=sample_project.id
        )

        assert log.status == DeploymentStatus.SUCCESS
        assert log.migration_id == sample_project.id
        assert controller.list_deployments(user_id)[0].id == log.id

    def test_record_deployment_validation(self, controller, user_id):
        with pytest.raises(ValidationError):
            controller.record_deployment(user_id, "Partial", 1, 1)
        with pytest.raises(ValidationError):
            controller.record_deployment(user_id, "Success", -1, 1)

    def test_record_deployment_other_users_project(
        self, controller, other_user_id, sample_project
    ):
        with pytest.raises(NotFoundError):
            controller.record_deployment(
                other_user_id, "Failed", 1, 1, migration_id=sample_project.id
            )

    def test_deploy_success_marks_files_deployed(
        self, controller, user_id, sample_project, converted_file, deployer
    ):
        expected_lines = len(converted_file.converted_content.splitlines())

        log = controller.deploy_files(user_id, [converted_file.id])

        assert log.status == DeploymentStatus.SUCCESS
        assert log.file_count == 1
        assert log.lines_of_sql == expected_lines
        assert log.migration_id == sample_project.id
        assert deployer.deployed == [[converted_file.id]]

        record = controller.get_file(user_id, converted_file.id)
        assert record.conversion_status == ConversionStatus.DEPLOYED
        assert record.deployment_timestamp is not None
        assert_record_invariants(record)

    def test_scenario_e_failed_deploy_keeps_success(
        self, controller, db_session, user_id, converted_file, failing_deployer
    ):
        log = controller.deploy_files(
            user_id, [converted_file.id], deployer=failing_deployer
        )

        assert log.status == DeploymentStatus.FAILED
        assert log.error_message == "ORA-12541: TNS:no listener"

        db_session.expire_all()
        record = controller.get_file(user_id, converted_file.id)
        assert record.conversion_status == ConversionStatus.SUCCESS
        assert record.deployment_timestamp is None

    def test_deploy_requires_success(self, controller, user_id, pending_file):
        with pytest.raises(InvalidTransitionError):
            controller.deploy_files(user_id, [pending_file.id])

    def test_deploy_unknown_file(self, controller, user_id, converted_file):
        with pytest.raises(NotFoundError):
            controller.deploy_files(user_id, [converted_file.id, uuid.uuid4()])

    def test_deploy_requires_files(self, controller, user_id):
        with pytest.raises(ValidationError):
            controller.deploy_files(user_id, [])


class TestClearHistory:
    """Tests for clear_all_history."""

    def _populate(self, controller: LifecycleController, user: uuid.UUID):
        first = controller.start_project(user, "first")
        second = controller.start_project(user, "second")
        controller.upload_files(
            user,
            first.id,
            [FileUpload(f"f{i}.sql", TABLE_DDL) for i in range(3)],
        )
        controller.upload_files(
            user,
            second.id,
            [FileUpload(f"s{i}.sql", TABLE_DDL) for i in range(2)],
        )
        for _ in range(3):
            controller.record_deployment(user, "Success", 1, 10, migration_id=first.id)

    def test_scenario_d_clears_only_that_user(
        self, controller, db_session, user_id, other_user_id
    ):
        self._populate(controller, user_id)
        other = controller.start_project(other_user_id, "other")
        controller.upload_files(other_user_id, other.id, [FileUpload("o.sql", TABLE_DDL)])
        controller.record_deployment(other_user_id, "Failed", 1, 1, error_message="x")

        result = controller.clear_all_history(user_id)

        assert result.files_deleted == 5
        assert result.projects_deleted == 2
        assert result.deployments_deleted == 3
        assert controller.list_projects(user_id) == []
        assert controller.list_deployments(user_id) == []
        assert db_session.query(FileRecord).count() == 1
        assert db_session.query(MigrationProject).count() == 1
        assert db_session.query(DeploymentLog).count() == 1

    def test_unreviewed_files_survive(
        self, controller, db_session, user_id, converted_file
    ):
        item = controller.pull_into_review(user_id, converted_file.id)

        controller.clear_all_history(user_id)

        remaining = controller.get_unreviewed(user_id, item.id)
        db_session.refresh(remaining)
        assert remaining.source_file_id is None

    def test_clear_is_repeatable(self, controller, user_id):
        result = controller.clear_all_history(user_id)

        assert result.files_deleted == 0
        assert result.projects_deleted == 0

    def test_file_delete_failure_keeps_projects(
        self, controller, db_session, user_id, monkeypatch
    ):
        self._populate(controller, user_id)

        def broken_delete(project_ids):
            raise OperationalError("DELETE", {}, Exception("database is locked"))

        monkeypatch.setattr(controller.files, "delete_for_projects", broken_delete)

        with pytest.raises(StorageError):
            controller.clear_all_history(user_id)

        assert db_session.query(FileRecord).count() == 5
        assert db_session.query(MigrationProject).count() == 2
        assert db_session.query(DeploymentLog).count() == 3


class TestFileComments:
    """Tests for file comment operations."""

    def test_add_and_list(self, controller, user_id):
        first = controller.add_comment(user_id, " procs/a.sql ", "check joins")
        second = controller.add_comment(user_id, "procs/a.sql", "ORA-00904", "Issue")

        comments = controller.list_comments(user_id, "procs/a.sql")

        assert [c.id for c in comments] == [first.id, second.id]
        assert first.file_path == "procs/a.sql"
        assert first.tag == CommentTag.NOTE
        assert second.tag == CommentTag.ISSUE

    def test_list_filters_by_tag(self, controller, user_id):
        controller.add_comment(user_id, "a.sql", "fix later", CommentTag.TODO)
        controller.add_comment(user_id, "a.sql", "nice", CommentTag.PRAISE)

        comments = controller.list_comments(user_id, "a.sql", tag=CommentTag.TODO)

        assert [c.content for c in comments] == ["fix later"]

    @pytest.mark.parametrize(
        "file_path, content, tag",
        [
            ("", "text", CommentTag.NOTE),
            ("a.sql", "   ", CommentTag.NOTE),
            ("a.sql", "text", "Blocker"),
        ],
    )
    def test_add_validation(self, controller, user_id, file_path, content, tag):
        with pytest.raises(ValidationError):
            controller.add_comment(user_id, file_path, content, tag)

    def test_update_keeps_tag_when_omitted(self, controller, user_id):
        comment = controller.add_comment(user_id, "a.sql", "draft", CommentTag.QUESTION)

        updated = controller.update_comment(user_id, comment.id, "why NVL here?")

        assert updated.content == "why NVL here?"
        assert updated.tag == CommentTag.QUESTION
        assert updated.updated_at is not None

    def test_update_changes_tag(self, controller, user_id):
        comment = controller.add_comment(user_id, "a.sql", "bad join", CommentTag.ISSUE)

        updated = controller.update_comment(
            user_id, comment.id, "bad join (fixed)", CommentTag.RESOLVED
        )

        assert updated.tag == CommentTag.RESOLVED

    def test_update_rejects_empty_content(self, controller, user_id):
        comment = controller.add_comment(user_id, "a.sql", "draft")

        with pytest.raises(ValidationError):
            controller.update_comment(user_id, comment.id, "")

    def test_delete(self, controller, db_session, user_id):
        comment = controller.add_comment(user_id, "a.sql", "draft")

        assert controller.delete_comment(user_id, comment.id) is True
        assert db_session.query(FileComment).count() == 0

    def test_other_user_cannot_touch_comment(self, controller, user_id, other_user_id):
        comment = controller.add_comment(user_id, "a.sql", "mine")

        assert controller.list_comments(other_user_id, "a.sql") == []
        with pytest.raises(NotFoundError):
            controller.update_comment(other_user_id, comment.id, "theirs")
        with pytest.raises(NotFoundError):
            controller.delete_comment(other_user_id, comment.id)

    def test_comments_survive_history_clear(
        self, controller, db_session, user_id, converted_file
    ):
        controller.add_comment(user_id, converted_file.file_path, "keep me")

        controller.clear_all_history(user_id)

        assert len(controller.list_comments(user_id, converted_file.file_path)) == 1


class TestReportsAndSummary:
    """Tests for reports and user totals."""

    def test_generate_report(self, controller, user_id, sample_project, converted_file):
        report = controller.generate_report(user_id, sample_project.id)

        assert report.report_content.startswith("# Migration Report: Orders Migration")
        assert "### get_orders.sql" in report.report_content
        assert report.efficiency_metrics["total_files"] == 1
        assert report.efficiency_metrics["converted_files"] == 1
        assert [r.id for r in controller.list_reports(user_id, sample_project.id)] == [
            report.id
        ]

    def test_user_summary(self, controller, user_id, converted_file, pending_file):
        controller.pull_into_review(user_id, converted_file.id)
        controller.record_deployment(user_id, "Success", 1, 5)

        summary = controller.user_summary(user_id)

        assert summary.project_count == 1
        assert summary.file_count == 1
        assert summary.success_count == 1
        assert summary.unreviewed_count == 1
        assert summary.reviewed_count == 0
        assert summary.deployment_count == 1
        assert summary.success_rate == 1.0
