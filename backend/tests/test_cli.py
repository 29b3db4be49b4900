"""
Tests for CLI commands.
"""

from contextlib import contextmanager
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from sqlshift.cli import app
from sqlshift.models.db import ConversionStatus, FileRecord

# Disable Rich formatting in tests using NO_COLOR environment variable
runner = CliRunner(env={"NO_COLOR": "1", "TERM": "dumb"})


@pytest.fixture
def cli_session(db_session):
    """Route the CLI's database sessions to the test session."""

    @contextmanager
    def session_scope():
        yield db_session
        db_session.commit()

    with (
        patch("sqlshift.cli.db_session", session_scope),
        patch("sqlshift.cli._init_logging"),
    ):
        yield db_session


class TestUploadCommand:
    """Tests for upload command."""

    def test_requires_path_argument(self):
        result = runner.invoke(app, ["upload"])

        assert result.exit_code != 0

    def test_nonexistent_path_fails(self, cli_session, user_id):
        result = runner.invoke(
            app, ["upload", "/nonexistent/path", "--user", str(user_id)]
        )

        assert result.exit_code == 1
        assert "not found" in result.stdout.lower()

    def test_upload_directory(self, cli_session, user_id, tmp_path: Path):
        (tmp_path / "tables").mkdir()
        (tmp_path / "tables" / "customers.sql").write_text(
            "create table customers (id int)\n"
        )
        (tmp_path / "get_customer.prc").write_text(
            "create procedure get_customer as select 1\n"
        )
        (tmp_path / "README.md").write_text("ignored")

        result = runner.invoke(app, ["upload", str(tmp_path), "--user", str(user_id)])

        assert result.exit_code == 0, result.stdout
        assert "Found 2 file(s)" in result.stdout
        assert "Uploaded: 2" in result.stdout
        assert "Failed: 0" in result.stdout

        records = cli_session.query(FileRecord).order_by(FileRecord.file_path).all()
        assert [r.file_path for r in records] == [
            "get_customer.prc",
            "tables/customers.sql",
        ]

    def test_upload_reports_rejected_files(self, cli_session, user_id, tmp_path: Path):
        (tmp_path / "empty.sql").write_text("   \n")
        (tmp_path / "binary.sql").write_bytes(b"\xff\xfe\x00")

        result = runner.invoke(app, ["upload", str(tmp_path), "--user", str(user_id)])

        assert result.exit_code == 0
        assert "Uploaded: 0" in result.stdout
        assert "Failed: 2" in result.stdout
        assert "not UTF-8 text" in result.stdout

    def test_no_supported_files(self, cli_session, user_id, tmp_path: Path):
        (tmp_path / "notes.md").write_text("nothing to convert")

        result = runner.invoke(app, ["upload", str(tmp_path), "--user", str(user_id)])

        assert result.exit_code == 0
        assert "No supported files found" in result.stdout

    def test_unknown_project(self, cli_session, user_id, tmp_path: Path):
        (tmp_path / "a.sql").write_text("select 1")

        result = runner.invoke(
            app,
            [
                "upload",
                str(tmp_path),
                "--user",
                str(user_id),
                "--project",
                "00000000-0000-0000-0000-000000000000",
            ],
        )

        assert result.exit_code == 1
        assert "not found" in result.stdout


class TestConvertCommand:
    """Tests for convert command."""

    def test_convert_success(self, cli_session, user_id, pending_file, fake_converter):
        with patch(
            "sqlshift.lifecycle.controller.load_converter", return_value=fake_converter
        ):
            result = runner.invoke(
                app, ["convert", str(pending_file.id), "--user", str(user_id)]
            )

        assert result.exit_code == 0, result.stdout
        assert "Converted get_orders.sql" in result.stdout
        cli_session.expire_all()
        stored = cli_session.get(FileRecord, pending_file.id)
        assert stored.conversion_status == ConversionStatus.SUCCESS

    def test_convert_failure_exits_nonzero(
        self, cli_session, user_id, pending_file, failing_converter
    ):
        with patch(
            "sqlshift.lifecycle.controller.load_converter",
            return_value=failing_converter,
        ):
            result = runner.invoke(
                app, ["convert", str(pending_file.id), "--user", str(user_id)]
            )

        assert result.exit_code == 1
        assert "model unavailable" in result.stdout


class TestSummaryAndHistoryCommands:
    """Tests for summary and history commands."""

    def test_summary(self, cli_session, user_id, sample_project, converted_file):
        result = runner.invoke(
            app, ["summary", str(sample_project.id), "--user", str(user_id)]
        )

        assert result.exit_code == 0
        assert "Orders Migration" in result.stdout
        assert "success" in result.stdout

    def test_history_empty(self, cli_session, user_id, pending_file):
        result = runner.invoke(app, ["history", "--user", str(user_id)])

        assert result.exit_code == 0
        assert "No migration history" in result.stdout

    def test_history_lists_projects(self, cli_session, user_id, converted_file):
        result = runner.invoke(app, ["history", "--user", str(user_id)])

        assert result.exit_code == 0
        assert "Migration History" in result.stdout
        assert "Orders Migration" in result.stdout

    def test_history_invalid_filter(self, cli_session, user_id):
        result = runner.invoke(
            app, ["history", "--user", str(user_id), "--status", "deployed"]
        )

        assert result.exit_code == 1
        assert "Unknown status filter" in result.stdout


class TestClearHistoryCommand:
    """Tests for clear-history command."""

    def test_clear_with_yes(self, cli_session, user_id, converted_file):
        result = runner.invoke(app, ["clear-history", "--user", str(user_id), "--yes"])

        assert result.exit_code == 0
        assert "History cleared" in result.stdout
        assert "Files: 1" in result.stdout
        assert "Projects: 1" in result.stdout
        assert cli_session.query(FileRecord).count() == 0

    def test_clear_aborted(self, cli_session, user_id, converted_file):
        result = runner.invoke(
            app, ["clear-history", "--user", str(user_id)], input="n\n"
        )

        assert result.exit_code == 1
        assert cli_session.query(FileRecord).count() == 1


class TestServeCommand:
    """Tests for serve command."""

    def test_serve_runs_uvicorn(self):
        with patch("uvicorn.run") as mock_run:
            result = runner.invoke(app, ["serve", "--port", "9000"])

        assert result.exit_code == 0
        mock_run.assert_called_once_with(
            "sqlshift.api.app:app", host="0.0.0.0", port=9000, reload=False
        )
