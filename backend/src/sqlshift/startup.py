"""
Startup dependency checks for the SQLShift backend.

Validates critical dependencies before the application starts serving requests.
Fails fast with clear, actionable error messages when requirements aren't met.
"""

import sys
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from alembic.config import Config as AlembicConfig
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import text

from sqlshift.config import settings
from sqlshift.db.connection import SessionLocal, engine

OPENAI_CONVERTER = "sqlshift.conversion.openai_converter:OpenAIConverter"


@dataclass
class StartupMetrics:
    """Metrics collected during startup checks."""

    started_at: datetime
    completed_at: Optional[datetime] = None
    total_duration_ms: Optional[float] = None
    environment_check_ms: Optional[float] = None
    database_check_ms: Optional[float] = None
    migrations_check_ms: Optional[float] = None
    converter_check_ms: Optional[float] = None
    checks_passed: bool = False
    last_check_time: Optional[datetime] = None


# Global startup metrics (populated during startup)
startup_metrics = StartupMetrics(started_at=datetime.now(timezone.utc))


class StartupCheckError(Exception):
    """Raised when a critical startup check fails."""

    def __init__(self, message: str, hint: Optional[str] = None):
        self.message = message
        self.hint = hint
        super().__init__(message)

    def __str__(self) -> str:
        error_msg = f"\n{'='*70}\n❌ STARTUP CHECK FAILED\n{'='*70}\n\n{self.message}\n"
        if self.hint:
            error_msg += f"\n💡 Hint: {self.hint}\n"
        error_msg += f"{'='*70}\n"
        return error_msg


def _uses_sqlite() -> bool:
    return settings.database_url.startswith("sqlite")


def check_required_environment() -> None:
    """
    Validate required environment variables are set.

    A DATABASE_URL makes the individual POSTGRES_* variables optional.

    Raises:
        StartupCheckError: If critical environment variables are missing
    """
    missing = []

    if not settings.database_url_override:
        if not settings.postgres_host:
            missing.append("POSTGRES_HOST")
        if not settings.postgres_db:
            missing.append("POSTGRES_DB")
        if not settings.postgres_user:
            missing.append("POSTGRES_USER")
        if not settings.postgres_password:
            missing.append("POSTGRES_PASSWORD")

    if not settings.supported_extensions:
        missing.append("SUPPORTED_EXTENSIONS")

    if missing:
        raise StartupCheckError(
            "Missing required environment variables:\n"
            + "\n".join(f"  - {var}" for var in missing),
            "Set these variables in your .env file",
        )


def check_database_connection() -> None:
    """
    Verify the database is accessible and responsive.

    Raises:
        StartupCheckError: If database connection fails
    """
    try:
        with SessionLocal() as session:
            result = session.execute(text("SELECT 1")).scalar()
            if result != 1:
                raise StartupCheckError(
                    "Database query returned unexpected result",
                    "Database may be corrupted or misconfigured",
                )
    except StartupCheckError:
        raise
    except Exception as e:
        error_str = str(e).lower()

        if "could not connect" in error_str or "connection refused" in error_str:
            hint = (
                "PostgreSQL is not running.\n"
                "  - Start with Docker: docker-compose up -d\n"
                f"  - Current host: {settings.postgres_host}:{settings.postgres_port}"
            )
        elif "authentication failed" in error_str or "password" in error_str:
            hint = (
                "Database authentication failed.\n"
                "  - Check credentials in .env file\n"
                f"  - Current user: {settings.postgres_user}\n"
                f"  - Current database: {settings.postgres_db}"
            )
        elif "database" in error_str and "does not exist" in error_str:
            hint = (
                f"Database '{settings.postgres_db}' does not exist.\n"
                f"  - Create it: createdb {settings.postgres_db}\n"
                "  - Then run migrations: alembic upgrade head"
            )
        else:
            hint = f"Check your database configuration in .env\nError: {str(e)}"

        raise StartupCheckError(
            f"Cannot connect to database\n"
            f"Host: {settings.postgres_host}:{settings.postgres_port}\n"
            f"Database: {settings.postgres_db}\n"
            f"User: {settings.postgres_user}",
            hint,
        ) from e


def _alembic_config() -> AlembicConfig:
    ini_path = Path(__file__).resolve().parents[2] / "alembic.ini"
    if not ini_path.exists():
        raise FileNotFoundError(ini_path)
    return AlembicConfig(str(ini_path))


def check_database_migrations() -> None:
    """
    Verify Alembic database migrations are current.

    Skipped for SQLite, where the schema is created from the models.

    Raises:
        StartupCheckError: If pending migrations exist
    """
    if _uses_sqlite():
        return

    try:
        script = ScriptDirectory.from_config(_alembic_config())
        head_revision = script.get_current_head()

        with engine.connect() as connection:
            context = MigrationContext.configure(connection)
            current_revision = context.get_current_revision()

        if current_revision is None:
            raise StartupCheckError(
                "Database has no migration version\n" "Database appears uninitialized",
                "Run migrations: alembic upgrade head",
            )

        if current_revision != head_revision:
            pending = []
            for rev in script.iterate_revisions(head_revision, current_revision):
                if rev.revision != current_revision:
                    pending.append(f"  - {rev.revision[:8]}: {rev.doc}")

            pending_list = "\n".join(pending) if pending else "Unknown"

            raise StartupCheckError(
                f"Database migrations are out of date\n"
                f"Current revision: {current_revision[:8]}\n"
                f"Expected revision: {head_revision[:8] if head_revision else 'None'}\n"
                f"\nPending migrations:\n{pending_list}",
                "Run: alembic upgrade head",
            )

    except StartupCheckError:
        raise
    except FileNotFoundError:
        raise StartupCheckError(
            "Alembic configuration not found",
            "Ensure backend/alembic.ini exists",
        )
    except Exception as e:
        raise StartupCheckError(
            f"Failed to check migration status: {str(e)}",
            "Verify Alembic is properly configured",
        ) from e


def check_converter_configuration() -> None:
    """
    Validate the configured converter can be loaded.

    The OpenAI converter without an API key is allowed: conversions are then
    recorded as failed until OPENAI_API_KEY is set.

    Raises:
        StartupCheckError: If the converter path cannot be imported
    """
    if settings.converter == OPENAI_CONVERTER and not settings.openai_api_key:
        print("  ⚠️  SKIP (OPENAI_API_KEY not set - conversions will fail)")
        return

    from sqlshift.conversion.loader import load_converter

    try:
        converter = load_converter()
    except Exception as e:
        raise StartupCheckError(
            f"Cannot load converter '{settings.converter}': {str(e)}",
            "Set CONVERTER to an importable 'module:attr' path",
        ) from e

    if not callable(getattr(converter, "convert", None)):
        raise StartupCheckError(
            f"Converter '{settings.converter}' has no convert() method",
            "The converter must implement convert(source_text) -> ConversionResult",
        )


def run_all_startup_checks() -> None:
    """
    Execute all startup dependency checks.

    Runs checks in order of dependency:
    1. Environment variables
    2. Database connection
    3. Database migrations
    4. Converter configuration

    Tracks timing metrics for each check.

    Raises:
        SystemExit: After printing the failed check
    """
    global startup_metrics
    startup_start = time.time()

    checks = [
        ("Environment Variables", check_required_environment, "environment_check_ms"),
        ("Database Connection", check_database_connection, "database_check_ms"),
        ("Database Migrations", check_database_migrations, "migrations_check_ms"),
        ("Converter", check_converter_configuration, "converter_check_ms"),
    ]

    print("\n" + "=" * 70)
    print("🚀 Starting SQLShift Backend - Running Startup Checks")
    print("=" * 70 + "\n")

    for check_name, check_func, metric_name in checks:
        check_start = time.time()
        try:
            print(f"  Checking {check_name}...", end=" ", flush=True)
            check_func()
            check_duration = (time.time() - check_start) * 1000
            setattr(startup_metrics, metric_name, check_duration)
            print(f"✅ PASS ({check_duration:.1f}ms)")
        except StartupCheckError as e:
            check_duration = (time.time() - check_start) * 1000
            setattr(startup_metrics, metric_name, check_duration)
            print(f"❌ FAIL ({check_duration:.1f}ms)")
            print(str(e))
            sys.exit(1)

    startup_metrics.completed_at = datetime.now(timezone.utc)
    startup_metrics.total_duration_ms = (time.time() - startup_start) * 1000
    startup_metrics.checks_passed = True
    startup_metrics.last_check_time = datetime.now(timezone.utc)

    print("\n" + "=" * 70)
    print(
        f"✅ All startup checks passed - Server is ready ({startup_metrics.total_duration_ms:.1f}ms)"
    )
    print("=" * 70 + "\n")


def check_readiness() -> tuple[bool, dict]:
    """
    Quick readiness check for load balancer probes.

    Returns:
        tuple: (is_ready, details) where details contains the database state,
        whether startup completed, uptime and startup timings
    """
    db_ready = False
    try:
        with SessionLocal() as session:
            session.execute(text("SELECT 1"))
            db_ready = True
    except Exception:
        db_ready = False

    uptime = (datetime.now(timezone.utc) - startup_metrics.started_at).total_seconds()

    ready = startup_metrics.checks_passed and db_ready
    details = {
        "ready": ready,
        "database": "healthy" if db_ready else "unhealthy",
        "startup_completed": startup_metrics.checks_passed,
        "uptime_seconds": uptime,
        "startup_metrics": {
            "total_duration_ms": startup_metrics.total_duration_ms,
            "environment_check_ms": startup_metrics.environment_check_ms,
            "database_check_ms": startup_metrics.database_check_ms,
            "migrations_check_ms": startup_metrics.migrations_check_ms,
            "converter_check_ms": startup_metrics.converter_check_ms,
            "started_at": startup_metrics.started_at.isoformat(),
            "completed_at": (
                startup_metrics.completed_at.isoformat()
                if startup_metrics.completed_at
                else None
            ),
        },
    }

    return ready, details
