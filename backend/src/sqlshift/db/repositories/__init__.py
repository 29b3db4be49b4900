"""
Repository layer for database operations.

Provides a clean API for CRUD operations on database models.
"""

from sqlshift.db.repositories.base import BaseRepository
from sqlshift.db.repositories.conversion_cache import ConversionCacheRepository
from sqlshift.db.repositories.deployment_log import DeploymentLogRepository
from sqlshift.db.repositories.file_comment import FileCommentRepository
from sqlshift.db.repositories.file_record import FileRecordRepository
from sqlshift.db.repositories.migration_project import MigrationProjectRepository
from sqlshift.db.repositories.migration_report import MigrationReportRepository
from sqlshift.db.repositories.unreviewed_file import UnreviewedFileRepository

__all__ = [
    "BaseRepository",
    "ConversionCacheRepository",
    "DeploymentLogRepository",
    "FileCommentRepository",
    "FileRecordRepository",
    "MigrationProjectRepository",
    "MigrationReportRepository",
    "UnreviewedFileRepository",
]
