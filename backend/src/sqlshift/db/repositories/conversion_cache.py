"""
Conversion cache repository.
"""

from typing import Optional

from sqlalchemy.orm import Session

from sqlshift.db.repositories.base import BaseRepository
from sqlshift.models.conversion import Converted
from sqlshift.models.db import ConversionCacheEntry
from sqlshift.utils.hashing import calculate_content_hash


class ConversionCacheRepository(BaseRepository[ConversionCacheEntry]):
    """Repository for ConversionCacheEntry model."""

    def __init__(self, session: Session):
        super().__init__(ConversionCacheEntry, session)

    def get_by_hash(self, content_hash: str) -> Optional[ConversionCacheEntry]:
        return (
            self.session.query(ConversionCacheEntry)
            .filter(ConversionCacheEntry.content_hash == content_hash)
            .first()
        )

    def lookup(self, source_text: str) -> Optional[Converted]:
        """
        Get a cached conversion for the exact source text.

        Args:
            source_text: Original code

        Returns:
            Converted outcome flagged as coming from cache, or None on miss
        """
        entry = self.get_by_hash(calculate_content_hash(source_text))
        if entry is None:
            return None
        entry.hit_count += 1
        self.session.flush()
        return Converted(
            converted_content=entry.converted_code,
            issues=list(entry.issues or []),
            data_type_mapping=list(entry.data_type_mapping or []),
            performance_metrics=dict(entry.performance_metrics or {}),
            from_cache=True,
        )

    def store(self, source_text: str, outcome: Converted) -> ConversionCacheEntry:
        """
        Store (or refresh) the cached conversion of a source text.

        Args:
            source_text: Original code
            outcome: Successful conversion to remember

        Returns:
            The cache entry
        """
        content_hash = calculate_content_hash(source_text)
        entry = self.get_by_hash(content_hash)
        if entry is None:
            return self.create(
                content_hash=content_hash,
                original_code=source_text,
                converted_code=outcome.converted_content,
                issues=outcome.issues,
                data_type_mapping=outcome.data_type_mapping,
                performance_metrics=outcome.performance_metrics,
            )
        entry.converted_code = outcome.converted_content
        entry.issues = outcome.issues
        entry.data_type_mapping = outcome.data_type_mapping
        entry.performance_metrics = outcome.performance_metrics
        self.session.flush()
        return entry
