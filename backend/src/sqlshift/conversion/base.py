"""
Collaborator protocols for conversion and deployment.

The conversion algorithm and the target database are opaque to the lifecycle
controller: it only sees objects implementing these protocols.
"""

import logging
from typing import Protocol, Sequence

from sqlshift.models.conversion import ConversionResult
from sqlshift.models.db import FileRecord

logger = logging.getLogger(__name__)


class Converter(Protocol):
    """
    Protocol for source-to-target SQL converters.

    Implementations may raise any exception; the conversion runner records it
    as a failed conversion.
    """

    def convert(self, source_text: str) -> ConversionResult:
        """
        Convert one source text.

        Args:
            source_text: Source dialect SQL

        Returns:
            ConversionResult with non-empty converted_text
        """
        ...


class Deployer(Protocol):
    """Protocol for pushing converted files to a target database."""

    def deploy(self, files: Sequence[FileRecord]) -> None:
        """
        Deploy converted files, all or nothing.

        Raises:
            Exception: Any error means the deployment failed
        """
        ...


class DryRunDeployer:
    """Deployer that only checks every file has converted content."""

    def deploy(self, files: Sequence[FileRecord]) -> None:
        for record in files:
            if not record.converted_content or not record.converted_content.strip():
                raise ValueError(f"No converted content for {record.file_name}")
        logger.info(f"Dry-run deployment of {len(files)} file(s) succeeded")
