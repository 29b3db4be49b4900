"""
File name and content classification for uploads.
"""

from pathlib import PurePosixPath
from typing import Optional

from sqlshift.config import settings
from sqlshift.exceptions import UnsupportedFileTypeError, ValidationError
from sqlshift.models.db import FileType


def detect_file_type(file_name: str, content: str) -> FileType:
    """
    Guess the kind of database object a file holds.

    The file name is checked together with the content for each kind, in the
    order table, procedure, trigger.

    Args:
        file_name: Uploaded file name
        content: File text

    Returns:
        Detected FileType (OTHER when nothing matches)
    """
    lower_name = file_name.lower()
    lower_content = content.lower()

    if "table" in lower_name or "create table" in lower_content:
        return FileType.TABLE
    if "proc" in lower_name or "create proc" in lower_content:
        return FileType.PROCEDURE
    if "trig" in lower_name or "create trigger" in lower_content:
        return FileType.TRIGGER
    return FileType.OTHER


def file_extension(file_name: str) -> str:
    """Lower-cased extension including the dot, or '' if there is none."""
    return PurePosixPath(file_name).suffix.lower()


def ensure_supported(file_name: str, supported: Optional[list[str]] = None) -> None:
    """
    Reject file names whose extension cannot be converted.

    Raises:
        ValidationError: If the name is empty
        UnsupportedFileTypeError: If the extension is not supported
    """
    if not file_name or not file_name.strip():
        raise ValidationError("File name is required")
    supported = supported if supported is not None else settings.supported_extensions
    if file_extension(file_name) not in {ext.lower() for ext in supported}:
        raise UnsupportedFileTypeError(file_name, supported)


def normalize_manual_file_name(file_name: str) -> str:
    """Name a manually entered file, adding a .sql suffix when missing."""
    name = (file_name or "").strip()
    if not name:
        raise ValidationError("File name is required")
    if not name.lower().endswith(".sql"):
        name = f"{name}.sql"
    return name
