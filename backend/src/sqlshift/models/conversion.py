"""
Conversion data models.

Plain dataclasses exchanged with converters, plus the tagged outcome the
lifecycle controller writes into a FileRecord. A ``Converted`` outcome always
carries converted text and a ``ConversionFailure`` always carries a message,
so a record can never be written as "success without content" or "failed
without a reason".
"""

import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Optional, Union

from sqlshift.models.db import ConversionStatus

SEVERITIES = ("info", "warning", "error")


@dataclass
class Issue:
    """A problem spotted while converting a file."""

    description: str
    severity: str = "info"  # 'info', 'warning', 'error'
    line_number: Optional[int] = None
    original_code: Optional[str] = None
    suggested_fix: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self) -> None:
        if self.severity not in SEVERITIES:
            raise ValueError(f"Invalid issue severity: {self.severity}")

    def to_dict(self) -> dict:
        """Convert to dictionary for JSONB storage."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Issue":
        return cls(
            id=data.get("id") or str(uuid.uuid4()),
            description=data["description"],
            severity=data.get("severity", "info"),
            line_number=data.get("line_number"),
            original_code=data.get("original_code"),
            suggested_fix=data.get("suggested_fix"),
        )


@dataclass
class DataTypeMapping:
    """Source type to target type substitution found in a file."""

    source_type: str
    target_type: str
    description: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ConversionResult:
    """What a converter returns for one source text."""

    converted_text: str
    issues: list[Issue] = field(default_factory=list)
    data_type_mapping: list[DataTypeMapping] = field(default_factory=list)
    performance_metrics: dict[str, Any] = field(default_factory=dict)

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)


@dataclass(frozen=True)
class Converted:
    """Successful conversion outcome."""

    converted_content: str
    issues: list[dict] = field(default_factory=list)
    data_type_mapping: list[dict] = field(default_factory=list)
    performance_metrics: dict[str, Any] = field(default_factory=dict)
    from_cache: bool = False

    def __post_init__(self) -> None:
        if not self.converted_content or not self.converted_content.strip():
            raise ValueError("Converted outcome requires non-empty content")

    @classmethod
    def from_result(cls, result: ConversionResult, from_cache: bool = False):
        return cls(
            converted_content=result.converted_text,
            issues=[issue.to_dict() for issue in result.issues],
            data_type_mapping=[m.to_dict() for m in result.data_type_mapping],
            performance_metrics=dict(result.performance_metrics),
            from_cache=from_cache,
        )

    def to_record_values(self) -> dict[str, Any]:
        """Column values written into a FileRecord for this outcome."""
        return {
            "conversion_status": ConversionStatus.SUCCESS,
            "converted_content": self.converted_content,
            "error_message": None,
            "issues": self.issues,
            "data_type_mapping": self.data_type_mapping,
            "performance_metrics": self.performance_metrics,
        }


@dataclass(frozen=True)
class ConversionFailure:
    """Failed conversion outcome (converter error, bad result or timeout)."""

    error_message: str
    timed_out: bool = False

    def __post_init__(self) -> None:
        if not self.error_message:
            raise ValueError("ConversionFailure requires an error message")

    def to_record_values(self) -> dict[str, Any]:
        return {
            "conversion_status": ConversionStatus.FAILED,
            "converted_content": None,
            "error_message": self.error_message,
            "issues": None,
            "data_type_mapping": None,
            "performance_metrics": None,
        }


ConversionOutcome = Union[Converted, ConversionFailure]
