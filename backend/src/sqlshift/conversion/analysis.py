"""
Static analysis of source and converted SQL.

Cheap, regex-based helpers that fill the metadata attached to a conversion:
Sybase to Oracle data type mappings, complexity metrics and a few sanity
issues. None of these inspect the database; they only read text.
"""

import re
from typing import Any

from sqlshift.models.conversion import DataTypeMapping, Issue

# (pattern, oracle type template, description); ``{0}`` is the first type argument
SYBASE_TYPE_MAPPINGS: list[tuple[re.Pattern[str], str, str]] = [
    (re.compile(r"\bint\b", re.IGNORECASE), "NUMBER(10)", "Integer type"),
    (
        re.compile(r"\bvarchar\s*\(\s*(\d+)\s*\)", re.IGNORECASE),
        "VARCHAR2({0})",
        "Variable-length character string",
    ),
    (re.compile(r"\bdatetime\b", re.IGNORECASE), "TIMESTAMP", "Date and time"),
    (re.compile(r"\btext\b", re.IGNORECASE), "CLOB", "Large text data"),
]

CONTROL_STRUCTURE_PATTERN = re.compile(
    r"\b(if|while|for|case|when|loop)\b", re.IGNORECASE
)

# Converted text shorter than this fraction of the source is suspicious
MIN_LENGTH_RATIO = 0.5


def extract_data_type_mappings(code: str) -> list[DataTypeMapping]:
    """
    Find Sybase data types in source code and their Oracle equivalents.

    Each distinct spelling (case-insensitive) is reported once, in order of
    the mapping table.

    Args:
        code: Sybase source text

    Returns:
        List of DataTypeMapping
    """
    mappings: list[DataTypeMapping] = []
    seen: set[str] = set()

    for pattern, oracle_template, description in SYBASE_TYPE_MAPPINGS:
        for match in pattern.finditer(code):
            source_type = match.group(0)
            key = source_type.lower()
            if key in seen:
                continue
            seen.add(key)
            args = match.groups() or ("255",)
            mappings.append(
                DataTypeMapping(
                    source_type=source_type,
                    target_type=oracle_template.format(*args),
                    description=description,
                )
            )

    return mappings


def analyze_complexity(code: str) -> dict[str, Any]:
    """Count lines and control structures of a SQL text."""
    lines = code.split("\n")
    code_lines = [
        line for line in lines if line.strip() and not line.strip().startswith("--")
    ]
    control_structures = len(CONTROL_STRUCTURE_PATTERN.findall(code))

    return {
        "total_lines": len(lines),
        "code_lines": len(code_lines),
        "control_structures": control_structures,
        "cyclomatic_complexity": control_structures + 1,
        "maintainability_index": max(0, min(100, 100 - control_structures * 2)),
    }


def complexity_level(cyclomatic_complexity: int) -> str:
    if cyclomatic_complexity > 10:
        return "High"
    if cyclomatic_complexity > 5:
        return "Medium"
    return "Low"


def build_performance_metrics(
    original_code: str, converted_code: str, conversion_time_ms: float
) -> dict[str, Any]:
    """
    Summarize the converted code's complexity relative to the source.

    Args:
        original_code: Source text
        converted_code: Converted text
        conversion_time_ms: Wall-clock time spent converting

    Returns:
        Free-form metrics dictionary stored alongside the record
    """
    original = analyze_complexity(original_code)
    converted = analyze_complexity(converted_code)
    level = complexity_level(converted["cyclomatic_complexity"])

    recommendations = []
    if level == "High":
        recommendations.append("Consider breaking down complex procedures")

    return {
        "original_complexity": original["cyclomatic_complexity"],
        "converted_complexity": converted["cyclomatic_complexity"],
        "conversion_time_ms": round(conversion_time_ms),
        "performance_score": round(converted["maintainability_index"]),
        "maintainability_index": converted["maintainability_index"],
        "code_quality": {
            "total_lines": converted["total_lines"],
            "code_lines": converted["code_lines"],
            "complexity_level": level,
        },
        "recommendations": recommendations,
    }


def basic_issues(original_code: str, converted_code: str) -> list[Issue]:
    """Sanity checks on a converted text."""
    issues: list[Issue] = []

    if len(converted_code) < len(original_code) * MIN_LENGTH_RATIO:
        issues.append(
            Issue(
                line_number=1,
                description=(
                    "Converted code seems significantly shorter than original. "
                    "Please verify completeness."
                ),
                severity="warning",
                original_code="Code length check",
                suggested_fix="Review the converted code for missing elements",
            )
        )

    return issues
