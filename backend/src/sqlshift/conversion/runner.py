"""
Timeout-aware execution of a converter.

``run_conversion`` never raises for converter problems: exceptions, unusable
results and timeouts all come back as a ``ConversionFailure`` so the caller
can persist them like any other outcome.
"""

import logging
import time
from threading import Thread
from typing import Any, Optional

from sqlshift.conversion.base import Converter
from sqlshift.exceptions import ConversionFailedError
from sqlshift.models.conversion import (
    ConversionFailure,
    ConversionOutcome,
    ConversionResult,
    Converted,
    DataTypeMapping,
    Issue,
)

logger = logging.getLogger(__name__)


def _validate_result(result: Any) -> ConversionResult:
    """
    Normalize a converter result, rejecting anything that cannot be stored.

    Issues and data type mappings given as dicts are rebuilt as dataclasses
    and missing performance metrics become an empty dict.

    Raises:
        ConversionFailedError: If the result or its metadata is unusable
    """
    if not isinstance(result, ConversionResult):
        raise ConversionFailedError(
            f"Converter returned {type(result).__name__}, expected ConversionResult"
        )
    if not isinstance(result.converted_text, str) or not result.converted_text.strip():
        raise ConversionFailedError("Converter returned no converted text")

    # Converters may hand back plain dicts for issues and mappings
    try:
        issues = [
            issue if isinstance(issue, Issue) else Issue.from_dict(issue)
            for issue in result.issues or []
        ]
        mappings = [
            mapping
            if isinstance(mapping, DataTypeMapping)
            else DataTypeMapping(**mapping)
            for mapping in result.data_type_mapping or []
        ]
        metrics = dict(result.performance_metrics or {})
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise ConversionFailedError(
            f"Converter returned malformed metadata: {type(e).__name__}: {e}"
        ) from e

    return ConversionResult(
        converted_text=result.converted_text,
        issues=issues,
        data_type_mapping=mappings,
        performance_metrics=metrics,
    )


def run_conversion(
    converter: Converter,
    source_text: str,
    timeout_seconds: Optional[float] = None,
) -> ConversionOutcome:
    """
    Run a converter on one source text.

    The converter runs in a daemon worker thread joined with ``timeout_seconds``.
    A converter that overruns is abandoned (its eventual result is ignored).

    Args:
        converter: Object implementing the Converter protocol
        source_text: Source SQL
        timeout_seconds: Maximum wall-clock seconds, None to wait forever

    Returns:
        Converted on success, ConversionFailure otherwise
    """
    box: dict[str, Any] = {}

    def target() -> None:
        try:
            box["result"] = converter.convert(source_text)
        except Exception as e:
            box["error"] = e

    start_time = time.time()
    worker = Thread(target=target, name="sqlshift-convert", daemon=True)
    worker.start()
    worker.join(timeout=timeout_seconds)
    duration_ms = (time.time() - start_time) * 1000

    if worker.is_alive():
        logger.warning(f"Conversion timed out after {timeout_seconds:g} seconds")
        return ConversionFailure(
            error_message=f"Conversion timed out after {timeout_seconds:g} seconds",
            timed_out=True,
        )

    if "error" in box:
        error = box["error"]
        logger.warning(f"Converter raised {type(error).__name__}: {error}")
        return ConversionFailure(error_message=str(error) or type(error).__name__)

    try:
        result = _validate_result(box.get("result"))
    except ConversionFailedError as e:
        logger.warning(f"Unusable conversion result: {e}")
        return ConversionFailure(error_message=str(e))

    logger.debug(f"Conversion finished in {duration_ms:.0f}ms")
    return Converted.from_result(result)
