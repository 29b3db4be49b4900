"""OpenAI-backed Sybase to Oracle converter."""

from __future__ import annotations

import re
import time

from openai import OpenAI

from sqlshift.config import settings
from sqlshift.conversion.analysis import (
    basic_issues,
    build_performance_metrics,
    extract_data_type_mappings,
)
from sqlshift.exceptions import ConversionFailedError
from sqlshift.models.conversion import ConversionResult

CONVERSION_PROMPT = """Convert this {source} SQL to {target} PL/SQL efficiently.
Output only the converted code, without explanations or Markdown fences.

{code}
"""

_FENCE_PATTERN = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")


def strip_code_fences(text: str) -> str:
    """Remove a leading ```lang fence and a trailing ``` fence."""
    return _FENCE_PATTERN.sub("", text.strip()).strip()


class OpenAIConverter:
    """Convert SQL with an OpenAI chat completion."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        timeout_s: float | None = None,
        source_dialect: str | None = None,
        target_dialect: str | None = None,
    ):
        self.client = OpenAI(
            api_key=api_key or settings.openai_api_key or None,
            timeout=timeout_s or settings.openai_timeout_seconds,
        )
        self.model = model or settings.openai_model
        self.max_tokens = max_tokens or settings.openai_max_tokens
        self.source_dialect = source_dialect or settings.source_dialect
        self.target_dialect = target_dialect or settings.target_dialect

    def convert(self, source_text: str) -> ConversionResult:
        prompt = CONVERSION_PROMPT.format(
            source=self.source_dialect,
            target=self.target_dialect,
            code=source_text,
        )

        start_time = time.time()
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {
                    "role": "system",
                    "content": (
                        f"You convert {self.source_dialect} SQL to "
                        f"{self.target_dialect}. Return only code."
                    ),
                },
                {"role": "user", "content": prompt},
            ],
            max_tokens=self.max_tokens,
            temperature=0.1,
        )
        duration_ms = (time.time() - start_time) * 1000

        content = response.choices[0].message.content
        if not content:
            raise ConversionFailedError("Empty conversion response from OpenAI")

        converted = strip_code_fences(content)
        if not converted:
            raise ConversionFailedError("Empty conversion response from OpenAI")

        metrics = build_performance_metrics(source_text, converted, duration_ms)
        metrics["llm_model"] = response.model
        metrics["llm_total_tokens"] = (
            response.usage.total_tokens if response.usage else 0
        )

        return ConversionResult(
            converted_text=converted,
            issues=basic_issues(source_text, converted),
            data_type_mapping=extract_data_type_mappings(source_text),
            performance_metrics=metrics,
        )
