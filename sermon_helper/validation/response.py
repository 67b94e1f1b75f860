"""Parsing and schema validation of provider output.

This is where provider unreliability is absorbed: malformed or off-schema
suggestion payloads become the canonical empty result with
``used_fallback=True`` and never raise.
"""

import json
import logging
from dataclasses import dataclass

from pydantic import ValidationError

from sermon_helper.models.suggestions import SermonHelperSuggestions, empty_suggestions

logger = logging.getLogger("shg.validator")

MIN_DRAFT_LENGTH = 200
_JSON_FENCES = ("```json",)
_DRAFT_FENCES = ("```markdown", "```md")


@dataclass
class ValidationResult:
    suggestions: SermonHelperSuggestions
    used_fallback: bool


@dataclass
class DraftParseResult:
    markdown: str
    valid: bool


def strip_code_fences(raw: str, languages: tuple[str, ...] = _JSON_FENCES) -> str:
    """Remove one leading ```lang / ``` fence and one trailing ``` if present."""
    cleaned = raw.strip()
    for opener in (*languages, "```"):
        if cleaned.startswith(opener):
            cleaned = cleaned[len(opener) :]
            break
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def validate_suggestions(raw: str) -> ValidationResult:
    cleaned = strip_code_fences(raw)

    try:
        parsed = json.loads(cleaned)
    except (ValueError, RecursionError) as exc:
        logger.error(
            "suggestions_parse_failed",
            extra={"error": f"{type(exc).__name__}: {exc}"[:300]},
        )
        return ValidationResult(suggestions=empty_suggestions(), used_fallback=True)

    if not isinstance(parsed, dict):
        logger.error(
            "suggestions_schema_failed",
            extra={"error": f"expected object, got {type(parsed).__name__}"},
        )
        return ValidationResult(suggestions=empty_suggestions(), used_fallback=True)

    try:
        suggestions = SermonHelperSuggestions.model_validate(parsed)
    except ValidationError as exc:
        logger.error(
            "suggestions_schema_failed",
            extra={"error": f"{exc.error_count()} validation error(s)"},
        )
        return ValidationResult(suggestions=empty_suggestions(), used_fallback=True)

    return ValidationResult(suggestions=suggestions, used_fallback=False)


def parse_draft_response(raw: str) -> DraftParseResult:
    cleaned = strip_code_fences(raw, _DRAFT_FENCES)
    if len(cleaned) < MIN_DRAFT_LENGTH:
        return DraftParseResult(markdown="", valid=False)
    return DraftParseResult(markdown=cleaned, valid=True)
