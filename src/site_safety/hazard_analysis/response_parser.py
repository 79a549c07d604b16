"""Recover JSON from untrusted AI replies and coerce it into typed records."""

import json
import logging
import re
from typing import Any, List, Mapping, Optional

from site_safety.hazard_analysis.config import NOT_APPLICABLE
from site_safety.hazard_analysis.exceptions import ParseFailure, SchemaMismatch
from site_safety.hazard_analysis.models import HazardRecord, PhotoAnalysisRecord

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 200
DEFAULT_SCORE = 3

# A single fenced block wrapping the whole reply, with an optional language tag
_FENCE_RE = re.compile(r"^```(?:[\w+-]*(?=\s)|json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)

PHOTO_ANALYSIS_FIELDS = {
    "hazards": "hazards",
    "engineeringSolutions": "engineering_solutions",
    "managementSolutions": "management_solutions",
    "relatedRegulations": "related_regulations",
}


def _reject_constant(token: str) -> Any:
    raise ValueError(f"{token} is not valid JSON")


def _loads(text: str) -> Any:
    """Strict json.loads: NaN and Infinity are rejected, deep nesting fails cleanly."""
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except RecursionError as e:
        raise ValueError("JSON nested too deeply") from e


def parse(text: str) -> Any:
    """Parse an AI reply that is supposed to be JSON.

    Tries, in order: the trimmed text as-is, the interior of a markdown
    fence wrapping the whole reply, and the span between the first and last
    object or array delimiters. The last strategy only looks at delimiter
    positions, not nesting, so prose containing brackets can defeat it.

    Args:
        text: Raw reply text

    Returns:
        The decoded JSON value (usually a dict or a list)

    Raises:
        ParseFailure: If no strategy produced valid JSON
    """
    trimmed = text.strip()
    try:
        return _loads(trimmed)
    except ValueError:
        logger.debug("Reply is not bare JSON, trying fence stripping")

    fence_match = _FENCE_RE.match(trimmed)
    if fence_match and fence_match.group(1):
        try:
            return _loads(fence_match.group(1))
        except ValueError as e:
            logger.warning(
                f"Fenced block is not valid JSON: {e}; content: {fence_match.group(1)[:500]}"
            )

    candidate = _salvage_substring(text)
    if candidate:
        try:
            return _loads(candidate)
        except ValueError as e:
            logger.error(
                f"Failed to parse reply after all attempts: {e}; "
                f"reply: {text[:1000]!r}; substring: {candidate[:1000]!r}"
            )
            raise ParseFailure(
                f"Failed to parse AI response as JSON. Raw: {text[:EXCERPT_LENGTH]}, "
                f"Substring attempt: {candidate[:EXCERPT_LENGTH]}",
                excerpt=text[:EXCERPT_LENGTH],
                attempted_substring=candidate[:EXCERPT_LENGTH],
            ) from e

    logger.error(f"No JSON structure found in reply: {text[:1000]!r}")
    raise ParseFailure(
        f"Failed to parse AI response as JSON. No valid structure found in: {text[:EXCERPT_LENGTH]}",
        excerpt=text[:EXCERPT_LENGTH],
    )


def _salvage_substring(text: str) -> Optional[str]:
    first_curly = text.find("{")
    last_curly = text.rfind("}")
    first_square = text.find("[")
    last_square = text.rfind("]")

    if first_curly != -1 and last_curly > first_curly and (
        first_square == -1 or first_curly <= first_square
    ):
        return text[first_curly:last_curly + 1].strip()
    if first_square != -1 and last_square > first_square:
        return text[first_square:last_square + 1].strip()
    return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _coerce_score(value: Any) -> int:
    if not _is_number(value) or not 1 <= value <= 5:
        return DEFAULT_SCORE
    if isinstance(value, float):
        return int(value) if value.is_integer() else DEFAULT_SCORE
    return value


def coerce_hazard(item: Any, placeholder: str = NOT_APPLICABLE) -> HazardRecord:
    """Build a HazardRecord, defaulting every malformed field."""
    if not isinstance(item, Mapping):
        item = {}
    description = item.get("description")
    countermeasures = item.get("countermeasures")
    return HazardRecord(
        description=description if isinstance(description, str) else placeholder,
        severity=_coerce_score(item.get("severity")),
        likelihood=_coerce_score(item.get("likelihood")),
        countermeasures=countermeasures if isinstance(countermeasures, str) else placeholder,
    )


def _looks_like_hazard(value: Mapping) -> bool:
    return (
        bool(value.get("description"))
        and _is_number(value.get("severity"))
        and _is_number(value.get("likelihood"))
    )


def coerce_hazard_list(value: Any, placeholder: str = NOT_APPLICABLE) -> List[HazardRecord]:
    """Coerce a parsed risk-assessment reply into hazard records.

    Accepts a list of hazards, a single hazard object, or an object with a
    single key wrapping a list of hazards.

    Raises:
        SchemaMismatch: If the value matches none of those shapes
    """
    if isinstance(value, list):
        return [coerce_hazard(item, placeholder) for item in value]

    if isinstance(value, Mapping):
        if _looks_like_hazard(value):
            return [coerce_hazard(value, placeholder)]
        if len(value) == 1:
            (wrapped,) = value.values()
            if isinstance(wrapped, list):
                return [coerce_hazard(item, placeholder) for item in wrapped]

    raise SchemaMismatch(
        "Invalid JSON structure: expected an array of hazards, a single hazard object, "
        "or an object with one key containing an array of hazards"
    )


def coerce_additional_hazards(value: Any, placeholder: str = NOT_APPLICABLE) -> List[HazardRecord]:
    """Lenient variant of :func:`coerce_hazard_list` for follow-up requests.

    Unrecognised shapes yield an empty list instead of an error.
    """
    if isinstance(value, list):
        return [coerce_hazard(item, placeholder) for item in value]
    if isinstance(value, Mapping) and value.get("description"):
        return [coerce_hazard(value, placeholder)]
    logger.warning(f"Unexpected structure for additional hazards: {str(value)[:200]}")
    return []


def coerce_photo_analysis(value: Any) -> PhotoAnalysisRecord:
    """Coerce a parsed photo-analysis reply; missing or non-list fields become empty lists."""
    if not isinstance(value, Mapping):
        logger.warning(f"Photo analysis reply is not an object: {type(value).__name__}")
        value = {}
    fields = {
        attr: value.get(key) if isinstance(value.get(key), list) else []
        for key, attr in PHOTO_ANALYSIS_FIELDS.items()
    }
    return PhotoAnalysisRecord(**fields)
