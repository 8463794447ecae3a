"""
JSON parsing for model responses.

Models wrap JSON in markdown fences and chatty preambles. This module is the
single place that cleans a response and turns it into a typed ParseResult;
callers decide whether a failure is retryable.

Cleaning: strip ```json / ``` fences, trim, then take the span from the
first "{" to the last "}" when one exists.
"""

import json
import re
from dataclasses import dataclass
from typing import Any

from lessonscribe.exceptions import FactParseError

from .result_types import LIST_FACT_FIELDS, REQUIRED_FACT_FIELDS, SINGULAR_FACT_FIELDS

_OPEN_FENCE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_CLOSE_FENCE = re.compile(r"```\s*$")


@dataclass(frozen=True)
class ParseResult:
    """
    Outcome of parsing a model response.

    Attributes:
        ok: True if value holds the parsed object
        value: Parsed dict (None on failure)
        error: Failure description (None on success)
    """
    ok: bool
    value: dict | None = None
    error: str | None = None

    def unwrap(self) -> dict:
        """
        Return the value or raise.

        Raises:
            FactParseError: If parsing failed
        """
        if not self.ok:
            raise FactParseError(self.error)
        return self.value


def clean_json_response(response: str) -> str:
    """Strip code fences and isolate the outermost {...} span."""
    cleaned = _OPEN_FENCE.sub("", response)
    cleaned = _CLOSE_FENCE.sub("", cleaned).strip()

    first_brace = cleaned.find("{")
    last_brace = cleaned.rfind("}")
    if first_brace != -1 and last_brace > first_brace:
        cleaned = cleaned[first_brace:last_brace + 1]

    return cleaned


def parse_json_object(response: str) -> ParseResult:
    """Parse a response as a JSON object (any keys)."""
    if not response or not response.strip():
        return ParseResult(ok=False, error="Empty response")

    cleaned = clean_json_response(response)
    try:
        value = json.loads(cleaned)
    except json.JSONDecodeError as e:
        return ParseResult(ok=False, error=f"Invalid JSON: {e.msg} at position {e.pos}")

    if not isinstance(value, dict):
        return ParseResult(ok=False, error=f"Expected a JSON object, got {type(value).__name__}")

    return ParseResult(ok=True, value=value)


def parse_fact_response(response: str) -> ParseResult:
    """
    Parse a fact-extraction response into normalized partial facts.

    Required fields (key_takeaways, topics, techniques) must be present; an
    empty list counts as present. List fields are normalized to lists of
    non-blank strings and singular fields to stripped strings.
    """
    result = parse_json_object(response)
    if not result.ok:
        return result

    raw = result.value
    missing = [name for name in REQUIRED_FACT_FIELDS if name not in raw]
    if missing:
        return ParseResult(ok=False, error=f"Missing required fields: {', '.join(missing)}")

    facts: dict[str, Any] = {}
    for name in SINGULAR_FACT_FIELDS:
        value = raw.get(name)
        if isinstance(value, str) and value.strip():
            facts[name] = value.strip()
        elif value is not None and not isinstance(value, (str, list, dict)):
            facts[name] = str(value)

    for name in LIST_FACT_FIELDS:
        facts[name] = _ensure_string_list(raw.get(name))

    return ParseResult(ok=True, value=facts)


def _ensure_string_list(value: Any) -> list[str]:
    """Coerce a field to a list of non-blank strings."""
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    items = []
    for item in value:
        if item is None or isinstance(item, (dict, list)):
            continue
        text = str(item).strip()
        if text:
            items.append(text)
    return items
