"""
Tolerant JSON extraction for free-text model output.

Models asked for JSON still wrap it in prose, markdown fences, or leave a
trailing comma behind. ``extract_json`` recovers the outer object or raises
``MalformedResponseError``; it never lets a ``json`` exception escape.

Only the first fenced block is considered. A response containing several
fenced blocks is parsed from the first one alone.
"""

from __future__ import annotations

import json
import logging
import re

from core.errors import MalformedResponseError

logger = logging.getLogger(__name__)

_FENCE = "```"
_FENCED_BLOCK = re.compile(r"```(?:json)?([\s\S]*?)```", re.IGNORECASE)
_LEADING_FENCE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"\s*```$")
_TRAILING_COMMA = re.compile(r",\s*([\]}])")


def strip_fences(text: str) -> str:
    """Return the content of the first fenced block, or *text* with stray fences trimmed."""
    clean = text.strip()
    if _FENCE not in clean:
        return clean

    match = _FENCED_BLOCK.search(clean)
    if match and match.group(1).strip():
        return match.group(1).strip()

    clean = _LEADING_FENCE.sub("", clean)
    return _TRAILING_FENCE.sub("", clean).strip()


def outer_object(text: str) -> str | None:
    """Return the span from the first ``{`` to the last ``}`` inclusive."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        return None
    return text[start:end + 1]


def repair_trailing_commas(text: str) -> str:
    """Drop commas that directly precede a closing ``]`` or ``}``.

    The pattern is not string-aware: a literal ``",]"`` inside a JSON string
    value is rewritten too.
    """
    return _TRAILING_COMMA.sub(r"\1", text)


def extract_json(raw_text: str) -> dict:
    """Recover the JSON object embedded in a model response.

    Args:
        raw_text: Raw response text, possibly with prose or markdown fences.

    Returns:
        The parsed object as a dict.

    Raises:
        MalformedResponseError: If no object can be recovered.
    """
    raw_text = raw_text or ""
    candidate = outer_object(strip_fences(raw_text))
    if candidate is None:
        raise MalformedResponseError(
            "Failed to parse AI response as JSON: no object found.", raw_text
        )

    for attempt in (candidate, repair_trailing_commas(candidate)):
        try:
            parsed = json.loads(attempt)
        except json.JSONDecodeError as exc:
            logger.debug("JSON parse attempt failed: %s", exc)
            continue
        if isinstance(parsed, dict):
            return parsed

    logger.error(
        "Unrecoverable model JSON (%d chars): %r", len(raw_text), raw_text[:200]
    )
    raise MalformedResponseError("Failed to parse AI response as JSON.", raw_text)
