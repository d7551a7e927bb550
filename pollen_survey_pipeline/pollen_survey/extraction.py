"""
Structured-payload extraction from free-text model output.

Models asked for "JSON only" still wrap it in code fences or commentary.
Extraction is two-phase:
1. locate_payload: strip fences, take the first `{` or `[` up to the last
   closer of the same kind.
2. parse_structured: strict json.loads of that substring.
Both phases raise StructuredParseError so callers have one thing to catch.
"""

import json
import logging
import re
from typing import Any

from .errors import StructuredParseError

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r"```[A-Za-z0-9_-]*[ \t]*")
_CLOSERS = {"{": "}", "[": "]"}


def strip_fences(text: str) -> str:
    """Remove ``` / ```json markers, keeping whatever they wrapped."""
    text = text.strip()
    if "```" not in text:
        return text
    match = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text, re.IGNORECASE)
    if match and any(ch in match.group(1) for ch in _CLOSERS):
        return match.group(1).strip()
    # Fallback: remove all fences
    return _FENCE_OPEN.sub("", text).replace("```", "").strip()


def locate_payload(text: str) -> str:
    if text is None:
        raise StructuredParseError("No text to extract from")

    text = strip_fences(text)
    positions = [pos for pos in (text.find(ch) for ch in _CLOSERS) if pos != -1]
    if not positions:
        raise StructuredParseError("No JSON object or array found")

    start = min(positions)
    closer = _CLOSERS[text[start]]
    end = text.rfind(closer)
    if end <= start:
        raise StructuredParseError(f"Unmatched '{text[start]}' in model output")

    return text[start:end + 1]


def parse_structured(text: str) -> Any:
    payload = locate_payload(text)
    try:
        return json.loads(payload)
    except (ValueError, RecursionError) as e:
        # ValueError also covers int digit limits
        logger.debug(f"Payload that failed to parse: {payload[:500]!r}")
        raise StructuredParseError(f"Invalid JSON in model output: {e}") from e
