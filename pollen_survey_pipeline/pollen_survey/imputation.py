"""
Model-based gap filling for the display series.

Flow:
1. Skip entirely when the series has no gaps (no model call).
2. Ask the structured model for the completed series as a JSON array.
3. Extract + validate the payload; every point needs an ISO-8601 timestamp and a
   non-negative number.
4. Copy predictions into the null slots only, matched by parsed timestamp;
   measured values and the input timeline are never replaced.
5. Sort by parsed timestamp (the model may reorder rows).
Any generation or parse failure is logged and the original series is returned,
so a bad imputation never fails the request.
"""

import json
import logging
import math
from typing import Any, Dict, List

import pandas as pd

from .errors import GenerationError, StructuredParseError
from .extraction import parse_structured
from .llm_client import Generate
from .sentinel import SENTINEL_VALUE, count_gaps
from .utils import read_prompt

logger = logging.getLogger(__name__)

IMPUTATION_PROMPT = "imputation_system.txt"
_WRAPPER_KEYS = ("records", "data", "values")


def build_imputation_prompt(series: List[Dict[str, Any]]) -> str:
    return (
        f"The series below has {count_gaps(series)} missing values (null).\n"
        "Fill every null pollenCount and return the complete array.\n\n"
        f"{json.dumps(series, ensure_ascii=False)}"
    )


def _as_count(value: Any, idx: int) -> float:
    if value is None or isinstance(value, bool):
        raise StructuredParseError(f"Record {idx} has no numeric pollenCount")
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        raise StructuredParseError(f"Record {idx} has non-numeric pollenCount {value!r}")
    if math.isnan(number) or math.isinf(number) or number < 0 or number == SENTINEL_VALUE:
        raise StructuredParseError(f"Record {idx} has invalid pollenCount {value!r}")
    return int(number) if number.is_integer() else number


def _timestamp_key(value: Any, idx: int) -> pd.Timestamp:
    if not isinstance(value, str) or not value.strip():
        raise StructuredParseError(f"Record {idx} has no timestamp")
    try:
        # Naive timestamps are read as UTC so mixed inputs still compare
        return pd.to_datetime(value, utc=True)
    except (ValueError, TypeError) as e:
        raise StructuredParseError(f"Record {idx} has unparseable timestamp {value!r}") from e


def parse_filled_series(text: str) -> List[Dict[str, Any]]:
    """Parse the model answer into a chronologically sorted series."""
    data = parse_structured(text)
    if isinstance(data, dict):
        for key in _WRAPPER_KEYS:
            if isinstance(data.get(key), list):
                data = data[key]
                break

    if not isinstance(data, list) or not data:
        raise StructuredParseError("Expected a non-empty JSON array of records")

    keyed = []
    for idx, item in enumerate(data):
        if not isinstance(item, dict):
            raise StructuredParseError(f"Record {idx} is not an object")
        timestamp = item.get("timestamp", item.get("date"))
        count = item.get("pollenCount", item.get("pollen"))
        keyed.append((
            _timestamp_key(timestamp, idx),
            {"timestamp": timestamp, "pollenCount": _as_count(count, idx)},
        ))

    keyed.sort(key=lambda pair: pair[0])
    return [point for _, point in keyed]


def merge_predictions(
    series: List[Dict[str, Any]], predicted: List[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """
    Write predicted counts into the null slots of `series` only.
    Every input timestamp and measured value is kept; a gap the answer does not
    cover raises StructuredParseError.
    """
    by_instant = {
        _timestamp_key(point["timestamp"], idx): point["pollenCount"]
        for idx, point in enumerate(predicted)
    }

    keyed = []
    for idx, point in enumerate(series):
        instant = _timestamp_key(point["timestamp"], idx)
        count = point.get("pollenCount")
        if count is None:
            if instant not in by_instant:
                raise StructuredParseError(f"Answer has no value for gap at {point['timestamp']}")
            count = by_instant[instant]
        keyed.append((instant, {"timestamp": point["timestamp"], "pollenCount": count}))

    keyed.sort(key=lambda pair: pair[0])
    return [point for _, point in keyed]


async def fill_gaps(series: List[Dict[str, Any]], generate: Generate) -> List[Dict[str, Any]]:
    gaps = count_gaps(series)
    if not gaps:
        return series

    logger.info(f"Requesting imputation for {gaps} of {len(series)} points")
    try:
        system_prompt = read_prompt(IMPUTATION_PROMPT)
        response = await generate(system_prompt, build_imputation_prompt(series))
        logger.debug(f"Imputation raw response: {response}")
        filled = merge_predictions(series, parse_filled_series(response))
    except (GenerationError, StructuredParseError, OSError) as e:
        logger.error(f"Imputation failed, keeping gaps: {type(e).__name__}: {e}")
        return series

    return filled
