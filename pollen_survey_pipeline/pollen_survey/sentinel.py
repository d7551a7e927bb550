"""
Sentinel handling for fetched pollen rows.

The provider reports -9999 when no measurement exists for an hour. This is the
only place that knows about the constant: downstream code sees either a
dropped row (analysis view) or None (display view).
"""

import math
from typing import Any, Dict, Iterable, List, Tuple

SENTINEL_VALUE = -9999

SeriesPoint = Dict[str, Any]


def _is_missing(count: Any) -> bool:
    if count is None:
        return True
    try:
        value = float(count)
    except (TypeError, ValueError):
        return True
    return math.isnan(value) or value == SENTINEL_VALUE


def _timestamp_and_count(record: Any) -> Tuple[str, Any]:
    # Accepts RawSeriesRecord tuples as well as display-series dicts
    if isinstance(record, dict):
        return record["timestamp"], record.get("pollenCount")
    return record[0], record[1]


def classify(records: Iterable[Any]) -> Tuple[List[SeriesPoint], List[SeriesPoint]]:
    """
    Split records into (analysis, display) views.

    analysis: sentinel rows dropped, order kept.
    display:  every timestamp kept, sentinel rows carry pollenCount=None.
    """
    analysis: List[SeriesPoint] = []
    display: List[SeriesPoint] = []
    for record in records:
        timestamp, count = _timestamp_and_count(record)
        if _is_missing(count):
            display.append({"timestamp": timestamp, "pollenCount": None})
            continue
        analysis.append({"timestamp": timestamp, "pollenCount": count})
        display.append({"timestamp": timestamp, "pollenCount": count})
    return analysis, display


def count_gaps(series: Iterable[SeriesPoint]) -> int:
    return sum(1 for point in series if point.get("pollenCount") is None)


def has_gaps(series: Iterable[SeriesPoint]) -> bool:
    return any(point.get("pollenCount") is None for point in series)

