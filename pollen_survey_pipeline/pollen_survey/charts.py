"""
Vega-Lite chart spec for the pollen series.

The structured model proposes a spec; whatever it returns, the data block is
replaced by the literal series so the chart always shows real values. When the
proposal is unusable the fixed default spec is returned instead.
"""

import copy
import json
import logging
from typing import Any, Dict, List

from .errors import GenerationError, StructuredParseError
from .extraction import parse_structured
from .llm_client import Generate
from .utils import read_prompt

logger = logging.getLogger(__name__)

CHART_PROMPT = "chart_system.txt"
VEGA_LITE_SCHEMA = "https://vega.github.io/schema/vega-lite/v5.json"


def default_chart_spec(series: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Fallback spec: points joined by a line, nulls left as gaps."""
    return {
        "$schema": VEGA_LITE_SCHEMA,
        "description": "Hourly pollen count",
        "width": "container",
        "data": {"values": copy.deepcopy(series)},
        "mark": {"type": "line", "point": True},
        "encoding": {
            "x": {"field": "timestamp", "type": "temporal", "title": "Time"},
            "y": {"field": "pollenCount", "type": "quantitative", "title": "Pollen (grains/cm²)"},
        },
    }


def build_chart_prompt(series: List[Dict[str, Any]]) -> str:
    sample = series[:3]
    return (
        f"Write a Vega-Lite line chart for an hourly pollen series of {len(series)} points.\n"
        "Some pollenCount values may be null; they should appear as gaps.\n"
        f"First records for reference: {json.dumps(sample, ensure_ascii=False)}"
    )


def _validate_spec(spec: Any) -> Dict[str, Any]:
    if not isinstance(spec, dict):
        raise StructuredParseError("Chart spec is not a JSON object")
    mark = spec.get("mark")
    mark_type = mark.get("type") if isinstance(mark, dict) else mark
    if mark_type != "line":
        raise StructuredParseError(f"Chart spec mark is {mark_type!r}, not a line")

    encoding = spec.get("encoding")
    if not isinstance(encoding, dict):
        raise StructuredParseError("Chart spec has no encoding")
    for channel, field, field_type in (("x", "timestamp", "temporal"), ("y", "pollenCount", "quantitative")):
        enc = encoding.get(channel)
        if not isinstance(enc, dict) or enc.get("field") != field or enc.get("type") != field_type:
            raise StructuredParseError(f"Chart spec {channel} must encode {field} as {field_type}")
    return spec


async def build_spec(series: List[Dict[str, Any]], generate: Generate) -> Dict[str, Any]:
    try:
        system_prompt = read_prompt(CHART_PROMPT)
        response = await generate(system_prompt, build_chart_prompt(series))
        logger.debug(f"Chart spec raw response: {response}")
        spec = _validate_spec(parse_structured(response))
    except (GenerationError, StructuredParseError, OSError) as e:
        logger.error(f"Chart spec generation failed, using default: {type(e).__name__}: {e}")
        return default_chart_spec(series)

    spec.pop("datasets", None)
    spec["data"] = {"values": copy.deepcopy(series)}
    spec.setdefault("$schema", VEGA_LITE_SCHEMA)
    return spec
