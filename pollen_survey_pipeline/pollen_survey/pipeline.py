"""
Core orchestration / pipeline.

Flow:
1. Validate the symptom duration (before any outbound call)
2. Resolve (lat, lng) to an administrative region; stop with a miss body if none
3. Fetch the week-long pollen CSV for that region
4. Split rows into analysis view (sentinels dropped) and display view (sentinels -> null)
5. Narrative assessment from the analysis view (failure fails the request)
6. Gap imputation of the display view (failure keeps the gaps)
7. Chart spec for the possibly-imputed series (failure uses the default spec)
Stages run strictly in this order; each one only sees the previous stage's output.
"""

import logging
from datetime import datetime
from typing import Optional, Union

import httpx

from .charts import build_spec
from .fetcher import date_window, fetch_series
from .imputation import fill_gaps
from .llm_client import LLMBackend
from .narrative import assess, validate_duration
from .regions import GeoPoint, RegionResolver
from .schemas import LocateRequest, LocateResponse, RegionMissResponse
from .sentinel import classify, count_gaps
from .utils import safe_serialize

logger = logging.getLogger(__name__)

REGION_NOT_FOUND_MESSAGE = "No administrative region code was found for this location"


async def run_survey(
    request: LocateRequest,
    resolver: RegionResolver,
    client: httpx.AsyncClient,
    llm: LLMBackend,
    now: Optional[datetime] = None,
) -> Union[LocateResponse, RegionMissResponse]:
    # 1) Duration check; raises ValidationError
    duration = validate_duration(request.periodType, request.periodValue)

    # 2) Region lookup
    region = resolver.resolve(GeoPoint(latitude=request.lat, longitude=request.lng))
    if not region.found:
        logger.info(f"No region for lat={request.lat} lng={request.lng}")
        return RegionMissResponse(message=REGION_NOT_FOUND_MESSAGE)
    logger.info(f"Resolved {region.city_name} {region.ward_name or ''} ({region.region_code})")

    # 3) Pollen series; raises FetchError
    start, end = date_window(now)
    records = await fetch_series(region.region_code, start, end, client)

    # 4) Sentinel split
    analysis_series, display_series = classify(records)
    logger.info(
        f"{len(records)} rows: {len(analysis_series)} measured, {count_gaps(display_series)} missing"
    )

    # 5) Narrative; raises GenerationError
    analysis = await assess(request.symptoms(), duration, analysis_series, llm.narrative)

    # 6) Imputation (best effort)
    chart_series = await fill_gaps(display_series, llm.structured)

    # 7) Chart spec (best effort)
    vega_spec = await build_spec(chart_series, llm.structured)

    return LocateResponse(
        city=region.city_name,
        ward=region.ward_name,
        citycode=region.region_code,
        analysis=analysis,
        pollen=safe_serialize(analysis_series),
        records=safe_serialize(chart_series),
        vegaSpec=safe_serialize(vega_spec),
    )
