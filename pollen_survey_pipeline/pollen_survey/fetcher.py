"""
Pollen time-series retrieval.

Rationale:
- One GET per request against the provider, keyed by region code and a
  seven-day YYYYMMDD window ending "now".
- The CSV body is parsed with pandas using the header row as column names,
  like uploaded datasets elsewhere; only `date` and `pollen` are required.
- Any transport, status or parse failure becomes FetchError; the caller decides
  how fatal that is.
"""

import io
import logging
from datetime import date, datetime, timedelta
from typing import List, NamedTuple, Optional, Tuple, Union
from zoneinfo import ZoneInfo

import httpx
import pandas as pd

from . import config
from .errors import FetchError

logger = logging.getLogger(__name__)

WINDOW_DAYS = 7
REQUIRED_COLUMNS = ("date", "pollen")


class RawSeriesRecord(NamedTuple):
    timestamp: str
    pollen_count: Union[int, float]


def format_date(value: Union[date, datetime]) -> str:
    """Compact 8-digit date string, e.g. 2025-06-07 -> '20250607'."""
    return f"{value.year:04d}{value.month:02d}{value.day:02d}"


def date_window(now: Optional[datetime] = None) -> Tuple[str, str]:
    """Return (start, end) for the week ending at `now`."""
    if now is None:
        now = datetime.now(ZoneInfo(config.pollen_timezone()))
    return format_date(now - timedelta(days=WINDOW_DAYS)), format_date(now)


def _native_number(value: float) -> Union[int, float]:
    value = float(value)
    return int(value) if value.is_integer() else value


def parse_series(text: str) -> List[RawSeriesRecord]:
    """
    Parse delimited text (first line = header) into typed records.
    A header-only body is a valid, empty series.
    """
    if not text or not text.strip():
        raise FetchError("Pollen provider returned an empty body")

    try:
        df = pd.read_csv(io.StringIO(text), dtype=str, skip_blank_lines=True)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, ValueError) as e:
        raise FetchError(f"Pollen provider returned unparseable text: {e}") from e

    df.columns = df.columns.str.strip()
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise FetchError(f"Pollen data is missing columns: {', '.join(missing)}")

    timestamps = df["date"].str.strip()
    counts = pd.to_numeric(df["pollen"].str.strip(), errors="coerce")

    bad = timestamps.isna() | (timestamps == "") | counts.isna()
    if bad.any():
        bad_rows = df.index[bad.to_numpy()].tolist()
        raise FetchError(f"Pollen data has unparseable rows at positions {bad_rows[:5]}")

    return [
        RawSeriesRecord(timestamp=ts, pollen_count=_native_number(count))
        for ts, count in zip(timestamps, counts)
    ]


async def fetch_series(
    region_code: str,
    start: str,
    end: str,
    client: httpx.AsyncClient,
    url: Optional[str] = None,
) -> List[RawSeriesRecord]:
    """Download and parse the pollen series for one region and date window."""
    url = url or config.pollen_api_url()
    params = {"citycode": region_code, "start": start, "end": end}
    logger.info(f"Fetching pollen series: citycode={region_code} start={start} end={end}")

    try:
        response = await client.get(url, params=params, timeout=config.fetch_timeout())
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise FetchError(f"Pollen provider request failed: {type(e).__name__}: {e}") from e

    records = parse_series(response.text)
    logger.info(f"Fetched {len(records)} pollen rows for {region_code}")
    return records
