"""
Environment-driven settings.

Rationale:
- Values are read lazily with os.getenv so main.py can call load_dotenv first
  and tests can monkeypatch the environment.
- Every helper has a working default except the Gemini key.
"""

import os
from typing import List

DEFAULT_POLLEN_API_URL = "https://wxtech.weathernews.com/opendata/v1/pollen"
DEFAULT_GEOJSON_PATH = "N03-20250101.geojson"


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def gemini_api_key() -> str:
    return os.getenv("GEMINI_API_KEY") or os.getenv("LLM_API_KEY") or ""


def gemini_model() -> str:
    return os.getenv("GEMINI_MODEL") or "gemini-1.5-flash"


def llm_temperature() -> float:
    return _get_float("LLM_TEMPERATURE", 0.7)


def llm_timeout() -> float:
    return _get_float("LLM_TIMEOUT_SECONDS", 60.0)


def pollen_api_url() -> str:
    return os.getenv("POLLEN_API_URL") or DEFAULT_POLLEN_API_URL


def fetch_timeout() -> float:
    return _get_float("FETCH_TIMEOUT_SECONDS", 30.0)


def geojson_path() -> str:
    return os.getenv("GEOJSON_PATH") or DEFAULT_GEOJSON_PATH


def pollen_timezone() -> str:
    return os.getenv("POLLEN_TIMEZONE") or "Asia/Tokyo"


def response_language() -> str:
    return os.getenv("RESPONSE_LANGUAGE") or "Japanese"


def cors_origins() -> List[str]:
    raw = os.getenv("CORS_ORIGINS") or "*"
    return [o.strip() for o in raw.split(",") if o.strip()]


def static_dir() -> str:
    return os.getenv("STATIC_DIR") or "public_html"


def log_level() -> str:
    return (os.getenv("LOG_LEVEL") or "INFO").upper()
