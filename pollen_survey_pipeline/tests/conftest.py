"""
pytest configuration and shared fixtures for the pollen survey tests.

Key concern: tests must not need the real N03 GeoJSON, the pollen provider or a
Gemini key. We achieve this by:
  1. Building a tiny PolygonDataset from in-memory square features.
  2. Serving pollen CSV from an httpx.MockTransport.
  3. Swapping the LLM backend for FakeLLM callables via dependency_overrides.
"""

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from pollen_survey.llm_client import LLMBackend
from pollen_survey.regions import RegionResolver, build_polygon_dataset

KYOTO_CODE = "261009"

CSV_WITH_GAP = (
    "citycode,date,pollen\n"
    "261009,2025-06-27T00:00:00+09:00,-9999\n"
    "261009,2025-06-27T01:00:00+09:00,3\n"
)

NARRATIVE_TEXT = (
    "Your pollen allergy score is 80.\n"
    "The most likely cause of your symptoms is pollen allergy.\n"
)


def square_feature(min_lng, min_lat, max_lng, max_lat, city, ward, code):
    ring = [
        [min_lng, min_lat],
        [max_lng, min_lat],
        [max_lng, max_lat],
        [min_lng, max_lat],
        [min_lng, min_lat],
    ]
    return {
        "type": "Feature",
        "properties": {"N03_004": city, "N03_005": ward, "N03_007": code},
        "geometry": {"type": "Polygon", "coordinates": [ring]},
    }


class FakeLLM:
    """Async stand-in for a Generate callable; replays queued answers."""

    def __init__(self, responses=None, error=None):
        self.responses = list(responses or [])
        self.error = error
        self.calls = []

    async def __call__(self, system_prompt, user_prompt):
        self.calls.append((system_prompt, user_prompt))
        if self.error is not None:
            raise self.error
        return self.responses.pop(0) if self.responses else ""


@pytest.fixture()
def features():
    return [
        square_feature(134.9, 34.9, 135.1, 35.1, "京都市", "中京区", KYOTO_CODE),
        # Shares the lng=135.1 edge with the Kyoto square
        square_feature(135.1, 34.9, 135.3, 35.1, "大阪市", "北区", "271276"),
    ]


@pytest.fixture()
def resolver(features):
    return RegionResolver(build_polygon_dataset(features))


@pytest.fixture()
def survey_body():
    return {
        "lat": 35.0,
        "lng": 135.0,
        "periodType": "week",
        "periodValue": 2,
        "diagnosed": "yes",
        "fever": "no",
        "facePain": "no",
        "eyeItch": "yes",
        "nasal": "yes",
        "cough": "no",
        "sneeze": "yes",
        "outdoor": "yes",
    }


class ApiHarness:
    """Mutable knobs for one API test: CSV body/status and the fake models."""

    def __init__(self, resolver):
        self.resolver = resolver
        self.csv_body = CSV_WITH_GAP
        self.csv_status = 200
        self.pollen_requests = []
        self.narrative = FakeLLM([NARRATIVE_TEXT])
        self.structured = FakeLLM()
        self.client = None

    def handle_pollen(self, request):
        self.pollen_requests.append(request)
        return httpx.Response(self.csv_status, text=self.csv_body)


@pytest.fixture()
async def api(resolver):
    """
    HTTPX async test client wired to the FastAPI app with fakes injected.

    Usage:
        async def test_something(api, survey_body):
            response = await api.client.post("/api/locate", json=survey_body)
    """
    from pollen_survey.main import app, get_http_client, get_llm, get_resolver

    harness = ApiHarness(resolver)
    pollen_client = httpx.AsyncClient(transport=httpx.MockTransport(harness.handle_pollen))

    app.dependency_overrides[get_resolver] = lambda: harness.resolver
    app.dependency_overrides[get_http_client] = lambda: pollen_client
    app.dependency_overrides[get_llm] = lambda: LLMBackend(
        narrative=harness.narrative, structured=harness.structured
    )

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        harness.client = ac
        yield harness

    app.dependency_overrides.clear()
    await pollen_client.aclose()
