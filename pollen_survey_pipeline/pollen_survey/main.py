"""
FastAPI entrypoint with the /api/locate survey route.

- Loads the boundary polygons once at startup (fail fast on a bad file)
- Shares one httpx client for the pollen provider
- Translates pipeline errors into the JSON bodies the survey form expects
- Serves the built front end from STATIC_DIR when that directory exists

Run with: uvicorn pollen_survey.main:app
"""

import os
import logging
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from . import config

# Configure logging
logging.basicConfig(
    level=config.log_level(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

from contextlib import asynccontextmanager
from typing import Union

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .errors import FetchError, GenerationError, ValidationError
from .llm_client import LLMBackend, default_backend
from .pipeline import run_survey
from .regions import RegionResolver, load_polygon_dataset
from .schemas import (
    DurationErrorResponse,
    ErrorResponse,
    HealthResponse,
    LocateRequest,
    LocateResponse,
    RegionMissResponse,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    dataset = load_polygon_dataset(config.geojson_path())
    app.state.resolver = RegionResolver(dataset)
    async with httpx.AsyncClient() as client:
        app.state.http_client = client
        logger.info("Pollen survey API ready")
        yield


app = FastAPI(title="Pollen Survey Pipeline", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins(),
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_resolver(request: Request) -> RegionResolver:
    return request.app.state.resolver


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_llm() -> LLMBackend:
    return default_backend()


def _error(status_code: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=detail).model_dump(),
    )


@app.post(
    "/api/locate",
    response_model=Union[LocateResponse, RegionMissResponse],
    responses={400: {"model": DurationErrorResponse}, 500: {"model": ErrorResponse}},
)
async def locate_endpoint(
    body: LocateRequest,
    resolver: RegionResolver = Depends(get_resolver),
    client: httpx.AsyncClient = Depends(get_http_client),
    llm: LLMBackend = Depends(get_llm),
):
    try:
        return await run_survey(body, resolver, client, llm)
    except ValidationError as e:
        logger.warning(f"Rejected duration: periodType={e.period_type!r} periodValue={e.period_value!r}")
        return JSONResponse(
            status_code=400,
            content=DurationErrorResponse(
                error=str(e),
                periodType=e.period_type,
                periodValue=e.period_value,
            ).model_dump(),
        )
    except FetchError as e:
        logger.error(f"Pollen fetch failed: {e}")
        return _error(500, "Failed to fetch pollen data", str(e))
    except GenerationError as e:
        logger.error(f"Narrative generation failed: {e}")
        return _error(500, "Analysis failed", str(e))
    except Exception as e:
        logger.exception("Unhandled error in /api/locate")
        return _error(500, "Internal server error", str(e))


@app.get("/health", response_model=HealthResponse)
async def health_endpoint(resolver: RegionResolver = Depends(get_resolver)):
    return HealthResponse(status="ok", regions=len(resolver.dataset))


# Mounted last so the API routes take precedence over "/"
if os.path.isdir(config.static_dir()):
    app.mount("/", StaticFiles(directory=config.static_dir(), html=True), name="static")
