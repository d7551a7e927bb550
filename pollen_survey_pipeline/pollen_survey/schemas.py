"""
Pydantic request/response models.

Rationale:
- Field names follow the JSON the survey form sends and expects (camelCase).
- Symptom answers are validated here; an unanswered question never reaches the pipeline.
- periodType/periodValue stay loose so the route can answer out-of-range durations
  with its own 400 body instead of a generic 422.
"""

from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel

YesNo = Literal["yes", "no"]

SYMPTOM_KEYS = (
    "diagnosed",
    "fever",
    "facePain",
    "eyeItch",
    "nasal",
    "cough",
    "sneeze",
    "outdoor",
)


class LocateRequest(BaseModel):
    lat: float
    lng: float
    periodType: Any = None
    periodValue: Any = None
    diagnosed: YesNo
    fever: YesNo
    facePain: YesNo
    eyeItch: YesNo
    nasal: YesNo
    cough: YesNo
    sneeze: YesNo
    outdoor: YesNo

    def symptoms(self) -> Dict[str, str]:
        return {key: getattr(self, key) for key in SYMPTOM_KEYS}


class SeriesPoint(BaseModel):
    timestamp: str
    pollenCount: Optional[Union[int, float]] = None


class LocateResponse(BaseModel):
    city: Optional[str] = None
    ward: Optional[str] = None
    citycode: Optional[str] = None
    analysis: str
    pollen: List[SeriesPoint] = []
    records: List[SeriesPoint] = []
    vegaSpec: Dict[str, Any]


class RegionMissResponse(BaseModel):
    city: None = None
    ward: None = None
    citycode: None = None
    pollen: List[SeriesPoint] = []
    message: str


class DurationErrorResponse(BaseModel):
    error: str
    periodType: Any = None
    periodValue: Any = None


class ErrorResponse(BaseModel):
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    regions: int
