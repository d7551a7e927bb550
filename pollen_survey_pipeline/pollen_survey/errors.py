"""
Error taxonomy for the survey pipeline.

Rationale:
- One small hierarchy so the route can translate failures into HTTP bodies.
- Imputation and chart stages catch GenerationError / StructuredParseError
  locally and fall back; everything else reaches the route.
"""

from typing import Any


class PollenSurveyError(Exception):
    """Base class for all pipeline errors."""


class ValidationError(PollenSurveyError):
    """Request input is out of range (e.g. periodValue for periodType)."""

    def __init__(self, message: str, period_type: Any = None, period_value: Any = None):
        super().__init__(message)
        self.period_type = period_type
        self.period_value = period_value


class FetchError(PollenSurveyError):
    """Pollen provider unreachable or returned unparseable text."""


class GenerationError(PollenSurveyError):
    """Text-generation capability unreachable or errored."""


class StructuredParseError(PollenSurveyError):
    """Generated text did not contain an extractable structured payload."""
