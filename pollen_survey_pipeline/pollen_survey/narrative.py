"""
Symptom-duration validation and the likelihood narrative.

The narrative is the primary payload of a survey response, so unlike the chart
and imputation stages it has no fallback: a provider failure propagates as
GenerationError.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from . import config
from .errors import GenerationError, ValidationError
from .llm_client import Generate
from .utils import read_prompt

logger = logging.getLogger(__name__)

NARRATIVE_PROMPT = "narrative_system.txt"

# Allowed periodValue range per periodType
DURATION_RANGES = {"day": (1, 6), "week": (1, 4), "month": (1, 12)}

SYMPTOM_QUESTIONS = {
    "diagnosed": "Has been diagnosed with pollen allergy",
    "fever": "Has a fever",
    "facePain": "Feels pain behind the eyes or cheeks",
    "eyeItch": "Has itchy eyes",
    "nasal": "Has a runny nose",
    "cough": "Has a cough",
    "sneeze": "Sneezes often",
    "outdoor": "Symptoms feel stronger outdoors than indoors",
}

ASSESSMENT_POLICY = [
    "The longer the symptoms have lasted, the more likely a pollen allergy is. "
    "Symptoms lasting more than two weeks are not a cold.",
    "A documented pollen allergy diagnosis makes pollen allergy more likely than without one.",
    "Itchy eyes point to a pollen allergy.",
    "The last answer says whether symptoms feel stronger outdoors than indoors; "
    "\"no\" means they do not. Stronger symptoms outdoors point to a pollen allergy.",
    "Frequent sneezing makes sinusitis unlikely.",
    "A fever points to a cold, but with pain behind the eyes or cheeks sinusitis is possible, "
    "so pollen allergy cannot be ruled out.",
    "A cough without itchy eyes and without a runny nose points to a cold.",
]


@dataclass(frozen=True)
class SymptomDuration:
    unit: str
    value: int

    def phrase(self) -> str:
        return f"{self.value} {self.unit}{'' if self.value == 1 else 's'}"


def validate_duration(period_type: Any, period_value: Any) -> SymptomDuration:
    """Raise ValidationError unless period_value is an integer within the range for period_type."""
    bounds = DURATION_RANGES.get(period_type) if isinstance(period_type, str) else None
    valid = (
        bounds is not None
        and isinstance(period_value, (int, float))
        and not isinstance(period_value, bool)
        and float(period_value).is_integer()
        and bounds[0] <= period_value <= bounds[1]
    )
    if not valid:
        raise ValidationError(
            "Invalid symptom duration",
            period_type=period_type,
            period_value=period_value,
        )
    return SymptomDuration(unit=period_type, value=int(period_value))


def _format_series(series: List[Dict[str, Any]]) -> str:
    if not series:
        return "(no measurements available)"
    return "\n".join(f"{point['timestamp']}: {point['pollenCount']}" for point in series)


def build_prompt(
    symptoms: Dict[str, str],
    duration: SymptomDuration,
    analysis_series: List[Dict[str, Any]],
    language: str = "",
) -> str:
    language = language or config.response_language()
    answers = "\n".join(
        f"- {SYMPTOM_QUESTIONS.get(key, key)}: {answer}" for key, answer in symptoms.items()
    )
    policy = "\n".join(f"- {rule}" for rule in ASSESSMENT_POLICY)

    return (
        "Using the pollen counts of the past week and the user's symptom answers, "
        f"briefly assess how likely a pollen allergy is. Answer in {language}.\n\n"
        "[Symptom duration]\n"
        f"The symptoms have lasted {duration.phrase()}.\n\n"
        "[Pollen data]\n"
        "Each line is '<timestamp>: <count>', the count being pollen grains per cm^2.\n"
        f"{_format_series(analysis_series)}\n\n"
        "[Symptom answers]\n"
        f"{answers}\n\n"
        "[Answer format]\n"
        "- Start with: \"Your pollen allergy score is N.\" where N is 0-100; "
        "high when pollen allergy is the cause, low when a cold or sinusitis is.\n"
        "- Then: \"The most likely cause of your symptoms is X.\" where X is one of "
        "pollen allergy, cold, sinusitis.\n"
        "- Then name the allergens likely in season, such as Japanese cedar or cypress.\n\n"
        "[Rules]\n"
        f"{policy}\n"
    )


async def assess(
    symptoms: Dict[str, str],
    duration: SymptomDuration,
    analysis_series: List[Dict[str, Any]],
    generate: Generate,
) -> str:
    user_prompt = build_prompt(symptoms, duration, analysis_series)
    try:
        system_prompt = read_prompt(NARRATIVE_PROMPT)
    except OSError as e:
        raise GenerationError(f"Narrative prompt file not found: {e}") from e

    text = await generate(system_prompt, user_prompt)
    if not text or not text.strip():
        raise GenerationError("Narrative generation returned no text")

    logger.info(f"Narrative generated ({len(text.strip())} chars)")
    return text.strip()
