"""
Minimal LLM client wrapper using Google Gemini.

Rationale:
- Use google-generativeai SDK for Gemini access.
- Keep interface tiny: call(system_prompt, user_prompt) -> str.
- No retries / no fallback here; stages decide what a failure means.
- Every call is bounded by LLM_TIMEOUT_SECONDS and a timeout is reported like any
  other provider error.
"""

import asyncio
import logging
from typing import Awaitable, Callable, NamedTuple, Optional

import google.generativeai as genai

from . import config
from .errors import GenerationError

logger = logging.getLogger(__name__)

# (system_prompt, user_prompt) -> generated text
Generate = Callable[[str, str], Awaitable[str]]

# Gemini FinishReason.MAX_TOKENS
_FINISH_MAX_TOKENS = 2


def _response_text(response) -> str:
    try:
        return response.text
    except ValueError:
        # response.text is unavailable on safety blocks and other finish reasons
        if not response.candidates:
            raise GenerationError("Gemini returned no candidates.")
        candidate = response.candidates[0]
        if candidate.finish_reason == _FINISH_MAX_TOKENS:
            if candidate.content and candidate.content.parts:
                return candidate.content.parts[0].text
            raise GenerationError("Gemini response truncated with no content.")
        raise GenerationError(f"Gemini blocked response. Finish reason: {candidate.finish_reason}")


async def call_llm(
    system_prompt: str,
    user_prompt: str,
    max_tokens: int = 2048,
    temperature: Optional[float] = None,
) -> str:
    """
    Call Gemini with a system instruction and user prompt.
    """
    # Load API key lazily (after main.py sets env vars)
    api_key = config.gemini_api_key()
    if not api_key:
        raise GenerationError("GEMINI_API_KEY or LLM_API_KEY must be set in environment")

    model_name = config.gemini_model()
    if temperature is None:
        temperature = config.llm_temperature()

    try:
        genai.configure(api_key=api_key)

        model = genai.GenerativeModel(
            model_name=model_name,
            system_instruction=system_prompt
        )
        generation_config = genai.GenerationConfig(
            max_output_tokens=max_tokens,
            temperature=temperature
        )

        response = await asyncio.wait_for(
            model.generate_content_async(user_prompt, generation_config=generation_config),
            timeout=config.llm_timeout(),
        )
        result = _response_text(response)
    except GenerationError:
        raise
    except asyncio.TimeoutError as e:
        raise GenerationError(f"Gemini call timed out after {config.llm_timeout()}s") from e
    except Exception as e:
        raise GenerationError(f"Gemini API error: {str(e)}") from e

    if not result or not result.strip():
        raise GenerationError("Gemini returned empty response")

    logger.debug(f"Gemini ({model_name}) returned {len(result)} chars")
    return result


async def call_structured_llm(system_prompt: str, user_prompt: str) -> str:
    """Low temperature and a larger budget for JSON-only answers."""
    return await call_llm(system_prompt, user_prompt, max_tokens=8192, temperature=0.1)


class LLMBackend(NamedTuple):
    narrative: Generate
    structured: Generate


def default_backend() -> LLMBackend:
    return LLMBackend(narrative=call_llm, structured=call_structured_llm)
