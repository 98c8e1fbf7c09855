"""
Pageblitz - LLM Client.

Instructor on top of the async OpenAI client, so every copy-generation call
returns a validated pydantic model. Used by onboarding.generation only.
"""

import logging
import time
from typing import TypeVar

import instructor
from openai import AsyncOpenAI
from pydantic import BaseModel

from pageblitz.config import settings
from pageblitz.llm.prompt_logger import log_prompt

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_client: instructor.AsyncInstructor | None = None


def is_configured() -> bool:
    return bool(settings.openai_api_key)


def get_client() -> instructor.AsyncInstructor:
    """Shared Instructor client (created on first use)."""
    global _client

    if _client is None:
        if not is_configured():
            raise RuntimeError("OPENAI_API_KEY is not set")
        _client = instructor.from_openai(
            AsyncOpenAI(api_key=settings.openai_api_key, timeout=settings.openai_timeout)
        )

    return _client


async def call_llm(
    *,
    response_model: type[T],
    system_prompt: str,
    user_prompt: str,
    purpose: str = "generate",
    temperature: float | None = None,
    max_retries: int = 2,
) -> T:
    """
    Structured completion.

    Instructor re-asks up to `max_retries` times when the answer does not
    validate against `response_model`. Every call, failed or not, is handed
    to the prompt logger under `purpose`.

    Example:
        result = await call_llm(
            response_model=GeneratedText,
            system_prompt="Du schreibst Website-Texte...",
            user_prompt="Slogan für Dachdeckerei Müller",
            purpose="tagline",
        )
    """
    model = settings.openai_model
    record = {
        "purpose": purpose,
        "model": model,
        "system_prompt": system_prompt,
        "user_prompt": user_prompt,
        "response_model": response_model.__name__,
    }
    started = time.monotonic()

    try:
        response = await get_client().chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            response_model=response_model,
            max_retries=max_retries,
            temperature=temperature if temperature is not None else settings.openai_temperature,
        )
    except Exception as e:
        log_prompt(**record, error=str(e), duration_ms=int((time.monotonic() - started) * 1000))
        raise

    duration_ms = int((time.monotonic() - started) * 1000)
    logger.debug(f"LLM {purpose} ({model}) took {duration_ms} ms")
    log_prompt(**record, response=response, duration_ms=duration_ms)
    return response
