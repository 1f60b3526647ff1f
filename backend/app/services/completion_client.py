"""Chat-completion calls to the planning model (OpenAI-compatible endpoint)."""
from __future__ import annotations

import logging

import openai

from app.core.config import settings
from app.core.errors import CompletionError, ProviderConfigurationError
from app.observability.tracing import trace

logger = logging.getLogger(__name__)


def _build_client() -> openai.AsyncOpenAI:
    if not settings.mistral_api_key:
        raise ProviderConfigurationError("MISTRAL_API_KEY is not configured")
    return openai.AsyncOpenAI(
        api_key=settings.mistral_api_key,
        base_url=settings.completion_base_url,
        timeout=settings.completion_timeout_seconds,
        max_retries=0,
    )


async def request_completion(prompt: str) -> str:
    """Send ``prompt`` as a single user message and return the raw completion text."""
    client = _build_client()
    metadata = {"model": settings.completion_model, "prompt_length": len(prompt)}
    with trace("completion.request", metadata=metadata):
        try:
            completion = await client.chat.completions.create(
                model=settings.completion_model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=settings.completion_max_tokens,
                temperature=settings.completion_temperature,
            )
        except openai.APIError as exc:
            raise CompletionError(f"Completion API error: {exc}") from exc
        finally:
            await client.close()

    if not completion.choices or completion.choices[0].message is None:
        raise CompletionError("Invalid response from completion model")

    content = completion.choices[0].message.content
    if not content:
        raise CompletionError("Completion model returned an empty message")

    logger.debug("Completion received (%d chars, finish_reason=%s)", len(content), completion.choices[0].finish_reason)
    return content
