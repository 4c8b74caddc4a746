from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from common.schemas import AIConfig, ChatCompletionResponse

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 120.0


class SummarizerError(RuntimeError):
    pass


async def chat_completion(
    messages: list[dict[str, str]],
    config: AIConfig,
    timeout: float = DEFAULT_TIMEOUT_S,
) -> str:
    """Call an OpenAI-compatible chat endpoint and return the assistant content."""
    payload = {
        "model": config.model,
        "messages": messages,
        "stream": False,
    }
    headers = {"Authorization": f"Bearer {config.api_key}"}

    async with httpx.AsyncClient(timeout=timeout) as client:
        try:
            resp = await client.post(config.api_url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise SummarizerError(f"AI request failed: {exc}") from exc

    if resp.status_code >= 400:
        raise SummarizerError(f"AI API error (status {resp.status_code}): {resp.text[:300]}")
    try:
        data = ChatCompletionResponse.model_validate_json(resp.content)
    except ValidationError as exc:
        logger.warning("Unexpected AI response: %s", resp.text[:300])
        raise SummarizerError(f"AI API returned an unexpected body: {exc.errors()[0]['msg']}") from exc

    if not data.choices:
        if data.error is not None and data.error.message:
            raise SummarizerError(f"AI API returned an error: {data.error.message}")
        raise SummarizerError("AI API returned no choices")
    return data.choices[0].message.content
