"""AI summary and chat over the transcript.

Every call receives an immutable :class:`AIConfig` snapshot. Updates go
through :class:`ConfigStore`, which swaps the whole snapshot, so a request
never sees a half-applied configuration.
"""

from __future__ import annotations

import logging
import re
import threading

from common.config import SummarizerSettings
from common.schemas import AIConfig, ChatRequest, SummarizeRequest, SummaryResult
from summarizer.chat_client import chat_completion
from summarizer.prompts import build_chat_messages, build_summary_prompt, format_transcript

logger = logging.getLogger(__name__)

MAX_POINTS = 5
_SENTENCE_SPLIT = re.compile(r"[。.!?！？]")
_BULLET_PREFIXES = ("- ", "* ", "1. ")


class ConfigStore:
    def __init__(self, initial: AIConfig | None = None):
        self._lock = threading.Lock()
        self._config = initial or AIConfig()

    def get(self) -> AIConfig:
        return self._config

    def replace(self, config: AIConfig) -> AIConfig:
        with self._lock:
            self._config = config
        logger.info("AI config updated: api_url=%s model=%s", config.api_url, config.model)
        return config


def with_defaults(config: AIConfig, settings: SummarizerSettings | None = None) -> AIConfig:
    settings = settings or SummarizerSettings()
    return config.model_copy(
        update={
            "api_key": config.api_key or settings.api_key,
            "api_url": config.api_url or settings.api_url,
            "model": config.model or settings.model,
            "custom_prompt": config.custom_prompt or settings.custom_prompt,
        }
    )


def _sentences(text: str) -> list[str]:
    return [s.strip() for s in _SENTENCE_SPLIT.split(text) if s.strip()]


def extract_points(markdown: str) -> list[str]:
    points = []
    for line in markdown.splitlines():
        line = line.strip()
        if line.startswith(_BULLET_PREFIXES):
            clean = line.lstrip("-*1234567890. ")
            if clean:
                points.append(clean)
    if points:
        return points
    return [s for s in _sentences(markdown) if len(s) > 5][:MAX_POINTS]


def local_summarize(text: str) -> SummaryResult:
    """Extractive fallback used when no API key is configured."""
    points = [s for s in _sentences(text) if len(s) > 10][:MAX_POINTS]
    if not points and text:
        points = [text]

    lines = ["# Video summary", "", "## Key points", ""]
    lines += [f"- **Point {i}**: {p}" for i, p in enumerate(points, 1)]
    lines += ["", "## Full text", "", text]
    return SummaryResult(summary="; ".join(points), markdown="\n".join(lines), points=points, success=True)


async def summarize(
    req: SummarizeRequest,
    config: AIConfig,
    settings: SummarizerSettings | None = None,
) -> SummaryResult:
    settings = settings or SummarizerSettings()
    config = with_defaults(config, settings)
    content = format_transcript(req.segments) if req.segments else req.text

    if not config.api_key:
        logger.warning("No AI API key configured, using local summary")
        return local_summarize(content)

    prompt = build_summary_prompt(content, req.prompt or config.custom_prompt)
    logger.info("Requesting summary from %s (%s)", config.api_url, config.model)
    markdown = await chat_completion(
        [{"role": "user", "content": prompt}], config, timeout=settings.timeout_s
    )
    return SummaryResult(
        summary="AI summary",
        markdown=markdown,
        points=extract_points(markdown),
        success=True,
    )


async def chat(
    req: ChatRequest,
    config: AIConfig,
    settings: SummarizerSettings | None = None,
) -> str:
    settings = settings or SummarizerSettings()
    config = with_defaults(config, settings)
    messages = build_chat_messages(req.message, context=req.context, history=req.history)
    return await chat_completion(messages, config, timeout=settings.timeout_s)
