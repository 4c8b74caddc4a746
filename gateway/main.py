from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException
from fastapi.concurrency import run_in_threadpool

from asr_client.cache import JsonFileCache
from asr_client.client import ASRClient
from asr_client.errors import ASRError, FileReadError
from common.config import ASRSettings, GatewaySettings, SummarizerSettings
from common.schemas import (
    AIConfig,
    ChatRequest,
    ChatResponse,
    SummarizeRequest,
    SummaryResult,
    TranscribeRequest,
    TranscribeResponse,
)
from summarizer.chat_client import SummarizerError
from summarizer.service import ConfigStore, chat, summarize

logger = logging.getLogger(__name__)

settings = GatewaySettings()
asr_settings = ASRSettings()
ai_settings = SummarizerSettings()

app = FastAPI(title="Transcript Gateway")
cache = JsonFileCache(asr_settings.cache_dir)
config_store = ConfigStore(
    AIConfig(
        api_key=ai_settings.api_key,
        api_url=ai_settings.api_url,
        model=ai_settings.model,
        custom_prompt=ai_settings.custom_prompt,
    )
)


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/transcribe", response_model=TranscribeResponse)
async def transcribe(req: TranscribeRequest):
    try:
        client = await run_in_threadpool(
            ASRClient.from_file, req.audio_path, settings=asr_settings, cache=cache, use_cache=req.use_cache
        )
        segments = await client.get_result(
            callback=lambda percent, message: logger.info("ASR progress %d%%: %s", percent, message)
        )
    except FileReadError as exc:
        raise HTTPException(status_code=400, detail=exc.message)
    except ASRError as exc:
        logger.exception("Transcription failed for %s", req.audio_path)
        raise HTTPException(status_code=502, detail=exc.message)

    return TranscribeResponse(audio_path=req.audio_path, segments=segments, segment_count=len(segments))


@app.post("/summarize", response_model=SummaryResult)
async def summarize_transcript(req: SummarizeRequest):
    try:
        return await summarize(req, config_store.get(), ai_settings)
    except SummarizerError as exc:
        logger.exception("Summary failed")
        raise HTTPException(status_code=502, detail=str(exc))


@app.post("/chat", response_model=ChatResponse)
async def chat_about_transcript(req: ChatRequest):
    try:
        reply = await chat(req, config_store.get(), ai_settings)
    except SummarizerError as exc:
        logger.exception("Chat failed")
        raise HTTPException(status_code=502, detail=str(exc))
    return ChatResponse(reply=reply)


@app.get("/config", response_model=AIConfig)
async def get_config():
    return config_store.get()


@app.post("/config", response_model=AIConfig)
async def update_config(config: AIConfig):
    return config_store.replace(config)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
