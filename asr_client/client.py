from __future__ import annotations

import asyncio
import logging
import secrets
from pathlib import Path

import httpx

from asr_client.cache import JsonFileCache, cache_key
from asr_client.errors import (
    ASRError,
    Canceled,
    FileReadError,
    QueryFailed,
    TaskCreationFailed,
    UploadFailed,
)
from asr_client.mapper import make_segments
from asr_client.poller import ProgressCallback, ResultPoller
from asr_client.provider import ProviderBinding, bcut_binding
from asr_client.submitter import RemoteJobSubmitter
from common.config import ASRSettings
from common.schemas import TranscriptSegment

logger = logging.getLogger(__name__)


def _notify(callback: ProgressCallback | None, percent: int, message: str) -> None:
    if callback is not None:
        callback(percent, message)


class ASRClient:
    """Runs one audio file through upload, task submission, polling and mapping.

    Results are cached by content hash, so a second run on the same path and
    bytes makes no network calls.
    """

    def __init__(
        self,
        audio_path: str,
        file_binary: bytes,
        *,
        settings: ASRSettings | None = None,
        provider: ProviderBinding | None = None,
        cache: JsonFileCache | None = None,
        use_cache: bool | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings or ASRSettings()
        self.audio_path = audio_path
        self.file_binary = file_binary
        self.provider = provider or bcut_binding(self.settings.base_url)
        self.cache = cache or JsonFileCache(self.settings.cache_dir)
        self.use_cache = self.settings.use_cache if use_cache is None else use_cache
        self.http_client = http_client

    @classmethod
    def from_file(cls, audio_path: str, **kwargs) -> "ASRClient":
        try:
            data = Path(audio_path).read_bytes()
        except OSError as exc:
            raise FileReadError(f"failed to read audio file {audio_path}: {exc}") from exc
        return cls(audio_path, data, **kwargs)

    def cache_key(self) -> str:
        return cache_key(self.provider.name, self.audio_path, self.file_binary)

    async def get_result(
        self,
        cancel: asyncio.Event | None = None,
        callback: ProgressCallback | None = None,
    ) -> list[TranscriptSegment]:
        tag = f"{self.provider.name}-{secrets.token_hex(4)}"
        logger.info("[%s] Processing audio: %s", tag, self.audio_path)

        if not self.use_cache:
            return await self._recognize(tag, cancel, callback)

        key = self.cache_key()
        async with self.cache.locked(key):
            cached = await asyncio.to_thread(self.cache.load, key)
            if cached is not None:
                logger.info("[%s] Loaded %d segments from cache", tag, len(cached))
                _notify(callback, 100, "Recognition complete (cached)")
                return cached
            logger.info("[%s] Cache miss", tag)

            segments = await self._recognize(tag, cancel, callback)

            if segments:
                try:
                    path = await asyncio.to_thread(self.cache.save, key, segments)
                    logger.info("[%s] Cached result at %s", tag, path)
                except OSError as exc:
                    logger.warning("[%s] Failed to cache result: %s", tag, exc)
            return segments

    async def _recognize(
        self,
        tag: str,
        cancel: asyncio.Event | None,
        callback: ProgressCallback | None,
    ) -> list[TranscriptSegment]:
        if self.http_client is not None:
            return await self._pipeline(self.http_client, tag, cancel, callback)
        async with httpx.AsyncClient(timeout=self.settings.request_timeout_s) as client:
            return await self._pipeline(client, tag, cancel, callback)

    async def _pipeline(
        self,
        client: httpx.AsyncClient,
        tag: str,
        cancel: asyncio.Event | None,
        callback: ProgressCallback | None,
    ) -> list[TranscriptSegment]:
        submitter = RemoteJobSubmitter(client, self.provider, self.settings.upload_concurrency)

        _notify(callback, 20, "Uploading...")
        try:
            session = await submitter.upload(self.file_binary)
        except ASRError as exc:
            logger.error("[%s] Upload failed: %s", tag, exc)
            raise UploadFailed(exc) from exc

        _notify(callback, 50, "Submitting task...")
        try:
            job = await submitter.create_task(session.download_url)
        except ASRError as exc:
            logger.error("[%s] Task creation failed: %s", tag, exc)
            raise TaskCreationFailed(exc) from exc

        _notify(callback, 60, "Waiting for result...")
        poller = ResultPoller(
            client,
            self.provider,
            max_retries=self.settings.max_retries,
            base_delay=self.settings.retry_base_delay_s,
            long_delay=self.settings.retry_long_delay_s,
            tag=tag,
        )
        try:
            result = await poller.poll(job, cancel, callback)
        except Canceled:
            raise
        except ASRError as exc:
            logger.error("[%s] Query failed: %s", tag, exc)
            raise QueryFailed(exc) from exc

        segments = make_segments(result)
        logger.info("[%s] Recognition finished, %d segments", tag, len(segments))
        _notify(callback, 100, "Recognition complete")
        return segments
