from __future__ import annotations

import asyncio
import hashlib
import json
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from pydantic import TypeAdapter, ValidationError

from common.schemas import TranscriptSegment

logger = logging.getLogger(__name__)

_segments_adapter = TypeAdapter(list[TranscriptSegment])


def cache_key(service_name: str, audio_path: str, data: bytes) -> str:
    """``<service>_<md5(path ++ bytes)>``; any byte change moves the key."""
    digest = hashlib.md5()
    digest.update(audio_path.encode("utf-8"))
    digest.update(data)
    return f"{service_name}_{digest.hexdigest()}"


class JsonFileCache:
    """Transcript segments stored as ``<cache_dir>/<key>.json``."""

    def __init__(self, cache_dir: str | Path):
        self.cache_dir = Path(cache_dir)
        # key -> (lock, callers holding or waiting on it)
        self._locks: dict[str, tuple[asyncio.Lock, int]] = {}

    def path_for(self, key: str) -> Path:
        return self.cache_dir / f"{key}.json"

    @asynccontextmanager
    async def locked(self, key: str) -> AsyncIterator[None]:
        """Serialize callers on one key; the lock is forgotten when the last one leaves."""
        lock, users = self._locks.get(key, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._locks[key] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[key]
            if users == 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, users - 1)

    def load(self, key: str) -> list[TranscriptSegment] | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            return _segments_adapter.validate_json(path.read_bytes())
        except (OSError, ValidationError) as exc:
            logger.warning("Ignoring unreadable cache entry %s: %s", path, exc)
            return None

    def save(self, key: str, segments: list[TranscriptSegment]) -> Path:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(key)
        payload = [s.model_dump() for s in segments]
        path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        return path
