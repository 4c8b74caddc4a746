from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable

import httpx

from asr_client.errors import (
    ASRError,
    Canceled,
    EmptyResultError,
    PollTimeoutError,
    RemoteTaskFailedError,
    ResultParseError,
)
from asr_client.provider import ProviderBinding
from asr_client.wire import decode, read_json
from common.schemas import RecognitionJob, TaskResultData, TaskResultResponse

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str], None]

STATE_FAILED = 3
STATE_DONE = 4

PROGRESS_EVERY = 5


def backoff_delay(iteration: int, base_delay: float = 1.0, long_delay: float = 3.0) -> float:
    """Step schedule: base up to 20, twice base up to 50, then the long delay."""
    if iteration > 50:
        return long_delay
    if iteration > 20:
        return base_delay * 2
    return base_delay


def poll_progress(iteration: int, max_retries: int) -> int:
    return min(60 + int(iteration / max_retries * 39), 99)


def parse_result(raw: Any) -> dict[str, Any]:
    """Decode the JSON document embedded as a string in a finished task."""
    if raw is None or raw == "":
        raise EmptyResultError("task finished but result is empty")
    if not isinstance(raw, str):
        raise ResultParseError(f"task result is a {type(raw).__name__}, expected a JSON string")
    try:
        result = json.loads(raw)
    except ValueError as exc:
        raise ResultParseError(f"failed to parse task result: {exc}") from exc
    if not isinstance(result, dict):
        raise ResultParseError(f"task result is a {type(result).__name__}, expected an object")
    return result


class ResultPoller:
    def __init__(
        self,
        client: httpx.AsyncClient,
        provider: ProviderBinding,
        *,
        max_retries: int = 500,
        base_delay: float = 1.0,
        long_delay: float = 3.0,
        tag: str = "BcutASR",
    ):
        self.client = client
        self.provider = provider
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.long_delay = long_delay
        self.tag = tag

    async def poll(
        self,
        job: RecognitionJob,
        cancel: asyncio.Event | None = None,
        callback: ProgressCallback | None = None,
    ) -> dict[str, Any]:
        logger.info("[%s] Polling task %s", self.tag, job.task_id)

        for i in range(self.max_retries):
            if cancel is not None and cancel.is_set():
                logger.info("[%s] Cancelled, polling stopped", self.tag)
                raise Canceled("polling cancelled")

            data = await self._fetch(job, i)
            if data is None:
                await self._sleep(self.base_delay, cancel)
                continue

            logger.debug("[%s] Poll %d: state=%d", self.tag, i, data.state)

            if data.state == STATE_DONE:
                result = parse_result(data.result)
                logger.info("[%s] Task result received after %d polls", self.tag, i + 1)
                return result
            if data.state == STATE_FAILED:
                logger.error("[%s] Task failed, state=%d", self.tag, data.state)
                raise RemoteTaskFailedError(data.state)

            if callback is not None and i % PROGRESS_EVERY == 0:
                progress = poll_progress(i, self.max_retries)
                callback(progress, f"Processing {progress}%...")

            await self._sleep(backoff_delay(i, self.base_delay, self.long_delay), cancel)

        logger.error("[%s] Task not finished after %d polls", self.tag, self.max_retries)
        raise PollTimeoutError(f"task {job.task_id} not finished after {self.max_retries} polls")

    async def _fetch(self, job: RecognitionJob, iteration: int) -> TaskResultData | None:
        """One status request; transient failures are logged and yield None."""
        params = {"model_id": self.provider.query_model_id, "task_id": job.task_id}
        try:
            resp = await self.client.get(
                self.provider.query_result_url, params=params, headers=self.provider.json_headers()
            )
        except httpx.HTTPError as exc:
            logger.warning("[%s] Poll %d request failed: %s, retrying", self.tag, iteration, exc)
            return None

        try:
            return decode(TaskResultResponse, read_json(resp, "query result")).data
        except ASRError as exc:
            logger.warning("[%s] Poll %d bad response: %s, retrying", self.tag, iteration, exc)
            return None

    async def _sleep(self, delay: float, cancel: asyncio.Event | None) -> None:
        if cancel is None:
            await asyncio.sleep(delay)
            return
        try:
            await asyncio.wait_for(cancel.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass
