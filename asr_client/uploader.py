from __future__ import annotations

import asyncio
import logging

import httpx

from asr_client.errors import PartUploadError
from asr_client.provider import ProviderBinding

logger = logging.getLogger(__name__)


def split_parts(data: bytes, part_size: int, count: int) -> list[bytes]:
    """Part i covers bytes [i*part_size, min((i+1)*part_size, len(data)))."""
    return [data[i * part_size : min((i + 1) * part_size, len(data))] for i in range(count)]


def extract_etag(resp: httpx.Response) -> str:
    etag = resp.headers.get("Etag", "")
    if etag:
        return etag
    try:
        body = resp.json()
    except ValueError:
        return ""
    if isinstance(body, dict) and isinstance(body.get("etag"), str):
        return body["etag"]
    return ""


class BinaryUploader:
    """PUTs file parts to pre-signed URLs and collects one etag per part."""

    def __init__(self, client: httpx.AsyncClient, provider: ProviderBinding, concurrency: int = 1):
        self.client = client
        self.provider = provider
        self.concurrency = max(1, concurrency)

    async def upload(self, data: bytes, part_size: int, urls: list[str]) -> list[str]:
        parts = split_parts(data, part_size, len(urls))
        etags: list[str] = [""] * len(parts)

        if self.concurrency == 1:
            for index, (url, chunk) in enumerate(zip(urls, parts)):
                etags[index] = await self._put_part(index, url, chunk)
            return etags

        sem = asyncio.Semaphore(self.concurrency)

        async def _bounded(index: int, url: str, chunk: bytes) -> None:
            async with sem:
                etags[index] = await self._put_part(index, url, chunk)

        await asyncio.gather(*(_bounded(i, u, c) for i, (u, c) in enumerate(zip(urls, parts))))
        return etags

    async def _put_part(self, index: int, url: str, chunk: bytes) -> str:
        logger.info("Uploading part %d (%d bytes)", index, len(chunk))
        try:
            resp = await self.client.put(url, content=chunk, headers=self.provider.binary_headers())
        except httpx.HTTPError as exc:
            raise PartUploadError(index, f"request failed: {exc}") from exc

        etag = extract_etag(resp)
        if not etag:
            raise PartUploadError(index, f"no etag in response (status {resp.status_code})")
        logger.info("Part %d uploaded: %s", index, etag)
        return etag
