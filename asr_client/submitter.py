from __future__ import annotations

import logging
from dataclasses import dataclass, field

import httpx

from asr_client.errors import CommitError, ResponseFormatError, TaskCreationError
from asr_client.provider import ProviderBinding
from asr_client.uploader import BinaryUploader
from asr_client.wire import decode, post_json
from common.schemas import CommitResponse, RecognitionJob, TaskResponse, UploadSlotsResponse

logger = logging.getLogger(__name__)


@dataclass
class UploadSession:
    """State of one file's upload; discarded once the task is submitted."""

    boss_key: str
    resource_id: str
    upload_id: str
    part_size_bytes: int
    part_urls: list[str]
    part_etags: list[str] = field(default_factory=list)
    download_url: str = ""

    def etags_header(self) -> str:
        return ",".join(self.part_etags)


class RemoteJobSubmitter:
    """Upload negotiation (request slots, PUT parts, commit) and task creation.

    Each step is a single round trip and fails fast; the remote API is
    stateful so the steps run strictly in order.
    """

    def __init__(self, client: httpx.AsyncClient, provider: ProviderBinding, upload_concurrency: int = 1):
        self.client = client
        self.provider = provider
        self.uploader = BinaryUploader(client, provider, concurrency=upload_concurrency)

    async def request_upload(self, file_size: int, file_name: str | None = None) -> UploadSession:
        payload = {
            "type": 2,
            "name": file_name or self.provider.upload_name,
            "size": file_size,
            "ResourceFileType": self.provider.file_type,
            "model_id": self.provider.upload_model_id,
        }
        raw = await post_json(
            self.client, self.provider.request_upload_url, payload,
            self.provider.json_headers(), "request upload",
        )
        data = decode(UploadSlotsResponse, raw).data
        if len(data.upload_urls) * data.per_size < file_size:
            raise ResponseFormatError(
                f"{len(data.upload_urls)} parts of {data.per_size} bytes cannot hold {file_size} bytes",
                field="data.upload_urls",
            )
        session = UploadSession(
            boss_key=data.in_boss_key,
            resource_id=data.resource_id,
            upload_id=data.upload_id,
            part_size_bytes=data.per_size,
            part_urls=list(data.upload_urls),
        )
        logger.info(
            "Upload slots granted: %dKB total, %d parts of %dKB (%s)",
            file_size // 1024, len(session.part_urls), session.part_size_bytes // 1024, session.boss_key,
        )
        return session

    async def commit_upload(self, session: UploadSession) -> str:
        payload = {
            "InBossKey": session.boss_key,
            "ResourceId": session.resource_id,
            "Etags": session.etags_header(),
            "UploadId": session.upload_id,
            "model_id": self.provider.upload_model_id,
        }
        raw = await post_json(
            self.client, self.provider.commit_upload_url, payload,
            self.provider.json_headers(), "commit upload",
        )
        session.download_url = decode(CommitResponse, raw, CommitError).data.download_url
        logger.info("Upload committed, download url: %s", session.download_url)
        return session.download_url

    async def upload(self, data: bytes, file_name: str | None = None) -> UploadSession:
        session = await self.request_upload(len(data), file_name)
        session.part_etags = await self.uploader.upload(data, session.part_size_bytes, session.part_urls)
        await self.commit_upload(session)
        return session

    async def create_task(self, download_url: str) -> RecognitionJob:
        payload = {"resource": download_url, "model_id": self.provider.upload_model_id}
        raw = await post_json(
            self.client, self.provider.create_task_url, payload,
            self.provider.json_headers(), "create task",
        )
        job = RecognitionJob(task_id=decode(TaskResponse, raw, TaskCreationError).data.task_id)
        logger.info("Task created: %s", job.task_id)
        return job
