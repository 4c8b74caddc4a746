from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_BASE_URL = "https://member.bilibili.com/x/bcut/rubick-interface"
USER_AGENT = "Bilibili/1.0.0 (https://www.bilibili.com)"


@dataclass(frozen=True)
class ProviderBinding:
    """Endpoints, model ids and headers of one ASR deployment."""

    name: str
    request_upload_url: str
    commit_upload_url: str
    create_task_url: str
    query_result_url: str
    upload_model_id: str = "8"
    query_model_id: str = "7"
    file_type: str = "mp3"
    upload_name: str = "audio.mp3"
    headers: dict[str, str] = field(default_factory=lambda: {"User-Agent": USER_AGENT})

    def json_headers(self) -> dict[str, str]:
        return {**self.headers, "Content-Type": "application/json"}

    def binary_headers(self) -> dict[str, str]:
        return {**self.headers, "Content-Type": "application/octet-stream"}


def bcut_binding(base_url: str = DEFAULT_BASE_URL) -> ProviderBinding:
    base = base_url.rstrip("/")
    return ProviderBinding(
        name="BcutASR",
        request_upload_url=f"{base}/resource/create",
        commit_upload_url=f"{base}/resource/create/complete",
        create_task_url=f"{base}/task",
        query_result_url=f"{base}/task/result",
    )
