import json
import math

import httpx
import pytest

from asr_client.provider import bcut_binding
from common.config import ASRSettings

BASE_URL = "https://bcut.test/api"
UPLOAD_HOST = "upload.test"
DONE_RESULT = json.dumps({"utterances": [{"transcript": "hi", "start_time": 0, "end_time": 500}]})


class FakeBcut:
    """In-memory stand-in for the Bcut service, served through httpx.MockTransport.

    ``poll_script`` items are consumed one per status request (the last one
    repeats): an int is a task state, a dict is a raw JSON body, a str is a
    raw non-JSON body, an exception is raised as a transport failure.
    """

    def __init__(self, part_size=4, poll_script=None, result=DONE_RESULT, etag_in_body=False):
        self.part_size = part_size
        self.poll_script = list(poll_script or [4])
        self.result = result
        self.etag_in_body = etag_in_body
        self.requests: list[httpx.Request] = []
        self.overrides: dict[str, httpx.Response] = {}
        self.on_poll = None

    # --- helpers ---

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def calls(self, method: str, path_suffix: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path.endswith(path_suffix)]

    @property
    def polls(self) -> list[httpx.Request]:
        return self.calls("GET", "/task/result")

    def body(self, request: httpx.Request) -> dict:
        return json.loads(request.content)

    # --- transport ---

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path in self.overrides:
            return self.overrides[path]

        if request.url.host == UPLOAD_HOST:
            index = int(path.rsplit("/", 1)[1])
            if self.etag_in_body:
                return httpx.Response(200, json={"etag": f"etag-{index}"})
            return httpx.Response(200, headers={"Etag": f"etag-{index}"})

        if path.endswith("/resource/create"):
            size = self.body(request)["size"]
            clips = max(1, math.ceil(size / self.part_size))
            return httpx.Response(200, json={"data": {
                "in_boss_key": "boss-1",
                "resource_id": "res-1",
                "upload_id": "up-1",
                "per_size": self.part_size,
                "upload_urls": [f"https://{UPLOAD_HOST}/part/{i}" for i in range(clips)],
            }})
        if path.endswith("/resource/create/complete"):
            return httpx.Response(200, json={"data": {"download_url": "https://download.test/audio"}})
        if path.endswith("/task"):
            return httpx.Response(200, json={"data": {"task_id": "task-1"}})
        if path.endswith("/task/result"):
            return self._poll_response()
        return httpx.Response(404)

    def _poll_response(self) -> httpx.Response:
        step = self.poll_script.pop(0) if len(self.poll_script) > 1 else self.poll_script[0]
        if self.on_poll is not None:
            self.on_poll(len(self.polls))
        if isinstance(step, Exception):
            raise step
        if isinstance(step, str):
            return httpx.Response(200, text=step)
        if isinstance(step, dict):
            return httpx.Response(200, json=step)
        data = {"state": step}
        if step == 4:
            data["result"] = self.result
        return httpx.Response(200, json={"data": data})


@pytest.fixture
def fake():
    return FakeBcut()


@pytest.fixture
def provider():
    return bcut_binding(BASE_URL)


@pytest.fixture
def settings(tmp_path):
    return ASRSettings(
        base_url=BASE_URL,
        retry_base_delay_s=0,
        retry_long_delay_s=0,
        cache_dir=str(tmp_path / "cache"),
    )
