import asyncio

import httpx
import pytest

from asr_client.cache import JsonFileCache
from asr_client.client import ASRClient
from asr_client.errors import (
    Canceled,
    CommitError,
    FileReadError,
    PartUploadError,
    QueryFailed,
    RemoteTaskFailedError,
    TaskCreationError,
    TaskCreationFailed,
    UploadFailed,
)
from common.schemas import TranscriptSegment

AUDIO = b"0123456789"


@pytest.fixture
def audio_file(tmp_path):
    path = tmp_path / "audio.mp3"
    path.write_bytes(AUDIO)
    return path


def make_client(fake, settings, path, data=AUDIO, **kwargs):
    return ASRClient(str(path), data, settings=settings, http_client=fake.client(), **kwargs)


class TestGetResult:
    @pytest.mark.asyncio
    async def test_full_pipeline(self, fake, settings, audio_file):
        progress = []
        client = make_client(fake, settings, audio_file)

        segments = await client.get_result(callback=lambda p, m: progress.append(p))

        assert segments == [TranscriptSegment(text="hi", start_time=0.105, end_time=0.605)]
        assert progress == [20, 50, 60, 100]
        paths = [r.url.path for r in fake.requests]
        assert paths == [
            "/api/resource/create",
            "/part/0", "/part/1", "/part/2",
            "/api/resource/create/complete",
            "/api/task",
            "/api/task/result",
        ]

    @pytest.mark.asyncio
    async def test_progress_is_monotonic_while_pending(self, fake, settings, audio_file):
        fake.poll_script = [0] * 12 + [4]
        progress = []
        await make_client(fake, settings, audio_file).get_result(callback=lambda p, m: progress.append(p))
        assert progress[0] == 20
        assert progress[-1] == 100
        assert progress == sorted(progress)

    @pytest.mark.asyncio
    async def test_second_call_is_served_from_cache(self, fake, settings, audio_file):
        first = await make_client(fake, settings, audio_file).get_result()
        requests_after_first = len(fake.requests)
        cache_file = JsonFileCache(settings.cache_dir).path_for(
            make_client(fake, settings, audio_file).cache_key()
        )
        content = cache_file.read_bytes()

        progress = []
        second = await make_client(fake, settings, audio_file).get_result(
            callback=lambda p, m: progress.append(p)
        )

        assert second == first
        assert len(fake.requests) == requests_after_first
        assert progress == [100]
        assert cache_file.read_bytes() == content
        assert cache_file.name.startswith("BcutASR_")

    @pytest.mark.asyncio
    async def test_changed_byte_bypasses_cache(self, fake, settings, audio_file):
        await make_client(fake, settings, audio_file).get_result()
        before = len(fake.requests)

        await make_client(fake, settings, audio_file, data=b"0123456780").get_result()

        assert len(fake.requests) > before
        assert len(list((audio_file.parent / "cache").glob("*.json"))) == 2

    @pytest.mark.asyncio
    async def test_cache_disabled_always_recognizes(self, fake, settings, audio_file):
        await make_client(fake, settings, audio_file, use_cache=False).get_result()
        await make_client(fake, settings, audio_file, use_cache=False).get_result()
        assert len(fake.calls("POST", "/task")) == 2
        assert not (audio_file.parent / "cache").exists()

    @pytest.mark.asyncio
    async def test_empty_result_is_not_cached(self, fake, settings, audio_file):
        fake.result = '{"utterances": []}'
        segments = await make_client(fake, settings, audio_file).get_result()
        assert segments == []
        assert not (audio_file.parent / "cache").exists()

    @pytest.mark.asyncio
    async def test_cache_write_failure_keeps_result(self, fake, settings, audio_file, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")
        client = make_client(fake, settings, audio_file, cache=JsonFileCache(blocker))

        segments = await client.get_result()

        assert [s.text for s in segments] == ["hi"]

    @pytest.mark.asyncio
    async def test_concurrent_calls_on_same_content_recognize_once(self, fake, settings, audio_file):
        fake.poll_script = [0, 0, 4]
        cache = JsonFileCache(settings.cache_dir)
        first = make_client(fake, settings, audio_file, cache=cache)
        second = make_client(fake, settings, audio_file, cache=cache)

        results = await asyncio.gather(first.get_result(), second.get_result())

        assert results[0] == results[1] == [TranscriptSegment(text="hi", start_time=0.105, end_time=0.605)]
        assert len(fake.calls("POST", "/task")) == 1
        assert len(fake.calls("POST", "/resource/create")) == 1
        assert cache._locks == {}


class TestPhaseErrors:
    @pytest.mark.asyncio
    async def test_part_failure_is_upload_failed(self, fake, settings, audio_file):
        fake.overrides["/part/2"] = httpx.Response(500)
        with pytest.raises(UploadFailed) as info:
            await make_client(fake, settings, audio_file).get_result()
        assert isinstance(info.value.__cause__, PartUploadError)
        assert info.value.__cause__.index == 2
        assert fake.calls("POST", "/task") == []

    @pytest.mark.asyncio
    async def test_commit_failure_is_upload_failed(self, fake, settings, audio_file):
        fake.overrides["/api/resource/create/complete"] = httpx.Response(200, json={"data": {}})
        with pytest.raises(UploadFailed) as info:
            await make_client(fake, settings, audio_file).get_result()
        assert isinstance(info.value.cause, CommitError)

    @pytest.mark.asyncio
    async def test_task_failure_is_task_creation_failed(self, fake, settings, audio_file):
        fake.overrides["/api/task"] = httpx.Response(200, json={"data": {}})
        with pytest.raises(TaskCreationFailed) as info:
            await make_client(fake, settings, audio_file).get_result()
        assert isinstance(info.value.cause, TaskCreationError)
        assert fake.polls == []

    @pytest.mark.asyncio
    async def test_remote_failure_is_query_failed(self, fake, settings, audio_file):
        fake.poll_script = [0, 3]
        with pytest.raises(QueryFailed) as info:
            await make_client(fake, settings, audio_file).get_result()
        assert isinstance(info.value.cause, RemoteTaskFailedError)
        assert not (audio_file.parent / "cache").exists()

    @pytest.mark.asyncio
    async def test_cancel_is_not_wrapped(self, fake, settings, audio_file):
        fake.poll_script = [0]
        cancel = asyncio.Event()
        fake.on_poll = lambda count: cancel.set()
        with pytest.raises(Canceled):
            await make_client(fake, settings, audio_file).get_result(cancel=cancel)
        assert len(fake.polls) == 1


class TestFromFile:
    def test_reads_bytes(self, audio_file, settings):
        client = ASRClient.from_file(str(audio_file), settings=settings)
        assert client.file_binary == AUDIO
        assert client.audio_path == str(audio_file)

    def test_missing_file(self, tmp_path, settings):
        with pytest.raises(FileReadError):
            ASRClient.from_file(str(tmp_path / "missing.mp3"), settings=settings)
