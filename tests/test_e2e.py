"""End-to-end tests against the live Bcut service — skipped unless enabled."""

import os

import pytest

E2E = os.environ.get("RUN_E2E", "").lower() in ("1", "true", "yes")
pytestmark = pytest.mark.skipif(not E2E, reason="E2E tests disabled (set RUN_E2E=1)")


@pytest.mark.asyncio
async def test_live_recognition(tmp_path):
    from asr_client.client import ASRClient
    from common.config import ASRSettings

    audio_path = os.environ.get("E2E_AUDIO_PATH")
    if not audio_path:
        pytest.skip("set E2E_AUDIO_PATH to an mp3 file")

    settings = ASRSettings(cache_dir=str(tmp_path))
    progress = []
    client = ASRClient.from_file(audio_path, settings=settings)
    segments = await client.get_result(callback=lambda p, m: progress.append(p))

    assert segments
    assert progress[-1] == 100
    assert all(s.end_time >= s.start_time for s in segments)
