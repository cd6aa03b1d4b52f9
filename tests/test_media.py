"""Tests for PLAY_AUDIO source downloads."""

import asyncio

import httpx
import pytest

from ring_gateway.services.gateway.exceptions import MediaDownloadError
from ring_gateway.services.gateway.media import AudioDownloader

WAV_BYTES = b"RIFF$\x00\x00\x00WAVEfmt " + b"\x00" * 64


def _downloader(tmp_path, handler):
    return AudioDownloader(tmp_path / "cache", timeout=5.0, transport=httpx.MockTransport(handler))


class TestAudioDownloader:
    @pytest.mark.asyncio
    async def test_fetch_writes_body_to_cache(self, tmp_path):
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            return httpx.Response(200, content=WAV_BYTES)

        downloader = _downloader(tmp_path, handler)
        path = await downloader.fetch("https://media.example.com/prompt.wav")

        assert requested == ["https://media.example.com/prompt.wav"]
        with open(path, "rb") as fh:
            assert fh.read() == WAV_BYTES
        assert path.startswith(str(downloader.cache_dir))
        assert path.endswith(".wav")

    @pytest.mark.asyncio
    async def test_each_fetch_gets_its_own_file(self, tmp_path):
        downloader = _downloader(tmp_path, lambda request: httpx.Response(200, content=WAV_BYTES))

        first = await downloader.fetch("https://media.example.com/a.wav")
        second = await downloader.fetch("https://media.example.com/a.wav")

        assert first != second

    @pytest.mark.asyncio
    async def test_http_error_status(self, tmp_path):
        downloader = _downloader(tmp_path, lambda request: httpx.Response(404))

        with pytest.raises(MediaDownloadError, match="404"):
            await downloader.fetch("https://media.example.com/missing.wav")

        assert list(downloader.cache_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_network_error(self, tmp_path):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        downloader = _downloader(tmp_path, handler)

        with pytest.raises(MediaDownloadError) as exc_info:
            await downloader.fetch("https://media.example.com/prompt.wav")

        assert exc_info.value.url == "https://media.example.com/prompt.wav"
        assert list(downloader.cache_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_empty_body(self, tmp_path):
        downloader = _downloader(tmp_path, lambda request: httpx.Response(200, content=b""))

        with pytest.raises(MediaDownloadError, match="empty response body"):
            await downloader.fetch("https://media.example.com/empty.wav")

        assert list(downloader.cache_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_cancelled_fetch_leaves_no_partial_file(self, tmp_path):
        started = asyncio.Event()

        async def handler(request):
            started.set()
            await asyncio.sleep(5)
            return httpx.Response(200, content=WAV_BYTES)

        downloader = _downloader(tmp_path, handler)
        task = asyncio.create_task(downloader.fetch("https://media.example.com/slow.wav"))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert list(downloader.cache_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_discard_removes_fetched_file(self, tmp_path):
        downloader = _downloader(tmp_path, lambda request: httpx.Response(200, content=WAV_BYTES))
        path = await downloader.fetch("https://media.example.com/prompt.wav")

        downloader.discard(path)
        downloader.discard(path)

        assert list(downloader.cache_dir.iterdir()) == []

    def test_discard_ignores_files_outside_cache(self, tmp_path):
        downloader = _downloader(tmp_path, lambda request: httpx.Response(200))
        outside = tmp_path / "prompt.wav"
        outside.write_bytes(WAV_BYTES)

        downloader.discard(outside)

        assert outside.exists()
