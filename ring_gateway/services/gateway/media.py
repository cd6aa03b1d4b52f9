"""Fetching PLAY_AUDIO sources into the local audio cache."""

import asyncio
import logging
import uuid
from pathlib import Path

import httpx

from ring_gateway.services.gateway.exceptions import MediaDownloadError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


class AudioDownloader:
    """Streams a remote WAV file to ``cache_dir`` and returns its local path.

    Usage::

        downloader = AudioDownloader("cache/audio", timeout=30.0)
        path = await downloader.fetch("https://example.com/prompt.wav")
    """

    def __init__(
        self,
        cache_dir: str | Path,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._cache_dir = Path(cache_dir)
        self._timeout = timeout
        self._transport = transport

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    async def fetch(self, url: str) -> str:
        """Download ``url``.

        Raises:
            MediaDownloadError: On any HTTP, network or filesystem failure,
                or when the server returns an empty body.
        """
        target = self._cache_dir / f"audio_{uuid.uuid4().hex}.wav"
        logger.info("Downloading audio from %s", url)

        try:
            self._cache_dir.mkdir(parents=True, exist_ok=True)
            size = 0
            async with httpx.AsyncClient(
                timeout=self._timeout, follow_redirects=True, transport=self._transport
            ) as client:
                async with client.stream("GET", url) as response:
                    response.raise_for_status()
                    with target.open("wb") as fh:
                        async for chunk in response.aiter_bytes(_CHUNK_SIZE):
                            fh.write(chunk)
                            size += len(chunk)
        except httpx.HTTPStatusError as exc:
            target.unlink(missing_ok=True)
            raise MediaDownloadError(url, f"server returned {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            target.unlink(missing_ok=True)
            raise MediaDownloadError(url, f"request failed: {exc}") from exc
        except OSError as exc:
            target.unlink(missing_ok=True)
            raise MediaDownloadError(url, f"cannot write {target}: {exc}") from exc
        except asyncio.CancelledError:
            target.unlink(missing_ok=True)
            raise

        if size == 0:
            target.unlink(missing_ok=True)
            raise MediaDownloadError(url, "empty response body")

        logger.info("Downloaded %d bytes to %s", size, target)
        return str(target)

    def discard(self, path: str | Path) -> None:
        """Delete a file previously returned by fetch(). Paths outside the cache are left alone."""
        target = Path(path)
        if target.parent.resolve() != self._cache_dir.resolve():
            logger.warning("Not discarding %s: outside audio cache %s", target, self._cache_dir)
            return
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Failed to remove cached audio %s: %s", target, exc)
            return
        logger.debug("Removed cached audio %s", target)
