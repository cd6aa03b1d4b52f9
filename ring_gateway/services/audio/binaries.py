"""Locates the tinyalsa helper binaries used for PCM playback."""

import logging
import os
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


class HelperBinaryResolver:
    """Resolves helper executables from a configured directory, then $PATH.

    Results are cached per name; invalidate() forces a fresh lookup, e.g.
    after binaries have been installed into the helper directory.
    """

    def __init__(self, binary_dir: str | Path | None = None) -> None:
        self._binary_dir = Path(binary_dir) if binary_dir else None
        self._cache: dict[str, str] = {}

    def resolve(self, name: str) -> str | None:
        """Return an absolute path to an executable called ``name``, or None."""
        cached = self._cache.get(name)
        if cached is not None and os.access(cached, os.X_OK):
            return cached

        path = self._lookup(name)
        if path is None:
            logger.error("Helper binary %s not found (dir=%s)", name, self._binary_dir)
            return None

        self._cache[name] = path
        logger.info("Resolved helper binary %s -> %s", name, path)
        return path

    def invalidate(self) -> None:
        self._cache.clear()

    def _lookup(self, name: str) -> str | None:
        if self._binary_dir is not None:
            candidate = self._binary_dir / name
            if candidate.is_file() and os.access(candidate, os.X_OK):
                return str(candidate.resolve())
        return shutil.which(name)
