"""Persistent store for the resolved ALSA device mapping.

One JSON record per device, keyed exactly like the wire payload::

    {"chipset": "EXYNOS", "card": 0, "device_tx": 8, "device_rx": -1,
     "probed": true, "manual_override": false}

Resolution order used by the injector:
    1. a persisted manual override, unconditionally
    2. a persisted probe result whose chipset matches the detected one
    3. a fresh auto-probe, which is then persisted
"""

import asyncio
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any

from ring_gateway.services.audio.chipset import ChipsetDetector
from ring_gateway.services.audio.models import UNMAPPED_DEVICE, ChipsetFamily, DeviceConfig
from ring_gateway.services.audio.prober import DeviceProber

logger = logging.getLogger(__name__)


def _int_field(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        logger.warning("Corrupt %s in stored audio config: %r", key, value)
        return default


def _bool_field(data: dict[str, Any], key: str) -> bool:
    value = data.get(key, False)
    return value if isinstance(value, bool) else False


def _chipset_field(data: dict[str, Any]) -> ChipsetFamily:
    try:
        return ChipsetFamily(data.get("chipset"))
    except ValueError:
        logger.warning("Corrupt chipset in stored audio config: %r", data.get("chipset"))
        return ChipsetFamily.UNKNOWN


class DeviceConfigStore:
    """Loads, persists and resolves the DeviceConfig.

    Thread-safe: the in-memory copy and the file are guarded by one lock.
    Manual overrides survive any amount of re-probing until clear().
    """

    def __init__(self, path: str | Path, detector: ChipsetDetector, prober: DeviceProber) -> None:
        self._path = Path(path)
        self._detector = detector
        self._prober = prober
        self._current: DeviceConfig | None = None
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def current(self) -> DeviceConfig | None:
        """The config in use, if one has been resolved or set this run."""
        return self._current

    def load(self) -> DeviceConfig | None:
        """Read the persisted record. Corrupt fields fall back one by one."""
        with self._lock:
            return self._load_locked()

    def save(self, config: DeviceConfig) -> None:
        with self._lock:
            self._save_locked(config)

    def clear(self) -> None:
        """Forget the persisted record and the in-memory copy."""
        with self._lock:
            try:
                self._path.unlink()
            except FileNotFoundError:
                pass
            self._current = None
        logger.info("Audio device config cleared, will re-probe on next use")

    async def resolve(self) -> DeviceConfig:
        """Return the config to inject with, probing and persisting if needed."""
        current = self._current
        if current is not None:
            return current

        saved = self.load()
        if saved is not None and saved.manual_override:
            logger.info(
                "Using manual override config: card=%d tx=%d rx=%d",
                saved.card,
                saved.device_tx,
                saved.device_rx,
            )
            self._current = saved
            return saved

        chipset = await asyncio.to_thread(self._detector.detect)
        if saved is not None and saved.probed and saved.chipset == chipset:
            logger.info(
                "Using cached probe result: card=%d tx=%d rx=%d",
                saved.card,
                saved.device_tx,
                saved.device_rx,
            )
            self._current = saved
            return saved

        return await self._probe_and_persist()

    async def reprobe(self) -> DeviceConfig:
        """Force a fresh auto-probe. A manual override is kept as-is."""
        saved = self._current or self.load()
        if saved is not None and saved.manual_override:
            logger.warning("Re-probe skipped: manual override active (clear it first)")
            self._current = saved
            return saved
        return await self._probe_and_persist()

    def set_manual_override(self, card: int, device_tx: int, device_rx: int = UNMAPPED_DEVICE) -> DeviceConfig:
        """Persist a user-supplied mapping; the next injection uses it."""
        config = DeviceConfig(
            chipset=self._detector.detect(),
            card=card,
            device_tx=device_tx,
            device_rx=device_rx,
            probed=False,
            manual_override=True,
        )
        with self._lock:
            self._save_locked(config)
        logger.info("Manual override set: card=%d tx=%d rx=%d", card, device_tx, device_rx)
        return config

    async def _probe_and_persist(self) -> DeviceConfig:
        config = await self._prober.auto_probe()
        with self._lock:
            # An override set while probing wins
            if self._current is not None and self._current.manual_override:
                return self._current
            self._save_locked(config)
        return config

    def _load_locked(self) -> DeviceConfig | None:
        try:
            raw = self._path.read_text()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Failed to read audio config %s: %s", self._path, exc)
            return None

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("Failed to parse audio config %s: %s", self._path, exc)
            return None

        if not isinstance(data, dict) or "chipset" not in data:
            return None

        return DeviceConfig(
            chipset=_chipset_field(data),
            card=_int_field(data, "card", 0),
            device_tx=_int_field(data, "device_tx", 0),
            device_rx=_int_field(data, "device_rx", UNMAPPED_DEVICE),
            probed=_bool_field(data, "probed"),
            manual_override=_bool_field(data, "manual_override"),
        )

    def _save_locked(self, config: DeviceConfig) -> None:
        # The in-memory copy is authoritative even if the disk write fails
        self._current = config
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(config.to_payload()))
            os.replace(tmp_path, self._path)
        except OSError as exc:
            logger.error("Failed to persist audio config to %s: %s", self._path, exc)
            return
        logger.info("Saved audio config: %s", config.to_payload())
