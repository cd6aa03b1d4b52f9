"""SoC family detection from layered runtime heuristics.

Detection order (first match wins):
    1. /sys/devices/platform nodes created by vendor audio drivers
    2. ro.hardware / ro.product.board identifiers
    3. the free-text Hardware field of /proc/cpuinfo

The result is cached on the detector instance. The composing controller
owns the instance and calls invalidate() when a re-detection is wanted.
"""

import logging
import subprocess
import threading
from collections.abc import Callable
from pathlib import Path

from ring_gateway.services.audio.models import ChipsetFamily

logger = logging.getLogger(__name__)

EXYNOS_IDENTIFIERS = ("exynos", "samsungexynos", "universal", "erd")
QUALCOMM_IDENTIFIERS = (
    "qcom",
    "qualcomm",
    "msm",
    "sdm",
    "sm",
    "snapdragon",
    "kona",
    "lahaina",
    "taro",
    "kalama",
    "pineapple",
)
MEDIATEK_IDENTIFIERS = ("mt", "mediatek", "mtk")

PropReader = Callable[[str], str]


def read_system_property(name: str) -> str:
    """Read an Android system property via ``getprop``; empty string if unavailable."""
    try:
        completed = subprocess.run(
            ["getprop", name],
            capture_output=True,
            text=True,
            timeout=2.0,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired):
        return ""
    return completed.stdout.strip()


class ChipsetDetector:
    """Detects and caches the device's ChipsetFamily.

    Usage::

        detector = ChipsetDetector()
        family = detector.detect()   # runs detection once
        detector.invalidate()        # next detect() re-runs
    """

    def __init__(
        self,
        platform_dir: str | Path = "/sys/devices/platform",
        cpuinfo_path: str | Path = "/proc/cpuinfo",
        prop_reader: PropReader = read_system_property,
    ) -> None:
        self._platform_dir = Path(platform_dir)
        self._cpuinfo_path = Path(cpuinfo_path)
        self._prop_reader = prop_reader
        self._cached: ChipsetFamily | None = None
        self._lock = threading.Lock()

    @property
    def cached(self) -> ChipsetFamily | None:
        return self._cached

    def detect(self) -> ChipsetFamily:
        """Return the detected family, running detection on first call."""
        cached = self._cached
        if cached is not None:
            return cached

        with self._lock:
            if self._cached is not None:
                return self._cached
            result = self._run_detection()
            self._cached = result

        logger.info("Detected SoC: %s", result.value)
        return result

    def invalidate(self) -> None:
        """Clear the cached result, forcing re-detection on next detect()."""
        with self._lock:
            self._cached = None

    def _run_detection(self) -> ChipsetFamily:
        for strategy in (self._detect_sysfs, self._detect_build_props, self._detect_cpuinfo):
            family = strategy()
            if family is not None:
                return family

        logger.warning("Could not determine SoC family")
        return ChipsetFamily.UNKNOWN

    def _detect_sysfs(self) -> ChipsetFamily | None:
        """Vendor audio-subsystem nodes. Definitive when present."""
        entries = _list_dir(self._platform_dir)
        if any(name.startswith("abox") for name in entries):
            logger.debug("sysfs: found abox* -> EXYNOS")
            return ChipsetFamily.EXYNOS

        soc_entries = _list_dir(self._platform_dir / "soc")
        if any("qcom" in name or "msm" in name or "adsp" in name for name in soc_entries):
            logger.debug("sysfs: found qcom/msm/adsp under soc -> QUALCOMM")
            return ChipsetFamily.QUALCOMM
        if any("mt" in name and "afe" in name for name in soc_entries):
            logger.debug("sysfs: found mt*afe* under soc -> MEDIATEK")
            return ChipsetFamily.MEDIATEK

        return None

    def _detect_build_props(self) -> ChipsetFamily | None:
        hardware = self._prop_reader("ro.hardware").lower()
        board = self._prop_reader("ro.product.board").lower()

        def matches(patterns: tuple[str, ...]) -> bool:
            return any(p in hardware or p in board for p in patterns)

        if matches(EXYNOS_IDENTIFIERS):
            family = ChipsetFamily.EXYNOS
        elif matches(QUALCOMM_IDENTIFIERS):
            family = ChipsetFamily.QUALCOMM
        elif matches(MEDIATEK_IDENTIFIERS):
            family = ChipsetFamily.MEDIATEK
        else:
            return None

        logger.debug("buildProp: matched %s (hw=%s, board=%s)", family.value, hardware, board)
        return family

    def _detect_cpuinfo(self) -> ChipsetFamily | None:
        """Hardware field of /proc/cpuinfo; many 4.x+ kernels leave it empty."""
        try:
            cpuinfo = self._cpuinfo_path.read_text(errors="replace").lower()
        except OSError as exc:
            logger.warning("Failed to read %s: %s", self._cpuinfo_path, exc)
            return None

        if "exynos" in cpuinfo or "samsung" in cpuinfo:
            return ChipsetFamily.EXYNOS
        if "qualcomm" in cpuinfo or "qcom" in cpuinfo:
            return ChipsetFamily.QUALCOMM
        if "mediatek" in cpuinfo or "mt6" in cpuinfo or "mt8" in cpuinfo:
            return ChipsetFamily.MEDIATEK
        return None


def _list_dir(path: Path) -> list[str]:
    try:
        return [entry.name for entry in path.iterdir()]
    except OSError:
        return []
