"""ALSA PCM prober — finds the voice uplink/downlink nodes for a chipset.

Reads /proc/asound/pcm through the root shell and matches endpoint names
against chipset-specific patterns. Line format::

    CC-DD: name : subname : playback N : capture N
    00-08: Samsung RDMA8 : : playback 1

Everything here fails soft: no root, an unreadable listing or zero
matches all end in the per-chipset defaults, never an exception.
"""

import asyncio
import logging

from ring_gateway.services.audio.chipset import ChipsetDetector
from ring_gateway.services.audio.models import ChipsetFamily, DeviceConfig, PcmEndpoint
from ring_gateway.services.audio.root_shell import RootShell

logger = logging.getLogger(__name__)

PCM_LISTING_COMMAND = "cat /proc/asound/pcm"

# Name fragments (lower-case) identifying voice paths per chipset
TX_PATTERNS: dict[ChipsetFamily, tuple[str, ...]] = {
    ChipsetFamily.EXYNOS: ("rdma8", "rdma 8", "spus out8"),
    ChipsetFamily.QUALCOMM: ("voicemmode1", "voice tx", "voice_tx", "voice mmode1"),
    ChipsetFamily.MEDIATEK: ("voice_md1", "voice_voip", "voice md1", "voice_ul", "voice ul"),
}
RX_PATTERNS: dict[ChipsetFamily, tuple[str, ...]] = {
    ChipsetFamily.EXYNOS: ("wdma", "sifs"),
    ChipsetFamily.QUALCOMM: ("voicemmode1", "voice rx", "voice_rx", "voice mmode1"),
    ChipsetFamily.MEDIATEK: ("voice_md1", "voice_dl", "voice dl"),
}
KNOWN_FAMILIES = (ChipsetFamily.EXYNOS, ChipsetFamily.QUALCOMM, ChipsetFamily.MEDIATEK)

# ABOX RDMA8 position on the Exynos board this was mapped on
EXYNOS_TX_FALLBACK = (0, 8)


def parse_pcm_line(line: str) -> PcmEndpoint | None:
    """Parse one /proc/asound/pcm line; None if the CC-DD prefix is unusable."""
    colon = line.find(":")
    if colon < 0:
        return None

    prefix = line[:colon].strip()
    card_str, dash, device_str = prefix.partition("-")
    if not dash:
        return None
    try:
        card = int(card_str)
        device = int(device_str)
    except ValueError:
        return None

    segments = [s.strip() for s in line[colon + 1 :].split(":")]
    lowered = [s.lower() for s in segments]
    return PcmEndpoint(
        card=card,
        device=device,
        name=segments[0] if segments else "",
        has_playback=any(s.startswith("playback") for s in lowered),
        has_capture=any(s.startswith("capture") for s in lowered),
        raw_line=line,
    )


def parse_pcm_listing(text: str) -> list[PcmEndpoint]:
    """Parse a full listing, skipping (and logging) unparseable lines."""
    endpoints = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue
        endpoint = parse_pcm_line(line)
        if endpoint is None:
            logger.warning("Unparseable PCM line: %s", line)
            continue
        endpoints.append(endpoint)
    return endpoints


def _match(endpoints: list[PcmEndpoint], patterns: tuple[str, ...], playback: bool) -> list[PcmEndpoint]:
    matched = []
    for ep in endpoints:
        capable = ep.has_playback if playback else ep.has_capture
        name = ep.name.lower()
        if capable and any(p in name for p in patterns):
            matched.append(ep)
    return matched


def _tx_candidates(endpoints: list[PcmEndpoint], family: ChipsetFamily) -> list[PcmEndpoint]:
    candidates = _match(endpoints, TX_PATTERNS[family], playback=True)
    if not candidates and family == ChipsetFamily.EXYNOS:
        card, device = EXYNOS_TX_FALLBACK
        candidates = [ep for ep in endpoints if ep.card == card and ep.device == device and ep.has_playback]
    return candidates


def voice_tx_candidates(endpoints: list[PcmEndpoint], chipset: ChipsetFamily) -> list[PcmEndpoint]:
    """All uplink candidates in enumeration order; UNKNOWN tries every family."""
    if chipset == ChipsetFamily.UNKNOWN:
        return [ep for family in KNOWN_FAMILIES for ep in _tx_candidates(endpoints, family)]
    return _tx_candidates(endpoints, chipset)


def voice_rx_candidates(endpoints: list[PcmEndpoint], chipset: ChipsetFamily) -> list[PcmEndpoint]:
    """All downlink candidates in enumeration order; UNKNOWN tries every family."""
    families = KNOWN_FAMILIES if chipset == ChipsetFamily.UNKNOWN else (chipset,)
    return [ep for family in families for ep in _match(endpoints, RX_PATTERNS[family], playback=False)]


def select_voice_tx(endpoints: list[PcmEndpoint], chipset: ChipsetFamily) -> PcmEndpoint | None:
    """Best uplink endpoint (first candidate) or None."""
    candidates = voice_tx_candidates(endpoints, chipset)
    if not candidates:
        logger.info("No voice TX candidates found for %s", chipset.value)
        _log_endpoints(endpoints)
        return None

    best = candidates[0]
    logger.info("Voice TX candidate: card=%d device=%d name='%s'", best.card, best.device, best.name)
    for alt in candidates[1:]:
        logger.info("  alt TX: card=%d device=%d name='%s'", alt.card, alt.device, alt.name)
    return best


def select_voice_rx(endpoints: list[PcmEndpoint], chipset: ChipsetFamily) -> PcmEndpoint | None:
    """Best downlink endpoint (first candidate) or None."""
    candidates = voice_rx_candidates(endpoints, chipset)
    if not candidates:
        logger.info("No voice RX candidates found for %s", chipset.value)
        return None

    best = candidates[0]
    logger.info("Voice RX candidate: card=%d device=%d name='%s'", best.card, best.device, best.name)
    return best


def _log_endpoints(endpoints: list[PcmEndpoint]) -> None:
    if not endpoints:
        return
    logger.info("All PCM devices:")
    for ep in endpoints:
        logger.info("  %d-%02d: [%s] %s", ep.card, ep.device, ep.direction_flags, ep.name)


class DeviceProber:
    """Enumerates PCM endpoints and builds a DeviceConfig from them.

    Usage::

        prober = DeviceProber(shell=RootShell(), detector=ChipsetDetector())
        config = await prober.auto_probe()
    """

    def __init__(self, shell: RootShell, detector: ChipsetDetector) -> None:
        self._shell = shell
        self._detector = detector

    async def list_endpoints(self) -> list[PcmEndpoint]:
        """All parseable PCM endpoints, or [] if the listing cannot be read."""
        result = await self._shell.run(PCM_LISTING_COMMAND)
        if result is None or not result.ok:
            logger.warning("Failed to read /proc/asound/pcm (root access required)")
            return []

        endpoints = parse_pcm_listing(result.stdout)
        logger.info("Found %d PCM devices", len(endpoints))
        return endpoints

    async def find_voice_tx(self, chipset: ChipsetFamily) -> PcmEndpoint | None:
        return select_voice_tx(await self.list_endpoints(), chipset)

    async def find_voice_rx(self, chipset: ChipsetFamily) -> PcmEndpoint | None:
        return select_voice_rx(await self.list_endpoints(), chipset)

    async def auto_probe(self) -> DeviceConfig:
        """Detect, enumerate once and merge discovered nodes over the chipset defaults."""
        chipset = await asyncio.to_thread(self._detector.detect)
        logger.info("Auto-probing for chipset: %s", chipset.value)

        defaults = DeviceConfig.default_for_chipset(chipset)
        endpoints = await self.list_endpoints()
        tx = select_voice_tx(endpoints, chipset)
        rx = select_voice_rx(endpoints, chipset)

        config = defaults.model_copy(
            update={
                "card": tx.card if tx is not None else defaults.card,
                "device_tx": tx.device if tx is not None else defaults.device_tx,
                "device_rx": rx.device if rx is not None else defaults.device_rx,
                "probed": tx is not None,
            }
        )

        if tx is not None:
            logger.info(
                "Auto-probe succeeded: card=%d tx=%d rx=%d",
                config.card,
                config.device_tx,
                config.device_rx,
            )
        else:
            logger.warning("Auto-probe failed, using defaults: card=%d tx=%d", config.card, config.device_tx)
        return config
