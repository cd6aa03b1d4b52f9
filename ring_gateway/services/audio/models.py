"""Audio routing Pydantic models.

A gateway injects audio into the cellular uplink by writing PCM straight
to a hardware ALSA node. Which node that is depends on the SoC family and
is discovered at runtime from /proc/asound/pcm, falling back to the
per-chipset seeds in DeviceConfig.default_for_chipset().
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

# Device index meaning "no PCM node mapped for this direction"
UNMAPPED_DEVICE = -1


class ChipsetFamily(str, Enum):
    """SoC families with known voice-path topologies."""

    EXYNOS = "EXYNOS"
    QUALCOMM = "QUALCOMM"
    MEDIATEK = "MEDIATEK"
    UNKNOWN = "UNKNOWN"


class PcmEndpoint(BaseModel):
    """One line of /proc/asound/pcm, e.g. ``00-08: Samsung RDMA8 : : playback 1``."""

    card: int
    device: int
    name: str = ""
    has_playback: bool = False
    has_capture: bool = False
    raw_line: str = ""

    model_config = {"frozen": True}

    @property
    def direction_flags(self) -> str:
        """Compact ``P``/``C`` capability marker used in probe logs."""
        return ("P" if self.has_playback else "") + ("C" if self.has_capture else "")


class DeviceConfig(BaseModel):
    """Resolved ALSA routing for voice injection (TX) and capture (RX)."""

    chipset: ChipsetFamily = ChipsetFamily.UNKNOWN
    card: int = 0
    device_tx: int = 0
    device_rx: int = Field(default=UNMAPPED_DEVICE, description="-1 when no capture node is mapped")
    probed: bool = Field(default=False, description="Came from live enumeration, not a hardcoded seed")
    manual_override: bool = Field(default=False, description="User supplied; never replaced by re-probing")

    model_config = {"frozen": True}

    @classmethod
    def default_for_chipset(cls, chipset: ChipsetFamily) -> "DeviceConfig":
        """Hardcoded starting points per chipset. Auto-probing refines them."""
        if chipset == ChipsetFamily.EXYNOS:
            # ABOX RDMA8 feeds the modem uplink. Seen on one device family only.
            return cls(chipset=chipset, card=0, device_tx=8)
        if chipset == ChipsetFamily.QUALCOMM:
            # VoiceMMode1 TX, varies per device
            return cls(chipset=chipset, card=0, device_tx=2)
        if chipset == ChipsetFamily.MEDIATEK:
            # Voice_MD1 / Voice_Voip_BT, varies per device
            return cls(chipset=chipset, card=0, device_tx=2)
        return cls(chipset=ChipsetFamily.UNKNOWN, card=0, device_tx=0)

    @property
    def has_tx(self) -> bool:
        return self.device_tx >= 0

    def to_payload(self) -> dict[str, Any]:
        """Serialise with the persisted / wire key names."""
        return self.model_dump(mode="json")
