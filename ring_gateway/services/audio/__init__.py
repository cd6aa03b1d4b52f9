"""Audio routing service — PCM device discovery and voice-uplink injection.

Public API:
    - ChipsetDetector: Cached SoC family detection.
    - DeviceProber: Enumerates /proc/asound/pcm and picks voice TX/RX nodes.
    - DeviceConfigStore: Persists and resolves the card/device mapping.
    - AudioInjector: Runs the single tinyplay playback session.
    - RootShell / HelperBinaryResolver: Privileged exec and binary lookup.
"""

from ring_gateway.services.audio.binaries import HelperBinaryResolver
from ring_gateway.services.audio.chipset import ChipsetDetector
from ring_gateway.services.audio.device_config import DeviceConfigStore
from ring_gateway.services.audio.exceptions import AudioError, RootShellError
from ring_gateway.services.audio.injector import AudioInjector, InjectionSession
from ring_gateway.services.audio.models import UNMAPPED_DEVICE, ChipsetFamily, DeviceConfig, PcmEndpoint
from ring_gateway.services.audio.prober import DeviceProber, parse_pcm_line, parse_pcm_listing
from ring_gateway.services.audio.root_shell import CommandResult, RootShell

__all__ = [
    "UNMAPPED_DEVICE",
    "AudioError",
    "AudioInjector",
    "ChipsetDetector",
    "ChipsetFamily",
    "CommandResult",
    "DeviceConfig",
    "DeviceConfigStore",
    "DeviceProber",
    "HelperBinaryResolver",
    "InjectionSession",
    "PcmEndpoint",
    "RootShell",
    "RootShellError",
    "parse_pcm_line",
    "parse_pcm_listing",
]
