"""Command-line entry point for the ring gateway.

Usage:
    ring-gateway run [--url wss://control.example.com/gateway]
    ring-gateway probe
    ring-gateway set-audio CARD TX [RX]
    ring-gateway clear-audio
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from dataclasses import dataclass

from ring_gateway.core.config import Settings, settings
from ring_gateway.core.logging import configure_logging
from ring_gateway.services.audio import (
    UNMAPPED_DEVICE,
    AudioInjector,
    ChipsetDetector,
    DeviceConfigStore,
    DeviceProber,
    HelperBinaryResolver,
    RootShell,
)
from ring_gateway.services.gateway import AudioDownloader, CommandChannel, GatewayController, GatewayError
from ring_gateway.services.telephony import CallControlBridge, DetachedTelephonyPlatform

logger = logging.getLogger(__name__)


@dataclass
class AudioStack:
    shell: RootShell
    detector: ChipsetDetector
    prober: DeviceProber
    store: DeviceConfigStore


def build_audio_stack(config: Settings) -> AudioStack:
    shell = RootShell(su_binary=config.ROOT_SHELL, timeout=config.ROOT_COMMAND_TIMEOUT_SECONDS)
    detector = ChipsetDetector()
    prober = DeviceProber(shell, detector)
    store = DeviceConfigStore(config.DEVICE_CONFIG_PATH, detector, prober)
    return AudioStack(shell=shell, detector=detector, prober=prober, store=store)


def build_controller(config: Settings) -> GatewayController:
    """Wire every collaborator from settings.

    No host telephony stack is attached here; dial attempts report
    DIAL_FAILED and call-object commands report no call.
    """
    audio = build_audio_stack(config)
    injector = AudioInjector(
        audio.shell,
        audio.store,
        HelperBinaryResolver(config.HELPER_BINARY_DIR),
        binary_name=config.TINYPLAY_BINARY,
        stop_timeout=config.PLAYBACK_STOP_TIMEOUT_SECONDS,
    )
    bridge = CallControlBridge(
        tone_duration=config.DTMF_TONE_DURATION_MS / 1000,
        inter_digit_gap=config.DTMF_INTER_DIGIT_GAP_MS / 1000,
    )

    def channel_factory(url: str) -> CommandChannel:
        return CommandChannel(
            url,
            ping_interval=config.WS_PING_INTERVAL_SECONDS,
            open_timeout=config.WS_OPEN_TIMEOUT_SECONDS,
        )

    return GatewayController(
        platform=DetachedTelephonyPlatform(),
        bridge=bridge,
        injector=injector,
        config_store=audio.store,
        downloader=AudioDownloader(config.AUDIO_CACHE_DIR, timeout=config.AUDIO_DOWNLOAD_TIMEOUT_SECONDS),
        channel_factory=channel_factory,
        default_audio_path=config.DEFAULT_AUDIO_PATH,
        heartbeat_interval=config.HEARTBEAT_INTERVAL_SECONDS,
        reconnect_delay=config.RECONNECT_DELAY_SECONDS,
        dial_timeout=config.DIAL_TIMEOUT_SECONDS,
    )


async def run_gateway(config: Settings, url: str) -> None:
    controller = build_controller(config)
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            pass

    await controller.start(url)
    logger.info("Gateway running against %s", url)
    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down gateway...")
        await controller.stop()


async def probe_audio(config: Settings) -> None:
    audio = build_audio_stack(config)
    chipset = await asyncio.to_thread(audio.detector.detect)
    endpoints = await audio.prober.list_endpoints()
    resolved = await audio.store.reprobe()

    print(f"Chipset: {chipset.value}")
    print(f"PCM endpoints ({len(endpoints)}):")
    for ep in endpoints:
        print(f"  {ep.card:02d}-{ep.device:02d} [{ep.direction_flags}] {ep.name}")
    print("Resolved device config:")
    print(json.dumps(resolved.to_payload(), indent=2))


def main() -> None:
    parser = argparse.ArgumentParser(description="Ring AI cellular voice gateway")
    parser.add_argument(
        "--log-level",
        type=str,
        default=settings.LOG_LEVEL,
        help=f"Logging level (default: {settings.LOG_LEVEL})",
    )
    subparsers = parser.add_subparsers(dest="action", required=True)

    run_parser = subparsers.add_parser("run", help="Connect to the control server and serve commands")
    run_parser.add_argument(
        "--url",
        type=str,
        default=settings.SERVER_URL,
        help="Command channel WebSocket URL (default: SERVER_URL)",
    )

    subparsers.add_parser("probe", help="Detect the chipset, list PCM endpoints and re-probe the device mapping")

    set_parser = subparsers.add_parser("set-audio", help="Persist a manual card/device override")
    set_parser.add_argument("card", type=int, help="ALSA card index")
    set_parser.add_argument("device_tx", type=int, help="Voice uplink (TX) device index")
    set_parser.add_argument(
        "device_rx",
        type=int,
        nargs="?",
        default=UNMAPPED_DEVICE,
        help="Voice downlink (RX) device index (default: unmapped)",
    )

    subparsers.add_parser("clear-audio", help="Forget the stored device mapping")

    args = parser.parse_args()
    configure_logging(args.log_level)

    if args.action == "run":
        if not args.url:
            print("ERROR: --url or SERVER_URL is required.", file=sys.stderr)
            sys.exit(1)
        try:
            asyncio.run(run_gateway(settings, args.url))
        except GatewayError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            sys.exit(1)
        except KeyboardInterrupt:
            pass

    elif args.action == "probe":
        asyncio.run(probe_audio(settings))

    elif args.action == "set-audio":
        if args.card < 0 or args.device_tx < 0 or args.device_rx < UNMAPPED_DEVICE:
            print("ERROR: card and TX must be >= 0, RX >= -1.", file=sys.stderr)
            sys.exit(1)
        store = build_audio_stack(settings).store
        config = store.set_manual_override(args.card, args.device_tx, args.device_rx)
        print(json.dumps(config.to_payload(), indent=2))

    elif args.action == "clear-audio":
        build_audio_stack(settings).store.clear()
        print("Audio device config cleared.")


if __name__ == "__main__":
    main()
