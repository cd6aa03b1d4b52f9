"""Tests for settings, wiring and the command-line entry point."""

import functools
import json
import sys

import pytest

import ring_gateway.main as gateway_main
from ring_gateway.core.config import Settings
from ring_gateway.services.audio.chipset import ChipsetDetector
from ring_gateway.services.gateway.models import GatewayStatus


@pytest.fixture
def test_settings(tmp_path, monkeypatch):
    config = Settings(
        DEVICE_CONFIG_PATH=str(tmp_path / "data" / "audio_device_config.json"),
        AUDIO_CACHE_DIR=str(tmp_path / "cache"),
        HELPER_BINARY_DIR=str(tmp_path / "bin"),
    )
    monkeypatch.setattr(gateway_main, "settings", config)
    # Keep detection off the host's /sys and getprop
    monkeypatch.setattr(
        gateway_main,
        "ChipsetDetector",
        functools.partial(
            ChipsetDetector,
            platform_dir=tmp_path / "platform",
            cpuinfo_path=tmp_path / "cpuinfo",
            prop_reader=lambda name: "exynos9825",
        ),
    )
    return config


def _run_cli(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["ring-gateway", *argv])
    gateway_main.main()


class TestSettings:
    def test_defaults(self):
        config = Settings()
        assert config.RECONNECT_DELAY_SECONDS == 5.0
        assert config.HEARTBEAT_INTERVAL_SECONDS == 15.0
        assert config.DTMF_TONE_DURATION_MS == 150
        assert config.DTMF_INTER_DIGIT_GAP_MS == 100
        assert config.ROOT_SHELL == "su"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("HEARTBEAT_INTERVAL_SECONDS", "3")
        monkeypatch.setenv("SERVER_URL", "wss://control.test/gateway")

        config = Settings()

        assert config.HEARTBEAT_INTERVAL_SECONDS == 3.0
        assert config.SERVER_URL == "wss://control.test/gateway"


class TestWiring:
    @pytest.mark.asyncio
    async def test_build_controller(self, test_settings):
        controller = gateway_main.build_controller(test_settings)

        assert controller.status == GatewayStatus.IDLE
        assert controller.channel is None
        assert controller.heartbeat().active_calls == 0


class TestCli:
    def test_set_audio_persists_override(self, test_settings, monkeypatch, capsys):
        _run_cli(monkeypatch, "set-audio", "0", "18", "3")

        printed = json.loads(capsys.readouterr().out)
        assert printed == {
            "chipset": "EXYNOS",
            "card": 0,
            "device_tx": 18,
            "device_rx": 3,
            "probed": False,
            "manual_override": True,
        }
        with open(test_settings.DEVICE_CONFIG_PATH) as fh:
            assert json.load(fh) == printed

    def test_set_audio_rx_is_optional(self, test_settings, monkeypatch, capsys):
        _run_cli(monkeypatch, "set-audio", "1", "16")
        assert json.loads(capsys.readouterr().out)["device_rx"] == -1

    def test_set_audio_rejects_negative_card(self, test_settings, monkeypatch):
        with pytest.raises(SystemExit) as exc_info:
            _run_cli(monkeypatch, "set-audio", "-1", "8")
        assert exc_info.value.code == 1

    def test_clear_audio(self, test_settings, monkeypatch, capsys):
        _run_cli(monkeypatch, "set-audio", "0", "8")
        _run_cli(monkeypatch, "clear-audio")

        assert "cleared" in capsys.readouterr().out
        with pytest.raises(FileNotFoundError):
            open(test_settings.DEVICE_CONFIG_PATH)

    def test_run_requires_url(self, test_settings, monkeypatch):
        with pytest.raises(SystemExit) as exc_info:
            _run_cli(monkeypatch, "run")
        assert exc_info.value.code == 1
