"""Tests for the command channel wire models."""

import json

import pytest
from pydantic import ValidationError

from ring_gateway.services.gateway.models import (
    Command,
    CommandType,
    EventMessage,
    EventType,
    GatewayStatus,
    HeartbeatMessage,
    MakeCallCommand,
    PlayAudioCommand,
    ResponseMessage,
    ResultCode,
    SetAudioConfigCommand,
    parse_command,
)


class TestParseCommand:
    def test_make_call(self):
        command = parse_command({"command": "MAKE_CALL", "id": "c1", "number": "+9779800000000"})

        assert isinstance(command, MakeCallCommand)
        assert command.command == CommandType.MAKE_CALL
        assert command.id == "c1"
        assert command.number == "+9779800000000"

    def test_fieldless_command_ignores_extras(self):
        command = parse_command({"command": "PING", "id": "p", "extra": 1})
        assert type(command) is Command
        assert command.command == CommandType.PING

    def test_missing_required_field(self):
        with pytest.raises(ValidationError):
            parse_command({"command": "MAKE_CALL", "id": "c1"})

    @pytest.mark.parametrize("payload", [{"command": "REBOOT"}, {"id": "x"}, {"command": None}])
    def test_unknown_command(self, payload):
        with pytest.raises(ValueError):
            parse_command(payload)

    def test_numeric_id_is_coerced(self):
        assert parse_command({"command": "PING", "id": 42}).id == "42"

    def test_numeric_number_and_digits_are_coerced(self):
        assert parse_command({"command": "MAKE_CALL", "number": 9779800000000}).number == "9779800000000"
        assert parse_command({"command": "SEND_DTMF", "digits": 123}).digits == "123"
        assert parse_command({"command": "SEND_SMS", "number": 100, "message": "hi"}).number == "100"

    @pytest.mark.parametrize("number", [True, 98.5, None])
    def test_non_integer_number_is_rejected(self, number):
        with pytest.raises(ValidationError):
            parse_command({"command": "MAKE_CALL", "number": number})

    def test_missing_id_defaults_empty(self):
        assert parse_command({"command": "PING"}).id == ""

    def test_play_audio_sources_are_optional(self):
        command = parse_command({"command": "PLAY_AUDIO", "id": "a"})
        assert isinstance(command, PlayAudioCommand)
        assert command.url is None and command.path is None

    def test_set_audio_config_defaults_rx(self):
        command = parse_command({"command": "SET_AUDIO_CONFIG", "card": 0, "device_tx": 8})
        assert isinstance(command, SetAudioConfigCommand)
        assert command.device_rx == -1

    @pytest.mark.parametrize(
        "fields",
        [
            {"card": -1, "device_tx": 8},
            {"card": 0, "device_tx": -1},
            {"card": 0, "device_tx": 8, "device_rx": -2},
            {"card": "zero", "device_tx": 8},
        ],
    )
    def test_set_audio_config_rejects_bad_numbers(self, fields):
        with pytest.raises(ValidationError):
            parse_command({"command": "SET_AUDIO_CONFIG", **fields})


class TestWireFormat:
    def test_response_uses_camel_case_and_drops_none(self):
        message = ResponseMessage(
            id="c1",
            result=ResultCode.HUNGUP,
            success=True,
            call_state="ACTIVE",
            call_duration_ms=1200,
        )

        assert json.loads(message.to_wire()) == {
            "type": "response",
            "id": "c1",
            "result": "HUNGUP",
            "success": True,
            "callState": "ACTIVE",
            "callDurationMs": 1200,
        }

    def test_response_with_config(self):
        message = ResponseMessage(
            id="c2",
            result=ResultCode.AUDIO_CONFIG,
            success=True,
            config={"card": 0, "device_tx": 8},
        )
        assert json.loads(message.to_wire())["config"] == {"card": 0, "device_tx": 8}

    def test_event_fields(self):
        message = EventMessage(
            event=EventType.CALL_ENDED,
            status=GatewayStatus.CONNECTED,
            call_state="NO_CALL",
            disconnect_cause="remote",
            disconnect_cause_code=2,
            disconnect_reason="",
            call_duration_ms=0,
        )

        assert json.loads(message.to_wire()) == {
            "type": "event",
            "event": "CALL_ENDED",
            "status": "CONNECTED",
            "callState": "NO_CALL",
            "disconnectCause": "remote",
            "disconnectCauseCode": 2,
            "disconnectReason": "",
            "callDurationMs": 0,
        }

    def test_heartbeat_keys(self):
        message = HeartbeatMessage(
            status=GatewayStatus.IN_CALL,
            audio_playing=True,
            call_state="ACTIVE",
            call_duration_ms=5000,
            active_calls=1,
        )

        assert json.loads(message.to_wire()) == {
            "type": "heartbeat",
            "status": "IN_CALL",
            "audioPlaying": True,
            "callState": "ACTIVE",
            "callDurationMs": 5000,
            "activeCalls": 1,
        }

    def test_aliases_accepted_on_input(self):
        message = HeartbeatMessage.model_validate(
            {
                "status": "IDLE",
                "audioPlaying": False,
                "callState": "NO_CALL",
                "callDurationMs": 0,
                "activeCalls": 0,
            }
        )
        assert message.active_calls == 0
