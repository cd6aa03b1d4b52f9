"""Command channel protocol models.

Defines the JSON messages exchanged between the gateway and the control
server over the persistent WebSocket. All frames are text.

Protocol:
    Server → Gateway (commands):
        {"command": "MAKE_CALL", "id": "...", "number": "..."}
        {"command": "PLAY_AUDIO", "id": "...", "url": "..." | "path": "..."}
        {"command": "SEND_DTMF", "id": "...", "digits": "..."}
        {"command": "SEND_SMS", "id": "...", "number": "...", "message": "..."}
        {"command": "SET_AUDIO_CONFIG", "id": "...", "card": 0, "device_tx": 8, "device_rx": -1}
        HANGUP, HOLD, UNHOLD, ANSWER, REJECT, STOP_AUDIO, PING,
        GET_AUDIO_CONFIG, CLEAR_AUDIO_CONFIG, PROBE_AUDIO carry no fields.

    Gateway → Server:
        response   — one per command, echoing its id
        event      — call lifecycle notifications
        heartbeat  — periodic status snapshot

Outbound keys are camelCase on the wire; fields left as None are omitted.
"""

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator


class GatewayStatus(str, Enum):
    """Controller status, reported in every event and heartbeat."""

    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    DIALING = "DIALING"
    IN_CALL = "IN_CALL"
    PLAYING_AUDIO = "PLAYING_AUDIO"
    DISCONNECTED = "DISCONNECTED"
    ERROR = "ERROR"


# ---------------------------------------------------------------------------
# Server → Gateway commands
# ---------------------------------------------------------------------------


class CommandType(str, Enum):
    MAKE_CALL = "MAKE_CALL"
    PLAY_AUDIO = "PLAY_AUDIO"
    STOP_AUDIO = "STOP_AUDIO"
    HANGUP = "HANGUP"
    HOLD = "HOLD"
    UNHOLD = "UNHOLD"
    ANSWER = "ANSWER"
    REJECT = "REJECT"
    SEND_DTMF = "SEND_DTMF"
    SEND_SMS = "SEND_SMS"
    PING = "PING"
    GET_AUDIO_CONFIG = "GET_AUDIO_CONFIG"
    SET_AUDIO_CONFIG = "SET_AUDIO_CONFIG"
    CLEAR_AUDIO_CONFIG = "CLEAR_AUDIO_CONFIG"
    PROBE_AUDIO = "PROBE_AUDIO"


class Command(BaseModel):
    """A command with no fields beyond its type and correlation id."""

    model_config = ConfigDict(extra="ignore")

    command: CommandType
    id: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return "" if value is None else str(value)


def _number_to_str(value: Any) -> Any:
    # Integers only; a float would gain a ".0" suffix
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


DialString = Annotated[str, BeforeValidator(_number_to_str)]


class MakeCallCommand(Command):
    number: DialString


class PlayAudioCommand(Command):
    """Play ``path`` if given, else download ``url``, else the bundled default."""

    url: str | None = None
    path: str | None = None


class SendDtmfCommand(Command):
    digits: DialString


class SendSmsCommand(Command):
    number: DialString
    message: str


class SetAudioConfigCommand(Command):
    card: int = Field(..., ge=0)
    device_tx: int = Field(..., ge=0)
    device_rx: int = Field(default=-1, ge=-1)


COMMAND_MODELS: dict[CommandType, type[Command]] = {
    CommandType.MAKE_CALL: MakeCallCommand,
    CommandType.PLAY_AUDIO: PlayAudioCommand,
    CommandType.SEND_DTMF: SendDtmfCommand,
    CommandType.SEND_SMS: SendSmsCommand,
    CommandType.SET_AUDIO_CONFIG: SetAudioConfigCommand,
}


def parse_command(data: dict[str, Any]) -> Command:
    """Validate a decoded command object into its typed model.

    Raises:
        ValueError: If ``command`` is not a known CommandType.
        pydantic.ValidationError: If a known command has missing or invalid fields.
    """
    command_type = CommandType(data.get("command"))
    model = COMMAND_MODELS.get(command_type, Command)
    return model.model_validate(data)


# ---------------------------------------------------------------------------
# Gateway → Server messages
# ---------------------------------------------------------------------------


class ResultCode(str, Enum):
    """The ``result`` value of a command response."""

    DIALING = "DIALING"
    DIAL_FAILED = "DIAL_FAILED"
    PLAYING = "PLAYING"
    AUDIO_COMPLETE = "AUDIO_COMPLETE"
    AUDIO_FAILED = "AUDIO_FAILED"
    AUDIO_STOPPED = "AUDIO_STOPPED"
    NOT_IN_CALL = "NOT_IN_CALL"
    DOWNLOAD_FAILED = "DOWNLOAD_FAILED"
    HUNGUP = "HUNGUP"
    HANGUP_NO_CALL = "HANGUP_NO_CALL"
    HELD = "HELD"
    HOLD_FAILED = "HOLD_FAILED"
    UNHELD = "UNHELD"
    UNHOLD_FAILED = "UNHOLD_FAILED"
    ANSWERED = "ANSWERED"
    ANSWER_FAILED = "ANSWER_FAILED"
    REJECTED = "REJECTED"
    REJECT_FAILED = "REJECT_FAILED"
    DTMF_SENT = "DTMF_SENT"
    DTMF_FAILED = "DTMF_FAILED"
    SMS_SENT = "SMS_SENT"
    SMS_FAILED = "SMS_FAILED"
    PONG = "PONG"
    AUDIO_CONFIG = "AUDIO_CONFIG"
    AUDIO_CONFIG_SET = "AUDIO_CONFIG_SET"
    AUDIO_CONFIG_CLEARED = "AUDIO_CONFIG_CLEARED"
    AUDIO_PROBED = "AUDIO_PROBED"
    UNKNOWN_COMMAND = "UNKNOWN_COMMAND"
    INVALID_COMMAND = "INVALID_COMMAND"


class EventType(str, Enum):
    CALL_CONNECTED = "CALL_CONNECTED"
    CALL_ENDED = "CALL_ENDED"
    CALL_ERROR = "CALL_ERROR"
    INCOMING_CALL = "INCOMING_CALL"
    CALL_STATE_CHANGED = "CALL_STATE_CHANGED"


class WireMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class ResponseMessage(WireMessage):
    """Answer to one command, correlated by ``id``."""

    type: Literal["response"] = "response"
    id: str
    result: ResultCode
    success: bool
    message: str | None = None
    call_state: str | None = Field(None, alias="callState")
    call_duration_ms: int | None = Field(None, alias="callDurationMs")
    config: dict[str, Any] | None = Field(None, description="Device mapping for audio config results")


class EventMessage(WireMessage):
    """Unsolicited call lifecycle notification."""

    type: Literal["event"] = "event"
    event: EventType
    status: GatewayStatus
    call_state: str = Field(..., alias="callState")
    number: str | None = Field(None, description="Remote number for INCOMING_CALL")
    disconnect_cause: str | None = Field(None, alias="disconnectCause")
    disconnect_cause_code: int | None = Field(None, alias="disconnectCauseCode")
    disconnect_reason: str | None = Field(None, alias="disconnectReason")
    call_duration_ms: int | None = Field(None, alias="callDurationMs")


class HeartbeatMessage(WireMessage):
    """Periodic status snapshot, also sent once right after connecting."""

    type: Literal["heartbeat"] = "heartbeat"
    status: GatewayStatus
    audio_playing: bool = Field(..., alias="audioPlaying")
    call_state: str = Field(..., alias="callState")
    call_duration_ms: int = Field(..., alias="callDurationMs")
    active_calls: int = Field(..., alias="activeCalls")
