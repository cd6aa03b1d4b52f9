"""Gateway service — command channel and control-plane state machine.

Public API:
    - GatewayController: Owns GatewayStatus, dispatches commands, emits events.
    - CommandChannel: WebSocket connection with a FIFO writer.
    - AudioDownloader: Fetches PLAY_AUDIO URLs into the local cache.
    - Protocol models: ResponseMessage, EventMessage, HeartbeatMessage, etc.
"""

from ring_gateway.services.gateway.channel import CommandChannel
from ring_gateway.services.gateway.controller import GatewayController
from ring_gateway.services.gateway.exceptions import ChannelError, GatewayError, MediaDownloadError
from ring_gateway.services.gateway.media import AudioDownloader
from ring_gateway.services.gateway.models import (
    CommandType,
    EventMessage,
    EventType,
    GatewayStatus,
    HeartbeatMessage,
    ResponseMessage,
    ResultCode,
    parse_command,
)

__all__ = [
    "AudioDownloader",
    "ChannelError",
    "CommandChannel",
    "CommandType",
    "EventMessage",
    "EventType",
    "GatewayController",
    "GatewayError",
    "GatewayStatus",
    "HeartbeatMessage",
    "MediaDownloadError",
    "ResponseMessage",
    "ResultCode",
    "parse_command",
]
