"""Tests for the WebSocket command channel against a local server."""

import pytest
from websockets.asyncio.server import serve

from ring_gateway.services.gateway.channel import CommandChannel
from ring_gateway.services.gateway.exceptions import ChannelError


class TestCommandChannel:
    @pytest.mark.asyncio
    async def test_round_trip(self):
        received = []

        async def handler(ws):
            received.append(await ws.recv())
            await ws.send('{"command": "PING", "id": "1"}')
            await ws.send(b"\x00\x01")
            await ws.send('{"command": "HANGUP", "id": "2"}')
            await ws.close(1000, "bye")

        async with serve(handler, "127.0.0.1", 0) as server:
            port = server.sockets[0].getsockname()[1]
            channel = CommandChannel(f"ws://127.0.0.1:{port}", ping_interval=5.0, open_timeout=2.0)
            await channel.connect()

            assert channel.is_open is True
            assert channel.send('{"type": "heartbeat"}') is True

            frames = [text async for text in channel.messages()]
            await channel.close()

        assert received == ['{"type": "heartbeat"}']
        assert frames == ['{"command": "PING", "id": "1"}', '{"command": "HANGUP", "id": "2"}']
        assert channel.close_reason == "1000 bye"
        assert channel.is_open is False

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        async with serve(lambda ws: None, "127.0.0.1", 0) as server:
            port = server.sockets[0].getsockname()[1]
        channel = CommandChannel(f"ws://127.0.0.1:{port}", open_timeout=2.0)

        with pytest.raises(ChannelError) as exc_info:
            await channel.connect()

        assert exc_info.value.url == f"ws://127.0.0.1:{port}"
        assert channel.is_open is False

    @pytest.mark.asyncio
    async def test_invalid_url(self):
        channel = CommandChannel("not-a-websocket-url")

        with pytest.raises(ChannelError, match="invalid URL"):
            await channel.connect()

    @pytest.mark.asyncio
    async def test_send_before_connect_is_dropped(self):
        channel = CommandChannel("ws://127.0.0.1:9")

        assert channel.send("hello") is False
        assert [text async for text in channel.messages()] == []
        await channel.close()
