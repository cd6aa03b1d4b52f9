"""Persistent WebSocket command channel to the control server.

One CommandChannel wraps one connection attempt:

    1. connect() opens the socket (ChannelError on failure)
    2. messages() yields inbound text frames until the socket closes
    3. send() queues an outbound frame; a writer task drains the queue in
       FIFO order, so callers never block on the network
    4. close() stops the writer and closes the socket

Keepalive pings are handled by the websockets library at
``ping_interval``. The controller creates a fresh channel for every
reconnect.
"""

import asyncio
import logging
from collections.abc import AsyncIterator

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from ring_gateway.services.gateway.exceptions import ChannelError

logger = logging.getLogger(__name__)


class CommandChannel:
    """Usage::

        channel = CommandChannel("wss://control.example.com/gateway")
        await channel.connect()
        channel.send('{"type": "heartbeat", ...}')
        async for text in channel.messages():
            ...
        await channel.close()
    """

    def __init__(self, url: str, ping_interval: float = 10.0, open_timeout: float = 10.0) -> None:
        self._url = url
        self._ping_interval = ping_interval
        self._open_timeout = open_timeout
        self._ws: ClientConnection | None = None
        self._outbox: asyncio.Queue[str] = asyncio.Queue()
        self._writer_task: asyncio.Task | None = None
        self._close_reason = ""

    @property
    def url(self) -> str:
        return self._url

    @property
    def is_open(self) -> bool:
        return self._ws is not None and self._writer_task is not None and not self._writer_task.done()

    @property
    def close_reason(self) -> str:
        return self._close_reason

    async def connect(self) -> None:
        """Open the socket and start the writer.

        Raises:
            ChannelError: If the URL is invalid, the handshake fails or the
                server cannot be reached within ``open_timeout``.
        """
        try:
            self._ws = await connect(
                self._url,
                ping_interval=self._ping_interval,
                open_timeout=self._open_timeout,
            )
        except InvalidURI as exc:
            raise ChannelError(self._url, f"invalid URL: {exc}") from exc
        except (InvalidHandshake, TimeoutError, OSError) as exc:
            raise ChannelError(self._url, f"connection failed: {exc}") from exc

        self._writer_task = asyncio.create_task(self._write_loop())
        logger.info("Command channel open: %s", self._url)

    async def messages(self) -> AsyncIterator[str]:
        """Inbound text frames until the server closes or the connection drops."""
        if self._ws is None:
            return
        try:
            async for frame in self._ws:
                if isinstance(frame, bytes):
                    logger.debug("Ignoring %d-byte binary frame", len(frame))
                    continue
                yield frame
        except ConnectionClosed as exc:
            self._close_reason = self._describe_close(exc)
            logger.warning("Command channel lost: %s", self._close_reason)
        else:
            self._close_reason = self._describe_close(None)
            logger.info("Command channel closed by server: %s", self._close_reason)

    def send(self, text: str) -> bool:
        """Queue ``text`` for delivery. False if the channel is not open."""
        if not self.is_open:
            logger.debug("Dropping outbound message, channel not open")
            return False
        self._outbox.put_nowait(text)
        return True

    async def close(self) -> None:
        if self._writer_task is not None and not self._writer_task.done():
            self._writer_task.cancel()
            try:
                await self._writer_task
            except asyncio.CancelledError:
                pass
        self._writer_task = None

        if self._ws is not None:
            await self._ws.close(1000, "Client stopping")
            self._ws = None
            logger.info("Command channel closed: %s", self._url)

    async def _write_loop(self) -> None:
        ws = self._ws
        if ws is None:
            return
        while True:
            text = await self._outbox.get()
            try:
                await ws.send(text)
            except ConnectionClosed:
                logger.warning("Command channel closed while sending, %d message(s) dropped", self._outbox.qsize() + 1)
                return

    def _describe_close(self, exc: ConnectionClosed | None) -> str:
        if exc is None and self._ws is not None:
            code, reason = self._ws.close_code, self._ws.close_reason
        elif exc is not None and exc.rcvd is not None:
            code, reason = exc.rcvd.code, exc.rcvd.reason
        else:
            return "connection dropped"
        return f"{code} {reason}".strip()
