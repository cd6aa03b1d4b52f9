"""Gateway controller — command/event protocol state machine.

Owns the GatewayStatus, the command channel, the heartbeat and reconnect
tasks. Every input is handled one at a time on the event loop by a
single actor task that drains an asyncio.Queue:

    - inbound command frames from the channel
    - coarse call-state changes from CallStateTracker (platform thread)
    - call-object notifications from CallControlBridge (platform thread)
    - playback completion from AudioInjector
    - channel open / closed

Foreign threads enqueue with post(), which goes through
loop.call_soon_threadsafe.

Lifecycle:
    1. start(url) → CONNECTING, connection task opens the channel
    2. channel open → CONNECTED, status snapshot, heartbeat every interval
    3. commands / call activity move between DIALING, IN_CALL and
       PLAYING_AUDIO, back to CONNECTED when the call ends
    4. channel closed or failed → DISCONNECTED, heartbeat stopped, exactly
       one reconnect scheduled after the backoff delay
    5. stop() → cancels every task, stops audio, closes the channel, IDLE
"""

import asyncio
import inspect
import json
import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ring_gateway.services.audio.device_config import DeviceConfigStore
from ring_gateway.services.audio.injector import AudioInjector
from ring_gateway.services.gateway.channel import CommandChannel
from ring_gateway.services.gateway.exceptions import ChannelError, GatewayError, MediaDownloadError
from ring_gateway.services.gateway.media import AudioDownloader
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
    SendDtmfCommand,
    SendSmsCommand,
    SetAudioConfigCommand,
    WireMessage,
    parse_command,
)
from ring_gateway.services.telephony.base import SmsSender, TelephonyPlatform
from ring_gateway.services.telephony.call_control import CallControlBridge, CallControlListener, CallHandle
from ring_gateway.services.telephony.exceptions import TelephonyError
from ring_gateway.services.telephony.models import CallHandleState, CallState, DisconnectCause
from ring_gateway.services.telephony.tracker import CallStateTracker

logger = logging.getLogger(__name__)

ChannelFactory = Callable[[str], CommandChannel]

# Statuses in which the line is busy with a call; IDLE from the tracker ends it
CALL_STATUSES = (GatewayStatus.DIALING, GatewayStatus.IN_CALL, GatewayStatus.PLAYING_AUDIO)
PLAYABLE_STATUSES = (GatewayStatus.IN_CALL, GatewayStatus.PLAYING_AUDIO)


class GatewayController(CallControlListener):
    """Remote control of one cellular voice line over a command channel.

    Usage::

        controller = GatewayController(
            platform=platform,
            bridge=CallControlBridge(),
            injector=injector,
            config_store=store,
            downloader=AudioDownloader("cache/audio"),
        )
        await controller.start("wss://control.example.com/gateway")
        ...
        await controller.stop()
    """

    def __init__(
        self,
        platform: TelephonyPlatform,
        bridge: CallControlBridge,
        injector: AudioInjector,
        config_store: DeviceConfigStore,
        downloader: AudioDownloader,
        sms_sender: SmsSender | None = None,
        channel_factory: ChannelFactory | None = None,
        default_audio_path: str | Path = "assets/test_audio.wav",
        heartbeat_interval: float = 15.0,
        reconnect_delay: float = 5.0,
        dial_timeout: float = 60.0,
    ) -> None:
        self._bridge = bridge
        self._injector = injector
        self._config_store = config_store
        self._downloader = downloader
        self._sms_sender = sms_sender
        self._channel_factory = channel_factory or CommandChannel
        self._default_audio_path = Path(default_audio_path)
        self._heartbeat_interval = heartbeat_interval
        self._reconnect_delay = reconnect_delay
        self._dial_timeout = dial_timeout

        self._tracker = CallStateTracker(platform, on_state_change=self.post_call_state, dial_timeout=dial_timeout)
        self._bridge.add_listener(self)

        self._status = GatewayStatus.IDLE
        self._status_lock = threading.Lock()
        self._url: str | None = None
        self._running = False
        self._channel: CommandChannel | None = None

        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: asyncio.Queue[tuple[Callable[..., Any], tuple]] = asyncio.Queue()
        self._actor_task: asyncio.Task | None = None
        self._connection_task: asyncio.Task | None = None
        self._heartbeat_task: asyncio.Task | None = None
        self._reconnect_task: asyncio.Task | None = None
        self._playback_task: asyncio.Task | None = None
        self._playback_id: str | None = None
        self._dial_deadline: asyncio.TimerHandle | None = None
        self._dial_seq = 0

        self._handlers: dict[CommandType, Callable[[Any], Any]] = {
            CommandType.MAKE_CALL: self._cmd_make_call,
            CommandType.PLAY_AUDIO: self._cmd_play_audio,
            CommandType.STOP_AUDIO: self._cmd_stop_audio,
            CommandType.HANGUP: self._cmd_hangup,
            CommandType.HOLD: self._cmd_hold,
            CommandType.UNHOLD: self._cmd_unhold,
            CommandType.ANSWER: self._cmd_answer,
            CommandType.REJECT: self._cmd_reject,
            CommandType.SEND_DTMF: self._cmd_send_dtmf,
            CommandType.SEND_SMS: self._cmd_send_sms,
            CommandType.PING: self._cmd_ping,
            CommandType.GET_AUDIO_CONFIG: self._cmd_get_audio_config,
            CommandType.SET_AUDIO_CONFIG: self._cmd_set_audio_config,
            CommandType.CLEAR_AUDIO_CONFIG: self._cmd_clear_audio_config,
            CommandType.PROBE_AUDIO: self._cmd_probe_audio,
        }

    # -- Public state ------------------------------------------------------

    @property
    def status(self) -> GatewayStatus:
        with self._status_lock:
            return self._status

    @property
    def tracker(self) -> CallStateTracker:
        return self._tracker

    @property
    def channel(self) -> CommandChannel | None:
        return self._channel

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    # -- Lifecycle ---------------------------------------------------------

    async def start(self, url: str) -> None:
        """Begin connecting to ``url``; returns once the attempt is under way."""
        if not url:
            raise GatewayError("No server URL configured")

        self._loop = asyncio.get_running_loop()
        self._url = url
        if self._actor_task is None or self._actor_task.done():
            self._actor_task = asyncio.create_task(self._process_events())
        if not self._running:
            self._running = True
            self._tracker.start()
        await self._connect()

    async def stop(self) -> None:
        self._running = False
        self._stop_heartbeat()
        self._cancel_dial_deadline()
        await self._cancel_task(self._reconnect_task)
        self._reconnect_task = None
        await self._cancel_task(self._connection_task)
        self._connection_task = None

        await self._stop_audio()
        self._tracker.stop()

        if self._channel is not None:
            await self._channel.close()
            self._channel = None
        self._set_status(GatewayStatus.IDLE, "Stopped")

        await self._cancel_task(self._actor_task)
        self._actor_task = None

    # -- Thread-safe inputs ------------------------------------------------

    def post(self, handler: Callable[..., Any], *args: Any) -> None:
        """Enqueue ``handler(*args)`` for the actor; safe from any thread."""
        if self._loop is None or self._loop.is_closed():
            logger.debug("Controller not started, dropping %s", getattr(handler, "__name__", handler))
            return
        self._loop.call_soon_threadsafe(self._queue.put_nowait, (handler, args))

    def post_call_state(self, state: CallState) -> None:
        self.post(self._on_call_state, state)

    def on_call_added(self, handle: CallHandle) -> None:
        self.post(self._on_call_added, handle)

    def on_call_removed(self, handle: CallHandle, cause: DisconnectCause | None, duration_ms: int) -> None:
        self.post(self._on_call_removed, handle, cause, duration_ms)

    def on_call_state_changed(self, handle: CallHandle, state: CallHandleState) -> None:
        self.post(self._on_call_handle_state, handle, state)

    # -- Actor -------------------------------------------------------------

    async def _process_events(self) -> None:
        while True:
            handler, args = await self._queue.get()
            try:
                result = handler(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                logger.error(
                    "Gateway event handler %s failed: %s",
                    getattr(handler, "__name__", handler),
                    exc,
                    exc_info=True,
                )

    # -- Connection --------------------------------------------------------

    async def _connect(self) -> None:
        if self._reconnect_task is not None and not self._reconnect_task.done():
            self._reconnect_task.cancel()
        self._reconnect_task = None
        if self._connection_task is not None and not self._connection_task.done():
            self._connection_task.cancel()

        # Detach the old channel so the new attempt's close is not seen as superseded
        self._stop_heartbeat()
        channel, self._channel = self._channel, None
        if channel is not None:
            await channel.close()

        url = self._url
        self._set_status(GatewayStatus.CONNECTING, f"Connecting to {url}")
        self._connection_task = asyncio.create_task(self._run_connection(url))

    async def _run_connection(self, url: str) -> None:
        channel = self._channel_factory(url)
        try:
            await channel.connect()
        except ChannelError as exc:
            self.post(self._on_channel_closed, channel, f"Connection failed: {exc}")
            return

        self.post(self._on_channel_open, channel)
        try:
            async for text in channel.messages():
                self.post(self.handle_command, text)
        except asyncio.CancelledError:
            await channel.close()
            raise
        self.post(self._on_channel_closed, channel, f"Disconnected: {channel.close_reason}")

    def _on_channel_open(self, channel: CommandChannel) -> None:
        if not self._running:
            return
        self._channel = channel
        self._set_status(GatewayStatus.CONNECTED, "Connected to server")
        self._send_heartbeat()
        self._start_heartbeat()

    async def _on_channel_closed(self, channel: CommandChannel, reason: str) -> None:
        if not self._running:
            return
        if self._channel is not None and self._channel is not channel:
            logger.debug("Ignoring close of superseded channel %s", channel.url)
            return

        self._stop_heartbeat()
        self._channel = None
        await channel.close()
        self._set_status(GatewayStatus.DISCONNECTED, reason)
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self._url is None:
            return
        if self._reconnect_task is not None and not self._reconnect_task.done():
            self._reconnect_task.cancel()
        self._reconnect_task = asyncio.create_task(self._reconnect_after_delay())

    async def _reconnect_after_delay(self) -> None:
        await asyncio.sleep(self._reconnect_delay)
        logger.info("Reconnecting...")
        self.post(self._reconnect)

    async def _reconnect(self) -> None:
        if self._running:
            await self._connect()

    # -- Heartbeat ---------------------------------------------------------

    def _start_heartbeat(self) -> None:
        self._stop_heartbeat()
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())

    def _stop_heartbeat(self) -> None:
        if self._heartbeat_task is not None and not self._heartbeat_task.done():
            self._heartbeat_task.cancel()
        self._heartbeat_task = None

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self._heartbeat_interval)
            self._send_heartbeat()

    def heartbeat(self) -> HeartbeatMessage:
        return HeartbeatMessage(
            status=self.status,
            audio_playing=self._injector.is_playing,
            call_state=self._bridge.call_state_label(),
            call_duration_ms=self._bridge.call_duration_ms(),
            active_calls=len(self._bridge.calls),
        )

    def _send_heartbeat(self) -> None:
        self._send(self.heartbeat())

    # -- Call state --------------------------------------------------------

    async def _on_call_state(self, state: CallState) -> None:
        if state != CallState.DIALING:
            self._cancel_dial_deadline()
        if state == CallState.OFFHOOK:
            self._set_status(GatewayStatus.IN_CALL, "Call connected")
            self._send_event(EventType.CALL_CONNECTED)
        elif state == CallState.IDLE:
            if self.status in CALL_STATUSES:
                await self._stop_audio()
                next_status = GatewayStatus.CONNECTED if self._channel is not None else GatewayStatus.IDLE
                self._set_status(next_status, "Call ended")
                self._send_event(EventType.CALL_ENDED)
        elif state == CallState.DIALING:
            self._set_status(GatewayStatus.DIALING, "Dialing")
        elif state == CallState.ERROR:
            self._set_status(GatewayStatus.ERROR, "Call error")
            self._send_event(EventType.CALL_ERROR)

    def _arm_dial_deadline(self) -> None:
        """Lift the tracker's IDLE mask if the dial never goes off-hook."""
        self._cancel_dial_deadline()
        self._dial_seq += 1
        loop = asyncio.get_running_loop()
        self._dial_deadline = loop.call_later(self._dial_timeout, self.post, self._on_dial_deadline, self._dial_seq)

    def _cancel_dial_deadline(self) -> None:
        if self._dial_deadline is not None:
            self._dial_deadline.cancel()
            self._dial_deadline = None

    def _on_dial_deadline(self, seq: int) -> None:
        if seq != self._dial_seq or self._dial_deadline is None:
            return
        self._dial_deadline = None
        if self._tracker.dial_pending:
            logger.warning("Dial not answered within %.1fs", self._dial_timeout)
            self._tracker.clear_pending_dial()

    def _on_call_added(self, handle: CallHandle) -> None:
        logger.info("Call added: %s (%s)", handle.remote_address, handle.direction.value)
        if handle.state == CallHandleState.RINGING:
            self._send_event(EventType.INCOMING_CALL, number=handle.remote_address)

    def _on_call_removed(self, handle: CallHandle, cause: DisconnectCause | None, duration_ms: int) -> None:
        cause = cause or DisconnectCause()
        logger.info("Call removed: cause=%s reason=%s", cause.label, cause.reason)
        self._tracker.clear_pending_dial()
        self._send_event(
            EventType.CALL_ENDED,
            disconnect_cause=cause.label,
            disconnect_cause_code=cause.code,
            disconnect_reason=cause.reason,
            call_duration_ms=duration_ms,
        )

    def _on_call_handle_state(self, handle: CallHandle, state: CallHandleState) -> None:
        self._send_event(
            EventType.CALL_STATE_CHANGED,
            call_state=state.value,
            call_duration_ms=self._bridge.call_duration_ms(),
        )

    # -- Command dispatch --------------------------------------------------

    async def handle_command(self, raw: str) -> None:
        """Parse one inbound frame and answer it. Unparseable frames are only logged."""
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Invalid JSON from server: %s", raw[:200])
            return
        if not isinstance(data, dict):
            logger.warning("Ignoring non-object command payload: %s", raw[:200])
            return

        command_id = data.get("id")
        command_id = "" if command_id is None else str(command_id)
        name = data.get("command")

        try:
            command = parse_command(data)
        except ValidationError as exc:
            logger.warning("Invalid %s command (id=%s): %s", name, command_id, exc)
            self._respond(command_id, ResultCode.INVALID_COMMAND, False, f"Invalid {name} command: {_summarize(exc)}")
            return
        except ValueError:
            logger.warning("Unknown command: %s", name)
            self._respond(command_id, ResultCode.UNKNOWN_COMMAND, False, f"Unknown command: {name}")
            return

        logger.info("Received: %s (id=%s)", command.command.value, command.id)
        await self._handlers[command.command](command)

    async def _cmd_make_call(self, command: MakeCallCommand) -> None:
        self._set_status(GatewayStatus.DIALING, f"Dialing {command.number}")
        if await asyncio.to_thread(self._tracker.dial, command.number):
            self._arm_dial_deadline()
            self._respond(command.id, ResultCode.DIALING, True)
        else:
            self._set_status(GatewayStatus.ERROR, "Dial failed")
            self._respond(command.id, ResultCode.DIAL_FAILED, False, "Failed to initiate call")

    async def _cmd_play_audio(self, command: PlayAudioCommand) -> None:
        if self.status not in PLAYABLE_STATUSES:
            self._respond(
                command.id,
                ResultCode.NOT_IN_CALL,
                False,
                f"No active call. Status: {self.status.value}, call state: {self._bridge.call_state_label()}",
            )
            return

        # Stop the old session first so a failed download cannot leave it playing
        await self._stop_audio()
        self._playback_id = command.id
        self._set_status(GatewayStatus.PLAYING_AUDIO, "Playing audio")
        self._playback_task = asyncio.create_task(self._play_media(command))

    async def _play_media(self, command: PlayAudioCommand) -> None:
        downloaded: str | None = None
        try:
            if command.path:
                source = command.path
            elif command.url:
                source = downloaded = await self._downloader.fetch(command.url)
            else:
                source = str(self._default_audio_path)
        except MediaDownloadError as exc:
            logger.error("Download failed: %s", exc)
            self.post(self._on_playback_aborted, command.id, ResultCode.DOWNLOAD_FAILED, "Failed to download audio")
            return
        except asyncio.CancelledError:
            self._respond(command.id, ResultCode.AUDIO_FAILED, False, "Superseded before playback started")
            raise

        def on_complete(success: bool) -> None:
            self.post(self._on_playback_complete, command.id, success, downloaded)

        try:
            started = await asyncio.shield(self._injector.play(source, on_complete))
        except Exception as exc:
            logger.error("Audio injection failed to start: %s", exc, exc_info=True)
            self.post(self._on_playback_aborted, command.id, ResultCode.AUDIO_FAILED, "Playback failed", downloaded)
            return
        if started:
            self._respond(command.id, ResultCode.PLAYING, True)

    def _on_playback_aborted(
        self, command_id: str, result: ResultCode, message: str, downloaded: str | None = None
    ) -> None:
        self._discard_download(downloaded)
        self._respond(command_id, result, False, message)
        if command_id == self._playback_id:
            self._playback_id = None
            if self.status == GatewayStatus.PLAYING_AUDIO:
                self._set_status(GatewayStatus.IN_CALL, "In call")

    def _on_playback_complete(self, command_id: str, success: bool, downloaded: str | None = None) -> None:
        self._discard_download(downloaded)
        if success:
            self._respond(command_id, ResultCode.AUDIO_COMPLETE, True)
        else:
            self._respond(command_id, ResultCode.AUDIO_FAILED, False, "Playback failed")
        if command_id == self._playback_id:
            self._playback_id = None
            if self.status == GatewayStatus.PLAYING_AUDIO:
                self._set_status(GatewayStatus.IN_CALL, "In call")

    async def _cmd_stop_audio(self, command: Command) -> None:
        await self._stop_audio()
        if self.status == GatewayStatus.PLAYING_AUDIO:
            self._set_status(GatewayStatus.IN_CALL, "In call")
        self._respond(command.id, ResultCode.AUDIO_STOPPED, True)

    async def _stop_audio(self) -> None:
        await self._cancel_task(self._playback_task)
        self._playback_task = None
        await self._injector.stop()

    def _discard_download(self, path: str | None) -> None:
        if path is not None:
            self._downloader.discard(path)

    async def _cmd_hangup(self, command: Command) -> None:
        await self._stop_audio()
        duration_ms = self._bridge.call_duration_ms()
        if self._bridge.hangup():
            logger.info("Hangup: disconnecting call (duration=%dms)", duration_ms)
            self._respond_call(command.id, ResultCode.HUNGUP, True, duration_ms=duration_ms)
        else:
            logger.info("Hangup requested with no call object, audio stopped")
            self._respond_call(command.id, ResultCode.HANGUP_NO_CALL, False, "No active call to hang up")

    async def _cmd_hold(self, command: Command) -> None:
        if self._bridge.hold():
            self._respond_call(command.id, ResultCode.HELD, True, duration_ms=self._bridge.call_duration_ms())
        else:
            self._respond_call(command.id, ResultCode.HOLD_FAILED, False, f"Cannot hold. Call state: {self._bridge.call_state_label()}")

    async def _cmd_unhold(self, command: Command) -> None:
        if self._bridge.unhold():
            self._respond_call(command.id, ResultCode.UNHELD, True, duration_ms=self._bridge.call_duration_ms())
        else:
            self._respond_call(
                command.id, ResultCode.UNHOLD_FAILED, False, f"Cannot unhold. Call state: {self._bridge.call_state_label()}"
            )

    async def _cmd_answer(self, command: Command) -> None:
        if self._bridge.answer():
            self._respond_call(command.id, ResultCode.ANSWERED, True)
        else:
            self._respond_call(
                command.id,
                ResultCode.ANSWER_FAILED,
                False,
                f"No ringing call to answer. Call state: {self._bridge.call_state_label()}",
            )

    async def _cmd_reject(self, command: Command) -> None:
        if self._bridge.reject():
            self._respond_call(command.id, ResultCode.REJECTED, True)
        else:
            self._respond_call(
                command.id,
                ResultCode.REJECT_FAILED,
                False,
                f"No ringing call to reject. Call state: {self._bridge.call_state_label()}",
            )

    async def _cmd_send_dtmf(self, command: SendDtmfCommand) -> None:
        digits = command.digits
        if not digits:
            self._respond_call(command.id, ResultCode.DTMF_FAILED, False, "No digits provided")
            return

        sent = self._bridge.send_dtmf(digits) if len(digits) == 1 else self._bridge.send_dtmf_sequence(digits)
        if sent:
            logger.info("Sending DTMF: %s", digits)
            self._respond_call(command.id, ResultCode.DTMF_SENT, True, duration_ms=self._bridge.call_duration_ms())
        else:
            self._respond_call(
                command.id, ResultCode.DTMF_FAILED, False, f"Cannot send DTMF. Call state: {self._bridge.call_state_label()}"
            )

    async def _cmd_send_sms(self, command: SendSmsCommand) -> None:
        if self._sms_sender is None:
            self._respond(command.id, ResultCode.SMS_FAILED, False, "SMS sender unavailable")
            return
        try:
            await asyncio.to_thread(self._sms_sender.send_text, command.number, command.message)
        except TelephonyError as exc:
            logger.error("SMS to %s failed: %s", command.number, exc)
            self._respond(command.id, ResultCode.SMS_FAILED, False, str(exc))
            return
        logger.info("SMS sent to %s: %s", command.number, command.message[:50])
        self._respond(command.id, ResultCode.SMS_SENT, True)

    async def _cmd_ping(self, command: Command) -> None:
        self._respond(command.id, ResultCode.PONG, True)

    async def _cmd_get_audio_config(self, command: Command) -> None:
        config = await self._config_store.resolve()
        self._respond(command.id, ResultCode.AUDIO_CONFIG, True, config=config.to_payload())

    async def _cmd_set_audio_config(self, command: SetAudioConfigCommand) -> None:
        config = await asyncio.to_thread(
            self._config_store.set_manual_override, command.card, command.device_tx, command.device_rx
        )
        self._respond(command.id, ResultCode.AUDIO_CONFIG_SET, True, config=config.to_payload())

    async def _cmd_clear_audio_config(self, command: Command) -> None:
        await asyncio.to_thread(self._config_store.clear)
        self._respond(command.id, ResultCode.AUDIO_CONFIG_CLEARED, True)

    async def _cmd_probe_audio(self, command: Command) -> None:
        config = await self._config_store.reprobe()
        self._respond(command.id, ResultCode.AUDIO_PROBED, True, config=config.to_payload())

    # -- Outbound ----------------------------------------------------------

    def _respond(self, command_id: str, result: ResultCode, success: bool, message: str | None = None, **extra: Any) -> None:
        self._send(ResponseMessage(id=command_id, result=result, success=success, message=message, **extra))

    def _respond_call(
        self,
        command_id: str,
        result: ResultCode,
        success: bool,
        message: str | None = None,
        duration_ms: int | None = None,
    ) -> None:
        self._send(
            ResponseMessage(
                id=command_id,
                result=result,
                success=success,
                message=message,
                call_state=self._bridge.call_state_label(),
                call_duration_ms=duration_ms,
            )
        )

    def _send_event(self, event: EventType, **fields: Any) -> None:
        fields.setdefault("call_state", self._bridge.call_state_label())
        self._send(EventMessage(event=event, status=self.status, **fields))

    def _send(self, message: WireMessage) -> None:
        channel = self._channel
        if channel is None:
            logger.debug("No channel, dropping %s", message.to_wire())
            return
        channel.send(message.to_wire())

    # -- Helpers -----------------------------------------------------------

    def _set_status(self, status: GatewayStatus, message: str) -> None:
        with self._status_lock:
            self._status = status
        logger.info("[%s] %s", status.value, message)

    @staticmethod
    async def _cancel_task(task: asyncio.Task | None) -> None:
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


def _summarize(exc: ValidationError) -> str:
    return "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors())
