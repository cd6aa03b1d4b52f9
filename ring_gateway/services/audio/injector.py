"""Audio injection into a live call via a privileged tinyplay process.

The resolved DeviceConfig names the ALSA card/device wired to the modem
uplink; playing a WAV file there puts it on the call. One playback runs
at a time: play() always stops the previous session (and waits for its
worker) before starting the next.

Outcomes are delivered through the completion callback, exactly once per
accepted or rejected play() call:
    - helper binary missing, source file missing, no TX device → False
    - su/tinyplay cannot be launched (lost root) → False
    - process exits non-zero → False
    - process stopped by stop() or a newer play() → False
    - process exits 0 → True
"""

import asyncio
import logging
import shlex
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from ring_gateway.services.audio.binaries import HelperBinaryResolver
from ring_gateway.services.audio.device_config import DeviceConfigStore
from ring_gateway.services.audio.exceptions import RootShellError
from ring_gateway.services.audio.root_shell import RootShell

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[bool], None]

TINYPLAY = "tinyplay"


def _notify(callback: CompletionCallback | None, success: bool) -> None:
    if callback is None:
        return
    try:
        callback(success)
    except Exception:
        logger.exception("Playback completion callback raised")


@dataclass
class InjectionSession:
    """One playback subprocess and its pending completion callback."""

    source_path: str
    command: str
    on_complete: CompletionCallback | None = None
    process: asyncio.subprocess.Process | None = None
    task: asyncio.Task | None = None
    cancelled: bool = False
    _completed: bool = field(default=False, repr=False)

    @property
    def is_running(self) -> bool:
        return self.process is not None and self.process.returncode is None

    def complete(self, success: bool) -> None:
        """Fire the completion callback; later calls are no-ops."""
        if self._completed:
            return
        self._completed = True
        _notify(self.on_complete, success)


class AudioInjector:
    """Owns the single tinyplay playback session.

    Usage::

        injector = AudioInjector(shell, config_store, HelperBinaryResolver("bin"))
        accepted = await injector.play("/data/local/tmp/prompt.wav", on_done)
        ...
        await injector.stop()
    """

    def __init__(
        self,
        shell: RootShell,
        config_store: DeviceConfigStore,
        binaries: HelperBinaryResolver,
        binary_name: str = TINYPLAY,
        stop_timeout: float = 2.0,
    ) -> None:
        self._shell = shell
        self._config_store = config_store
        self._binaries = binaries
        self._binary_name = binary_name
        self._stop_timeout = stop_timeout
        self._session: InjectionSession | None = None
        self._lock = asyncio.Lock()

    @property
    def is_playing(self) -> bool:
        """True while a playback process is held and has not exited."""
        session = self._session
        return session is not None and session.is_running

    @property
    def session(self) -> InjectionSession | None:
        return self._session

    async def play(self, source_path: str, on_complete: CompletionCallback | None = None) -> bool:
        """Start playing ``source_path`` into the voice uplink.

        Returns True if a playback worker was started. Failures before
        launch are reported through ``on_complete(False)`` and a False
        return; nothing is raised.
        """
        async with self._lock:
            await self._stop_locked()

            binary = self._binaries.resolve(self._binary_name)
            if binary is None:
                logger.error("%s binary not available", self._binary_name)
                _notify(on_complete, False)
                return False

            if not Path(source_path).is_file():
                logger.error("Audio file not found: %s", source_path)
                _notify(on_complete, False)
                return False

            config = await self._config_store.resolve()
            if not config.has_tx:
                logger.error("No TX device configured; run a probe or set the mapping manually")
                _notify(on_complete, False)
                return False

            command = f"{shlex.quote(binary)} {shlex.quote(source_path)} -D {config.card} -d {config.device_tx}"
            logger.info(
                "Config: chipset=%s card=%d device=%d (probed=%s, override=%s)",
                config.chipset.value,
                config.card,
                config.device_tx,
                config.probed,
                config.manual_override,
            )

            session = InjectionSession(source_path=source_path, command=command, on_complete=on_complete)
            self._session = session
            session.task = asyncio.create_task(self._run(session), name="audio-injection")
            return True

    async def stop(self) -> None:
        """Terminate any live playback. Safe to call when idle."""
        async with self._lock:
            await self._stop_locked()

    async def _stop_locked(self) -> None:
        session = self._session
        if session is None:
            return

        session.cancelled = True
        process = session.process
        if process is not None and process.returncode is None:
            await self._terminate(process)
            logger.info("Stopped playback of %s", session.source_path)

        task = session.task
        if task is not None and not task.done() and task is not asyncio.current_task():
            try:
                # Grandchildren of su can hold the pipes open after su exits
                await asyncio.wait_for(asyncio.shield(task), timeout=self._stop_timeout)
            except asyncio.TimeoutError:
                logger.warning("Playback worker still draining output, cancelling it")
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        if self._session is session:
            self._session = None
        session.complete(False)

    async def _run(self, session: InjectionSession) -> None:
        """Worker: launch tinyplay, wait for exit, report the outcome."""
        logger.info("Executing: su -c '%s'", session.command)
        try:
            process = await self._shell.spawn(session.command)
        except RootShellError as exc:
            logger.error("tinyplay failed: %s", exc)
            self._finish(session, False)
            return

        session.process = process
        if session.cancelled:
            # stop() arrived while su was starting
            await self._terminate(process)

        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
            self._finish(session, False)
            raise

        out_text = stdout.decode(errors="replace").strip()
        err_text = stderr.decode(errors="replace").strip()
        if out_text:
            logger.info("tinyplay: %s", out_text)
        for line in err_text.splitlines():
            logger.warning("tinyplay stderr: %s", line)

        exit_code = process.returncode
        if session.cancelled:
            success = False
        elif exit_code == 0:
            logger.info("Playback completed successfully")
            success = True
        else:
            logger.error("tinyplay exited with code %s", exit_code)
            success = False
        self._finish(session, success)

    def _finish(self, session: InjectionSession, success: bool) -> None:
        if self._session is session:
            self._session = None
        session.complete(success)

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        """SIGTERM, then SIGKILL if the process outlives the grace period."""
        try:
            process.terminate()
        except ProcessLookupError:
            return

        try:
            await asyncio.wait_for(process.wait(), timeout=self._stop_timeout)
            return
        except asyncio.TimeoutError:
            logger.warning("tinyplay (pid %s) did not exit after terminate, killing", process.pid)

        try:
            process.kill()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), timeout=1.0)
        except asyncio.TimeoutError:
            logger.error("tinyplay (pid %s) hung after kill", process.pid)
