"""Privileged command execution via ``su -c``.

Two kinds of privileged calls are made by the gateway: one-shot reads
(enumerating /proc/asound/pcm) and long-running playback processes. Root
may be missing or revoked at any time, so run() reports that as a
``None`` result and spawn() raises RootShellError; neither is fatal.
"""

import asyncio
import logging
from dataclasses import dataclass

from ring_gateway.services.audio.exceptions import RootShellError

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Captured output of a completed privileged command."""

    command: str
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class RootShell:
    """Runs shell commands through the ``su`` binary.

    Usage::

        shell = RootShell()
        result = await shell.run("cat /proc/asound/pcm")
        if result is not None and result.ok:
            ...
        process = await shell.spawn("tinyplay /data/x.wav -D 0 -d 8")
    """

    def __init__(self, su_binary: str = "su", timeout: float = 10.0) -> None:
        self._su_binary = su_binary
        self._timeout = timeout

    @property
    def su_binary(self) -> str:
        return self._su_binary

    async def spawn(self, command: str) -> asyncio.subprocess.Process:
        """Start ``su -c <command>`` with piped stdout/stderr.

        Raises:
            RootShellError: If the su binary is missing or cannot be executed.
        """
        try:
            return await asyncio.create_subprocess_exec(
                self._su_binary,
                "-c",
                command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise RootShellError(command, f"Failed to launch {self._su_binary}: {exc}") from exc

    async def run(self, command: str) -> CommandResult | None:
        """Run a command to completion.

        Returns None when the command cannot be launched or times out.
        A non-zero exit is returned as a CommandResult with ok == False.
        """
        try:
            process = await self.spawn(command)
        except RootShellError as exc:
            logger.warning("Root exec failed: %s", exc)
            return None

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("Root command timed out after %.1fs: %s", self._timeout, command)
            process.kill()
            await process.wait()
            return None

        result = CommandResult(
            command=command,
            exit_code=process.returncode if process.returncode is not None else -1,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )
        if not result.ok:
            logger.warning(
                "Root command failed (%d): %s stderr=%s",
                result.exit_code,
                command,
                result.stderr.strip()[:200],
            )
        return result
