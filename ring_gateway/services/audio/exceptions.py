"""Audio routing and injection exceptions."""


class AudioError(Exception):
    """Base exception for audio device and injection operations."""


class RootShellError(AudioError):
    """Raised when a privileged command cannot be launched."""

    def __init__(self, command: str, message: str) -> None:
        self.command = command
        super().__init__(f"[su] {message}: {command}")
