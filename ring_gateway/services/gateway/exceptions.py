"""Gateway control-plane exceptions."""


class GatewayError(Exception):
    """Base exception for command channel and media operations."""


class ChannelError(GatewayError):
    """Raised when the command channel cannot be opened or used."""

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        super().__init__(f"[channel:{url}] {message}")


class MediaDownloadError(GatewayError):
    """Raised when a PLAY_AUDIO source URL cannot be fetched."""

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        super().__init__(f"[download:{url}] {message}")
