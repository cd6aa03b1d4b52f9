"""Process-wide logging setup for the gateway."""

import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Libraries that log every frame / request at INFO or DEBUG
_NOISY_LOGGERS = ("websockets", "websockets.client", "httpx", "httpcore")


def configure_logging(level: str = "INFO") -> None:
    """Install the root handler and quiet transport-level chatter."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
