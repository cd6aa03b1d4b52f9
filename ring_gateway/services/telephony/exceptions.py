"""Telephony service exceptions."""


class TelephonyError(Exception):
    """Base exception for telephony operations."""


class TelephonyPermissionError(TelephonyError):
    """Raised when the platform denies a call or phone-state permission."""

    def __init__(self, permission: str) -> None:
        self.permission = permission
        super().__init__(f"Permission not granted: {permission}")


class DialError(TelephonyError):
    """Raised when the platform refuses to place an outgoing call."""

    def __init__(self, number: str, message: str) -> None:
        self.number = number
        super().__init__(f"[dial:{number}] {message}")
