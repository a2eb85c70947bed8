"""Custom exceptions for telephony services."""


class TelephonyError(Exception):
    """Base exception for telephony provider errors."""

    pass


class TransferFailedError(TelephonyError):
    """Raised when a call could not be handed to its transfer destination."""

    def __init__(self, call_id: str, reason: str) -> None:
        super().__init__(f"Transfer failed for call {call_id}: {reason}")
        self.call_id = call_id
        self.reason = reason


class HangupFailedError(TelephonyError):
    """Raised when the provider refuses to terminate a call."""

    pass
