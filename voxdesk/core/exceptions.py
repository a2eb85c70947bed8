"""Exceptions raised by the call orchestration core."""


class CallCoreError(Exception):
    """Base exception for call orchestration errors."""

    pass


class InvalidConversationConfigError(CallCoreError, ValueError):
    """Raised when a call cannot be initialized from its configuration."""

    pass


class ContextClosedError(CallCoreError):
    """Raised when a turn is appended to a context that was already cleared."""

    def __init__(self, call_id: str) -> None:
        super().__init__(f"Conversation context for call {call_id} is closed")
        self.call_id = call_id


class CallCapacityError(CallCoreError):
    """Raised when the process is already handling its maximum number of calls."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"Maximum concurrent calls reached ({limit})")
        self.limit = limit
