"""Custom exceptions for completion engine services."""


class CompletionEngineError(Exception):
    """Base exception for completion engine errors."""

    pass


class CompletionTimeoutError(CompletionEngineError):
    """Raised when the engine does not answer within the turn budget."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"Completion timed out after {timeout:.1f}s")
        self.timeout = timeout


class CompletionRateLimitError(CompletionEngineError):
    """Raised when the provider rejects the request for rate limiting."""

    def __init__(self, message: str, retry_after: float = 60.0) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class CompletionConnectionError(CompletionEngineError):
    """Raised when the provider API is unreachable."""

    pass


class CompletionAuthenticationError(CompletionEngineError):
    """Raised when the API key is rejected."""

    pass


class MalformedReplyError(CompletionEngineError):
    """Raised when the provider answers with something that cannot be interpreted."""

    pass
