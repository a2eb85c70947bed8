"""Custom exceptions for speech synthesis services."""


class SynthesisError(Exception):
    """Base exception for speech synthesis errors."""

    pass


class SynthesisConnectionError(SynthesisError):
    """Raised when unable to reach or authenticate with the synthesis provider."""

    pass


class EngineUnavailableError(SynthesisError):
    """Raised when no configured synthesis engine can serve a request."""

    def __init__(self, requested: str) -> None:
        super().__init__(f"No synthesis engine available (requested: {requested})")
        self.requested = requested
