"""Custom exceptions for transcription services."""


class TranscriptionError(Exception):
    """Raised when caller audio cannot be turned into usable text.

    Covers provider failures, timeouts, and transcripts that came back empty.
    """

    pass
