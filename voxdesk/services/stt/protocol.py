"""Transcription service protocol and data types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class TranscriptionResult:
    """Text recognized from one caller utterance."""

    text: str
    confidence: float = 0.0
    language: str | None = None
    latency_ms: float | None = None

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()


class Transcriber(Protocol):
    """Protocol for transcription service implementations."""

    async def transcribe(
        self,
        audio: bytes,
        *,
        mimetype: str = "audio/wav",
    ) -> TranscriptionResult:
        """Transcribe one complete caller utterance.

        Raises:
            TranscriptionError: When the provider fails
        """
        ...

    async def close(self) -> None:
        """Close any open connections and clean up resources."""
        ...
