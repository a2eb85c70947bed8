"""TTS (Text-to-Speech) service protocol and data types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class SynthesizedAudio:
    """Complete audio for one spoken response.

    ``audio_format`` names the encoding as the provider produced it
    (for example ``ulaw_8000`` or ``mp3``); it is passed to the media
    gateway untouched.
    """

    audio_bytes: bytes
    engine: str
    voice: str
    audio_format: str
    input_chars: int = 0
    latency_ms: float | None = None


class SpeechSynthesizer(Protocol):
    """Protocol for TTS (Text-to-Speech) service implementations."""

    name: str

    @property
    def is_available(self) -> bool:
        """Whether the engine is configured well enough to be tried."""
        ...

    async def synthesize(
        self,
        text: str,
        *,
        voice: str | None = None,
    ) -> SynthesizedAudio:
        """Synthesize text to a complete audio buffer.

        Raises:
            SynthesisError: When the provider fails or returns no audio
        """
        ...

    async def close(self) -> None:
        """Close any open connections and clean up resources."""
        ...
