"""Deepgram transcription service using the pre-recorded API."""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Any

from voxdesk.config import Settings, get_settings
from voxdesk.logging_config import get_logger
from voxdesk.services.stt.exceptions import TranscriptionError
from voxdesk.services.stt.protocol import TranscriptionResult

if TYPE_CHECKING:
    from deepgram import DeepgramClient

logger: Any = get_logger(__name__)


class DeepgramTranscriber:
    """Deepgram transcriber for complete caller utterances.

    The media gateway hands over one utterance at a time, so the
    pre-recorded endpoint is enough; no live socket is kept open.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._model = self._settings.stt_model
        self._language = self._settings.stt_language
        self._client: DeepgramClient | None = None

    @property
    def client(self) -> DeepgramClient:
        """Lazy initialization of Deepgram client."""
        if self._client is None:
            from deepgram import DeepgramClient

            self._client = DeepgramClient(
                api_key=self._settings.deepgram_api_key.get_secret_value(),
            )
        return self._client

    async def transcribe(
        self,
        audio: bytes,
        *,
        mimetype: str = "audio/wav",
    ) -> TranscriptionResult:
        """Transcribe one complete caller utterance.

        Args:
            audio: Complete utterance audio bytes
            mimetype: Container/encoding of the audio

        Returns:
            TranscriptionResult, possibly with empty text

        Raises:
            TranscriptionError: When Deepgram fails
        """
        from deepgram import PrerecordedOptions

        options = PrerecordedOptions(
            model=self._model,
            language=self._language,
            smart_format=True,
            punctuate=True,
        )

        start_time = time.perf_counter()
        try:
            response = await asyncio.to_thread(
                self.client.listen.prerecorded.v("1").transcribe_file,
                {"buffer": audio, "mimetype": mimetype},
                options,
            )
        except Exception as e:
            logger.error(f"Deepgram transcription failed: {e}")
            raise TranscriptionError(f"Deepgram transcription failed: {e}") from e
        latency_ms = (time.perf_counter() - start_time) * 1000

        results = response.results
        channels = results.channels if results else []
        if not channels or not channels[0].alternatives:
            return TranscriptionResult(text="", language=self._language, latency_ms=latency_ms)

        best = channels[0].alternatives[0]
        return TranscriptionResult(
            text=(best.transcript or "").strip(),
            confidence=best.confidence or 0.0,
            language=self._language,
            latency_ms=latency_ms,
        )

    async def close(self) -> None:
        """Close the Deepgram client."""
        self._client = None

    async def health_check(self) -> bool:
        """Check if Deepgram API is accessible."""
        try:
            _ = self.client
            return True
        except Exception as e:
            logger.error(f"Deepgram health check failed: {e}")
            return False
