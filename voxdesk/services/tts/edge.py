"""Edge TTS service implementation using Microsoft's unofficial API."""

from __future__ import annotations

import io
import time
from typing import Any

import edge_tts

from voxdesk.config import Settings, get_settings
from voxdesk.logging_config import get_logger
from voxdesk.services.tts.exceptions import SynthesisConnectionError, SynthesisError
from voxdesk.services.tts.protocol import SynthesizedAudio

logger: Any = get_logger(__name__)

# Voice selectors accepted in caller configuration
EDGE_VOICE_ALIASES = {
    "female": "en-US-AriaNeural",
    "male": "en-US-GuyNeural",
    "female-fr": "fr-FR-DeniseNeural",
    "male-fr": "fr-FR-HenriNeural",
}


class EdgeSynthesizer:
    """Edge TTS service using Microsoft's unofficial API.

    WARNING: This uses an unofficial API that may change without notice.
    Use only as a fallback when ElevenLabs is unavailable. Audio is
    returned as MP3 exactly as Edge streams it.
    """

    name = "edge"

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._voice = self._settings.edge_tts_voice

    @property
    def is_available(self) -> bool:
        return self._settings.edge_tts_enabled

    def resolve_voice(self, voice: str | None) -> str:
        if not voice:
            return self._voice
        return EDGE_VOICE_ALIASES.get(voice.lower(), voice)

    async def synthesize(
        self,
        text: str,
        *,
        voice: str | None = None,
    ) -> SynthesizedAudio:
        if not self._settings.edge_tts_enabled:
            raise SynthesisConnectionError(
                "Edge TTS is disabled. Set EDGE_TTS_ENABLED=true to enable."
            )

        voice_name = self.resolve_voice(voice)
        start_time = time.perf_counter()
        mp3_buffer = io.BytesIO()

        try:
            communicate = edge_tts.Communicate(text, voice_name)
            async for message in communicate.stream():
                if message["type"] == "audio":
                    mp3_buffer.write(message["data"])
        except Exception as e:
            logger.error(f"EdgeTTS synthesis error: {e}")
            raise SynthesisConnectionError(f"Edge TTS connection failed: {e}") from e

        audio = mp3_buffer.getvalue()
        if not audio:
            raise SynthesisError("No audio received from Edge TTS")

        return SynthesizedAudio(
            audio_bytes=audio,
            engine=self.name,
            voice=voice_name,
            audio_format="mp3",
            input_chars=len(text),
            latency_ms=(time.perf_counter() - start_time) * 1000,
        )

    async def close(self) -> None:
        pass
