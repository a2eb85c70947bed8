"""ElevenLabs TTS service implementation for high-naturalness speech."""

from __future__ import annotations

import asyncio
import io
import time
from typing import Any

from voxdesk.config import Settings, get_settings
from voxdesk.logging_config import get_logger
from voxdesk.services.tts.exceptions import SynthesisConnectionError, SynthesisError
from voxdesk.services.tts.protocol import SynthesizedAudio

logger: Any = get_logger(__name__)


class ElevenLabsSynthesizer:
    """ElevenLabs TTS returning telephony-ready audio.

    Output format defaults to 8kHz mu-law so no decoding or resampling is
    needed before the audio goes back to the caller.
    """

    name = "elevenlabs"

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._voice_id = self._settings.elevenlabs_voice_id
        self._model_id = self._settings.elevenlabs_model_id
        self._output_format = self._settings.elevenlabs_output_format
        self._client = None

    @property
    def is_available(self) -> bool:
        return bool(self._settings.elevenlabs_api_key)

    def _get_client(self):
        if self._client is None:
            if not self._settings.elevenlabs_api_key:
                raise SynthesisConnectionError("ElevenLabs API key is not configured")
            from elevenlabs import ElevenLabs

            self._client = ElevenLabs(
                api_key=self._settings.elevenlabs_api_key.get_secret_value()
            )
        return self._client

    def _convert(self, text: str, voice_id: str) -> bytes:
        client = self._get_client()

        audio_chunks = client.text_to_speech.convert(
            text=text,
            voice_id=voice_id,
            model_id=self._model_id,
            output_format=self._output_format,
        )

        buffer = io.BytesIO()
        for chunk in audio_chunks:
            buffer.write(chunk)
        return buffer.getvalue()

    async def synthesize(
        self,
        text: str,
        *,
        voice: str | None = None,
    ) -> SynthesizedAudio:
        voice_id = voice or self._voice_id
        start_time = time.perf_counter()

        try:
            audio = await asyncio.to_thread(self._convert, text, voice_id)
        except SynthesisError:
            raise
        except Exception as e:
            logger.error(f"ElevenLabs synthesis error: {e}")
            raise SynthesisConnectionError(f"ElevenLabs connection failed: {e}") from e

        if not audio:
            raise SynthesisError("No audio received from ElevenLabs")

        return SynthesizedAudio(
            audio_bytes=audio,
            engine=self.name,
            voice=voice_id,
            audio_format=self._output_format,
            input_chars=len(text),
            latency_ms=(time.perf_counter() - start_time) * 1000,
        )

    async def close(self) -> None:
        self._client = None
