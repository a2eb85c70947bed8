"""Synthesis engine selection with availability fallback."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from voxdesk.logging_config import get_logger
from voxdesk.services.tts.exceptions import EngineUnavailableError
from voxdesk.services.tts.protocol import SpeechSynthesizer, SynthesizedAudio

logger: Any = get_logger(__name__)


class SynthesisRouter:
    """Dispatch synthesis to the engine a caller asked for.

    The requested engine is used when it is configured; otherwise the first
    available engine in priority order takes over. Provider errors are not
    retried on another engine within the same request.
    """

    def __init__(self, engines: Sequence[SpeechSynthesizer]) -> None:
        self._engines = list(engines)

    @property
    def available_engines(self) -> list[str]:
        return [engine.name for engine in self._engines if engine.is_available]

    def select(self, engine_id: str | None) -> SpeechSynthesizer:
        """Pick the engine for a request.

        Raises:
            EngineUnavailableError: If nothing is configured
        """
        for engine in self._engines:
            if engine.name == engine_id and engine.is_available:
                return engine

        for engine in self._engines:
            if engine.is_available:
                if engine_id:
                    logger.info(f"Synthesis engine {engine_id} unavailable, using {engine.name}")
                return engine

        raise EngineUnavailableError(engine_id or "default")

    async def synthesize(
        self,
        text: str,
        *,
        engine_id: str | None = None,
        voice: str | None = None,
    ) -> SynthesizedAudio:
        engine = self.select(engine_id)
        # Voice selectors are engine specific; drop them when falling back
        engine_voice = voice if engine.name == engine_id else None
        return await engine.synthesize(text, voice=engine_voice)

    async def close(self) -> None:
        for engine in self._engines:
            await engine.close()
