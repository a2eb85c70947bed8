"""Session management surface used by the telephony layer.

One CallOrchestrator per process owns every live CallSession. Each call gets
its own utterance queue and worker task, so turns within a call run in
order while calls proceed independently of each other.
"""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from voxdesk.core.dispatcher import ActionDispatcher
from voxdesk.core.exceptions import CallCapacityError, InvalidConversationConfigError
from voxdesk.core.session import CALLER_HANGUP, AudioSender, CallSession
from voxdesk.core.turn_processor import TurnProcessor
from voxdesk.db.exceptions import PersistenceError
from voxdesk.db.protocol import CallerConfigLoader, CallLogStore
from voxdesk.logging_config import call_context, get_logger, mask_phone
from voxdesk.observability.metrics import ACTIVE_CALLS
from voxdesk.services.tts.router import SynthesisRouter

if TYPE_CHECKING:
    from voxdesk.config import Settings

logger: Any = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Utterance:
    """One complete caller utterance waiting to be processed."""

    raw_input: str | bytes
    mimetype: str = "audio/wav"


@dataclass
class CallEntry:
    """Entry in the call registry."""

    session: CallSession
    queue: asyncio.Queue[Utterance] = field(default_factory=asyncio.Queue)
    worker: asyncio.Task[None] | None = None
    greeted: asyncio.Event = field(default_factory=asyncio.Event)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class CallOrchestrator:
    """Registry of active calls plus the start/utterance/end operations."""

    def __init__(
        self,
        processor: TurnProcessor,
        dispatcher: ActionDispatcher,
        synthesizer: SynthesisRouter,
        config_loader: CallerConfigLoader,
        *,
        call_logs: CallLogStore | None = None,
        max_concurrent_calls: int = 10,
        max_consecutive_failures: int = 3,
        synthesis_timeout: float = 6.0,
        config_timeout: float = 3.0,
        fallback_audio: bytes | None = None,
        fallback_audio_format: str = "ulaw_8000",
    ) -> None:
        self._processor = processor
        self._dispatcher = dispatcher
        self._synthesizer = synthesizer
        self._config_loader = config_loader
        self._call_logs = call_logs
        self._max_calls = max_concurrent_calls
        self._max_failures = max_consecutive_failures
        self._synthesis_timeout = synthesis_timeout
        self._config_timeout = config_timeout
        self._fallback_audio = fallback_audio
        self._fallback_audio_format = fallback_audio_format

        self._calls: dict[str, CallEntry] = {}
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> CallOrchestrator:
        """Wire the production adapters."""
        from voxdesk.db.store import (
            DatabaseAppointmentStore,
            DatabaseCallLogStore,
            DatabaseConfigLoader,
        )
        from voxdesk.services.llm.groq import GroqCompletionEngine
        from voxdesk.services.stt.deepgram import DeepgramTranscriber
        from voxdesk.services.telephony.plivo import PlivoGateway
        from voxdesk.services.tts.edge import EdgeSynthesizer
        from voxdesk.services.tts.elevenlabs import ElevenLabsSynthesizer

        processor = TurnProcessor(
            GroqCompletionEngine(settings),
            DeepgramTranscriber(settings),
            transcription_timeout=settings.transcription_timeout,
            completion_timeout=settings.completion_timeout,
            max_history_tokens=settings.max_history_tokens,
            max_response_tokens=settings.completion_max_tokens,
        )
        dispatcher = ActionDispatcher(
            PlivoGateway(settings),
            DatabaseAppointmentStore(),
            telephony_timeout=settings.telephony_timeout,
            persistence_timeout=settings.persistence_timeout,
        )
        synthesizer = SynthesisRouter(
            [ElevenLabsSynthesizer(settings), EdgeSynthesizer(settings)]
        )

        fallback_audio, fallback_format = load_fallback_audio(settings.fallback_audio_path)

        return cls(
            processor,
            dispatcher,
            synthesizer,
            DatabaseConfigLoader(settings),
            call_logs=DatabaseCallLogStore(),
            max_concurrent_calls=settings.max_concurrent_calls,
            max_consecutive_failures=settings.max_consecutive_failures,
            synthesis_timeout=settings.synthesis_timeout,
            config_timeout=settings.persistence_timeout,
            fallback_audio=fallback_audio,
            fallback_audio_format=fallback_format,
        )

    @property
    def active_count(self) -> int:
        return len(self._calls)

    def get_session(self, call_id: str) -> CallSession | None:
        entry = self._calls.get(call_id)
        return entry.session if entry else None

    async def resolve_account(self, phone_number: str) -> str | None:
        """Account answering the dialled number, if any."""
        account_id = await self._config_loader.resolve_account_id(phone_number)
        logger.debug(f"Number {mask_phone(phone_number)} resolved to account {account_id}")
        return account_id

    async def start_session(
        self,
        call_id: str,
        caller_account_id: str | None,
        sender: AudioSender,
    ) -> CallSession:
        """Create the session for a newly connected call.

        Idempotent per call id: a second start returns the existing session.

        Raises:
            CallCapacityError: If the process is at its call limit
            InvalidConversationConfigError: If the account's config is unusable or slow to load
        """
        async with self._lock:
            entry = self._calls.get(call_id)
            if entry:
                return entry.session
            self._check_capacity(call_id)

        # Loaded outside the lock so a slow store cannot stall other calls
        try:
            config = await asyncio.wait_for(
                self._config_loader.load_caller_config(caller_account_id),
                timeout=self._config_timeout,
            )
        except TimeoutError as e:
            logger.error(f"Config load timed out for call {call_id}")
            raise InvalidConversationConfigError(
                f"Config load timed out for call {call_id}"
            ) from e

        async with self._lock:
            entry = self._calls.get(call_id)
            if entry:
                return entry.session
            self._check_capacity(call_id)

            session = CallSession(
                call_id,
                config,
                processor=self._processor,
                dispatcher=self._dispatcher,
                synthesizer=self._synthesizer,
                sender=sender,
                max_consecutive_failures=self._max_failures,
                synthesis_timeout=self._synthesis_timeout,
                fallback_audio=self._fallback_audio,
                fallback_audio_format=self._fallback_audio_format,
            )
            entry = CallEntry(session=session)
            entry.worker = asyncio.create_task(self._run_worker(call_id, entry))
            self._calls[call_id] = entry
            ACTIVE_CALLS.inc()

            logger.info(
                f"Created session for call {call_id} (account: {caller_account_id}, "
                f"active: {len(self._calls)}/{self._max_calls})"
            )
            return session

    def _check_capacity(self, call_id: str) -> None:
        if len(self._calls) >= self._max_calls:
            logger.warning(
                f"Max concurrent calls reached ({self._max_calls}), rejecting call {call_id}"
            )
            raise CallCapacityError(self._max_calls)

    async def handle_caller_utterance(
        self,
        call_id: str,
        raw_input: str | bytes,
        *,
        mimetype: str = "audio/wav",
    ) -> bool:
        """Queue an utterance for the call's worker and return immediately.

        Returns False when the call is unknown or already over.
        """
        entry = self._calls.get(call_id)
        if entry is None or entry.session.is_ended:
            logger.warning(f"Utterance for unknown or ended call {call_id}, ignoring")
            return False

        entry.queue.put_nowait(Utterance(raw_input=raw_input, mimetype=mimetype))
        return True

    async def end_session(self, call_id: str, reason: str = CALLER_HANGUP) -> None:
        """Tear down a call. Safe to call at any time, including mid-turn."""
        async with self._lock:
            entry = self._calls.pop(call_id, None)
        if entry is None:
            logger.debug(f"end_session for unknown call {call_id}")
            return

        await entry.session.end(reason)

        worker = entry.worker
        if worker and not worker.done() and worker is not asyncio.current_task():
            worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker

        await self._finalize(entry)

    async def close_all(self) -> None:
        """End every active call (application shutdown)."""
        for call_id in list(self._calls):
            await self.end_session(call_id, "shutdown")

    async def wait_idle(self, call_id: str) -> None:
        """Wait until the greeting and every queued utterance have been processed."""
        entry = self._calls.get(call_id)
        if entry is None:
            return
        await entry.greeted.wait()
        await entry.queue.join()

    async def _run_worker(self, call_id: str, entry: CallEntry) -> None:
        with call_context(call_id):
            await self._work(call_id, entry)

    async def _work(self, call_id: str, entry: CallEntry) -> None:
        session = entry.session
        try:
            try:
                await session.start()
            finally:
                entry.greeted.set()
            while not session.is_ended:
                utterance = await entry.queue.get()
                try:
                    await session.handle_utterance(
                        utterance.raw_input, mimetype=utterance.mimetype
                    )
                finally:
                    entry.queue.task_done()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Worker for call {call_id} crashed: {e}")
            await session.end("worker_error")

        # Session ended itself (transfer or hangup)
        async with self._lock:
            owned = self._calls.get(call_id) is entry
            if owned:
                del self._calls[call_id]
        if owned:
            self._drain(entry)
            await self._finalize(entry)

    def _drain(self, entry: CallEntry) -> None:
        """Drop utterances that arrived after the call ended."""
        while not entry.queue.empty():
            entry.queue.get_nowait()
            entry.queue.task_done()

    async def _finalize(self, entry: CallEntry) -> None:
        ACTIVE_CALLS.dec()
        self._drain(entry)
        if self._call_logs is None:
            return
        try:
            await self._call_logs.record_call(entry.session.summary())
        except PersistenceError as e:
            logger.error(f"Call log for {entry.session.call_id} not saved: {e}")


def load_fallback_audio(path: str | None) -> tuple[bytes | None, str]:
    """Read the pre-recorded apology clip, if one is configured."""
    if not path:
        return None, "ulaw_8000"
    audio_path = Path(path)
    if not audio_path.exists():
        logger.warning(f"Fallback audio {path} not found, synthesis failures will be silent")
        return None, "ulaw_8000"
    audio_format = "mp3" if audio_path.suffix.lower() == ".mp3" else "ulaw_8000"
    return audio_path.read_bytes(), audio_format
