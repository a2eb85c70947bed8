"""Call session loop: one instance per live call."""

from __future__ import annotations

import asyncio
import contextlib
import time
from datetime import UTC, datetime
from enum import Enum, auto
from typing import Any, Protocol

from voxdesk.core.context import ConversationContext
from voxdesk.core.dispatcher import ActionDispatcher, DispatchResult
from voxdesk.core.exceptions import ContextClosedError
from voxdesk.core.models import (
    ActionDecision,
    CallOutcome,
    ConversationConfig,
    DecisionSource,
    NextAction,
    Speaker,
    TransferPayload,
    Urgency,
)
from voxdesk.core.turn_processor import TurnProcessor
from voxdesk.db.protocol import CallSummary
from voxdesk.logging_config import get_logger
from voxdesk.observability.metrics import (
    SYNTHESIS_LATENCY,
    record_call_metrics,
    record_decision,
    record_escalation,
    record_turn_failure,
)
from voxdesk.prompts.receptionist import (
    COMPLETION_APOLOGY_TEXT,
    ESCALATION_HANGUP_TEXT,
    ESCALATION_TRANSFER_TEXT,
    TRANSCRIPTION_RETRY_TEXT,
    TRANSFER_FAILED_TEXT,
)
from voxdesk.services.llm.exceptions import CompletionEngineError
from voxdesk.services.stt.exceptions import TranscriptionError
from voxdesk.services.telephony.exceptions import TransferFailedError
from voxdesk.services.tts.exceptions import SynthesisError
from voxdesk.services.tts.router import SynthesisRouter

logger: Any = get_logger(__name__)

CALLER_HANGUP = "caller_hangup"


class SessionState(Enum):
    """Lifecycle of a call session."""

    CREATED = auto()  # Context built, greeting not yet spoken
    LISTENING = auto()  # Waiting for the next caller utterance
    PROCESSING = auto()  # A turn is in flight
    ENDED = auto()  # Call over, context released


class AudioSender(Protocol):
    """Protocol for sending audio back to caller."""

    async def send_audio(self, audio_bytes: bytes, *, audio_format: str) -> None:
        """Send audio bytes to caller."""
        ...

    async def clear_audio(self) -> None:
        """Clear any buffered audio."""
        ...


class CallSession:
    """Runs the turn loop for a single call.

    Turns are strictly sequential: a new utterance waits for the previous
    turn to finish. ``end`` may be called at any time and cancels whatever
    turn is in flight.
    """

    def __init__(
        self,
        call_id: str,
        config: ConversationConfig,
        *,
        processor: TurnProcessor,
        dispatcher: ActionDispatcher,
        synthesizer: SynthesisRouter,
        sender: AudioSender,
        max_consecutive_failures: int = 3,
        synthesis_timeout: float = 6.0,
        fallback_audio: bytes | None = None,
        fallback_audio_format: str = "ulaw_8000",
    ) -> None:
        self.call_id = call_id
        self.config = config
        self.context = ConversationContext(call_id, config)
        self.call_start = datetime.now(UTC)
        self.call_end: datetime | None = None

        self._processor = processor
        self._dispatcher = dispatcher
        self._synthesizer = synthesizer
        self._sender = sender
        self._max_failures = max_consecutive_failures
        self._synthesis_timeout = synthesis_timeout
        self._fallback_audio = fallback_audio
        self._fallback_audio_format = fallback_audio_format

        self.state = SessionState.CREATED
        self.outcome: CallOutcome | None = None
        self.end_reason: str | None = None
        self.turn_count = 0
        self.failed_turns = 0
        self._consecutive_failures = 0
        self._transcript = ""

        self._turn_lock = asyncio.Lock()
        self._turn_task: asyncio.Task[DispatchResult | None] | None = None
        self._end_requested = False

    @property
    def is_ended(self) -> bool:
        return self.state == SessionState.ENDED

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def transcript(self) -> str:
        return self._transcript

    @property
    def duration_seconds(self) -> float:
        end = self.call_end or datetime.now(UTC)
        return (end - self.call_start).total_seconds()

    async def start(self) -> None:
        """Greet the caller. Safe to call more than once."""
        if self.state != SessionState.CREATED:
            return

        self.state = SessionState.LISTENING
        welcome = self.config.welcome_message
        if welcome:
            self.context.append_turn(Speaker.ASSISTANT, welcome)
            self._transcript = self.context.get_transcript()
            await self._speak(welcome)

        logger.info(f"Call {self.call_id} session started")

    async def handle_utterance(
        self,
        raw_input: str | bytes,
        *,
        mimetype: str = "audio/wav",
    ) -> DispatchResult | None:
        """Process one caller utterance end to end.

        Returns None when the call is already over or ends while waiting.
        """
        if self.is_ended or self._end_requested:
            logger.debug(f"Call {self.call_id} ended, ignoring utterance")
            return None

        async with self._turn_lock:
            if self.is_ended or self._end_requested:
                return None

            self.state = SessionState.PROCESSING
            # Caller spoke over the previous reply
            try:
                await self._sender.clear_audio()
            except Exception as e:
                logger.warning(f"Call {self.call_id} failed to clear audio: {e}")

            self._turn_task = asyncio.create_task(self._run_turn(raw_input, mimetype))
            try:
                return await self._turn_task
            except asyncio.CancelledError:
                if self._end_requested:
                    return None
                raise
            finally:
                self._turn_task = None
                if not self.is_ended:
                    self.state = SessionState.LISTENING

    async def end(self, reason: str = CALLER_HANGUP) -> None:
        """End the call from outside the loop. Idempotent.

        Cancels the in-flight turn so no synthesis or dispatch outlives the
        call, then releases the context.
        """
        if self.is_ended or self._end_requested:
            return
        self._end_requested = True

        task = self._turn_task
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        if self.is_ended:
            return
        outcome = CallOutcome.completed if self.turn_count else CallOutcome.abandoned
        self._close(outcome, reason)

    def summary(self) -> CallSummary:
        """Call log entry for a finished session."""
        return CallSummary(
            call_id=self.call_id,
            account_id=self.config.account_id,
            call_start=self.call_start,
            call_end=self.call_end or datetime.now(UTC),
            outcome=self.outcome or CallOutcome.abandoned,
            end_reason=self.end_reason or CALLER_HANGUP,
            transcript=self._transcript,
            total_turns=self.turn_count,
            failed_turns=self.failed_turns,
        )

    async def _run_turn(self, raw_input: str | bytes, mimetype: str) -> DispatchResult | None:
        start = time.perf_counter()
        try:
            decision = await self._processor.process(raw_input, self.context, mimetype=mimetype)
        except TranscriptionError as e:
            return await self._handle_failure("transcription", TRANSCRIPTION_RETRY_TEXT, e)
        except CompletionEngineError as e:
            return await self._handle_failure("completion", COMPLETION_APOLOGY_TEXT, e)
        except ContextClosedError:
            logger.debug(f"Call {self.call_id} context closed mid-turn")
            return None
        except Exception as e:
            logger.exception(f"Call {self.call_id} unexpected turn error: {e}")
            return await self._handle_failure("unexpected", COMPLETION_APOLOGY_TEXT, e)

        self._consecutive_failures = 0
        self.turn_count += 1
        self._transcript = self.context.get_transcript()
        record_decision(
            decision.next_action.value,
            decision.source.value,
            time.perf_counter() - start,
        )

        await self._speak(decision.response_text)
        return await self._dispatch(decision)

    async def _dispatch(self, decision: ActionDecision) -> DispatchResult:
        try:
            result = await self._dispatcher.dispatch(decision, self.context)
        except TransferFailedError as e:
            logger.error(f"Call {self.call_id} transfer failed, hanging up: {e.reason}")
            await self._speak(TRANSFER_FAILED_TEXT)
            result = await self._dispatcher.hangup(self.context)
            self._close(CallOutcome.failed, "transfer_failed")
            return result

        if result.follow_up_text:
            await self._speak(result.follow_up_text)

        if result.ends_call:
            if result.action == NextAction.TRANSFER:
                outcome = CallOutcome.transferred
            elif decision.source == DecisionSource.ESCALATION:
                outcome = CallOutcome.failed
            else:
                outcome = CallOutcome.completed
            self._close(outcome, result.action.value)

        return result

    async def _handle_failure(self, kind: str, apology: str, error: Exception) -> DispatchResult:
        self._consecutive_failures += 1
        self.failed_turns += 1
        record_turn_failure(kind)
        logger.warning(
            f"Call {self.call_id} turn failed ({kind}, "
            f"{self._consecutive_failures}/{self._max_failures}): {error}"
        )

        if self._consecutive_failures >= self._max_failures:
            return await self._escalate()

        await self._speak(apology)
        return DispatchResult(action=NextAction.CONTINUE)

    async def _escalate(self) -> DispatchResult:
        """Hand the caller to a human, or hang up if nobody is reachable."""
        if self.config.transfer_destination:
            record_escalation(NextAction.TRANSFER.value)
            logger.warning(f"Call {self.call_id} escalating to transfer")
            decision = ActionDecision(
                response_text=ESCALATION_TRANSFER_TEXT,
                next_action=NextAction.TRANSFER,
                payload=TransferPayload(reason="repeated turn failures", urgency=Urgency.HIGH),
                source=DecisionSource.ESCALATION,
            )
        else:
            record_escalation(NextAction.HANGUP.value)
            logger.warning(f"Call {self.call_id} escalating to hangup")
            decision = ActionDecision(
                response_text=ESCALATION_HANGUP_TEXT,
                next_action=NextAction.HANGUP,
                source=DecisionSource.ESCALATION,
            )

        await self._speak(decision.response_text)
        return await self._dispatch(decision)

    async def _speak(self, text: str) -> None:
        """Synthesize and send ``text``; fall back to canned audio on failure."""
        if not text:
            return

        start = time.perf_counter()
        try:
            audio = await asyncio.wait_for(
                self._synthesizer.synthesize(
                    text,
                    engine_id=self.config.synthesis_engine_id,
                    voice=self.config.voice_selector,
                ),
                timeout=self._synthesis_timeout,
            )
            audio_bytes, audio_format = audio.audio_bytes, audio.audio_format
            SYNTHESIS_LATENCY.observe(time.perf_counter() - start)
        except (SynthesisError, TimeoutError) as e:
            logger.warning(f"Call {self.call_id} synthesis failed: {e!r}")
            if not self._fallback_audio:
                return
            audio_bytes, audio_format = self._fallback_audio, self._fallback_audio_format

        try:
            await self._sender.send_audio(audio_bytes, audio_format=audio_format)
        except Exception as e:
            logger.error(f"Call {self.call_id} failed to send audio: {e}")

    def _close(self, outcome: CallOutcome, reason: str) -> None:
        if self.is_ended:
            return
        self.state = SessionState.ENDED
        self.outcome = outcome
        self.end_reason = reason
        self.call_end = datetime.now(UTC)
        self.context.clear()

        record_call_metrics(outcome.value, self.duration_seconds)
        logger.info(
            f"Call {self.call_id} ended: outcome={outcome.value} reason={reason} "
            f"turns={self.turn_count} failed={self.failed_turns}"
        )
