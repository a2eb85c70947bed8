"""Turn processing: caller input in, reply text and next action out."""

from __future__ import annotations

import asyncio
import time
from typing import Any

from voxdesk.core.classification import KEYWORD_TRANSFER_REASON, classify_action
from voxdesk.core.context import ConversationContext
from voxdesk.core.exceptions import ContextClosedError
from voxdesk.core.models import (
    ActionDecision,
    DecisionSource,
    NextAction,
    SchedulePayload,
    Speaker,
    TransferPayload,
    Turn,
)
from voxdesk.logging_config import get_logger, sanitize_for_log
from voxdesk.observability.metrics import COMPLETION_LATENCY, TRANSCRIPTION_LATENCY
from voxdesk.prompts.receptionist import (
    SCHEDULE_APPOINTMENT,
    SCHEDULE_DETAILS_PROMPT,
    SCHEDULE_FALLBACK_TEXT,
    TOOLS,
    TRANSFER_CALL,
    TRANSFER_FALLBACK_TEXT,
    UNKNOWN_ACTION_TEXT,
    build_system_prompt,
)
from voxdesk.services.llm.exceptions import CompletionTimeoutError
from voxdesk.services.llm.protocol import (
    CompletionEngine,
    CompletionReply,
    FunctionCallReply,
    Message,
    Role,
    TextReply,
)
from voxdesk.services.llm.token_counter import MESSAGE_OVERHEAD_TOKENS, estimate_tokens
from voxdesk.services.stt.exceptions import TranscriptionError
from voxdesk.services.stt.protocol import Transcriber

logger: Any = get_logger(__name__)


class TurnProcessor:
    """Turns one caller utterance into an ActionDecision.

    Stateless across calls: everything call-specific lives in the
    ConversationContext passed to ``process``. A single instance is shared
    by every session in the process.
    """

    def __init__(
        self,
        completion_engine: CompletionEngine,
        transcriber: Transcriber,
        *,
        transcription_timeout: float = 5.0,
        completion_timeout: float = 8.0,
        max_history_tokens: int = 1500,
        max_response_tokens: int = 500,
    ) -> None:
        self._completion = completion_engine
        self._transcriber = transcriber
        self._transcription_timeout = transcription_timeout
        self._completion_timeout = completion_timeout
        self._max_history_tokens = max_history_tokens
        self._max_response_tokens = max_response_tokens

    async def process(
        self,
        raw_input: str | bytes,
        context: ConversationContext,
        *,
        mimetype: str = "audio/wav",
    ) -> ActionDecision:
        """Run one turn.

        Args:
            raw_input: Caller text, or a complete audio utterance
            context: The call's conversation context
            mimetype: Encoding of ``raw_input`` when it is audio

        Returns:
            ActionDecision with exactly one next action

        Raises:
            TranscriptionError: Nothing usable was heard
            CompletionEngineError: The engine failed or timed out
            ContextClosedError: The call already ended
        """
        if context.is_closed:
            raise ContextClosedError(context.call_id)

        caller_text = await self._normalize_input(raw_input, mimetype)
        messages = self._build_messages(context, caller_text)
        reply = await self._complete(messages, context)
        decision = self._interpret(reply, caller_text)

        context.append_turn(Speaker.CALLER, caller_text)
        context.append_turn(Speaker.ASSISTANT, decision.response_text)

        logger.info(
            f"Call {context.call_id} turn decided: {decision.next_action.value} "
            f"({decision.source.value})"
        )
        return decision

    async def _normalize_input(self, raw_input: str | bytes, mimetype: str) -> str:
        if isinstance(raw_input, str):
            text = raw_input.strip()
            if not text:
                raise TranscriptionError("Caller input is empty")
            return text

        if not raw_input:
            raise TranscriptionError("Caller audio is empty")

        start = time.perf_counter()
        try:
            result = await asyncio.wait_for(
                self._transcriber.transcribe(raw_input, mimetype=mimetype),
                timeout=self._transcription_timeout,
            )
        except TimeoutError as e:
            raise TranscriptionError(
                f"Transcription timed out after {self._transcription_timeout:.1f}s"
            ) from e
        TRANSCRIPTION_LATENCY.observe(time.perf_counter() - start)

        if result.is_empty:
            raise TranscriptionError("Transcript is empty")
        return result.text.strip()

    def _build_messages(self, context: ConversationContext, caller_text: str) -> list[Message]:
        """System framing, as much recent history as fits, then the new caller turn."""
        system = Message(role=Role.SYSTEM, content=build_system_prompt(context.config))
        current = Message(role=Role.USER, content=caller_text)

        history = self._trim_history(context.snapshot())
        return [system, *history, current]

    def _trim_history(self, turns: tuple[Turn, ...]) -> list[Message]:
        """Keep the newest turns that fit the history token budget."""
        kept: list[Message] = []
        used = 0
        for turn in reversed(turns):
            cost = estimate_tokens(turn.content) + MESSAGE_OVERHEAD_TOKENS
            if used + cost > self._max_history_tokens:
                break
            role = Role.USER if turn.speaker == Speaker.CALLER else Role.ASSISTANT
            kept.append(Message(role=role, content=turn.content))
            used += cost

        if len(kept) < len(turns):
            logger.debug(f"History trimmed to {len(kept)} of {len(turns)} turns")

        kept.reverse()
        return kept

    async def _complete(
        self, messages: list[Message], context: ConversationContext
    ) -> CompletionReply:
        start = time.perf_counter()
        try:
            reply = await asyncio.wait_for(
                self._completion.complete(
                    messages,
                    engine_id=context.config.completion_engine_id,
                    temperature=context.config.temperature,
                    tools=TOOLS,
                    max_tokens=self._max_response_tokens,
                ),
                timeout=self._completion_timeout,
            )
        except TimeoutError as e:
            logger.warning(f"Completion timed out for call {context.call_id}")
            raise CompletionTimeoutError(self._completion_timeout) from e
        COMPLETION_LATENCY.observe(time.perf_counter() - start)
        return reply

    def _interpret(self, reply: CompletionReply, caller_text: str) -> ActionDecision:
        if isinstance(reply, FunctionCallReply):
            return self._interpret_function_call(reply)
        if isinstance(reply, TextReply):
            action = classify_action(reply.text, caller_text)
            payload = None
            if action == NextAction.TRANSFER:
                payload = TransferPayload(reason=KEYWORD_TRANSFER_REASON)
            return ActionDecision(
                response_text=reply.text or UNKNOWN_ACTION_TEXT,
                next_action=action,
                payload=payload,
                source=DecisionSource.KEYWORD,
            )
        raise TypeError(f"Unsupported completion reply: {type(reply).__name__}")

    def _interpret_function_call(self, reply: FunctionCallReply) -> ActionDecision:
        logger.debug(
            f"Function call {reply.function_name}: {sanitize_for_log(reply.arguments)}"
        )

        if reply.function_name == TRANSFER_CALL:
            return ActionDecision(
                response_text=reply.text or TRANSFER_FALLBACK_TEXT,
                next_action=NextAction.TRANSFER,
                payload=TransferPayload.from_arguments(reply.arguments),
                source=DecisionSource.FUNCTION_CALL,
            )

        if reply.function_name == SCHEDULE_APPOINTMENT:
            missing = SchedulePayload.missing_arguments(reply.arguments)
            if missing:
                logger.info(f"Appointment call missing {missing}, asking caller again")
                return ActionDecision(
                    response_text=reply.text or SCHEDULE_DETAILS_PROMPT,
                    next_action=NextAction.CONTINUE,
                    source=DecisionSource.FUNCTION_CALL,
                )
            return ActionDecision(
                response_text=reply.text or SCHEDULE_FALLBACK_TEXT,
                next_action=NextAction.SCHEDULE,
                payload=SchedulePayload.from_arguments(reply.arguments),
                source=DecisionSource.FUNCTION_CALL,
            )

        logger.warning(f"Engine called unknown function {reply.function_name}")
        return ActionDecision(
            response_text=reply.text or UNKNOWN_ACTION_TEXT,
            next_action=NextAction.CONTINUE,
            source=DecisionSource.FUNCTION_CALL,
        )
