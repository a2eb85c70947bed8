"""Conversation context management."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from voxdesk.core.exceptions import ContextClosedError, InvalidConversationConfigError
from voxdesk.core.models import ConversationConfig, Speaker, Turn
from voxdesk.logging_config import get_logger

logger: Any = get_logger(__name__)


class ConversationContext:
    """Ordered turn history and configuration for a single call.

    Owned by exactly one call session. History is unbounded here; the turn
    processor decides how much of it fits in a completion request.
    """

    def __init__(self, call_id: str, config: ConversationConfig) -> None:
        if not call_id or not call_id.strip():
            raise InvalidConversationConfigError("call_id is required")
        config.validate()

        self.call_id = call_id
        self.config = config
        self._turns: list[Turn] = []
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    def append_turn(self, speaker: Speaker, content: str) -> Turn:
        """Append a turn stamped with the current time.

        Timestamps never go backwards even if the wall clock does.
        """
        if self._closed:
            raise ContextClosedError(self.call_id)

        timestamp = datetime.now(UTC)
        if self._turns and timestamp < self._turns[-1].timestamp:
            timestamp = self._turns[-1].timestamp

        turn = Turn(speaker=speaker, content=content, timestamp=timestamp)
        self._turns.append(turn)
        return turn

    def snapshot(self) -> tuple[Turn, ...]:
        """Immutable copy of the history, oldest first."""
        return tuple(self._turns)

    def get_transcript(self) -> str:
        """Get full conversation transcript for logging."""
        lines = []
        for turn in self._turns:
            speaker = "Caller" if turn.speaker == Speaker.CALLER else "Assistant"
            lines.append(f"[{turn.timestamp.isoformat()}] {speaker}: {turn.content}")
        return "\n".join(lines)

    def clear(self) -> None:
        """Release conversation history. Safe to call more than once."""
        if self._closed:
            return
        self._turns = []
        self._closed = True
        logger.debug(f"Context cleared for call {self.call_id}")

    def __len__(self) -> int:
        return len(self._turns)
