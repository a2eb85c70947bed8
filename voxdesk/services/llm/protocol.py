"""Completion engine protocol and data types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol


class Role(str, Enum):
    """Message role in conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True, slots=True)
class Message:
    """A single message in a completion request."""

    role: Role
    content: str

    def to_api(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True, slots=True)
class TextReply:
    """Engine answered with plain text only."""

    text: str


@dataclass(frozen=True, slots=True)
class FunctionCallReply:
    """Engine asked to invoke one of the offered functions.

    ``text`` is whatever content accompanied the call, often empty.
    """

    function_name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    text: str = ""


CompletionReply = TextReply | FunctionCallReply


class CompletionEngine(Protocol):
    """Protocol for completion engine implementations."""

    async def complete(
        self,
        messages: list[Message],
        *,
        engine_id: str,
        temperature: float,
        tools: list[dict[str, Any]],
        max_tokens: int = 500,
    ) -> CompletionReply:
        """Run one chat completion offering the given tools.

        Raises:
            CompletionEngineError: On any provider failure
        """
        ...

    async def health_check(self) -> bool:
        """Check if the service is operational."""
        ...
