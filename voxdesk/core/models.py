"""Value types shared by the call orchestration core."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from voxdesk.core.exceptions import InvalidConversationConfigError


class Speaker(str, Enum):
    """Who produced a turn."""

    CALLER = "caller"
    ASSISTANT = "assistant"


@dataclass(frozen=True, slots=True)
class Turn:
    """One utterance in a call's conversation history."""

    speaker: Speaker
    content: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True, slots=True)
class ConversationConfig:
    """Per-caller settings loaded once when a call starts."""

    completion_engine_id: str
    temperature: float
    synthesis_engine_id: str = "elevenlabs"
    voice_selector: str | None = None
    persona_instructions: str = ""
    transfer_destination: str | None = None
    welcome_message: str | None = None
    account_id: str | None = None

    def validate(self) -> None:
        """Raise InvalidConversationConfigError if required fields are unusable."""
        if not self.completion_engine_id or not self.completion_engine_id.strip():
            raise InvalidConversationConfigError("completion_engine_id is required")
        if not 0.0 <= self.temperature <= 1.0:
            raise InvalidConversationConfigError(
                f"temperature must be between 0 and 1, got {self.temperature}"
            )


class NextAction(str, Enum):
    """What the call does after the current turn."""

    CONTINUE = "continue"
    TRANSFER = "transfer"
    SCHEDULE = "schedule"
    HANGUP = "hangup"

    @property
    def ends_call(self) -> bool:
        return self in (NextAction.TRANSFER, NextAction.HANGUP)


class DecisionSource(str, Enum):
    """How the next action was chosen."""

    FUNCTION_CALL = "function_call"
    KEYWORD = "keyword"
    ESCALATION = "escalation"


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True, slots=True)
class TransferPayload:
    """Why the caller is being handed to a human."""

    reason: str
    urgency: Urgency = Urgency.MEDIUM

    @classmethod
    def from_arguments(cls, arguments: dict[str, Any]) -> TransferPayload:
        reason = str(arguments.get("reason") or "").strip() or "caller requested transfer"
        try:
            urgency = Urgency(str(arguments.get("urgency", "medium")).lower())
        except ValueError:
            urgency = Urgency.MEDIUM
        return cls(reason=reason, urgency=urgency)

    def to_metadata(self) -> dict[str, str]:
        return {"reason": self.reason, "urgency": self.urgency.value}


@dataclass(frozen=True, slots=True)
class SchedulePayload:
    """Appointment request collected from the caller.

    Built from the completion engine's function-call arguments, which use
    camelCase keys (clientName, appointmentType, ...).
    """

    client_name: str
    appointment_type: str
    preferred_date: str | None = None
    preferred_time: str | None = None
    client_phone: str | None = None
    client_email: str | None = None

    REQUIRED_ARGUMENTS = ("clientName", "appointmentType")

    @classmethod
    def missing_arguments(cls, arguments: dict[str, Any]) -> list[str]:
        """Required argument names that are absent or blank."""
        return [
            name for name in cls.REQUIRED_ARGUMENTS if not str(arguments.get(name) or "").strip()
        ]

    @classmethod
    def from_arguments(cls, arguments: dict[str, Any]) -> SchedulePayload:
        missing = cls.missing_arguments(arguments)
        if missing:
            raise ValueError(f"Missing appointment fields: {', '.join(missing)}")

        def optional(key: str) -> str | None:
            value = arguments.get(key)
            if value is None:
                return None
            text = str(value).strip()
            return text or None

        return cls(
            client_name=str(arguments["clientName"]).strip(),
            appointment_type=str(arguments["appointmentType"]).strip(),
            preferred_date=optional("preferredDate"),
            preferred_time=optional("preferredTime"),
            client_phone=optional("clientPhone"),
            client_email=optional("clientEmail"),
        )


ActionPayload = TransferPayload | SchedulePayload


@dataclass(frozen=True, slots=True)
class ActionDecision:
    """Reply text plus exactly one next action for a processed turn."""

    response_text: str
    next_action: NextAction
    payload: ActionPayload | None = None
    source: DecisionSource = DecisionSource.KEYWORD

    @property
    def is_intent_only(self) -> bool:
        """Keyword-detected scheduling with no collected appointment details."""
        return self.next_action == NextAction.SCHEDULE and self.payload is None

    def __post_init__(self) -> None:
        expected: type | None = None
        if self.next_action == NextAction.TRANSFER:
            expected = TransferPayload
        elif self.next_action == NextAction.SCHEDULE:
            expected = SchedulePayload
            # Keyword classification can spot scheduling intent before any
            # details exist; only structured calls carry the appointment.
            if self.source == DecisionSource.KEYWORD and self.payload is None:
                return

        if expected is None:
            if self.payload is not None:
                raise ValueError(f"{self.next_action.value} decisions carry no payload")
        elif not isinstance(self.payload, expected):
            raise ValueError(
                f"{self.next_action.value} decisions require a {expected.__name__}"
            )


class CallOutcome(str, Enum):
    """How a call ended."""

    completed = "completed"
    transferred = "transferred"
    abandoned = "abandoned"
    failed = "failed"
