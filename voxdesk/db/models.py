"""SQLModel database models.

Tables:
- caller_accounts: per-firm conversation configuration, resolved by dialled number
- appointments: bookings captured during calls
- call_logs: one row per finished call
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from pydantic import field_validator
from sqlmodel import Field, SQLModel

from voxdesk.core.models import CallOutcome, ConversationConfig

# =============================================================================
# Enums (shared across models)
# =============================================================================


class AppointmentStatus(str, Enum):
    """Status of an appointment request."""

    requested = "requested"
    confirmed = "confirmed"
    cancelled = "cancelled"


class SynthesisEngine(str, Enum):
    """Synthesis engines an account can ask for."""

    elevenlabs = "elevenlabs"
    edge = "edge"


# =============================================================================
# Database Models
# =============================================================================


class CallerAccount(SQLModel, table=True):
    """Firm account whose phone line the receptionist answers."""

    __tablename__ = "caller_accounts"

    id: str = Field(
        primary_key=True,
        description="Account slug identifier (e.g., dubois_associes)",
        max_length=50,
    )
    name: str = Field(max_length=200, description="Display name of the firm")
    phone_number: str | None = Field(
        default=None,
        index=True,
        unique=True,
        max_length=20,
        description="Inbound number in E.164 format",
    )
    completion_engine_id: str = Field(default="standard", max_length=100)
    temperature: float = Field(default=0.7, ge=0.0, le=1.0)
    synthesis_engine_id: SynthesisEngine = Field(default=SynthesisEngine.elevenlabs)
    voice_selector: str | None = Field(default=None, max_length=100)
    persona_instructions: str | None = Field(
        default=None, max_length=4000, description="Persona framing for the assistant"
    )
    welcome_message: str | None = Field(
        default=None, max_length=500, description="Greeting spoken when a call connects"
    )
    transfer_destination: str | None = Field(
        default=None, max_length=20, description="Number calls are transferred to"
    )
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("phone_number", "transfer_destination", mode="before")
    @classmethod
    def validate_e164(cls, v: str | None) -> str | None:
        """Phone numbers must be E.164."""
        if v is None or v == "":
            return None
        if not isinstance(v, str) or not v.startswith("+") or not v[1:].isdigit():
            raise ValueError(f"Invalid E.164 phone number: {v}")
        return v

    def to_conversation_config(self) -> ConversationConfig:
        return ConversationConfig(
            completion_engine_id=self.completion_engine_id,
            temperature=self.temperature,
            synthesis_engine_id=SynthesisEngine(self.synthesis_engine_id).value,
            voice_selector=self.voice_selector,
            persona_instructions=self.persona_instructions or "",
            transfer_destination=self.transfer_destination,
            welcome_message=self.welcome_message,
            account_id=self.id,
        )


class Appointment(SQLModel, table=True):
    """Appointment requested by a caller."""

    __tablename__ = "appointments"

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        primary_key=True,
        description="Unique identifier",
    )
    account_id: str | None = Field(default=None, index=True)
    call_id: str = Field(index=True, description="Call the request came from")
    client_name: str = Field(max_length=200)
    appointment_type: str = Field(max_length=200)
    preferred_date: str | None = Field(default=None, max_length=100)
    preferred_time: str | None = Field(default=None, max_length=100)
    client_phone: str | None = Field(default=None, max_length=30)
    client_email: str | None = Field(default=None, max_length=254)
    status: AppointmentStatus = Field(default=AppointmentStatus.requested)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC), index=True)


class CallLog(SQLModel, table=True):
    """Record of a call handled by the receptionist."""

    __tablename__ = "call_logs"

    id: str = Field(primary_key=True, description="Telephony call id")
    account_id: str | None = Field(default=None, index=True)
    call_start: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="When call started"
    )
    call_end: datetime | None = Field(default=None, description="When call ended")
    duration_seconds: int | None = Field(default=None, ge=0)
    transcript: str | None = Field(default=None, description="Timestamped conversation")
    outcome: CallOutcome | None = Field(default=None)
    end_reason: str | None = Field(default=None, max_length=100)
    total_turns: int = Field(default=0, ge=0, description="Total conversation turns")
    failed_turns: int = Field(default=0, ge=0, description="Turns that ended in an error")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC), index=True)
