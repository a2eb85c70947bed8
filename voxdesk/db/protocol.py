"""Data store protocols used by the call core.

The core only sees these narrow interfaces; the SQLModel-backed
implementations live in ``voxdesk.db.store``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from voxdesk.core.models import CallOutcome, ConversationConfig, SchedulePayload


@dataclass(frozen=True, slots=True)
class AppointmentRecord:
    """Appointment to persist, traceable to the call it came from."""

    call_id: str
    client_name: str
    appointment_type: str
    preferred_date: str | None = None
    preferred_time: str | None = None
    client_phone: str | None = None
    client_email: str | None = None
    account_id: str | None = None

    @classmethod
    def from_payload(
        cls,
        payload: SchedulePayload,
        *,
        call_id: str,
        account_id: str | None = None,
    ) -> AppointmentRecord:
        return cls(
            call_id=call_id,
            client_name=payload.client_name,
            appointment_type=payload.appointment_type,
            preferred_date=payload.preferred_date,
            preferred_time=payload.preferred_time,
            client_phone=payload.client_phone,
            client_email=payload.client_email,
            account_id=account_id,
        )


@dataclass(frozen=True, slots=True)
class CallSummary:
    """What gets written to the call log when a call ends."""

    call_id: str
    account_id: str | None
    call_start: datetime
    call_end: datetime
    outcome: CallOutcome
    end_reason: str
    transcript: str
    total_turns: int
    failed_turns: int

    @property
    def duration_seconds(self) -> int:
        return max(0, int((self.call_end - self.call_start).total_seconds()))


class AppointmentStore(Protocol):
    async def persist_appointment(self, record: AppointmentRecord) -> str:
        """Store the appointment and return its id.

        Raises:
            PersistenceError: When the write fails
        """
        ...


class CallerConfigLoader(Protocol):
    async def load_caller_config(self, caller_account_id: str | None) -> ConversationConfig:
        """Load the conversation configuration for an account."""
        ...

    async def resolve_account_id(self, phone_number: str) -> str | None:
        """Find the account answering a dialled number."""
        ...


class CallLogStore(Protocol):
    async def record_call(self, summary: CallSummary) -> None:
        """Persist the call log.

        Raises:
            PersistenceError: When the write fails
        """
        ...
