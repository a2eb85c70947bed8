"""SQLModel-backed implementations of the data store protocols."""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from voxdesk.config import Settings, get_settings
from voxdesk.core.models import ConversationConfig
from voxdesk.db.exceptions import PersistenceError
from voxdesk.db.protocol import AppointmentRecord, CallSummary
from voxdesk.db.repositories.accounts import AsyncCallerAccountRepository
from voxdesk.db.repositories.appointments import AsyncAppointmentRepository
from voxdesk.db.repositories.calls import AsyncCallLogRepository
from voxdesk.db.session import SessionFactory, get_session_context
from voxdesk.logging_config import get_logger

logger: Any = get_logger(__name__)


def default_conversation_config(
    settings: Settings, account_id: str | None = None
) -> ConversationConfig:
    """Configuration used when an account has no stored settings."""
    return ConversationConfig(
        completion_engine_id=settings.default_completion_engine,
        temperature=settings.default_temperature,
        synthesis_engine_id=settings.default_synthesis_engine,
        voice_selector=settings.default_voice,
        persona_instructions=settings.default_persona,
        transfer_destination=settings.default_transfer_destination,
        welcome_message=settings.default_welcome_message,
        account_id=account_id,
    )


class DatabaseAppointmentStore:
    """Appointment persistence through the appointments table."""

    def __init__(self, session_factory: SessionFactory | None = None) -> None:
        self._session_factory = session_factory

    async def persist_appointment(self, record: AppointmentRecord) -> str:
        try:
            async with get_session_context(self._session_factory) as session:
                repo = AsyncAppointmentRepository(session)
                appointment = await repo.create(
                    call_id=record.call_id,
                    account_id=record.account_id,
                    client_name=record.client_name,
                    appointment_type=record.appointment_type,
                    preferred_date=record.preferred_date,
                    preferred_time=record.preferred_time,
                    client_phone=record.client_phone,
                    client_email=record.client_email,
                )
                appointment_id = appointment.id
        except SQLAlchemyError as e:
            logger.error(f"Failed to persist appointment for call {record.call_id}: {e}")
            raise PersistenceError(f"Could not save appointment: {e}") from e

        logger.info(f"Appointment {appointment_id} saved for call {record.call_id}")
        return appointment_id


class DatabaseConfigLoader:
    """Loads caller configuration from caller_accounts, with settings defaults."""

    def __init__(
        self,
        settings: Settings | None = None,
        session_factory: SessionFactory | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._session_factory = session_factory

    async def load_caller_config(self, caller_account_id: str | None) -> ConversationConfig:
        if not caller_account_id:
            return default_conversation_config(self._settings)

        try:
            async with get_session_context(self._session_factory) as session:
                account = await AsyncCallerAccountRepository(session).get_by_id(caller_account_id)
        except SQLAlchemyError as e:
            logger.warning(f"Failed to load account {caller_account_id}, using defaults: {e}")
            return default_conversation_config(self._settings, caller_account_id)

        if not account or not account.is_active:
            logger.info(f"No active account {caller_account_id}, using defaults")
            return default_conversation_config(self._settings, caller_account_id)

        config = account.to_conversation_config()
        return replace(
            config,
            persona_instructions=config.persona_instructions or self._settings.default_persona,
            welcome_message=config.welcome_message or self._settings.default_welcome_message,
        )

    async def resolve_account_id(self, phone_number: str) -> str | None:
        """Find the account answering the dialled number."""
        try:
            async with get_session_context(self._session_factory) as session:
                account = await AsyncCallerAccountRepository(session).get_by_phone_number(
                    phone_number
                )
        except SQLAlchemyError as e:
            logger.error(f"Account lookup failed: {e}")
            raise PersistenceError(f"Could not resolve account: {e}") from e
        return account.id if account else None


class DatabaseCallLogStore:
    """Call log persistence through the call_logs table."""

    def __init__(self, session_factory: SessionFactory | None = None) -> None:
        self._session_factory = session_factory

    async def record_call(self, summary: CallSummary) -> None:
        try:
            async with get_session_context(self._session_factory) as session:
                await AsyncCallLogRepository(session).upsert_call_log(
                    summary.call_id,
                    account_id=summary.account_id,
                    call_start=summary.call_start,
                    call_end=summary.call_end,
                    duration_seconds=summary.duration_seconds,
                    transcript=summary.transcript or None,
                    outcome=summary.outcome,
                    end_reason=summary.end_reason,
                    total_turns=summary.total_turns,
                    failed_turns=summary.failed_turns,
                )
        except SQLAlchemyError as e:
            logger.error(f"Failed to persist call log {summary.call_id}: {e}")
            raise PersistenceError(f"Could not save call log: {e}") from e
