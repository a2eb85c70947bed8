"""Tests for the SQLModel-backed data stores."""

from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from voxdesk.core.models import CallOutcome
from voxdesk.db.exceptions import PersistenceError
from voxdesk.db.protocol import AppointmentRecord, CallSummary
from voxdesk.db.repositories import (
    AsyncAppointmentRepository,
    AsyncCallerAccountRepository,
    AsyncCallLogRepository,
)
from voxdesk.db.store import (
    DatabaseAppointmentStore,
    DatabaseCallLogStore,
    DatabaseConfigLoader,
    default_conversation_config,
)


@pytest_asyncio.fixture
async def tableless_factory():
    """Session factory on a database where no tables were created."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


async def add_account(session_factory, **fields) -> None:
    async with session_factory() as session:
        await AsyncCallerAccountRepository(session).create(**fields)
        await session.commit()


def make_summary(**overrides) -> CallSummary:
    start = datetime(2026, 3, 2, 9, 30, tzinfo=UTC)
    fields = {
        "call_id": "call-1",
        "account_id": "dubois_associes",
        "call_start": start,
        "call_end": start + timedelta(seconds=95),
        "outcome": CallOutcome.completed,
        "end_reason": "farewell",
        "transcript": "[09:30:00] Assistant: Hello",
        "total_turns": 4,
        "failed_turns": 1,
    }
    fields.update(overrides)
    return CallSummary(**fields)


class TestDatabaseConfigLoader:
    @pytest.mark.asyncio
    async def test_no_account_uses_settings(self, settings, session_factory):
        loader = DatabaseConfigLoader(settings, session_factory)

        config = await loader.load_caller_config(None)

        assert config == default_conversation_config(settings)
        assert config.account_id is None

    @pytest.mark.asyncio
    async def test_unknown_account_uses_settings(self, settings, session_factory):
        loader = DatabaseConfigLoader(settings, session_factory)

        config = await loader.load_caller_config("nobody")

        assert config.account_id == "nobody"
        assert config.welcome_message == settings.default_welcome_message

    @pytest.mark.asyncio
    async def test_inactive_account_uses_settings(self, settings, session_factory):
        await add_account(
            session_factory, id="closed", name="Closed Firm", temperature=0.1, is_active=False
        )
        loader = DatabaseConfigLoader(settings, session_factory)

        config = await loader.load_caller_config("closed")

        assert config.temperature == settings.default_temperature

    @pytest.mark.asyncio
    async def test_stored_account(self, settings, session_factory):
        await add_account(
            session_factory,
            id="dubois_associes",
            name="Dubois & Associés",
            completion_engine_id="advanced",
            temperature=0.3,
            persona_instructions="You are the receptionist of Dubois & Associés.",
            welcome_message="Dubois & Associés, bonjour.",
            transfer_destination="+33123456789",
        )
        loader = DatabaseConfigLoader(settings, session_factory)

        config = await loader.load_caller_config("dubois_associes")

        assert config.completion_engine_id == "advanced"
        assert config.temperature == 0.3
        assert config.welcome_message == "Dubois & Associés, bonjour."
        assert config.transfer_destination == "+33123456789"
        assert config.account_id == "dubois_associes"

    @pytest.mark.asyncio
    async def test_blank_persona_and_welcome_filled_from_settings(
        self, settings, session_factory
    ):
        await add_account(session_factory, id="bare", name="Bare Firm")
        loader = DatabaseConfigLoader(settings, session_factory)

        config = await loader.load_caller_config("bare")

        assert config.persona_instructions == settings.default_persona
        assert config.welcome_message == settings.default_welcome_message

    @pytest.mark.asyncio
    async def test_database_error_uses_settings(self, settings, tableless_factory):
        loader = DatabaseConfigLoader(settings, tableless_factory)

        config = await loader.load_caller_config("dubois_associes")

        assert config.account_id == "dubois_associes"
        assert config.persona_instructions == settings.default_persona

    @pytest.mark.asyncio
    async def test_resolve_account_id(self, settings, session_factory):
        await add_account(session_factory, id="a", name="Firm A", phone_number="+33100000000")
        loader = DatabaseConfigLoader(settings, session_factory)

        assert await loader.resolve_account_id("+33100000000") == "a"
        assert await loader.resolve_account_id("+33199999999") is None

    @pytest.mark.asyncio
    async def test_resolve_account_id_error(self, settings, tableless_factory):
        loader = DatabaseConfigLoader(settings, tableless_factory)

        with pytest.raises(PersistenceError):
            await loader.resolve_account_id("+33100000000")


class TestDatabaseAppointmentStore:
    @pytest.mark.asyncio
    async def test_persist_returns_id(self, session_factory):
        store = DatabaseAppointmentStore(session_factory)
        record = AppointmentRecord(
            call_id="call-1",
            client_name="Marie Dubois",
            appointment_type="consultation",
            preferred_date="mardi",
            account_id="dubois_associes",
        )

        appointment_id = await store.persist_appointment(record)

        async with session_factory() as session:
            saved = await AsyncAppointmentRepository(session).get_by_id(appointment_id)
        assert saved is not None
        assert saved.call_id == "call-1"
        assert saved.preferred_date == "mardi"

    @pytest.mark.asyncio
    async def test_write_failure(self, tableless_factory):
        store = DatabaseAppointmentStore(tableless_factory)
        record = AppointmentRecord(call_id="call-1", client_name="A", appointment_type="b")

        with pytest.raises(PersistenceError):
            await store.persist_appointment(record)


class TestDatabaseCallLogStore:
    @pytest.mark.asyncio
    async def test_record_call(self, session_factory):
        await DatabaseCallLogStore(session_factory).record_call(make_summary())

        async with session_factory() as session:
            call_log = await AsyncCallLogRepository(session).get_by_id("call-1")
        assert call_log is not None
        assert call_log.duration_seconds == 95
        assert call_log.outcome == CallOutcome.completed
        assert call_log.end_reason == "farewell"
        assert call_log.failed_turns == 1

    @pytest.mark.asyncio
    async def test_empty_transcript_stored_as_null(self, session_factory):
        await DatabaseCallLogStore(session_factory).record_call(make_summary(transcript=""))

        async with session_factory() as session:
            call_log = await AsyncCallLogRepository(session).get_by_id("call-1")
        assert call_log.transcript is None

    @pytest.mark.asyncio
    async def test_write_failure(self, tableless_factory):
        with pytest.raises(PersistenceError):
            await DatabaseCallLogStore(tableless_factory).record_call(make_summary())


class TestCallSummary:
    def test_duration_never_negative(self):
        summary = make_summary(call_end=datetime(2026, 3, 2, 9, 0, tzinfo=UTC))

        assert summary.duration_seconds == 0
