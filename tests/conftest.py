"""Shared pytest fixtures for Voxdesk tests."""

from __future__ import annotations

import asyncio
import importlib
import sys
from collections.abc import AsyncGenerator, Callable, Generator, Mapping
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from voxdesk.config import Settings
from voxdesk.core.context import ConversationContext
from voxdesk.core.dispatcher import ActionDispatcher
from voxdesk.core.models import ConversationConfig
from voxdesk.core.orchestrator import CallOrchestrator
from voxdesk.core.session import CallSession
from voxdesk.core.turn_processor import TurnProcessor
from voxdesk.db.protocol import AppointmentRecord, CallSummary
from voxdesk.db.session import build_session_factory
from voxdesk.services.llm.protocol import CompletionReply, Message
from voxdesk.services.stt.protocol import TranscriptionResult
from voxdesk.services.tts.protocol import SynthesizedAudio
from voxdesk.services.tts.router import SynthesisRouter


def build_settings(**overrides) -> Settings:
    """Create a Settings object with safe test defaults."""
    base = {
        "groq_api_key": "test-groq-key",
        "deepgram_api_key": "test-deepgram-key",
        "plivo_auth_id": "test-plivo-id",
        "plivo_auth_token": "test-plivo-token",
        "elevenlabs_api_key": "test-elevenlabs-key",
        "database_url": "sqlite+aiosqlite:///:memory:",
        "public_base_url": "https://voxdesk.example.com",
    }
    base.update(overrides)
    return Settings(**base)


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    """Return a factory to build Settings with overrides."""
    return build_settings


@pytest.fixture
def settings(settings_factory: Callable[..., Settings]) -> Settings:
    """Default Settings fixture."""
    return settings_factory()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def async_engine():
    """Create an in-memory async SQLite engine for testing."""
    # Import models to register them with SQLModel metadata
    from voxdesk.db import models  # noqa: F401

    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the in-memory engine, for store tests."""
    return build_session_factory(async_engine)


@pytest_asyncio.fixture
async def async_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create an async database session for testing."""
    async with session_factory() as session:
        yield session


# =============================================================================
# Adapter Fakes
# =============================================================================


class FakeTranscriber:
    """Returns scripted transcripts; an Exception entry is raised instead."""

    def __init__(self, results: list[str | Exception] | None = None, delay: float = 0.0):
        self.results = list(results or [])
        self.delay = delay
        self.calls: list[tuple[bytes, str]] = []

    async def transcribe(self, audio: bytes, *, mimetype: str = "audio/wav") -> TranscriptionResult:
        self.calls.append((audio, mimetype))
        if self.delay:
            await asyncio.sleep(self.delay)
        result = self.results.pop(0) if self.results else ""
        if isinstance(result, Exception):
            raise result
        return TranscriptionResult(text=result, confidence=0.9)

    async def close(self) -> None:
        pass


class FakeCompletionEngine:
    """Returns scripted replies in order and records every request."""

    def __init__(
        self, replies: list[CompletionReply | Exception] | None = None, delay: float = 0.0
    ):
        self.replies = list(replies or [])
        self.delay = delay
        self.requests: list[dict[str, Any]] = []

    async def complete(
        self,
        messages: list[Message],
        *,
        engine_id: str,
        temperature: float,
        tools: list[dict[str, Any]],
        max_tokens: int = 500,
    ) -> CompletionReply:
        self.requests.append(
            {
                "messages": list(messages),
                "engine_id": engine_id,
                "temperature": temperature,
                "tools": tools,
                "max_tokens": max_tokens,
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.replies:
            raise AssertionError("No scripted completion reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def health_check(self) -> bool:
        return True


class FakeSynthesizer:
    """Encodes text as UTF-8 so tests can read back what was spoken."""

    def __init__(
        self,
        name: str = "elevenlabs",
        *,
        available: bool = True,
        error: Exception | None = None,
        delay: float = 0.0,
    ):
        self.name = name
        self.available = available
        self.error = error
        self.delay = delay
        self.requests: list[tuple[str, str | None]] = []
        self.closed = False

    @property
    def is_available(self) -> bool:
        return self.available

    async def synthesize(self, text: str, *, voice: str | None = None) -> SynthesizedAudio:
        self.requests.append((text, voice))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return SynthesizedAudio(
            audio_bytes=text.encode("utf-8"),
            engine=self.name,
            voice=voice or "default",
            audio_format="ulaw_8000",
            input_chars=len(text),
        )

    async def close(self) -> None:
        self.closed = True


class FakeTelephony:
    def __init__(
        self,
        *,
        transfer_error: Exception | None = None,
        hangup_error: Exception | None = None,
        delay: float = 0.0,
    ):
        self.transfer_error = transfer_error
        self.hangup_error = hangup_error
        self.delay = delay
        self.transfers: list[tuple[str, str, dict[str, str]]] = []
        self.terminated: list[str] = []

    async def initiate_transfer(
        self, call_id: str, destination: str, metadata: Mapping[str, str]
    ) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.transfer_error:
            raise self.transfer_error
        self.transfers.append((call_id, destination, dict(metadata)))

    async def terminate_call(self, call_id: str) -> None:
        if self.hangup_error:
            raise self.hangup_error
        self.terminated.append(call_id)


class FakeAppointmentStore:
    def __init__(self, *, error: Exception | None = None, delay: float = 0.0):
        self.error = error
        self.delay = delay
        self.records: list[AppointmentRecord] = []

    async def persist_appointment(self, record: AppointmentRecord) -> str:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        self.records.append(record)
        return f"appt-{len(self.records)}"


class FakeConfigLoader:
    def __init__(
        self,
        config: ConversationConfig,
        numbers: dict[str, str] | None = None,
        delay: float = 0.0,
    ):
        self.config = config
        self.numbers = numbers or {}
        self.delay = delay
        self.loaded: list[str | None] = []

    async def load_caller_config(self, caller_account_id: str | None) -> ConversationConfig:
        self.loaded.append(caller_account_id)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.config

    async def resolve_account_id(self, phone_number: str) -> str | None:
        return self.numbers.get(phone_number)


class FakeCallLogStore:
    def __init__(self, *, error: Exception | None = None):
        self.error = error
        self.summaries: list[CallSummary] = []

    async def record_call(self, summary: CallSummary) -> None:
        if self.error:
            raise self.error
        self.summaries.append(summary)


class RecordingSender:
    """Collects outgoing audio; ``texts`` decodes what FakeSynthesizer produced."""

    def __init__(self, *, error: Exception | None = None):
        self.error = error
        self.sent: list[tuple[bytes, str]] = []
        self.cleared = 0

    @property
    def texts(self) -> list[str]:
        return [audio.decode("utf-8", errors="replace") for audio, _ in self.sent]

    async def send_audio(self, audio_bytes: bytes, *, audio_format: str) -> None:
        if self.error:
            raise self.error
        self.sent.append((audio_bytes, audio_format))

    async def clear_audio(self) -> None:
        if self.error:
            raise self.error
        self.cleared += 1


# =============================================================================
# Core Fixtures
# =============================================================================


@pytest.fixture
def config_factory() -> Callable[..., ConversationConfig]:
    def _build(**overrides) -> ConversationConfig:
        base: dict[str, Any] = {
            "completion_engine_id": "standard",
            "temperature": 0.3,
            "synthesis_engine_id": "elevenlabs",
            "voice_selector": "rachel",
            "persona_instructions": "You are the receptionist of Dubois & Associés.",
            "transfer_destination": "+33123456789",
            "welcome_message": "Dubois & Associés, bonjour.",
            "account_id": "dubois_associes",
        }
        base.update(overrides)
        return ConversationConfig(**base)

    return _build


@pytest.fixture
def conversation_config(config_factory) -> ConversationConfig:
    return config_factory()


@pytest.fixture
def context(conversation_config) -> ConversationContext:
    return ConversationContext("call-001", conversation_config)


@pytest.fixture
def transcriber() -> FakeTranscriber:
    return FakeTranscriber()


@pytest.fixture
def completion_engine() -> FakeCompletionEngine:
    return FakeCompletionEngine()


@pytest.fixture
def telephony() -> FakeTelephony:
    return FakeTelephony()


@pytest.fixture
def appointment_store() -> FakeAppointmentStore:
    return FakeAppointmentStore()


@pytest.fixture
def synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer()


@pytest.fixture
def router(synthesizer) -> SynthesisRouter:
    return SynthesisRouter([synthesizer])


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def processor(completion_engine, transcriber) -> TurnProcessor:
    return TurnProcessor(
        completion_engine,
        transcriber,
        transcription_timeout=0.5,
        completion_timeout=0.5,
    )


@pytest.fixture
def dispatcher(telephony, appointment_store) -> ActionDispatcher:
    return ActionDispatcher(
        telephony,
        appointment_store,
        telephony_timeout=0.5,
        persistence_timeout=0.5,
    )


@pytest.fixture
def make_session(
    processor, dispatcher, router, sender, conversation_config
) -> Callable[..., CallSession]:
    """Build a CallSession wired to the fakes; keyword overrides win."""

    def _build(**overrides) -> CallSession:
        kwargs: dict[str, Any] = {
            "processor": processor,
            "dispatcher": dispatcher,
            "synthesizer": router,
            "sender": sender,
            "synthesis_timeout": 0.5,
        }
        config = overrides.pop("config", conversation_config)
        call_id = overrides.pop("call_id", "call-001")
        kwargs.update(overrides)
        return CallSession(call_id, config, **kwargs)

    return _build


# =============================================================================
# API Fixtures
# =============================================================================


@pytest.fixture
def api_call_logs() -> FakeCallLogStore:
    return FakeCallLogStore()


@pytest.fixture
def api_orchestrator(
    processor, dispatcher, router, conversation_config, api_call_logs
) -> CallOrchestrator:
    """Orchestrator wired to the fakes, installed on the app under test."""
    return CallOrchestrator(
        processor,
        dispatcher,
        router,
        FakeConfigLoader(conversation_config, numbers={"+33100000000": "dubois_associes"}),
        call_logs=api_call_logs,
        max_concurrent_calls=2,
        synthesis_timeout=0.5,
    )


@pytest.fixture
def test_client(settings_factory, api_orchestrator, monkeypatch) -> Generator:
    """FastAPI TestClient with patched settings, fake adapters and in-memory database."""
    from fastapi.testclient import TestClient

    test_settings = settings_factory()
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    factory = build_session_factory(engine)

    # Patch get_settings before importing the app module
    monkeypatch.setattr("voxdesk.config.get_settings", lambda: test_settings)

    async def mock_init_db():
        from voxdesk.db import models  # noqa: F401

        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def mock_close_db():
        await engine.dispose()

    async def override_get_session():
        async with factory() as session:
            yield session

    # Remove cached main module to force re-import with patches
    sys.modules.pop("voxdesk.main", None)
    main = importlib.import_module("voxdesk.main")

    from voxdesk.api.routes import health
    from voxdesk.db.session import get_session

    monkeypatch.setattr(main, "init_db", mock_init_db)
    monkeypatch.setattr(main, "close_db", mock_close_db)

    app = main.create_app()
    app.state.orchestrator = api_orchestrator
    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[health.get_settings] = lambda: test_settings

    with TestClient(app) as client:
        yield client
