"""Tests for ConversationContext and ConversationConfig validation."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from voxdesk.core.context import ConversationContext
from voxdesk.core.exceptions import ContextClosedError, InvalidConversationConfigError
from voxdesk.core.models import Speaker, Turn


class TestContextCreation:
    def test_starts_empty(self, conversation_config) -> None:
        context = ConversationContext("call-abc", conversation_config)

        assert context.call_id == "call-abc"
        assert context.config is conversation_config
        assert len(context) == 0
        assert context.snapshot() == ()
        assert not context.is_closed

    def test_rejects_missing_engine(self, config_factory) -> None:
        with pytest.raises(InvalidConversationConfigError):
            ConversationContext("call-abc", config_factory(completion_engine_id=""))

    def test_rejects_blank_engine(self, config_factory) -> None:
        with pytest.raises(InvalidConversationConfigError):
            ConversationContext("call-abc", config_factory(completion_engine_id="   "))

    @pytest.mark.parametrize("temperature", [-0.1, 1.5])
    def test_rejects_out_of_range_temperature(self, config_factory, temperature) -> None:
        with pytest.raises(InvalidConversationConfigError):
            ConversationContext("call-abc", config_factory(temperature=temperature))

    @pytest.mark.parametrize("temperature", [0.0, 1.0])
    def test_accepts_temperature_bounds(self, config_factory, temperature) -> None:
        context = ConversationContext("call-abc", config_factory(temperature=temperature))
        assert context.config.temperature == temperature

    def test_rejects_empty_call_id(self, conversation_config) -> None:
        with pytest.raises(InvalidConversationConfigError):
            ConversationContext("", conversation_config)

    def test_invalid_config_is_value_error(self, config_factory) -> None:
        """Callers that only know ValueError still catch bad configs."""
        with pytest.raises(ValueError):
            ConversationContext("call-abc", config_factory(temperature=2))


class TestAppendTurn:
    def test_preserves_order(self, context) -> None:
        context.append_turn(Speaker.ASSISTANT, "Hello")
        context.append_turn(Speaker.CALLER, "Hi, I need help")
        context.append_turn(Speaker.ASSISTANT, "Sure")

        turns = context.snapshot()
        assert [t.content for t in turns] == ["Hello", "Hi, I need help", "Sure"]
        assert [t.speaker for t in turns] == [
            Speaker.ASSISTANT,
            Speaker.CALLER,
            Speaker.ASSISTANT,
        ]

    def test_timestamps_non_decreasing(self, context) -> None:
        for i in range(20):
            context.append_turn(Speaker.CALLER, f"turn {i}")

        stamps = [t.timestamp for t in context.snapshot()]
        assert stamps == sorted(stamps)

    def test_clock_going_backwards_is_clamped(self, context, monkeypatch) -> None:
        context.append_turn(Speaker.CALLER, "first")
        first = context.snapshot()[0].timestamp

        earlier = first - timedelta(seconds=30)

        class FrozenDatetime(datetime):
            @classmethod
            def now(cls, tz=None):
                return earlier

        monkeypatch.setattr("voxdesk.core.context.datetime", FrozenDatetime)
        turn = context.append_turn(Speaker.ASSISTANT, "second")

        assert turn.timestamp == first

    def test_returns_turn(self, context) -> None:
        turn = context.append_turn(Speaker.CALLER, "Bonjour")

        assert isinstance(turn, Turn)
        assert turn.timestamp.tzinfo is UTC

    def test_snapshot_is_a_copy(self, context) -> None:
        context.append_turn(Speaker.CALLER, "one")
        snapshot = context.snapshot()
        context.append_turn(Speaker.CALLER, "two")

        assert len(snapshot) == 1
        assert len(context) == 2


class TestTranscriptAndClear:
    def test_transcript_format(self, context) -> None:
        context.append_turn(Speaker.ASSISTANT, "Dubois & Associés, bonjour.")
        context.append_turn(Speaker.CALLER, "Bonjour, j'ai une question")

        lines = context.get_transcript().splitlines()
        assert len(lines) == 2
        assert lines[0].endswith("] Assistant: Dubois & Associés, bonjour.")
        assert lines[1].endswith("] Caller: Bonjour, j'ai une question")
        assert lines[0].startswith("[")

    def test_clear_releases_history(self, context) -> None:
        context.append_turn(Speaker.CALLER, "hello")
        context.clear()

        assert context.is_closed
        assert len(context) == 0
        assert context.get_transcript() == ""

    def test_clear_is_idempotent(self, context) -> None:
        context.clear()
        context.clear()

        assert context.is_closed

    def test_append_after_clear_raises(self, context) -> None:
        context.clear()

        with pytest.raises(ContextClosedError) as exc_info:
            context.append_turn(Speaker.CALLER, "too late")

        assert exc_info.value.call_id == context.call_id
