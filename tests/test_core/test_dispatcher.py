"""Tests for ActionDispatcher."""

from __future__ import annotations

import pytest
from conftest import FakeAppointmentStore, FakeTelephony

from voxdesk.core.context import ConversationContext
from voxdesk.core.dispatcher import ActionDispatcher
from voxdesk.core.models import (
    ActionDecision,
    DecisionSource,
    NextAction,
    SchedulePayload,
    Speaker,
    TransferPayload,
    Urgency,
)
from voxdesk.db.exceptions import PersistenceError
from voxdesk.prompts.receptionist import SCHEDULE_FAILED_TEXT
from voxdesk.services.telephony.exceptions import (
    HangupFailedError,
    TelephonyError,
    TransferFailedError,
)


def schedule_decision() -> ActionDecision:
    return ActionDecision(
        response_text="Booked.",
        next_action=NextAction.SCHEDULE,
        payload=SchedulePayload(
            client_name="Marie Dubois",
            appointment_type="consultation",
            preferred_date="next Tuesday",
            preferred_time="14:00",
        ),
        source=DecisionSource.FUNCTION_CALL,
    )


def transfer_decision(urgency: Urgency = Urgency.HIGH) -> ActionDecision:
    return ActionDecision(
        response_text="Transferring.",
        next_action=NextAction.TRANSFER,
        payload=TransferPayload(reason="urgent matter", urgency=urgency),
    )


class TestContinue:
    @pytest.mark.asyncio
    async def test_no_side_effects(self, dispatcher, telephony, appointment_store, context) -> None:
        result = await dispatcher.dispatch(
            ActionDecision(response_text="Sure.", next_action=NextAction.CONTINUE), context
        )

        assert result.action == NextAction.CONTINUE
        assert not result.ends_call
        assert telephony.transfers == []
        assert telephony.terminated == []
        assert appointment_store.records == []


class TestSchedule:
    @pytest.mark.asyncio
    async def test_persists_appointment(self, dispatcher, appointment_store, context) -> None:
        result = await dispatcher.dispatch(schedule_decision(), context)

        assert result.action == NextAction.SCHEDULE
        assert not result.ends_call
        assert result.appointment_id == "appt-1"

        record = appointment_store.records[0]
        assert record.call_id == context.call_id
        assert record.account_id == "dubois_associes"
        assert record.client_name == "Marie Dubois"
        assert record.preferred_time == "14:00"

    @pytest.mark.asyncio
    async def test_intent_only_persists_nothing(
        self, dispatcher, appointment_store, context
    ) -> None:
        decision = ActionDecision(
            response_text="What's your name?",
            next_action=NextAction.SCHEDULE,
            source=DecisionSource.KEYWORD,
        )

        result = await dispatcher.dispatch(decision, context)

        assert result.action == NextAction.SCHEDULE
        assert not result.ends_call
        assert appointment_store.records == []

    @pytest.mark.asyncio
    async def test_store_failure_continues_call(self, telephony, context) -> None:
        dispatcher = ActionDispatcher(
            telephony, FakeAppointmentStore(error=PersistenceError("disk full"))
        )

        result = await dispatcher.dispatch(schedule_decision(), context)

        assert result.action == NextAction.CONTINUE
        assert not result.ends_call
        assert result.follow_up_text == SCHEDULE_FAILED_TEXT
        assert not context.is_closed

    @pytest.mark.asyncio
    async def test_store_timeout_continues_call(self, telephony, context) -> None:
        dispatcher = ActionDispatcher(
            telephony, FakeAppointmentStore(delay=0.5), persistence_timeout=0.05
        )

        result = await dispatcher.dispatch(schedule_decision(), context)

        assert result.action == NextAction.CONTINUE
        assert result.follow_up_text == SCHEDULE_FAILED_TEXT

    @pytest.mark.asyncio
    async def test_unexpected_store_error_continues_call(self, telephony, context) -> None:
        dispatcher = ActionDispatcher(
            telephony, FakeAppointmentStore(error=RuntimeError("bug"))
        )

        result = await dispatcher.dispatch(schedule_decision(), context)

        assert result.action == NextAction.CONTINUE


class TestTransfer:
    @pytest.mark.asyncio
    async def test_transfers_to_configured_destination(
        self, dispatcher, telephony, context
    ) -> None:
        result = await dispatcher.dispatch(transfer_decision(), context)

        assert result.action == NextAction.TRANSFER
        assert result.ends_call
        assert telephony.transfers == [
            ("call-001", "+33123456789", {"reason": "urgent matter", "urgency": "high"})
        ]

    @pytest.mark.asyncio
    async def test_no_destination_fails(self, dispatcher, telephony, config_factory) -> None:
        context = ConversationContext("call-002", config_factory(transfer_destination=None))

        with pytest.raises(TransferFailedError):
            await dispatcher.dispatch(transfer_decision(), context)

        assert telephony.transfers == []

    @pytest.mark.asyncio
    async def test_provider_error_becomes_transfer_failed(self, appointment_store, context) -> None:
        dispatcher = ActionDispatcher(
            FakeTelephony(transfer_error=TelephonyError("busy")), appointment_store
        )

        with pytest.raises(TransferFailedError) as exc_info:
            await dispatcher.dispatch(transfer_decision(), context)

        assert exc_info.value.call_id == "call-001"

    @pytest.mark.asyncio
    async def test_timeout_becomes_transfer_failed(self, appointment_store, context) -> None:
        dispatcher = ActionDispatcher(
            FakeTelephony(delay=0.5), appointment_store, telephony_timeout=0.05
        )

        with pytest.raises(TransferFailedError, match="timeout"):
            await dispatcher.dispatch(transfer_decision(), context)


class TestHangup:
    @pytest.mark.asyncio
    async def test_terminates_and_clears(self, dispatcher, telephony, context) -> None:
        context.append_turn(Speaker.CALLER, "Goodbye")

        result = await dispatcher.dispatch(
            ActionDecision(response_text="Goodbye!", next_action=NextAction.HANGUP), context
        )

        assert result.action == NextAction.HANGUP
        assert result.ends_call
        assert telephony.terminated == ["call-001"]
        assert context.is_closed

    @pytest.mark.asyncio
    async def test_provider_failure_still_ends_call(self, appointment_store, context) -> None:
        dispatcher = ActionDispatcher(
            FakeTelephony(hangup_error=HangupFailedError("gone")), appointment_store
        )

        result = await dispatcher.hangup(context)

        assert result.ends_call
        assert context.is_closed
