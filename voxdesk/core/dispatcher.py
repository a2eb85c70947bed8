"""Action dispatch: performs the side effect a turn decided on."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from voxdesk.core.context import ConversationContext
from voxdesk.core.models import (
    ActionDecision,
    NextAction,
    SchedulePayload,
    TransferPayload,
)
from voxdesk.db.exceptions import PersistenceError
from voxdesk.db.protocol import AppointmentRecord, AppointmentStore
from voxdesk.logging_config import get_logger, mask_phone
from voxdesk.observability.metrics import record_dispatch_failure
from voxdesk.prompts.receptionist import SCHEDULE_FAILED_TEXT
from voxdesk.services.telephony.exceptions import TelephonyError, TransferFailedError
from voxdesk.services.telephony.protocol import TelephonyGateway

logger: Any = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """What the session loop should do after dispatch.

    ``follow_up_text`` is spoken to the caller when set (e.g. an apology
    after a failed booking).
    """

    action: NextAction
    ends_call: bool = False
    follow_up_text: str | None = None
    appointment_id: str | None = None


class ActionDispatcher:
    """Maps each NextAction to its external side effect."""

    def __init__(
        self,
        telephony: TelephonyGateway,
        appointments: AppointmentStore,
        *,
        telephony_timeout: float = 5.0,
        persistence_timeout: float = 3.0,
    ) -> None:
        self._telephony = telephony
        self._appointments = appointments
        self._telephony_timeout = telephony_timeout
        self._persistence_timeout = persistence_timeout

    async def dispatch(
        self, decision: ActionDecision, context: ConversationContext
    ) -> DispatchResult:
        """Perform the side effect for ``decision``.

        Raises:
            TransferFailedError: Transfer could not be initiated
        """
        action = decision.next_action
        if action == NextAction.CONTINUE:
            return DispatchResult(action=NextAction.CONTINUE)
        if action == NextAction.TRANSFER:
            return await self._transfer(decision, context)
        if action == NextAction.SCHEDULE:
            return await self._schedule(decision, context)
        if action == NextAction.HANGUP:
            return await self.hangup(context)
        raise ValueError(f"Unknown action: {action}")

    async def _transfer(
        self, decision: ActionDecision, context: ConversationContext
    ) -> DispatchResult:
        call_id = context.call_id
        payload = decision.payload
        assert isinstance(payload, TransferPayload)

        destination = context.config.transfer_destination
        if not destination:
            record_dispatch_failure(NextAction.TRANSFER.value)
            logger.error(f"Call {call_id}: transfer requested but no destination configured")
            raise TransferFailedError(call_id, "no transfer destination configured")

        try:
            await asyncio.wait_for(
                self._telephony.initiate_transfer(call_id, destination, payload.to_metadata()),
                timeout=self._telephony_timeout,
            )
        except TransferFailedError:
            record_dispatch_failure(NextAction.TRANSFER.value)
            raise
        except TimeoutError as e:
            record_dispatch_failure(NextAction.TRANSFER.value)
            logger.error(f"Call {call_id}: transfer timed out after {self._telephony_timeout}s")
            raise TransferFailedError(call_id, "telephony timeout") from e
        except TelephonyError as e:
            record_dispatch_failure(NextAction.TRANSFER.value)
            raise TransferFailedError(call_id, str(e)) from e

        logger.info(
            f"Call {call_id}: transferred to {mask_phone(destination)} "
            f"(urgency={payload.urgency.value})"
        )
        return DispatchResult(action=NextAction.TRANSFER, ends_call=True)

    async def _schedule(
        self, decision: ActionDecision, context: ConversationContext
    ) -> DispatchResult:
        call_id = context.call_id
        payload = decision.payload

        if payload is None:
            # Keyword-detected intent; the assistant is still collecting details
            logger.info(f"Call {call_id}: scheduling intent noted, awaiting details")
            return DispatchResult(action=NextAction.SCHEDULE)

        assert isinstance(payload, SchedulePayload)
        record = AppointmentRecord.from_payload(
            payload, call_id=call_id, account_id=context.config.account_id
        )

        try:
            appointment_id = await asyncio.wait_for(
                self._appointments.persist_appointment(record),
                timeout=self._persistence_timeout,
            )
        except (PersistenceError, TimeoutError) as e:
            record_dispatch_failure(NextAction.SCHEDULE.value)
            logger.error(f"Call {call_id}: appointment not saved, continuing call: {e!r}")
            return DispatchResult(action=NextAction.CONTINUE, follow_up_text=SCHEDULE_FAILED_TEXT)
        except Exception as e:
            # Store bugs must not take the call down either
            record_dispatch_failure(NextAction.SCHEDULE.value)
            logger.exception(f"Call {call_id}: unexpected store error, continuing call: {e!r}")
            return DispatchResult(action=NextAction.CONTINUE, follow_up_text=SCHEDULE_FAILED_TEXT)

        logger.info(f"Call {call_id}: appointment {appointment_id} scheduled")
        return DispatchResult(action=NextAction.SCHEDULE, appointment_id=appointment_id)

    async def hangup(self, context: ConversationContext) -> DispatchResult:
        """Terminate the call and release its context.

        Telephony failures are logged; the call is treated as over either way.
        """
        call_id = context.call_id
        try:
            await asyncio.wait_for(
                self._telephony.terminate_call(call_id),
                timeout=self._telephony_timeout,
            )
        except (TelephonyError, TimeoutError) as e:
            record_dispatch_failure(NextAction.HANGUP.value)
            logger.warning(f"Call {call_id}: hangup request failed: {e!r}")

        context.clear()
        logger.info(f"Call {call_id}: hung up")
        return DispatchResult(action=NextAction.HANGUP, ends_call=True)
