"""Plivo webhook handlers for call lifecycle management.

Handles:
- Answer webhook: Returns XML that connects the call to its session WebSocket
- Hangup webhook: Ends the session when the caller disconnects
- Transfer webhook: Returns Dial XML used as the transfer target
- Fallback webhook: Error handling
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request, Response

from voxdesk.api.dependencies import get_orchestrator
from voxdesk.core.orchestrator import CallOrchestrator
from voxdesk.core.session import CALLER_HANGUP
from voxdesk.db.exceptions import PersistenceError
from voxdesk.logging_config import get_logger, mask_phone
from voxdesk.services.telephony.plivo import (
    PlivoCallInfo,
    generate_dial_xml,
    generate_hangup_xml,
    generate_stream_xml,
)

router = APIRouter(prefix="/plivo", tags=["Plivo"])
logger: Any = get_logger(__name__)

UNCONFIGURED_NUMBER_TEXT = "This number is not in service. Please try again later."
TECHNICAL_PROBLEM_TEXT = "Sorry, we are having technical difficulties. Please call again later."
TRANSFER_ANNOUNCEMENT = "Please hold while we connect you."


def _xml(content: str) -> Response:
    return Response(content=content, media_type="application/xml")


def _websocket_url(request: Request, call_uuid: str, account_id: str) -> str:
    """Session WebSocket URL, honouring proxy headers."""
    host = request.headers.get("x-forwarded-host") or request.headers.get("host", "localhost:8000")
    proto = request.headers.get("x-forwarded-proto", request.url.scheme)
    scheme = "wss" if proto == "https" else "ws"
    query = urlencode({"account_id": account_id})
    return f"{scheme}://{host}/ws/calls/{call_uuid}?{query}"


@router.post("/webhook/answer")
async def plivo_answer_webhook(
    request: Request,
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
) -> Response:
    """Handle incoming call answer event from Plivo.

    Returns XML that initiates bidirectional audio streaming.

    Expected form data:
    - CallUUID: Unique call identifier
    - From: Caller phone number
    - To: Called phone number
    - Direction: inbound/outbound
    - CallStatus: current call status
    """
    form_data = await request.form()
    call_info = PlivoCallInfo.from_webhook({k: str(v) for k, v in form_data.items()})

    logger.info(
        f"Call answered: {call_info.call_uuid} "
        f"({call_info.direction}, to {mask_phone(call_info.to_number)})"
    )

    # Never route an unknown number to some other account's receptionist
    account_id: str | None = None
    if call_info.to_number:
        try:
            account_id = await orchestrator.resolve_account(call_info.to_number)
        except PersistenceError as e:
            logger.error(f"Failed to resolve account: {e}")

    if account_id is None:
        logger.error(
            f"Call {call_info.call_uuid} rejected: no account for "
            f"{mask_phone(call_info.to_number)}"
        )
        return _xml(generate_hangup_xml(reason=UNCONFIGURED_NUMBER_TEXT))

    websocket_url = _websocket_url(request, call_info.call_uuid, account_id)
    logger.debug(f"Returning stream XML for {call_info.call_uuid}")
    return _xml(generate_stream_xml(websocket_url))


@router.post("/webhook/hangup")
async def plivo_hangup_webhook(
    request: Request,
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
) -> dict[str, bool]:
    """Handle call hangup event from Plivo.

    Expected form data:
    - CallUUID: Unique call identifier
    - Duration: Call duration in seconds
    - HangupCause: Reason for hangup
    """
    form_data = await request.form()
    call_uuid = str(form_data.get("CallUUID", ""))
    duration = str(form_data.get("Duration", "0"))
    hangup_cause = str(form_data.get("HangupCause", ""))

    logger.info(f"Call ended: {call_uuid} (duration: {duration}s, cause: {hangup_cause})")

    if call_uuid:
        await orchestrator.end_session(call_uuid, CALLER_HANGUP)

    return {"ok": True}


@router.post("/webhook/transfer")
async def plivo_transfer_webhook(
    to: str = Query(..., min_length=1),
    reason: str = Query(""),
    urgency: str = Query("medium"),
) -> Response:
    """Dial XML for a call being handed to a human."""
    logger.info(f"Transfer to {mask_phone(to)} (urgency: {urgency})")
    return _xml(generate_dial_xml(to, announcement=TRANSFER_ANNOUNCEMENT))


@router.post("/webhook/fallback")
async def plivo_fallback_webhook(request: Request) -> Response:
    """Fallback handler for Plivo errors.

    Called when the primary answer webhook fails.
    Returns a simple apology message and hangs up.
    """
    form_data = await request.form()
    call_uuid = str(form_data.get("CallUUID", ""))
    error = str(form_data.get("ErrorMessage", "Unknown error"))

    logger.error(f"Plivo fallback triggered: {call_uuid} - {error}")

    return _xml(generate_hangup_xml(reason=TECHNICAL_PROBLEM_TEXT))
