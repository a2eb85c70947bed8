"""Plivo telephony service for the receptionist.

Handles:
- XML response generation for call flow
- Call transfer and hangup via Plivo SDK
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Literal
from urllib.parse import urlencode
from xml.etree.ElementTree import Element, SubElement, tostring

from voxdesk.config import Settings, get_settings
from voxdesk.logging_config import get_logger, mask_phone
from voxdesk.services.telephony.exceptions import HangupFailedError, TransferFailedError

if TYPE_CHECKING:
    import plivo

logger: Any = get_logger(__name__)

SPEAK_VOICE = "WOMAN"
SPEAK_LANGUAGE = "en-US"


@dataclass(frozen=True, slots=True)
class PlivoCallInfo:
    """Information about a Plivo call."""

    call_uuid: str
    from_number: str
    to_number: str
    direction: Literal["inbound", "outbound"]
    status: str = "initiated"
    answered_at: datetime | None = None

    @classmethod
    def from_webhook(cls, form_data: Mapping[str, str]) -> PlivoCallInfo:
        """Create from Plivo webhook form data."""
        return cls(
            call_uuid=form_data.get("CallUUID", ""),
            from_number=form_data.get("From", ""),
            to_number=form_data.get("To", ""),
            direction=form_data.get("Direction", "inbound"),  # type: ignore[arg-type]
            status=form_data.get("CallStatus", "initiated"),
            answered_at=datetime.now(UTC) if form_data.get("CallStatus") == "answered" else None,
        )


def _render(response: Element) -> str:
    xml_str = tostring(response, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>{xml_str}'


def generate_stream_xml(
    websocket_url: str,
    *,
    bidirectional: bool = True,
    audio_track: str = "inbound",
    content_type: str = "audio/x-mulaw;rate=8000",
    stream_timeout: int = 3600,
) -> str:
    """Generate Plivo XML connecting the call to the session WebSocket.

    Args:
        websocket_url: WebSocket URL for the call session
        bidirectional: Enable bidirectional audio
        audio_track: Which audio track to stream (inbound/outbound/both)
        content_type: Audio content type
        stream_timeout: Stream timeout in seconds

    Returns:
        XML string for Plivo response
    """
    response = Element("Response")

    stream = SubElement(response, "Stream")
    stream.set("bidirectional", str(bidirectional).lower())
    stream.set("audioTrack", audio_track)
    stream.set("contentType", content_type)
    stream.set("streamTimeout", str(stream_timeout))
    stream.text = websocket_url

    return _render(response)


def generate_dial_xml(destination: str, *, announcement: str = "") -> str:
    """Generate Plivo XML bridging the caller to a phone number."""
    response = Element("Response")

    if announcement:
        speak = SubElement(response, "Speak")
        speak.set("voice", SPEAK_VOICE)
        speak.set("language", SPEAK_LANGUAGE)
        speak.text = announcement

    dial = SubElement(response, "Dial")
    number = SubElement(dial, "Number")
    number.text = destination

    return _render(response)


def generate_hangup_xml(reason: str = "") -> str:
    """Generate Plivo XML to hangup call."""
    response = Element("Response")

    if reason:
        speak = SubElement(response, "Speak")
        speak.set("voice", SPEAK_VOICE)
        speak.set("language", SPEAK_LANGUAGE)
        speak.text = reason

    SubElement(response, "Hangup")

    return _render(response)


class PlivoGateway:
    """Call control through the Plivo REST API."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._client: plivo.RestClient | None = None

    @property
    def client(self) -> plivo.RestClient:
        """Lazy-initialize Plivo REST client."""
        if self._client is None:
            import plivo

            self._client = plivo.RestClient(
                auth_id=self._settings.plivo_auth_id,
                auth_token=self._settings.plivo_auth_token.get_secret_value(),
            )
        return self._client

    def transfer_url(self, destination: str, metadata: Mapping[str, str]) -> str:
        """Webhook URL Plivo fetches to get the Dial XML for a transfer."""
        query = urlencode({"to": destination, **metadata})
        base = self._settings.public_base_url.rstrip("/")
        return f"{base}/api/plivo/webhook/transfer?{query}"

    async def initiate_transfer(
        self,
        call_id: str,
        destination: str,
        metadata: Mapping[str, str],
    ) -> None:
        """Redirect the caller leg to the transfer webhook.

        Raises:
            TransferFailedError: If there is no destination or Plivo rejects it
        """
        if not destination:
            raise TransferFailedError(call_id, "no transfer destination configured")

        aleg_url = self.transfer_url(destination, metadata)
        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(
                None,
                lambda: self.client.calls.transfer(
                    call_id,
                    legs="aleg",
                    aleg_url=aleg_url,
                    aleg_method="POST",
                ),
            )
        except Exception as e:
            logger.error(f"Plivo transfer failed for call {call_id}: {e}")
            raise TransferFailedError(call_id, str(e)) from e

        logger.info(f"Call {call_id} transferred to {mask_phone(destination)}")

    async def terminate_call(self, call_id: str) -> None:
        """Hangup an active call.

        Raises:
            HangupFailedError: If Plivo rejects the request
        """
        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(
                None,
                lambda: self.client.calls.delete(call_id),
            )
        except Exception as e:
            logger.error(f"Failed to hangup call {call_id}: {e}")
            raise HangupFailedError(f"Hangup failed for call {call_id}: {e}") from e

    async def health_check(self) -> bool:
        """Check Plivo API connectivity."""
        try:
            loop = asyncio.get_running_loop()
            # Get account details to verify credentials
            await loop.run_in_executor(
                None,
                lambda: self.client.account.get(),
            )
            return True
        except Exception as e:
            logger.warning(f"Plivo health check failed: {e}")
            return False
