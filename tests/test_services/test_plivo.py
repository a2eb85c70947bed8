"""Tests for Plivo telephony service."""

from __future__ import annotations

from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlparse
from xml.etree.ElementTree import fromstring

import pytest

from voxdesk.core.classification import KEYWORD_TRANSFER_REASON
from voxdesk.services.llm.protocol import TextReply
from voxdesk.services.telephony.exceptions import HangupFailedError, TransferFailedError
from voxdesk.services.telephony.plivo import (
    PlivoCallInfo,
    PlivoGateway,
    generate_dial_xml,
    generate_hangup_xml,
    generate_stream_xml,
)


class TestPlivoCallInfo:
    def test_from_webhook(self) -> None:
        info = PlivoCallInfo.from_webhook(
            {
                "CallUUID": "uuid-1",
                "From": "+33611111111",
                "To": "+33100000000",
                "Direction": "inbound",
                "CallStatus": "answered",
            }
        )

        assert info.call_uuid == "uuid-1"
        assert info.to_number == "+33100000000"
        assert info.answered_at is not None

    def test_defaults(self) -> None:
        info = PlivoCallInfo.from_webhook({})

        assert info.call_uuid == ""
        assert info.direction == "inbound"
        assert info.answered_at is None


class TestXmlGeneration:
    def test_stream_xml(self) -> None:
        xml = generate_stream_xml("wss://example.com/ws/calls/uuid-1?account_id=a")
        root = fromstring(xml.split("?>", 1)[1])

        stream = root.find("Stream")
        assert stream is not None
        assert stream.text == "wss://example.com/ws/calls/uuid-1?account_id=a"
        assert stream.get("bidirectional") == "true"
        assert stream.get("contentType") == "audio/x-mulaw;rate=8000"

    def test_dial_xml(self) -> None:
        xml = generate_dial_xml("+33123456789", announcement="Please hold.")
        root = fromstring(xml.split("?>", 1)[1])

        assert root.find("Speak").text == "Please hold."
        assert root.find("Dial/Number").text == "+33123456789"

    def test_hangup_xml_with_reason(self) -> None:
        xml = generate_hangup_xml("Sorry, goodbye.")

        assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>')
        assert "<Speak" in xml
        assert "Sorry, goodbye." in xml
        assert "<Hangup" in xml

    def test_hangup_xml_without_reason(self) -> None:
        xml = generate_hangup_xml()

        assert "<Speak" not in xml
        assert "<Hangup" in xml


class TestPlivoGateway:
    @pytest.fixture
    def gateway(self, settings) -> PlivoGateway:
        gateway = PlivoGateway(settings=settings)
        gateway._client = MagicMock()
        return gateway

    def test_transfer_url(self, gateway) -> None:
        url = gateway.transfer_url("+33123456789", {"reason": "urgent", "urgency": "high"})
        parsed = urlparse(url)

        assert url.startswith("https://voxdesk.example.com/api/plivo/webhook/transfer?")
        assert parse_qs(parsed.query) == {
            "to": ["+33123456789"],
            "reason": ["urgent"],
            "urgency": ["high"],
        }

    @pytest.mark.asyncio
    async def test_keyword_transfer_url_has_no_caller_words(
        self, gateway, processor, completion_engine, context
    ) -> None:
        completion_engine.replies = [TextReply(text="One moment please.")]
        decision = await processor.process(
            "It's urgent, my name is Marie Dubois, call me on +33612345678", context
        )

        url = gateway.transfer_url("+33123456789", decision.payload.to_metadata())

        assert "Marie" not in url
        assert "33612345678" not in url
        assert "%2B33612345678" not in url
        assert parse_qs(urlparse(url).query)["reason"] == [KEYWORD_TRANSFER_REASON]

    @pytest.mark.asyncio
    async def test_initiate_transfer(self, gateway) -> None:
        await gateway.initiate_transfer("uuid-1", "+33123456789", {"reason": "urgent"})

        call = gateway._client.calls.transfer.call_args
        assert call.args == ("uuid-1",)
        assert call.kwargs["legs"] == "aleg"
        assert call.kwargs["aleg_method"] == "POST"
        assert "to=%2B33123456789" in call.kwargs["aleg_url"]

    @pytest.mark.asyncio
    async def test_transfer_without_destination(self, gateway) -> None:
        with pytest.raises(TransferFailedError):
            await gateway.initiate_transfer("uuid-1", "", {})

        gateway._client.calls.transfer.assert_not_called()

    @pytest.mark.asyncio
    async def test_transfer_rejected(self, gateway) -> None:
        gateway._client.calls.transfer.side_effect = RuntimeError("call not found")

        with pytest.raises(TransferFailedError, match="call not found"):
            await gateway.initiate_transfer("uuid-1", "+33123456789", {})

    @pytest.mark.asyncio
    async def test_terminate_call(self, gateway) -> None:
        await gateway.terminate_call("uuid-1")

        gateway._client.calls.delete.assert_called_once_with("uuid-1")

    @pytest.mark.asyncio
    async def test_terminate_call_rejected(self, gateway) -> None:
        gateway._client.calls.delete.side_effect = RuntimeError("already hung up")

        with pytest.raises(HangupFailedError):
            await gateway.terminate_call("uuid-1")

    @pytest.mark.asyncio
    async def test_health_check(self, gateway) -> None:
        assert await gateway.health_check() is True

        gateway._client.account.get.side_effect = RuntimeError("401")
        assert await gateway.health_check() is False
