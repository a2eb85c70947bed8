"""Telephony services (Plivo).

This module provides integration with Plivo for voice telephony:
- PlivoGateway: call transfer and hangup
- XML builders for the answer, transfer and fallback webhooks
"""

from voxdesk.services.telephony.exceptions import (
    HangupFailedError,
    TelephonyError,
    TransferFailedError,
)
from voxdesk.services.telephony.plivo import (
    PlivoCallInfo,
    PlivoGateway,
    generate_dial_xml,
    generate_hangup_xml,
    generate_stream_xml,
)
from voxdesk.services.telephony.protocol import TelephonyGateway

__all__ = [
    # Service
    "PlivoGateway",
    "TelephonyGateway",
    # Data classes
    "PlivoCallInfo",
    # XML
    "generate_stream_xml",
    "generate_dial_xml",
    "generate_hangup_xml",
    # Exceptions
    "TelephonyError",
    "TransferFailedError",
    "HangupFailedError",
]
