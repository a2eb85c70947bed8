"""Telephony gateway protocol."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol


class TelephonyGateway(Protocol):
    """Call-control operations the receptionist needs from the telephony provider."""

    async def initiate_transfer(
        self,
        call_id: str,
        destination: str,
        metadata: Mapping[str, str],
    ) -> None:
        """Hand the live call to a human at ``destination``.

        Raises:
            TransferFailedError: When the provider rejects the transfer
        """
        ...

    async def terminate_call(self, call_id: str) -> None:
        """Hang up the call.

        Raises:
            HangupFailedError: When the provider rejects the hangup
        """
        ...
