"""Caller account repository."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from voxdesk.db.models import CallerAccount


class AsyncCallerAccountRepository:
    """Async repository for call routing and configuration loading."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, account_id: str) -> CallerAccount | None:
        return await self.session.get(CallerAccount, account_id)

    async def get_by_phone_number(self, phone_number: str) -> CallerAccount | None:
        """Look up the account by incoming phone number.

        Called during call routing to resolve which firm's line was dialled
        based on the "To" phone number.
        """
        query = select(CallerAccount).where(
            CallerAccount.phone_number == phone_number,  # type: ignore[arg-type]
            CallerAccount.is_active == True,  # noqa: E712
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def create(self, **fields) -> CallerAccount:
        # Table models skip validation on plain construction
        account = CallerAccount.model_validate(fields)
        self.session.add(account)
        return account

    async def update(self, account_id: str, **fields) -> CallerAccount | None:
        account = await self.get_by_id(account_id)
        if not account:
            return None
        for key, value in fields.items():
            setattr(account, key, value)
        account.updated_at = datetime.now(UTC)
        self.session.add(account)
        return account
