"""Call log repository."""

from __future__ import annotations

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from voxdesk.db.models import CallLog, CallOutcome


class AsyncCallLogRepository:
    """Async repository for call logs."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, call_id: str) -> CallLog | None:
        return await self.session.get(CallLog, call_id)

    async def upsert_call_log(self, call_id: str, **fields) -> CallLog:
        call_log = await self.get_by_id(call_id)
        if not call_log:
            call_log = CallLog(id=call_id)
        for key, value in fields.items():
            setattr(call_log, key, value)
        self.session.add(call_log)
        return call_log

    async def list(
        self,
        *,
        account_id: str | None = None,
        outcome: CallOutcome | None = None,
        limit: int = 100,
    ) -> list[CallLog]:
        query = select(CallLog)
        if account_id:
            query = query.where(CallLog.account_id == account_id)  # type: ignore[arg-type]
        if outcome:
            query = query.where(CallLog.outcome == outcome)  # type: ignore[arg-type]
        query = query.order_by(desc(CallLog.created_at)).limit(limit)  # type: ignore[arg-type]
        result = await self.session.execute(query)
        return list(result.scalars().all())
