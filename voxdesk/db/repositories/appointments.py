"""Appointment repository."""

from __future__ import annotations

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from voxdesk.db.models import Appointment


class AsyncAppointmentRepository:
    """Async repository for appointments captured on calls."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, appointment_id: str) -> Appointment | None:
        return await self.session.get(Appointment, appointment_id)

    async def create(self, **fields) -> Appointment:
        appointment = Appointment(**fields)
        self.session.add(appointment)
        await self.session.flush()
        return appointment

    async def list_for_call(self, call_id: str) -> list[Appointment]:
        query = (
            select(Appointment)
            .where(Appointment.call_id == call_id)  # type: ignore[arg-type]
            .order_by(Appointment.created_at)  # type: ignore[arg-type]
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_for_account(self, account_id: str, *, limit: int = 100) -> list[Appointment]:
        query = (
            select(Appointment)
            .where(Appointment.account_id == account_id)  # type: ignore[arg-type]
            .order_by(desc(Appointment.created_at))  # type: ignore[arg-type]
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())
