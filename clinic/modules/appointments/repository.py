# clinic/modules/appointments/repository.py
from __future__ import annotations

from typing import Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.modules.appointments.models import Appointment
from clinic.modules.appointments.schemas import AppointmentFilters
from clinic.modules.users.models import PROVIDER_ROLES, UserRole


async def get_by_id(session: AsyncSession, appointment_id: str) -> Optional[Appointment]:
    return await session.get(Appointment, appointment_id)


async def add(session: AsyncSession, appt: Appointment) -> Appointment:
    session.add(appt)
    await session.flush()
    await session.refresh(appt)
    return appt


async def list_filtered(
    session: AsyncSession, filters: AppointmentFilters
) -> Sequence[Appointment]:
    conditions = []

    if filters.role == UserRole.CLIENT.value and filters.name:
        conditions.append(Appointment.patient_name == filters.name)

    if filters.role in {r.value for r in PROVIDER_ROLES}:
        conditions.append(Appointment.provider_role == filters.role)

    if filters.provider_role:
        conditions.append(Appointment.provider_role == filters.provider_role)
    if filters.provider_name:
        conditions.append(Appointment.provider_name == filters.provider_name)

    stmt = (
        select(Appointment)
        .where(*conditions)
        .order_by(Appointment.date, Appointment.time, Appointment.id)
    )
    return (await session.execute(stmt)).scalars().all()


async def count(session: AsyncSession) -> int:
    return (await session.execute(select(func.count()).select_from(Appointment))).scalar_one()


async def delete_by_id(session: AsyncSession, appointment_id: str) -> int:
    res = await session.execute(delete(Appointment).where(Appointment.id == appointment_id))
    return res.rowcount or 0  # type: ignore
