# clinic/db/snapshot.py
"""
Whole-store snapshot: ``{"users": [...], "appointments": [...]}``.

The tables are the source of truth; a snapshot is how the store is
exported, imported and seeded as one JSON document.
"""
from __future__ import annotations

import datetime as dt
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.schemas import CamelModel
from clinic.core.security import hash_password
from clinic.modules.appointments.models import Appointment, ApptStatus
from clinic.modules.users.models import User, UserRole


class UserRecord(CamelModel):
    username: str
    password_hash: str = ""
    # Older documents carry the secret in clear text; it is hashed on load
    password: Optional[str] = Field(default=None, exclude=True, repr=False)
    name: str = ""
    role: UserRole = UserRole.CLIENT
    email: str = ""
    phone: str = ""
    created_at: Optional[dt.datetime] = None

    @model_validator(mode="after")
    def hash_legacy_password(self) -> "UserRecord":
        if not self.password_hash:
            if not self.password:
                raise ValueError(f"user {self.username!r} has no password")
            self.password_hash = hash_password(self.password)
        self.password = None
        return self


class AppointmentRecord(CamelModel):
    id: str
    patient_name: str
    patient_email: str = ""
    patient_phone: str = ""
    provider_role: str
    provider_name: str
    date: dt.date
    time: dt.time
    status: ApptStatus = ApptStatus.SCHEDULED
    notes: str = ""

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v):
        return ApptStatus.parse(v) if isinstance(v, str) else v


class Snapshot(CamelModel):
    users: List[UserRecord] = []
    appointments: List[AppointmentRecord] = []


async def read_snapshot(session: AsyncSession) -> Snapshot:
    users = (
        await session.execute(select(User).order_by(User.created_at, User.username))
    ).scalars().all()
    appointments = (
        await session.execute(select(Appointment).order_by(Appointment.date, Appointment.time, Appointment.id))
    ).scalars().all()
    return Snapshot(
        users=[UserRecord.model_validate(u) for u in users],
        appointments=[AppointmentRecord.model_validate(a) for a in appointments],
    )


async def replace_snapshot(session: AsyncSession, snapshot: Snapshot) -> None:
    """
    Replace both collections with the snapshot contents.
    The caller owns the transaction (commit or rollback).
    """
    await session.execute(delete(Appointment))
    await session.execute(delete(User))

    for u in snapshot.users:
        user = User(
            username=u.username,
            password_hash=u.password_hash,
            name=u.name,
            role=u.role.value,
            email=u.email,
            phone=u.phone,
        )
        if u.created_at is not None:
            user.created_at = u.created_at
        session.add(user)
        # One flush per user keeps registration order for default providers
        await session.flush()

    for a in snapshot.appointments:
        session.add(
            Appointment(
                id=a.id,
                patient_name=a.patient_name,
                patient_email=a.patient_email,
                patient_phone=a.patient_phone,
                provider_role=a.provider_role,
                provider_name=a.provider_name,
                date=a.date,
                time=a.time,
                status=a.status.value,
                notes=a.notes,
            )
        )
    await session.flush()
