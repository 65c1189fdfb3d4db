# clinic/db/seed.py
from __future__ import annotations

import datetime as dt
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.security import hash_password
from clinic.db.snapshot import AppointmentRecord, Snapshot, UserRecord, replace_snapshot
from clinic.modules.appointments.models import ApptStatus
from clinic.modules.users.models import User, UserRole

logger = logging.getLogger(__name__)

# (username, password, name, role, email, phone)
FIXTURE_USERS = [
    ("admin", "admin123", "Administrator", UserRole.ADMIN, "admin@csu.local", ""),
    ("kylle", "kylle123", "Kylle Cruz", UserRole.CLIENT, "kylle.mercado@csu.local", "+639669474682"),
    ("drsantos", "drpass", "Dr. Santos", UserRole.DENTIST, "drsantos@csu.local", "+639669474683"),
    ("drreyes", "drpass", "Dr. Reyes", UserRole.PHYSICIAN, "drreyes@csu.local", "+639669474684"),
]

FIXTURE_APPOINTMENTS = [
    AppointmentRecord(
        id="A-1001",
        patient_name="Kylle Cruz",
        patient_email="kylle.mercado@csu.local",
        patient_phone="+639669474682",
        provider_role=UserRole.DENTIST.value,
        provider_name="Dr. Santos",
        date=dt.date(2025, 12, 3),
        time=dt.time(9, 0),
        status=ApptStatus.SCHEDULED,
    ),
    AppointmentRecord(
        id="A-1002",
        patient_name="Kim Mongado",
        patient_email="kim.mongado@csu.local",
        patient_phone="+639669474685",
        provider_role=UserRole.PHYSICIAN.value,
        provider_name="Dr. Reyes",
        date=dt.date(2025, 12, 4),
        time=dt.time(10, 30),
        status=ApptStatus.SCHEDULED,
    ),
]


def fixture_snapshot() -> Snapshot:
    base = dt.datetime(2025, 1, 1)
    users = [
        UserRecord(
            username=username,
            password_hash=hash_password(password),
            name=name,
            role=role,
            email=email,
            phone=phone,
            created_at=base + dt.timedelta(seconds=i),
        )
        for i, (username, password, name, role, email, phone) in enumerate(FIXTURE_USERS)
    ]
    return Snapshot(users=users, appointments=list(FIXTURE_APPOINTMENTS))


async def seed_if_empty(session: AsyncSession) -> bool:
    """
    Load the fixture users and appointments into an empty store.
    Returns True when something was inserted.
    """
    existing = (await session.execute(select(func.count()).select_from(User))).scalar_one()
    if existing:
        return False

    await replace_snapshot(session, fixture_snapshot())
    await session.commit()
    logger.info(
        "Seeded %d users and %d appointments", len(FIXTURE_USERS), len(FIXTURE_APPOINTMENTS)
    )
    return True
