# clinic/modules/appointments/models.py
from __future__ import annotations

import uuid
import datetime as dt
from enum import Enum as PyEnum

from sqlalchemy import Date, Index, Integer, String, Text, Time
from sqlalchemy.orm import Mapped, mapped_column

from clinic.db.base import Base, ReprMixin, TimestampMixin


class ApptStatus(str, PyEnum):
    SCHEDULED = "Scheduled"
    APPROVED = "Approved"
    CONFIRMED = "Confirmed"
    REJECTED = "Rejected"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    @classmethod
    def parse(cls, value: str) -> "ApptStatus":
        """Case-insensitive lookup ("approved" -> APPROVED)."""
        if isinstance(value, cls):
            return value
        for member in cls:
            if member.value.lower() == str(value).strip().lower():
                return member
        raise ValueError(f"Unknown appointment status: {value!r}")


def new_appointment_id() -> str:
    return f"A-{uuid.uuid4().hex}"


class Appointment(TimestampMixin, ReprMixin, Base):
    """
    Patient contact is a snapshot taken at booking time. The provider is
    referenced by (provider_role, provider_name), not by foreign key.
    """

    __tablename__ = "appointments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_appointment_id)

    patient_name: Mapped[str] = mapped_column(String(120), nullable=False)
    patient_email: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    patient_phone: Mapped[str] = mapped_column(String(32), nullable=False, default="")

    provider_role: Mapped[str] = mapped_column(String(20), nullable=False)
    provider_name: Mapped[str] = mapped_column(String(120), nullable=False)

    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    time: Mapped[dt.time] = mapped_column(Time, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ApptStatus.SCHEDULED.value,
    )
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Optimistic concurrency: UPDATE ... WHERE version = <loaded version>
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_appt_provider_date_time", "provider_role", "provider_name", "date", "time"),
        Index("ix_appt_patient_name", "patient_name"),
    )
