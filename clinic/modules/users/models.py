# clinic/modules/users/models.py
from __future__ import annotations

from enum import Enum as PyEnum

from sqlalchemy import CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from clinic.db.base import Base, ReprMixin, TimestampMixin


class UserRole(str, PyEnum):
    CLIENT = "CLIENT"
    DENTIST = "DENTIST"
    PHYSICIAN = "PHYSICIAN"
    ADMIN = "ADMIN"


PROVIDER_ROLES = (UserRole.DENTIST, UserRole.PHYSICIAN)


class User(TimestampMixin, ReprMixin, Base):
    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(64), primary_key=True)

    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    name: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserRole.CLIENT.value
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    phone: Mapped[str] = mapped_column(String(32), nullable=False, default="")

    __table_args__ = (
        CheckConstraint(
            "role IN ('CLIENT', 'DENTIST', 'PHYSICIAN', 'ADMIN')",
            name="ck_users_role_valid",
        ),
        Index("ix_users_role", "role"),
    )
