# clinic/modules/users/repository.py
from __future__ import annotations

from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.modules.users.models import PROVIDER_ROLES, User, UserRole


class UsernameTakenError(Exception):
    """Raised when trying to insert a user with a username that already exists."""


async def get_by_username(session: AsyncSession, username: str) -> Optional[User]:
    """
    Returns a User by primary key or None if not found.
    """
    return await session.get(User, username)


async def create_user(
    session: AsyncSession,
    *,
    username: str,
    password_hash: str,
    name: str = "",
    role: UserRole | str = UserRole.CLIENT,
    email: str = "",
    phone: str = "",
) -> User:
    """
    Inserts a new user row and returns the persisted ORM instance.
    Expects a *hashed* password.
    """
    role_value = role.value if isinstance(role, UserRole) else str(role)

    user = User(
        username=username.strip(),
        password_hash=password_hash,
        name=name.strip(),
        role=role_value,
        email=email.strip(),
        phone=phone.strip(),
    )

    session.add(user)
    try:
        # Flush to force INSERT and surface the primary key violation here
        await session.flush()
    except IntegrityError as exc:
        raise UsernameTakenError("Username already exists") from exc

    await session.refresh(user)
    return user


async def list_users(
    session: AsyncSession,
    *,
    role: Optional[UserRole] = None,
    providers_only: bool = False,
) -> Sequence[User]:
    stmt = select(User)
    if providers_only:
        stmt = stmt.where(User.role.in_([r.value for r in PROVIDER_ROLES]))
    if role is not None:
        stmt = stmt.where(User.role == role.value)
    stmt = stmt.order_by(User.created_at, User.username)
    return (await session.execute(stmt)).scalars().all()


async def find_provider(
    session: AsyncSession,
    *,
    role: UserRole,
    name: Optional[str] = None,
) -> Optional[User]:
    """
    Provider lookup for booking.
    With a name: exact match on (name, role).
    Without: the first registered provider of that role.
    """
    stmt = select(User).where(User.role == role.value)
    if name:
        stmt = stmt.where(User.name == name)
    stmt = stmt.order_by(User.created_at, User.username).limit(1)
    return (await session.execute(stmt)).scalars().first()
