# clinic/modules/users/service.py
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.config import settings
from clinic.core.errors import AuthError, ConflictError
from clinic.core.security import (
    create_access_token,
    hash_password,
    password_needs_rehash,
    verify_password,
)
from clinic.modules.users import repository as users_repo
from clinic.modules.users.models import User, UserRole
from clinic.modules.users.schemas import (
    LoginRequest,
    LoginResponse,
    SignupRequest,
    UserList,
    UserPublic,
)

logger = logging.getLogger(__name__)


# Service-level errors (map them to HTTP in the router)
class UsernameAlreadyExists(ConflictError):
    pass


class InvalidCredentials(AuthError):
    pass


def to_public(user: User) -> UserPublic:
    """
    Convert ORM model to public DTO (password stripped).
    """
    return UserPublic.model_validate(user)


async def signup_user(session: AsyncSession, payload: SignupRequest) -> UserPublic:
    """
    Business flow for signup:
      1) Check username uniqueness.
      2) Hash password (never store plain text).
      3) Persist user.
      4) Return public DTO.
    """
    username = payload.username

    if await users_repo.get_by_username(session, username):
        raise UsernameAlreadyExists("username_already_exists")

    try:
        user = await users_repo.create_user(
            session,
            username=username,
            password_hash=hash_password(payload.password.get_secret_value()),
            name=payload.name,
            role=payload.role,
            email=payload.email,
            phone=payload.phone,
        )
    except users_repo.UsernameTakenError as exc:
        # Lost a race with a concurrent signup for the same username
        raise UsernameAlreadyExists("username_already_exists") from exc

    await session.commit()
    logger.info("New user signed up: %s (%s)", user.username, user.role)
    return to_public(user)


async def login_user(session: AsyncSession, payload: LoginRequest) -> LoginResponse:
    """
    1) Fetch user by username
    2) Verify bcrypt password
    3) Upgrade a legacy hash in place
    4) Issue an access token
    """
    user = await users_repo.get_by_username(session, payload.username)
    if not user or not verify_password(payload.password.get_secret_value(), user.password_hash):
        logger.info("Login attempt failed for: %s", payload.username)
        raise InvalidCredentials("invalid_credentials")

    if password_needs_rehash(user.password_hash):
        user.password_hash = hash_password(payload.password.get_secret_value())
        await session.commit()
        logger.info("Password hash upgraded for %s", user.username)

    access = create_access_token(subject=user.username, role=user.role)
    logger.info("User logged in: %s (%s)", user.username, user.role)
    return LoginResponse(
        user=to_public(user),
        access_token=access,
        expires_in=settings.ACCESS_EXPIRES_MIN * 60,
    )


async def list_users(
    session: AsyncSession,
    *,
    role: Optional[UserRole] = None,
    providers_only: bool = False,
) -> UserList:
    users = await users_repo.list_users(session, role=role, providers_only=providers_only)
    return UserList(users=[to_public(u) for u in users])
