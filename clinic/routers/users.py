# clinic/routers/users.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.db.sql import get_session
from clinic.modules.users.models import UserRole
from clinic.modules.users.schemas import SignupRequest, UserEnvelope, UserList
from clinic.modules.users.service import UsernameAlreadyExists, list_users, signup_user

router = APIRouter(tags=["users"])


@router.post(
    "/users",
    response_model=UserEnvelope,
    status_code=status.HTTP_200_OK,
    summary="Sign up a new user",
    responses={
        200: {"description": "User created"},
        409: {"description": "Username already taken"},
        422: {"description": "Missing username or password"},
    },
)
async def users_signup(
    payload: SignupRequest,
    session: AsyncSession = Depends(get_session),
):
    """
    Create an account (default role: `CLIENT`).

    Notes:
    - The password is hashed before it is stored.
    - The response never contains the password.
    """
    try:
        user = await signup_user(session, payload)
    except UsernameAlreadyExists:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="username_already_exists",
        )
    return UserEnvelope(user=user)


@router.get(
    "/users",
    response_model=UserList,
    summary="List users without their passwords",
)
async def users_list(
    role: Optional[UserRole] = Query(None),
    providers_only: bool = Query(False, alias="providersOnly"),
    session: AsyncSession = Depends(get_session),
):
    return await list_users(session, role=role, providers_only=providers_only)
