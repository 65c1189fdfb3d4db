# clinic/routers/session.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.db.sql import get_session
from clinic.dependencies import get_current_user
from clinic.modules.users.models import User
from clinic.modules.users.schemas import LoginRequest, LoginResponse, UserEnvelope
from clinic.modules.users.service import InvalidCredentials, login_user, to_public

router = APIRouter(tags=["session"])


@router.post(
    "/session",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    summary="Log in with username and password",
    responses={
        200: {"description": "Authenticated"},
        401: {"description": "Invalid credentials"},
    },
)
async def session_login(
    payload: LoginRequest,
    session: AsyncSession = Depends(get_session),
):
    """
    Expects:
    {
        "username": "kylle",
        "password": "secret"
    }
    """
    try:
        return await login_user(session, payload)
    except InvalidCredentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid_credentials",
        )


@router.get(
    "/session/me",
    response_model=UserEnvelope,
    summary="Return the user bound to the Bearer token",
)
async def session_me(current_user: User = Depends(get_current_user)):
    return UserEnvelope(user=to_public(current_user))
