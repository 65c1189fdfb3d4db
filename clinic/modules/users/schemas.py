# clinic/modules/users/schemas.py
from __future__ import annotations

from typing import List

from pydantic import SecretStr, field_validator

from clinic.core.schemas import CamelModel, RequiredStr
from clinic.modules.users.models import UserRole


class SignupRequest(CamelModel):
    username: RequiredStr
    password: SecretStr
    name: str = ""
    role: UserRole = UserRole.CLIENT
    email: str = ""
    phone: str = ""

    @field_validator("password")
    @classmethod
    def password_not_empty(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value():
            raise ValueError("Password is required")
        return v

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, v):
        # Empty role from a form means "not chosen"
        if v is None or v == "":
            return UserRole.CLIENT
        return v.upper() if isinstance(v, str) else v

    @field_validator("email", "phone", "name", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v


class UserPublic(CamelModel):
    """
    User without the password secret.
    """
    username: str
    name: str
    role: UserRole
    email: str
    phone: str


class UserEnvelope(CamelModel):
    user: UserPublic


class UserList(CamelModel):
    users: List[UserPublic]


# --- Login ---

class LoginRequest(CamelModel):
    username: RequiredStr
    password: SecretStr


class LoginResponse(CamelModel):
    user: UserPublic
    access_token: str
    token_type: str = "bearer"
    expires_in: int
