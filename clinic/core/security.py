# clinic/core/security.py
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from clinic.core.config import settings

# =========
# Passwords
# =========

# Plain bcrypt hashes are still accepted and upgraded on the next login
_pwd_ctx = CryptContext(
    schemes=["bcrypt_sha256", "bcrypt"],
    default="bcrypt_sha256",
    deprecated="auto",
)


def hash_password(plain_password: str) -> str:
    if not isinstance(plain_password, str) or plain_password == "":
        raise ValueError("Password must be a non-empty string")
    return _pwd_ctx.hash(plain_password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    """
    Constant-time check of a password against its stored hash.
    Unknown or malformed hashes never match.
    """
    if not password_hash or not plain_password:
        return False
    try:
        return _pwd_ctx.verify(plain_password, password_hash)
    except (ValueError, TypeError):
        return False


def password_needs_rehash(password_hash: str) -> bool:
    return _pwd_ctx.needs_update(password_hash)


# =============
# Access tokens
# =============

class TokenType(str, Enum):
    ACCESS = "access"


ALGORITHM = "HS256"


class InvalidTokenError(Exception):
    """Raised when a token is missing/invalid/expired or claims are malformed."""


def create_access_token(
    *,
    subject: str,                # username
    role: Optional[str] = None,  # "CLIENT" | "DENTIST" | "PHYSICIAN" | "ADMIN"
) -> str:
    """
    Bearer token returned by POST /session.
    """
    issued = datetime.now(timezone.utc)
    lifetime = timedelta(minutes=settings.ACCESS_EXPIRES_MIN)
    claims: Dict[str, Any] = {
        "sub": subject,
        "type": TokenType.ACCESS.value,
        "iat": int(issued.timestamp()),
        "exp": int((issued + lifetime).timestamp()),
        "jti": uuid.uuid4().hex,
    }
    if role:
        claims["role"] = role
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a JWT. Raises InvalidTokenError on failure.
    """
    if not token:
        raise InvalidTokenError("missing_token")
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM])
    except JWTError as exc:
        # expired, bad signature, garbled
        raise InvalidTokenError("invalid_token") from exc

    if not payload.get("sub") or "type" not in payload:
        raise InvalidTokenError("invalid_claims")
    return payload


def is_access_token(payload: Dict[str, Any]) -> bool:
    return payload.get("type") == TokenType.ACCESS.value
