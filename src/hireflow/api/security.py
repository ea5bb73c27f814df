from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

import jwt

from hireflow.config import Settings, get_settings
from hireflow.db.base import utcnow


@dataclass(slots=True, frozen=True)
class AuthUser:
    user_id: int
    user_type: str


def create_access_token(
    user_id: int,
    user_type: str,
    *,
    settings: Settings | None = None,
    expires_in: timedelta = timedelta(hours=24),
) -> str:
    settings = settings or get_settings()
    now = utcnow()
    payload = {"sub": str(user_id), "user_type": user_type, "iat": now, "exp": now + expires_in}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, *, settings: Settings | None = None) -> AuthUser | None:
    settings = settings or get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
        return AuthUser(user_id=int(payload["sub"]), user_type=str(payload.get("user_type", "")))
    except (jwt.PyJWTError, KeyError, TypeError, ValueError):
        return None
