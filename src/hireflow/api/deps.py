from __future__ import annotations

from fastapi import Depends, Header, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from hireflow.api.security import AuthUser, decode_access_token
from hireflow.config import get_settings
from hireflow.db.session import get_db_session

bearer_scheme = HTTPBearer(auto_error=False)

get_db = get_db_session


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AuthUser:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    user = decode_access_token(credentials.credentials)
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def require_business(user: AuthUser = Depends(get_current_user)) -> AuthUser:
    if user.user_type != "business":
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def require_jobseeker(user: AuthUser = Depends(get_current_user)) -> AuthUser:
    if user.user_type != "jobseeker":
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def require_processing_secret(x_processing_secret: str | None = Header(default=None)) -> None:
    configured = get_settings().document_processing_secret
    if configured and x_processing_secret != configured:
        raise HTTPException(status_code=401, detail="Unauthorized")
