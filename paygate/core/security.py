"""Admin credentials, password hashing and JWT helpers."""
from __future__ import annotations

import hmac
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from paygate.core.config import Settings, get_settings

ADMIN_ROLE = "admin"

security = HTTPBearer()


class TokenData(BaseModel):
    username: str
    role: str


def hash_password(password: str) -> str:
    """Hash plain text password using bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain text password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def authenticate_admin(settings: Settings, username: str, password: str) -> bool:
    password_hash = settings.security.admin_password_hash
    if not password_hash:
        return False
    same_user = hmac.compare_digest(username.encode("utf-8"), settings.security.admin_username.encode("utf-8"))
    # bcrypt runs for every attempt, known username or not
    password_ok = verify_password(password, password_hash)
    return same_user and password_ok


def create_access_token(
    username: str,
    role: str = ADMIN_ROLE,
    expires_delta: Optional[timedelta] = None,
    settings: Optional[Settings] = None,
) -> str:
    settings = settings or get_settings()
    expire_delta = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        "sub": username,
        "role": role,
        "exp": datetime.now(timezone.utc) + expire_delta,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str, settings: Optional[Settings] = None) -> TokenData:
    settings = settings or get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="无法验证凭据") from exc

    username = payload.get("sub")
    role = payload.get("role")
    if not all([username, role]):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="无法验证凭据")
    return TokenData(username=username, role=role)
