"""
Password hashing, access tokens and the auth dependencies shared by the routers.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple

from fastapi import Depends, HTTPException, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pymongo.database import Database

from config import get_settings
from database import get_db, is_valid_id, public_user, to_obj_id

logger = logging.getLogger(__name__)

AUTH_COOKIE = "Authorization"
MIN_PASSWORD_LENGTH = 6

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


def verify_password_policy(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
        )


def hash_password(password: str) -> str:
    verify_password_policy(password)
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(password, hashed)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(hours=settings.access_token_expire_hours)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict:
    settings = get_settings()
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_token(expires_in: timedelta) -> Tuple[str, str, datetime]:
    """Return (raw token for the email, sha256 hash to store, expiry)."""
    raw = secrets.token_hex(20)
    return raw, hash_token(raw), datetime.now(timezone.utc) + expires_in


def _token_from_cookie(request: Request) -> Optional[str]:
    value = request.cookies.get(AUTH_COOKIE)
    if value and value.startswith("Bearer "):
        return value.split(" ", 1)[1]
    return None


def get_current_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: Database = Depends(get_db),
):
    token = token or _token_from_cookie(request)
    if not token:
        raise HTTPException(status_code=401, detail="Access denied. No token provided")
    invalid = HTTPException(status_code=401, detail="Invalid or expired token")
    try:
        payload = decode_access_token(token)
    except JWTError as exc:
        logger.info("Token verification failed: %s", exc)
        raise invalid
    user_id = payload.get("sub")
    if not is_valid_id(user_id):
        raise invalid
    user = db["user"].find_one({"_id": to_obj_id(user_id)})
    if not user:
        raise invalid
    return public_user(user)


def require_role(*roles: str):
    def role_dep(current_user=Depends(get_current_user)):
        if current_user.get("role") not in roles:
            raise HTTPException(
                status_code=403,
                detail="Access denied, You do not have permission to perform this action",
            )
        return current_user
    return role_dep
