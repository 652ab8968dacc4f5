from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import get_settings
from app.dependencies import get_db
from app.models import User

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)


def create_access_token(user_id: UUID | str, expires_minutes: int | None = None) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=expires_minutes or settings.jwt_exp_minutes)
    payload = {"sub": str(user_id), "iat": int(now.timestamp()), "exp": int(exp.timestamp())}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    settings = get_settings()
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_owner(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the authenticated owner; every notes route depends on this.

    There is no anonymous fallback: no token, a bad token or an unknown
    subject all end the request with 401.
    """

    if creds is None or creds.scheme.lower() != "bearer":
        raise _unauthorized("Missing credentials")

    try:
        payload = decode_token(creds.credentials)
    except JWTError:
        raise _unauthorized("Invalid or expired token")

    try:
        owner_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise _unauthorized("Invalid token")

    owner = db.execute(select(User).where(User.id == owner_id)).scalar_one_or_none()
    if owner is None:
        logger.warning("Token subject %s does not match any user", owner_id)
        raise _unauthorized("Unknown user")
    return owner
