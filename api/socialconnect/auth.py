"""Bearer-token identity resolution.

Access tokens are short-lived HS256 JWTs carrying the user id. Refresh tokens
are opaque random strings; only their sha256 digest is stored, so a leaked
database does not leak usable tokens.
"""

from __future__ import annotations

import hashlib
import os
import secrets
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from . import models
from .deps import get_db
from .errors import AuthError, ForbiddenError

bearer_scheme = HTTPBearer(auto_error=False)

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY") or ""
if len(JWT_SECRET_KEY) < 32:
    raise RuntimeError(
        "JWT_SECRET_KEY must be set to at least 32 characters, "
        "e.g. the output of `openssl rand -base64 48`"
    )
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
JWT_REFRESH_TOKEN_EXPIRE_DAYS = int(os.getenv("JWT_REFRESH_TOKEN_EXPIRE_DAYS", "30"))

ACCESS_TOKEN_TYPE = "access"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def check_user_can_authenticate(user: models.User) -> None:
    """Deactivated accounts are refused at login, refresh and on every request."""
    if not user.is_active:
        raise AuthError("Account deactivated")


# ----------------------------------------------------------------------------
# Access tokens
# ----------------------------------------------------------------------------


def create_access_token(user_id: int, expires_in_seconds: int | None = None) -> str:
    if expires_in_seconds is None:
        expires_in_seconds = JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60

    issued_at = _utcnow()
    claims = {
        "user_id": str(user_id),
        "type": ACCESS_TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + timedelta(seconds=expires_in_seconds),
    }
    return jwt.encode(claims, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> int:
    """
    Validate an access token and return the user id it was issued for.

    Raises:
        AuthError: expired, malformed, wrong type or missing subject
    """
    try:
        claims = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthError("Invalid token")

    if claims.get("type") != ACCESS_TOKEN_TYPE:
        raise AuthError("Invalid token type")

    try:
        return int(claims["user_id"])
    except (KeyError, TypeError, ValueError):
        raise AuthError("Invalid token")


# ----------------------------------------------------------------------------
# Refresh tokens
# ----------------------------------------------------------------------------


def create_refresh_token(user_id: int, db: Session, expires_in_days: int | None = None) -> str:
    """Store the digest of a fresh refresh token and return the raw token once."""
    if expires_in_days is None:
        expires_in_days = JWT_REFRESH_TOKEN_EXPIRE_DAYS

    token = secrets.token_urlsafe(32)
    db.add(
        models.RefreshToken(
            user_id=user_id,
            token_hash=_digest(token),
            expires_at=_utcnow() + timedelta(days=expires_in_days),
        )
    )
    db.commit()
    return token


def verify_refresh_token(token: str, db: Session) -> models.User | None:
    record = (
        db.query(models.RefreshToken)
        .filter(
            models.RefreshToken.token_hash == _digest(token),
            models.RefreshToken.revoked == False,
            models.RefreshToken.expires_at > _utcnow(),
        )
        .first()
    )
    return record.user if record else None


def revoke_refresh_token(token: str, db: Session) -> bool:
    record = (
        db.query(models.RefreshToken)
        .filter(models.RefreshToken.token_hash == _digest(token))
        .first()
    )
    if record is None:
        return False

    record.revoked = True
    db.commit()
    return True


# ----------------------------------------------------------------------------
# Dependencies
# ----------------------------------------------------------------------------


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> models.User:
    if not credentials:
        raise AuthError("Authentication required")

    user_id = decode_access_token(credentials.credentials)
    user = db.query(models.User).filter(models.User.id == user_id).first()
    if not user:
        raise AuthError("User not found")

    check_user_can_authenticate(user)
    return user


async def get_current_user_optional(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> models.User | None:
    """Like ``get_current_user`` but anonymous (or invalid) callers get None."""
    if credentials is None:
        return None

    try:
        return await get_current_user(credentials, db)
    except AuthError:
        return None


def require_admin(user: models.User = Depends(get_current_user)) -> models.User:
    if not user.is_admin:
        raise ForbiddenError("Admin access required")
    return user


def check_ownership(resource_owner_id: int, current_user: models.User) -> bool:
    """Owners and admins may act on a resource."""
    return resource_owner_id == current_user.id or bool(current_user.is_admin)


def require_ownership(resource_owner_id: int, current_user: models.User) -> None:
    if not check_ownership(resource_owner_id, current_user):
        raise ForbiddenError("You don't have permission to access this resource")
