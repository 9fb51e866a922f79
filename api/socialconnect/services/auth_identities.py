"""Password identities.

Each account has one ``password`` identity keyed by the lower-cased email it
registered with. Login first resolves the account (by email or username), so
credential checks here go through the user id.
"""

from __future__ import annotations

import logging

from passlib.context import CryptContext
from sqlalchemy.orm import Session

from .. import models

logger = logging.getLogger(__name__)

PASSWORD_PROVIDER = "password"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_password_identity(db: Session, user: models.User, password: str) -> models.AuthIdentity:
    """
    Attach a bcrypt password identity to ``user``.

    Raises:
        IntegrityError: another identity already claims this email
    """
    identity = models.AuthIdentity(
        user_id=user.id,
        provider=PASSWORD_PROVIDER,
        provider_user_id=user.email.lower(),
        secret_hash=hash_password(password),
    )
    db.add(identity)
    db.commit()
    db.refresh(identity)
    return identity


def get_password_identity(db: Session, user_id: int) -> models.AuthIdentity | None:
    return (
        db.query(models.AuthIdentity)
        .filter(
            models.AuthIdentity.user_id == user_id,
            models.AuthIdentity.provider == PASSWORD_PROVIDER,
        )
        .first()
    )


def check_password(db: Session, user_id: int, password: str) -> bool:
    """True if ``password`` matches the user's password identity."""
    identity = get_password_identity(db, user_id)
    if identity is None or not identity.secret_hash:
        return False
    return verify_password(password, identity.secret_hash)


def set_password(db: Session, user_id: int, new_password: str) -> bool:
    """Replace the stored hash; False when the user has no password identity."""
    identity = get_password_identity(db, user_id)
    if identity is None:
        return False

    identity.secret_hash = hash_password(new_password)
    db.commit()
    logger.info(f"Password changed for user {user_id}")
    return True
