"""Authentication endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import (
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES,
    check_user_can_authenticate,
    create_access_token,
    create_refresh_token,
    get_current_user,
    revoke_refresh_token,
    verify_refresh_token,
)
from ..deps import get_db, get_user_store
from ..errors import AuthError, ConflictError
from ..services.auth_identities import check_password, create_password_identity, set_password
from ..stores.interfaces import UserStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])

INVALID_CREDENTIALS = "Username or password is incorrect"


def _issue_tokens(user: models.User, db: Session) -> schemas.TokenResponse:
    return schemas.TokenResponse(
        access_token=create_access_token(user.id),
        refresh_token=create_refresh_token(user.id, db),
        expires_in=JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=schemas.UserFull.model_validate(user),
    )


@router.post(
    "/register",
    response_model=schemas.Envelope[schemas.TokenResponse],
    status_code=status.HTTP_201_CREATED,
)
def register(
    payload: schemas.RegisterRequest,
    db: Session = Depends(get_db),
    users: UserStore = Depends(get_user_store),
) -> schemas.Envelope[schemas.TokenResponse]:
    """
    Register a new account with a password identity.

    Usernames are unique case-insensitively; so are email addresses.
    """
    if users.get_by_username(payload.username):
        raise ConflictError("Username already taken")
    if users.get_by_email(payload.email):
        raise ConflictError("Email already registered")

    try:
        user = users.create(
            username=payload.username,
            email=payload.email,
            first_name=payload.first_name.strip(),
            last_name=payload.last_name.strip(),
        )
        create_password_identity(db, user, payload.password)
    except IntegrityError:
        # Lost a race with a concurrent registration
        db.rollback()
        raise ConflictError("Username or email already taken")

    logger.info(f"Registered user {user.id} ({user.username})")
    return schemas.Envelope(
        data=_issue_tokens(user, db),
        message="User registered successfully",
    )


@router.post("/login", response_model=schemas.Envelope[schemas.TokenResponse])
def login(
    payload: schemas.LoginRequest,
    db: Session = Depends(get_db),
    users: UserStore = Depends(get_user_store),
) -> schemas.Envelope[schemas.TokenResponse]:
    """
    Log in with an email address or a username plus password.
    """
    identifier = payload.email.strip()
    if "@" in identifier:
        user = users.get_by_email(identifier)
    else:
        user = users.get_by_username(identifier)

    if not user:
        raise AuthError(INVALID_CREDENTIALS)

    check_user_can_authenticate(user)

    if not check_password(db, user.id, payload.password):
        raise AuthError(INVALID_CREDENTIALS)

    try:
        users.touch_last_login(user)
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Failed to update last_login for user {user.id}: {e}")

    logger.info(f"User {user.id} logged in")
    return schemas.Envelope(data=_issue_tokens(user, db), message="Login successful")


@router.post("/token/refresh", response_model=schemas.Envelope[schemas.AccessTokenResponse])
def refresh_token(
    payload: schemas.RefreshTokenRequest,
    db: Session = Depends(get_db),
) -> schemas.Envelope[schemas.AccessTokenResponse]:
    """
    Refresh access token using refresh token.
    """
    user = verify_refresh_token(payload.refresh_token, db)
    if not user:
        raise AuthError("Invalid or expired refresh token")

    check_user_can_authenticate(user)

    return schemas.Envelope(
        data=schemas.AccessTokenResponse(
            access_token=create_access_token(user.id),
            expires_in=JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        )
    )


@router.post("/logout", response_model=schemas.Envelope)
def logout(
    payload: schemas.RefreshTokenRequest,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.Envelope:
    """
    Logout current user by revoking refresh token.
    """
    revoke_refresh_token(payload.refresh_token, db)
    return schemas.Envelope(message="Logout successful")


@router.get("/me", response_model=schemas.Envelope[schemas.UserFull])
def get_me(current_user: models.User = Depends(get_current_user)) -> schemas.Envelope[schemas.UserFull]:
    """
    Get the current user's full profile.
    """
    return schemas.Envelope(data=schemas.UserFull.model_validate(current_user))


@router.post("/change-password", response_model=schemas.Envelope)
def change_password(
    payload: schemas.ChangePasswordRequest,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.Envelope:
    """
    Change the current user's password after verifying the current one.
    """
    if not check_password(db, current_user.id, payload.current_password):
        raise AuthError("Current password is incorrect")

    set_password(db, current_user.id, payload.new_password)
    return schemas.Envelope(message="Password updated successfully")
