"""User profile, search and follow endpoints."""

from __future__ import annotations

import json
import logging

import pydantic
from fastapi import APIRouter, Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from starlette.datastructures import UploadFile

from .. import models, schemas, settings
from ..auth import get_current_user, get_current_user_optional
from ..deps import (
    get_follow_store,
    get_like_store,
    get_notification_store,
    get_post_store,
    get_user_store,
)
from ..errors import ConflictError, ForbiddenError, InternalError, NotFoundError, ValidationError
from ..pagination import build_pagination, clamp_page, page_offset
from ..services.feed import annotate_posts
from ..services.notifications import NotificationService
from ..storage import InvalidImageError, save_image, try_delete_by_public_url
from ..stores.interfaces import (
    FollowStore,
    LikeStore,
    NotificationStore,
    PostFilter,
    PostStore,
    UserStore,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def get_active_user_or_404(users: UserStore, user_id: int) -> models.User:
    user = users.get_active(user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


# ----------------------------------------------------------------------------
# Own profile
# ----------------------------------------------------------------------------


@router.get("/me", response_model=schemas.Envelope[schemas.UserFull])
def get_my_profile(
    current_user: models.User = Depends(get_current_user),
) -> schemas.Envelope[schemas.UserFull]:
    return schemas.Envelope(data=schemas.UserFull.model_validate(current_user))


async def _read_profile_update(request: Request) -> tuple[dict, UploadFile | None]:
    """Parse a JSON or multipart profile update into raw fields plus an optional avatar."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        avatar = form.get("avatar")
        fields = {key: value for key, value in form.items() if isinstance(value, str)}
        return fields, avatar if isinstance(avatar, UploadFile) else None

    try:
        body = await request.json()
    except json.JSONDecodeError:
        raise ValidationError("Request body must be valid JSON")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body, None


@router.put("/me", response_model=schemas.Envelope[schemas.UserFull])
@router.patch("/me", response_model=schemas.Envelope[schemas.UserFull])
async def update_my_profile(
    request: Request,
    current_user: models.User = Depends(get_current_user),
    users: UserStore = Depends(get_user_store),
) -> schemas.Envelope[schemas.UserFull]:
    """
    Update the current user's profile.

    Accepts a JSON object or multipart form data. Only first_name, last_name,
    bio, website, location and profile_visibility are applied; a multipart
    ``avatar`` file replaces the profile picture.
    """
    fields, avatar = await _read_profile_update(request)

    try:
        update = schemas.UserUpdate.model_validate(fields)
    except pydantic.ValidationError as e:
        raise RequestValidationError(e.errors())

    changes = update.model_dump(exclude_unset=True, exclude_none=True)

    old_avatar_url = None
    if avatar is not None and avatar.filename:
        file_content = await avatar.read()
        try:
            changes["avatar_url"] = save_image("avatar", file_content, avatar.content_type)
        except InvalidImageError as e:
            raise ValidationError(str(e))
        except (RuntimeError, OSError) as e:
            logger.error(f"Avatar upload failed for user {current_user.id}: {e}", exc_info=True)
            raise InternalError("Failed to upload avatar")
        old_avatar_url = current_user.avatar_url

    if not changes:
        raise ValidationError("No valid fields to update")

    user = users.update_profile(current_user, changes)
    if old_avatar_url:
        try_delete_by_public_url(old_avatar_url)

    logger.info(f"User {user.id} updated profile fields: {sorted(changes)}")
    return schemas.Envelope(
        data=schemas.UserFull.model_validate(user),
        message="Profile updated successfully",
    )


# ----------------------------------------------------------------------------
# Search
# ----------------------------------------------------------------------------


@router.get("/search", response_model=schemas.Envelope[list[schemas.UserSearchResult]])
def search_users(
    q: str = Query("", max_length=100),
    page: int = Query(1),
    limit: int = Query(10, ge=1, le=50),
    exclude_following: bool = False,
    current_user: models.User = Depends(get_current_user),
    users: UserStore = Depends(get_user_store),
    follows: FollowStore = Depends(get_follow_store),
) -> schemas.Envelope[list[schemas.UserSearchResult]]:
    """
    Search active users by username, first or last name, most followed first.

    Queries shorter than two characters return an empty page.
    """
    text = q.strip()
    page = clamp_page(page)
    if len(text) < 2:
        return schemas.Envelope(data=[], pagination=build_pagination(1, limit, 0))

    exclude_ids = [current_user.id]
    if exclude_following:
        exclude_ids.extend(follows.following_ids(current_user.id))

    rows, total = users.search(
        text, exclude_ids=exclude_ids, offset=page_offset(page, limit), limit=limit
    )
    following = follows.following_among(current_user.id, [u.id for u in rows])
    items = [
        schemas.UserSearchResult.model_validate(u).model_copy(
            update={"is_following": u.id in following}
        )
        for u in rows
    ]
    return schemas.Envelope(data=items, pagination=build_pagination(page, limit, total))


# ----------------------------------------------------------------------------
# Other profiles
# ----------------------------------------------------------------------------


@router.get("/{user_id}", response_model=schemas.Envelope[schemas.UserProfile])
def get_user_profile(
    user_id: int,
    current_user: models.User = Depends(get_current_user),
    users: UserStore = Depends(get_user_store),
    follows: FollowStore = Depends(get_follow_store),
) -> schemas.Envelope[schemas.UserProfile]:
    user = get_active_user_or_404(users, user_id)
    is_own_profile = user.id == current_user.id
    profile = schemas.UserProfile.model_validate(user).model_copy(
        update={
            "is_following": not is_own_profile and follows.exists(current_user.id, user.id),
            "is_own_profile": is_own_profile,
        }
    )
    return schemas.Envelope(data=profile)


@router.get("/{user_id}/posts", response_model=schemas.Envelope[list[schemas.PostOut]])
def list_user_posts(
    user_id: int,
    page: int = Query(1),
    limit: int = Query(settings.POSTS_PER_PAGE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: models.User | None = Depends(get_current_user_optional),
    users: UserStore = Depends(get_user_store),
    posts: PostStore = Depends(get_post_store),
    follows: FollowStore = Depends(get_follow_store),
    likes: LikeStore = Depends(get_like_store),
) -> schemas.Envelope[list[schemas.PostOut]]:
    """
    A user's active posts, honouring their profile visibility.

    ``private`` profiles are visible only to their owner; ``followers_only``
    profiles to the owner and their followers.
    """
    author = get_active_user_or_404(users, user_id)
    viewer_id = current_user.id if current_user else None
    is_own_profile = viewer_id == author.id

    if not is_own_profile:
        if author.profile_visibility == "private":
            raise ForbiddenError("This profile is private")
        if author.profile_visibility == "followers_only" and not (
            viewer_id is not None and follows.exists(viewer_id, author.id)
        ):
            raise ForbiddenError("This profile is only visible to followers")

    page = clamp_page(page)
    rows, total = posts.list_page(PostFilter(author_id=author.id), page_offset(page, limit), limit)
    if viewer_id is not None:
        items = annotate_posts(rows, likes, viewer_id)
    else:
        items = [schemas.PostOut.model_validate(p) for p in rows]
    return schemas.Envelope(data=items, pagination=build_pagination(page, limit, total))


# ----------------------------------------------------------------------------
# Follow graph
# ----------------------------------------------------------------------------


@router.post("/{user_id}/follow", response_model=schemas.Envelope[schemas.FollowResult])
def follow_user(
    user_id: int,
    current_user: models.User = Depends(get_current_user),
    users: UserStore = Depends(get_user_store),
    follows: FollowStore = Depends(get_follow_store),
    notifications: NotificationStore = Depends(get_notification_store),
) -> schemas.Envelope[schemas.FollowResult]:
    if user_id == current_user.id:
        raise ValidationError("You cannot follow yourself")

    target = users.get_active(user_id)
    if not target:
        raise NotFoundError("Target user not found")

    if follows.exists(current_user.id, target.id):
        raise ConflictError("You are already following this user")
    # The unique (follower, following) constraint settles concurrent duplicates
    if not follows.add(current_user.id, target.id):
        raise ConflictError("You are already following this user")

    logger.info(f"User {current_user.id} followed user {user_id}")
    NotificationService.on_follow(notifications, current_user, user_id)

    target = users.get(user_id)
    return schemas.Envelope(
        data=schemas.FollowResult(is_following=True, followers_count=target.followers_count),
        message="Successfully followed user",
    )


@router.delete("/{user_id}/follow", response_model=schemas.Envelope[schemas.FollowResult])
def unfollow_user(
    user_id: int,
    current_user: models.User = Depends(get_current_user),
    users: UserStore = Depends(get_user_store),
    follows: FollowStore = Depends(get_follow_store),
) -> schemas.Envelope[schemas.FollowResult]:
    """
    Stop following a user. Unfollowing someone you do not follow changes nothing.
    """
    if user_id == current_user.id:
        raise ValidationError("You cannot unfollow yourself")

    target = users.get(user_id)
    if not target:
        raise NotFoundError("Target user not found")

    if follows.remove(current_user.id, target.id):
        logger.info(f"User {current_user.id} unfollowed user {user_id}")

    target = users.get(user_id)
    return schemas.Envelope(
        data=schemas.FollowResult(is_following=False, followers_count=target.followers_count),
        message="Successfully unfollowed user",
    )


def _follow_entries(
    rows: list[tuple[models.User, object]], viewer_id: int, follows: FollowStore
) -> list[schemas.FollowListEntry]:
    following = follows.following_among(viewer_id, [user.id for user, _ in rows])
    entries = []
    for user, followed_at in rows:
        fields = schemas.UserSearchResult.model_validate(user).model_dump()
        fields.update(is_following=user.id in following, followed_at=followed_at)
        entries.append(schemas.FollowListEntry(**fields))
    return entries


@router.get("/{user_id}/following", response_model=schemas.Envelope[list[schemas.FollowListEntry]])
def list_following(
    user_id: int,
    page: int = Query(1),
    limit: int = Query(settings.USERS_PER_PAGE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: models.User = Depends(get_current_user),
    users: UserStore = Depends(get_user_store),
    follows: FollowStore = Depends(get_follow_store),
) -> schemas.Envelope[list[schemas.FollowListEntry]]:
    """Accounts ``user_id`` follows, most recently followed first."""
    if not users.get(user_id):
        raise NotFoundError("User not found")
    page = clamp_page(page)
    rows, total = follows.list_following(user_id, page_offset(page, limit), limit)
    return schemas.Envelope(
        data=_follow_entries(rows, current_user.id, follows),
        pagination=build_pagination(page, limit, total),
    )


@router.get("/{user_id}/followers", response_model=schemas.Envelope[list[schemas.FollowListEntry]])
def list_followers(
    user_id: int,
    page: int = Query(1),
    limit: int = Query(settings.USERS_PER_PAGE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: models.User = Depends(get_current_user),
    users: UserStore = Depends(get_user_store),
    follows: FollowStore = Depends(get_follow_store),
) -> schemas.Envelope[list[schemas.FollowListEntry]]:
    """Accounts following ``user_id``, most recent first."""
    if not users.get(user_id):
        raise NotFoundError("User not found")
    page = clamp_page(page)
    rows, total = follows.list_followers(user_id, page_offset(page, limit), limit)
    return schemas.Envelope(
        data=_follow_entries(rows, current_user.id, follows),
        pagination=build_pagination(page, limit, total),
    )
