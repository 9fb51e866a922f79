"""Post endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session

from .. import models, schemas, settings
from ..auth import get_current_user, require_ownership
from ..deps import get_db, get_like_store, get_post_store
from ..errors import ForbiddenError, NotFoundError, ValidationError
from ..pagination import build_pagination, clamp_page, page_offset
from ..services.feed import annotate_posts
from ..storage import InvalidImageError, save_image, try_delete_by_public_url
from ..stores.interfaces import LikeStore, PostFilter, PostStore
from ..utils.audit import log_moderation_action

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["Posts"])

POST_NOT_FOUND = "Post not found or has been deleted"


def get_active_post_or_404(posts: PostStore, post_id: int) -> models.Post:
    post = posts.get_active(post_id)
    if not post:
        raise NotFoundError(POST_NOT_FOUND)
    return post


@router.get("", response_model=schemas.Envelope[list[schemas.PostOut]])
def list_posts(
    page: int = Query(1),
    limit: int = Query(settings.POSTS_PER_PAGE, ge=1, le=settings.MAX_PAGE_SIZE),
    category: schemas.PostCategory | None = None,
    author_id: int | None = None,
    current_user: models.User = Depends(get_current_user),
    posts: PostStore = Depends(get_post_store),
    likes: LikeStore = Depends(get_like_store),
) -> schemas.Envelope[list[schemas.PostOut]]:
    """
    List active posts, newest first, optionally filtered by category or author.
    """
    page = clamp_page(page)
    rows, total = posts.list_page(
        PostFilter(category=category, author_id=author_id),
        page_offset(page, limit),
        limit,
    )
    return schemas.Envelope(
        data=annotate_posts(rows, likes, current_user.id),
        pagination=build_pagination(page, limit, total),
    )


@router.post(
    "",
    response_model=schemas.Envelope[schemas.PostOut],
    status_code=status.HTTP_201_CREATED,
)
async def create_post(
    content: str = Form(...),
    category: str = Form("general"),
    image: UploadFile | None = File(None),
    current_user: models.User = Depends(get_current_user),
    posts: PostStore = Depends(get_post_store),
) -> schemas.Envelope[schemas.PostOut]:
    """
    Create a post from multipart form data.

    The optional image is attached after the post exists; if storing it fails
    the post is still created, without an image.
    """
    content = content.strip()
    if not content:
        raise ValidationError("Post content cannot be empty")
    if len(content) > settings.MAX_POST_LENGTH:
        raise ValidationError(f"Post content cannot exceed {settings.MAX_POST_LENGTH} characters")
    if category not in settings.POST_CATEGORIES:
        raise ValidationError(f"Category must be one of: {', '.join(settings.POST_CATEGORIES)}")

    post = posts.create(author_id=current_user.id, content=content, category=category)
    logger.info(f"User {current_user.id} created post {post.id}")

    if image is not None and image.filename:
        file_content = await image.read()
        if file_content:
            try:
                image_url = save_image("post", file_content, image.content_type)
                post = posts.set_image(post, image_url)
            except (InvalidImageError, RuntimeError, OSError) as e:
                logger.warning(f"Image upload failed for post {post.id}: {e}")

    post = posts.get_active(post.id)
    return schemas.Envelope(
        data=schemas.PostOut.model_validate(post),
        message="Post created successfully",
    )


@router.get("/{post_id}", response_model=schemas.Envelope[schemas.PostOut])
def get_post(
    post_id: int,
    current_user: models.User = Depends(get_current_user),
    posts: PostStore = Depends(get_post_store),
    likes: LikeStore = Depends(get_like_store),
) -> schemas.Envelope[schemas.PostOut]:
    post = get_active_post_or_404(posts, post_id)
    return schemas.Envelope(data=annotate_posts([post], likes, current_user.id)[0])


@router.put("/{post_id}", response_model=schemas.Envelope[schemas.PostOut])
@router.patch("/{post_id}", response_model=schemas.Envelope[schemas.PostOut])
def update_post(
    post_id: int,
    payload: schemas.PostUpdate,
    current_user: models.User = Depends(get_current_user),
    posts: PostStore = Depends(get_post_store),
    likes: LikeStore = Depends(get_like_store),
) -> schemas.Envelope[schemas.PostOut]:
    """
    Edit a post's content or category. Only the author may edit.
    """
    post = get_active_post_or_404(posts, post_id)
    if post.author_id != current_user.id:
        raise ForbiddenError("You can only edit your own posts")

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if changes:
        post = posts.update(post, changes)

    return schemas.Envelope(
        data=annotate_posts([post], likes, current_user.id)[0],
        message="Post updated successfully",
    )


@router.delete("/{post_id}", response_model=schemas.Envelope)
def delete_post(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    posts: PostStore = Depends(get_post_store),
) -> schemas.Envelope:
    """
    Soft delete a post. Authors may delete their own posts; admins any post.
    """
    post = get_active_post_or_404(posts, post_id)
    require_ownership(post.author_id, current_user)

    image_url = post.image_url
    posts.soft_delete(post)
    logger.info(f"User {current_user.id} deleted post {post_id}")

    if image_url:
        try_delete_by_public_url(image_url)

    if post.author_id != current_user.id:
        log_moderation_action(
            db,
            actor_id=current_user.id,
            action="delete_post",
            target_type="post",
            target_id=post_id,
        )

    return schemas.Envelope(message="Post deleted successfully")
