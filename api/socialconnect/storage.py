"""Image storage for avatars and post images.

Images live in the vault directory (``VAULT_LOCATION``), one sub-vault per
kind, using a hash-based folder structure derived from a random image id::

    VAULT_LOCATION/<kind>/<c1>/<c2>/<c3>/<uuid>.<ext>

The app mounts the vault at ``/vault`` so the public URL mirrors that path.
"""

from __future__ import annotations

import hashlib
import logging
import os
import uuid
from pathlib import Path
from urllib.parse import urlparse
from uuid import UUID

from . import settings

logger = logging.getLogger(__name__)

IMAGE_KINDS = ("avatar", "post")

# Allowed image MIME types
ALLOWED_MIME_TYPES: dict[str, str] = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
}

PUBLIC_PREFIX = "/vault/"


class InvalidImageError(ValueError):
    """The uploaded file is not an acceptable image."""


def get_vault_location() -> Path:
    """Get the vault location from environment variable."""
    vault_path = os.environ.get("VAULT_LOCATION")
    if not vault_path:
        raise RuntimeError("VAULT_LOCATION environment variable is not set")
    return Path(vault_path)


def hash_image_id(image_id: UUID) -> str:
    return hashlib.sha256(str(image_id).encode()).hexdigest()


def get_image_folder_path(kind: str, image_id: UUID) -> Path:
    """
    Get the folder path for an image based on its hashed ID.

    Example:
        hash = "a1b2c3d4..."
        folder = VAULT_LOCATION/post/a1/b2/c3/
    """
    hash_value = hash_image_id(image_id)
    return get_vault_location() / kind / hash_value[0:2] / hash_value[2:4] / hash_value[4:6]


def get_public_url(kind: str, image_id: UUID, extension: str) -> str:
    hash_value = hash_image_id(image_id)
    ext = extension.lower() if extension.startswith(".") else f".{extension.lower()}"
    return f"{PUBLIC_PREFIX}{kind}/{hash_value[0:2]}/{hash_value[2:4]}/{hash_value[4:6]}/{image_id}{ext}"


def validate_image(file_content: bytes, mime_type: str | None) -> str:
    """Check type and size; returns the file extension to store under."""
    mime_type_lower = (mime_type or "").lower()
    if mime_type_lower == "image/jpg":
        mime_type_lower = "image/jpeg"

    if mime_type_lower not in ALLOWED_MIME_TYPES:
        raise InvalidImageError("Only JPEG and PNG images are allowed")

    if not file_content:
        raise InvalidImageError("Image file is empty")

    if len(file_content) > settings.MAX_IMAGE_SIZE_BYTES:
        max_mb = settings.MAX_IMAGE_SIZE_BYTES / (1024 * 1024)
        raise InvalidImageError(f"Image must be smaller than {max_mb:g} MB")

    return ALLOWED_MIME_TYPES[mime_type_lower]


def save_image(kind: str, file_content: bytes, mime_type: str | None) -> str:
    """
    Save an image to the vault and return its public URL.

    Raises:
        InvalidImageError: wrong type, empty or too large
        RuntimeError: the vault is not configured
    """
    if kind not in IMAGE_KINDS:
        raise ValueError(f"Unknown image kind: {kind}")

    extension = validate_image(file_content, mime_type)
    image_id = uuid.uuid4()
    folder_path = get_image_folder_path(kind, image_id)
    folder_path.mkdir(parents=True, exist_ok=True)
    file_path = folder_path / f"{image_id}{extension}"

    with open(file_path, "wb") as f:
        f.write(file_content)

    logger.info(f"Saved {kind} image {image_id} to {file_path}")
    return get_public_url(kind, image_id, extension)


def try_delete_by_public_url(url: str | None) -> bool:
    """
    Best-effort delete of an image referenced by its public URL.

    Only URLs that match the vault scheme are touched:
        /vault/<kind>/<xx>/<yy>/<zz>/<uuid>.<ext>

    Returns True if a file was deleted.
    """
    if not url:
        return False

    try:
        path = urlparse(url).path if "://" in url else url
        if not path.startswith(PUBLIC_PREFIX):
            return False

        # Path parts: /vault/{kind}/{c1}/{c2}/{c3}/{filename}
        parts = path.split("/")
        if len(parts) != 7 or parts[2] not in IMAGE_KINDS:
            return False

        kind, c1, c2, c3, filename = parts[2], parts[3], parts[4], parts[5], parts[6]
        if "." not in filename:
            return False

        uuid_str, ext = filename.rsplit(".", 1)
        image_id = UUID(uuid_str)

        vault_file = get_vault_location() / kind / c1 / c2 / c3 / f"{image_id}.{ext}"
        if vault_file.exists():
            vault_file.unlink()
            logger.info(f"Deleted {kind} image {image_id}")
            return True
        return False
    except (OSError, ValueError, RuntimeError) as e:
        logger.warning(f"Failed to delete image for url={url}: {e}")
        return False
