"""
Local-disk storage for uploaded images (avatars, game icons).
Paths stored in the database are relative to MEDIA_ROOT; URLs are MEDIA_URL + path.
"""

import logging
import os
import uuid

from fastapi import UploadFile

from gamehub import config
from gamehub.core.errors import ValidationFailed

logger = logging.getLogger(__name__)


def save_image(upload: UploadFile, folder: str, field: str = "image") -> str:
    """Validate and store an uploaded image; returns its relative path."""
    extension = config.IMAGE_CONTENT_TYPES.get((upload.content_type or "").lower())
    if extension is None:
        raise ValidationFailed(field, "The file must be a jpeg, png, gif or webp image")
    data = upload.file.read(config.IMAGE_MAX_BYTES + 1)
    if not data:
        raise ValidationFailed(field, "The image file is empty")
    if len(data) > config.IMAGE_MAX_BYTES:
        raise ValidationFailed(field, f"The image must not exceed {config.IMAGE_MAX_BYTES // (1024 * 1024)}MB")

    relative = f"{folder}/{uuid.uuid4().hex}.{extension}"
    target = os.path.join(config.MEDIA_ROOT, relative)
    os.makedirs(os.path.dirname(target), exist_ok=True)
    with open(target, "wb") as f:
        f.write(data)
    return relative


def delete_file(relative: str | None) -> None:
    if not relative:
        return
    target = os.path.join(config.MEDIA_ROOT, relative)
    try:
        os.remove(target)
    except FileNotFoundError:
        pass
    except OSError:
        logger.warning("Could not delete stored file %s", target, exc_info=True)


def url_for(relative: str | None) -> str | None:
    if not relative:
        return None
    return f"{config.MEDIA_URL.rstrip('/')}/{relative}"
