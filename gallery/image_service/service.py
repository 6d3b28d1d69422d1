from dataclasses import dataclass
from io import BytesIO
from typing import List, Optional
import logging
import os
from PIL import Image as PILImage

from gallery.storage.base import BlobStore
from gallery.image_service.repository import ImageRepository
from gallery.image_service.models import Image, Category
from gallery.users.directory import UserDirectory
from gallery.settings import settings
from gallery.exceptions import (
    FileTooLargeException,
    ForbiddenException,
    InvalidFileTypeException,
    StorageException,
    ValidationException,
)

log = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpeg", ".jpg", ".png", ".gif", ".webp"}

# Declared content types accepted for upload
ALLOWED_IMAGE_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
}

# Pillow format name -> canonical MIME type
FORMAT_MIME_MAP = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
    "WEBP": "image/webp",
}

@dataclass(frozen=True)
class DeleteResult:
    record_deleted: bool
    blob_deleted: bool


def validate_image_bytes(file_bytes: bytes) -> str:
    """Checks the content really is an accepted image and returns its MIME type."""
    try:
        img = PILImage.open(BytesIO(file_bytes))
        img.verify()
    except Exception:
        raise InvalidFileTypeException("Invalid image file")
    mime_type = FORMAT_MIME_MAP.get((img.format or "").upper())
    if mime_type is None:
        raise InvalidFileTypeException(f"Unsupported image format: {img.format}")
    return mime_type


def validate_upload(data: bytes, filename: Optional[str], content_type: Optional[str], max_bytes: Optional[int] = None) -> str:
    """Validates an upload before anything is stored; returns the detected MIME type."""
    if not data:
        raise ValidationException("No image file provided")

    limit = max_bytes if max_bytes is not None else settings.max_upload_bytes
    if len(data) > limit:
        raise FileTooLargeException(len(data), limit)

    extension = os.path.splitext(filename or "")[1].lower()
    declared = (content_type or "").split(";")[0].strip().lower()
    if extension not in ALLOWED_EXTENSIONS or declared not in ALLOWED_IMAGE_TYPES:
        raise InvalidFileTypeException()

    return validate_image_bytes(data)


def upload_image(
    images: ImageRepository,
    blobs: BlobStore,
    users: UserDirectory,
    *,
    owner_id: str,
    data: bytes,
    filename: str,
    content_type: str,
    title: Optional[str],
    description: Optional[str] = None,
    tags: Optional[List[str]] = None,
    category: Optional[str] = None,
) -> Image:
    """Validates, stores the blob, then persists the record."""
    mime_type = validate_upload(data, filename, content_type)

    title = (title or "").strip()
    if not title:
        raise ValidationException("Title is required")

    # username is copied once here and never re-synced
    owner = users.get_by_id(owner_id)

    stored = blobs.store(data, filename=filename, content_type=mime_type)

    image = Image(
        title=title,
        description=description or "",
        image_url=stored.url,
        storage_id=stored.deletion_handle,
        artist_id=owner.user_id,
        artist_username=owner.username,
        tags=[t.strip() for t in (tags or []) if t and t.strip()],
        category=Category.parse(category),
        file_size=len(data),
        mime_type=mime_type,
    )
    try:
        return images.insert(image)
    except Exception:
        log.error("Saving metadata for %s failed, removing stored blob", stored.deletion_handle)
        _delete_blob_best_effort(blobs, stored.deletion_handle)
        raise


def _delete_blob_best_effort(blobs: BlobStore, deletion_handle: str) -> bool:
    try:
        return blobs.delete(deletion_handle)
    except StorageException as e:
        log.warning("Best-effort blob delete of %s failed: %s", deletion_handle, e.detail)
        return False


def get_image_meta(images: ImageRepository, image_id: str) -> Image:
    return images.get_by_id(image_id)


def remove_image(
    images: ImageRepository,
    blobs: BlobStore,
    image_id: str,
    requesting_user_id: str,
) -> DeleteResult:
    """Removes the blob (best effort) and then, unconditionally, the record."""
    image = images.get_by_id(image_id)
    if image.artist_id != requesting_user_id:
        log.info("User %s not authorized to delete image %s", requesting_user_id, image_id)
        raise ForbiddenException()

    blob_deleted = _delete_blob_best_effort(blobs, image.storage_id)
    images.delete(image_id)
    log.info("Deleted image %s (blob removed: %s)", image_id, blob_deleted)
    return DeleteResult(record_deleted=True, blob_deleted=blob_deleted)


def like_image(images: ImageRepository, image_id: str, user_id: str) -> int:
    return images.add_like(image_id, user_id).likes_count


def unlike_image(images: ImageRepository, image_id: str, user_id: str) -> int:
    return images.remove_like(image_id, user_id).likes_count


def is_liked(images: ImageRepository, image_id: str, user_id: str) -> bool:
    return user_id in images.get_by_id(image_id).likes


def record_view(images: ImageRepository, image_id: str) -> Image:
    return images.increment_views(image_id)
