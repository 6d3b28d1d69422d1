from fastapi import APIRouter, Depends, UploadFile, File, Form, Query, Request, Response
from typing import List, Optional
import logging

from gallery.storage.base import BlobStore
from gallery.image_service.repository import ImageRepository
from gallery.users.directory import User, UserDirectory
from gallery.dependencies.dependencies import get_blob_store, get_image_repository, get_user_directory
from gallery.auth import get_current_user
from gallery.image_service import service, feed
from gallery.exceptions import ValidationException
from gallery.image_service.models import (
    DeleteResponse,
    ImagePage,
    ImageView,
    LikedResponse,
    LikeResponse,
    RandomImageView,
    parse_tags,
)

log = logging.getLogger(__name__)

router = APIRouter(
    prefix="/images",
    tags=["images"]
)

def request_base_url(request: Request) -> str:
    """Scheme and host the request came in on."""
    return f"{request.url.scheme}://{request.url.netloc}"

def positive_int(name: str, value: Optional[str], default: int) -> int:
    """Reads a numeric query value; absent or non-numeric input falls back to the default."""
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    if parsed < 1:
        raise ValidationException(f"{name} must be a positive integer")
    return parsed

@router.get("/random", response_model=List[RandomImageView])
def random_images(
    request: Request,
    count: Optional[str] = Query(None),
    images: ImageRepository = Depends(get_image_repository),
    users: UserDirectory = Depends(get_user_directory),
):
    """Random sample of images for the landing page."""
    return feed.random_feed(images, users, positive_int("count", count, 20), base_url=request_base_url(request))

@router.post("/upload", response_model=ImageView, status_code=201)
async def upload_image(
    request: Request,
    response: Response,
    image: UploadFile = File(...),
    title: str = Form(...),
    description: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),  # Comma Separated Values
    category: Optional[str] = Form(None),
    current_user: User = Depends(get_current_user),
    images: ImageRepository = Depends(get_image_repository),
    blobs: BlobStore = Depends(get_blob_store),
    users: UserDirectory = Depends(get_user_directory),
):
    """Uploads an image and its metadata."""
    # Add security header
    response.headers["X-Content-Type-Options"] = "nosniff"

    contents = await image.read()
    stored = service.upload_image(
        images,
        blobs,
        users,
        owner_id=current_user.user_id,
        data=contents,
        filename=image.filename or "",
        content_type=image.content_type or "",
        title=title,
        description=description,
        tags=parse_tags(tags),
        category=category,
    )
    return feed.to_image_view(stored, current_user, request_base_url(request))

@router.get("/user/{username}", response_model=List[ImageView])
def user_images(
    username: str,
    request: Request,
    images: ImageRepository = Depends(get_image_repository),
    users: UserDirectory = Depends(get_user_directory),
):
    """Lists an artist's images, newest first."""
    return feed.user_feed(images, users, username, base_url=request_base_url(request))

@router.get("", response_model=ImagePage)
def list_images(
    request: Request,
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    images: ImageRepository = Depends(get_image_repository),
    users: UserDirectory = Depends(get_user_directory),
):
    """Lists images, newest first, one page at a time."""
    return feed.page_feed(
        images,
        users,
        positive_int("page", page, 1),
        positive_int("limit", limit, 20),
        base_url=request_base_url(request),
    )

@router.get("/{image_id}", response_model=ImageView)
def get_image(
    image_id: str,
    request: Request,
    images: ImageRepository = Depends(get_image_repository),
    users: UserDirectory = Depends(get_user_directory),
):
    """Gets a single image; every fetch counts as a view."""
    return feed.image_detail(images, users, image_id, base_url=request_base_url(request))

@router.delete("/{image_id}", response_model=DeleteResponse)
def delete_image(
    image_id: str,
    current_user: User = Depends(get_current_user),
    images: ImageRepository = Depends(get_image_repository),
    blobs: BlobStore = Depends(get_blob_store),
):
    """Deletes an image owned by the caller."""
    result = service.remove_image(images, blobs, image_id, current_user.user_id)
    if not result.blob_deleted:
        log.warning("Image %s deleted but its stored file was not removed", image_id)
    return DeleteResponse(success=True, message="Image deleted successfully")

@router.post("/{image_id}/like", response_model=LikeResponse)
def like_image(
    image_id: str,
    current_user: User = Depends(get_current_user),
    images: ImageRepository = Depends(get_image_repository),
):
    likes_count = service.like_image(images, image_id, current_user.user_id)
    return LikeResponse(message="Image liked successfully", likes_count=likes_count)

@router.delete("/{image_id}/like", response_model=LikeResponse)
def unlike_image(
    image_id: str,
    current_user: User = Depends(get_current_user),
    images: ImageRepository = Depends(get_image_repository),
):
    likes_count = service.unlike_image(images, image_id, current_user.user_id)
    return LikeResponse(message="Image unliked successfully", likes_count=likes_count)

@router.get("/{image_id}/liked", response_model=LikedResponse)
def image_liked(
    image_id: str,
    current_user: User = Depends(get_current_user),
    images: ImageRepository = Depends(get_image_repository),
):
    return LikedResponse(liked=service.is_liked(images, image_id, current_user.user_id))
