"""Builds public image views joined with a minimal artist projection."""
import math
from typing import Dict, List, Optional

from gallery.image_service.models import (
    ArtistSummary,
    Image,
    ImagePage,
    ImageView,
    RandomImageView,
)
from gallery.image_service.repository import ImageRepository
from gallery.image_service import service
from gallery.users.directory import User, UserDirectory
from gallery.settings import settings


def resolve_image_url(image_url: str, base_url: Optional[str]) -> str:
    """Prefixes relative (disk-backed) locators with the serving host."""
    if image_url.startswith(("http://", "https://")):
        return image_url
    base = settings.public_base_url or base_url
    if not base:
        return image_url
    return f"{base.rstrip('/')}/{image_url.lstrip('/')}"


def _artist_summary(user: Optional[User], include_bio: bool = False) -> Optional[ArtistSummary]:
    if user is None:
        return None
    return ArtistSummary(
        id=user.user_id,
        username=user.username,
        profile_image=user.profile_image,
        bio=user.bio if include_bio else None,
    )


def to_image_view(image: Image, artist: Optional[User], base_url: Optional[str], include_bio: bool = False) -> ImageView:
    return ImageView(
        id=image.image_id,
        title=image.title,
        description=image.description,
        image_url=resolve_image_url(image.image_url, base_url),
        artist=_artist_summary(artist, include_bio=include_bio),
        artist_username=image.artist_username,
        tags=image.tags,
        category=image.category,
        likes_count=image.likes_count,
        views=image.views,
        file_size=image.file_size,
        mime_type=image.mime_type,
        created_at=image.created_at,
        updated_at=image.updated_at,
    )


def _artists_for(users: UserDirectory, images: List[Image]) -> Dict[str, User]:
    return users.get_many(im.artist_id for im in images)


def random_feed(images: ImageRepository, users: UserDirectory, count: int, base_url: Optional[str] = None) -> List[RandomImageView]:
    sample = images.sample_random(count)
    artists = _artists_for(users, sample)
    views = []
    for image in sample:
        artist = artists.get(image.artist_id)
        # images whose artist is gone are left out of the feed
        if artist is None:
            continue
        views.append(RandomImageView(
            id=image.image_id,
            title=image.title,
            description=image.description,
            image_url=resolve_image_url(image.image_url, base_url),
            artist_username=image.artist_username,
            artist_profile_image=artist.profile_image,
            likes_count=image.likes_count,
            views=image.views,
            created_at=image.created_at,
            category=image.category,
        ))
    return views


def page_feed(images: ImageRepository, users: UserDirectory, page: int, page_size: int, base_url: Optional[str] = None) -> ImagePage:
    items, total = images.list_page(page, page_size)
    artists = _artists_for(users, items)
    return ImagePage(
        images=[to_image_view(im, artists.get(im.artist_id), base_url) for im in items],
        total=total,
        page=page,
        total_pages=math.ceil(total / page_size),
    )


def user_feed(images: ImageRepository, users: UserDirectory, username: str, base_url: Optional[str] = None) -> List[ImageView]:
    items = images.find_by_artist_username(username)
    artists = _artists_for(users, items)
    return [to_image_view(im, artists.get(im.artist_id), base_url) for im in items]


def image_detail(images: ImageRepository, users: UserDirectory, image_id: str, base_url: Optional[str] = None) -> ImageView:
    """Counts a view and returns the image with the artist's bio."""
    image = service.record_view(images, image_id)
    return to_image_view(image, users.get(image.artist_id), base_url, include_bio=True)
