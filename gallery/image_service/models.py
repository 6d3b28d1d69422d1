from typing import Any, Dict, List, Optional, Set
from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from uuid import uuid4

def new_image_id() -> str:
    """Generates a new unique image ID."""
    return str(uuid4())

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class Category(str, Enum):
    DIGITAL_ART = "digital-art"
    PHOTOGRAPHY = "photography"
    PAINTING = "painting"
    ILLUSTRATION = "illustration"
    THREE_D = "3d"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Category":
        """Unknown or missing categories fall back to ``other``."""
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.OTHER

def parse_tags(raw: Optional[str]) -> List[str]:
    """Splits a comma separated tag string, trimming and dropping blanks."""
    if not raw:
        return []
    return [t.strip() for t in raw.split(",") if t.strip()]

class Image(BaseModel):
    """Stored image record. ``likes`` is the source of truth for ``likes_count``."""
    image_id: str = Field(default_factory=new_image_id)
    title: str
    description: str = ""
    image_url: str
    storage_id: str
    artist_id: str
    artist_username: str
    tags: List[str] = []
    category: Category = Category.OTHER
    likes: Set[str] = set()
    likes_count: int = 0
    views: int = 0
    file_size: int = 0
    mime_type: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_item(self) -> Dict[str, Any]:
        item = self.model_dump(mode="json", exclude={"likes"})
        # fixed-width timestamps so created_at sorts lexically in the index
        item["created_at"] = self.created_at.isoformat(timespec="microseconds")
        item["updated_at"] = self.updated_at.isoformat(timespec="microseconds")
        # Dynamo rejects empty sets
        if self.likes:
            item["likes"] = set(self.likes)
        return item

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "Image":
        data = dict(item)
        data["likes"] = set(data.get("likes") or ())
        return cls.model_validate(data)

# -------------------------
# Response views
# -------------------------
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class ArtistSummary(CamelModel):
    id: str
    username: str
    profile_image: str = ""
    bio: Optional[str] = None

class RandomImageView(CamelModel):
    id: str
    title: str
    description: str
    image_url: str
    artist_username: str
    artist_profile_image: str
    likes_count: int
    views: int
    created_at: datetime
    category: Category

class ImageView(CamelModel):
    id: str
    title: str
    description: str
    image_url: str
    artist: Optional[ArtistSummary] = None
    artist_username: str
    tags: List[str]
    category: Category
    likes_count: int
    views: int
    file_size: int
    mime_type: str
    created_at: datetime
    updated_at: datetime

class ImagePage(CamelModel):
    images: List[ImageView]
    total: int
    page: int
    total_pages: int

class DeleteResponse(BaseModel):
    success: bool
    message: str

class LikeResponse(CamelModel):
    message: str
    likes_count: int

class LikedResponse(BaseModel):
    liked: bool
