"""DynamoDB persistence for image records.

Counter and liker-set changes are single conditional ``UpdateItem`` calls,
so concurrent likes, unlikes and views on the same image are applied by
DynamoDB itself instead of being read, changed and written back here.
"""
import random
import logging
from typing import Any, Dict, List, Optional, Tuple
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from gallery.storage.dynamodb import DynamoDBService, ARTIST_USERNAME_INDEX
from gallery.image_service.models import Image, utcnow
from gallery.exceptions import (
    AlreadyLikedException,
    DynamoDBException,
    ImageNotFoundException,
    ValidationException,
)

log = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "image_url", "storage_id", "artist_id", "artist_username")

def _condition_failed(e: ClientError) -> bool:
    return e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


class ImageRepository:
    def __init__(self, db: DynamoDBService):
        self.db = db

    @property
    def table(self):
        return self.db.images

    def insert(self, image: Image) -> Image:
        """Stores a new record, stamping its creation and update times."""
        for field in REQUIRED_FIELDS:
            value = getattr(image, field)
            if not isinstance(value, str) or not value.strip():
                raise ValidationException(f"{field} is required")

        now = utcnow()
        stored = image.model_copy(update={
            "title": image.title.strip(),
            "created_at": now,
            "updated_at": now,
        })
        try:
            self.table.put_item(
                Item=stored.to_item(),
                ConditionExpression="attribute_not_exists(image_id)",
            )
        except ClientError as e:
            if _condition_failed(e):
                raise ValidationException(f"Image {stored.image_id} already exists")
            log.error(f"DynamoDB put_item failed: {e}")
            raise DynamoDBException(f"Failed to save image metadata: {e}")
        except BotoCoreError as e:
            log.error(f"DynamoDB put_item failed: {e}")
            raise DynamoDBException(f"Failed to save image metadata: {e}")

        log.info("Saved image metadata %s", stored.image_id)
        return stored

    def get(self, image_id: str) -> Optional[Image]:
        try:
            resp = self.table.get_item(Key={"image_id": image_id})
        except (BotoCoreError, ClientError) as e:
            log.error(f"DynamoDB get_item failed: {e}")
            raise DynamoDBException(f"Failed to get image metadata: {e}")
        item = resp.get("Item")
        return Image.from_item(item) if item else None

    def get_by_id(self, image_id: str) -> Image:
        image = self.get(image_id)
        if image is None:
            raise ImageNotFoundException(image_id)
        return image

    def find_by_artist_username(self, username: str) -> List[Image]:
        """Returns the artist's images, newest first."""
        query_kwargs = {
            "IndexName": ARTIST_USERNAME_INDEX,
            "KeyConditionExpression": Key("artist_username").eq(username),
            "ScanIndexForward": False,
        }
        items: List[Dict[str, Any]] = []
        try:
            while True:
                resp = self.table.query(**query_kwargs)
                items.extend(resp.get("Items", []))
                if "LastEvaluatedKey" not in resp:
                    break
                query_kwargs["ExclusiveStartKey"] = resp["LastEvaluatedKey"]
        except (BotoCoreError, ClientError) as e:
            log.error(f"DynamoDB query by artist failed: {e}")
            raise DynamoDBException(f"Failed to fetch user images: {e}")
        return [Image.from_item(it) for it in items]

    def _scan_all(self) -> List[Image]:
        scan_kwargs: Dict[str, Any] = {}
        items: List[Dict[str, Any]] = []
        try:
            while True:
                resp = self.table.scan(**scan_kwargs)
                items.extend(resp.get("Items", []))
                if "LastEvaluatedKey" not in resp:
                    break
                scan_kwargs["ExclusiveStartKey"] = resp["LastEvaluatedKey"]
        except (BotoCoreError, ClientError) as e:
            log.error(f"DynamoDB scan failed: {e}")
            raise DynamoDBException(f"Failed to fetch images: {e}")
        return [Image.from_item(it) for it in items]

    def sample_random(self, count: int) -> List[Image]:
        """Up to ``count`` images in no particular order."""
        images = self._scan_all()
        return random.sample(images, min(max(count, 0), len(images)))

    def list_page(self, page: int, page_size: int) -> Tuple[List[Image], int]:
        """One page of images, newest first, and the total image count."""
        if page < 1 or page_size < 1:
            raise ValidationException("page and limit must be positive integers")
        images = self._scan_all()
        images.sort(key=lambda im: im.created_at, reverse=True)
        skip = (page - 1) * page_size
        return images[skip:skip + page_size], len(images)

    def _update(self, image_id: str, **update_kwargs) -> Dict[str, Any]:
        resp = self.table.update_item(
            Key={"image_id": image_id},
            ReturnValues="ALL_NEW",
            **update_kwargs,
        )
        return resp["Attributes"]

    def add_like(self, image_id: str, user_id: str) -> Image:
        """Adds ``user_id`` to the liker set and bumps the count in one write."""
        try:
            attrs = self._update(
                image_id,
                UpdateExpression="SET #updated_at = :now ADD #likes :liker, #likes_count :one",
                ConditionExpression="attribute_exists(image_id) AND NOT contains(#likes, :user_id)",
                ExpressionAttributeNames={
                    "#likes": "likes",
                    "#likes_count": "likes_count",
                    "#updated_at": "updated_at",
                },
                ExpressionAttributeValues={
                    ":liker": {user_id},
                    ":user_id": user_id,
                    ":one": 1,
                    ":now": utcnow().isoformat(timespec="microseconds"),
                },
            )
        except ClientError as e:
            if _condition_failed(e):
                # either the image is gone or the user is already a liker
                self.get_by_id(image_id)
                raise AlreadyLikedException()
            log.error(f"DynamoDB add_like failed: {e}")
            raise DynamoDBException(f"Failed to like image: {e}")
        except BotoCoreError as e:
            log.error(f"DynamoDB add_like failed: {e}")
            raise DynamoDBException(f"Failed to like image: {e}")
        return Image.from_item(attrs)

    def remove_like(self, image_id: str, user_id: str) -> Image:
        """Removes ``user_id`` from the liker set; a non-member leaves the record untouched."""
        try:
            attrs = self._update(
                image_id,
                UpdateExpression="SET #updated_at = :now DELETE #likes :liker ADD #likes_count :minus_one",
                ConditionExpression="contains(#likes, :user_id)",
                ExpressionAttributeNames={
                    "#likes": "likes",
                    "#likes_count": "likes_count",
                    "#updated_at": "updated_at",
                },
                ExpressionAttributeValues={
                    ":liker": {user_id},
                    ":user_id": user_id,
                    ":minus_one": -1,
                    ":now": utcnow().isoformat(timespec="microseconds"),
                },
            )
        except ClientError as e:
            if _condition_failed(e):
                return self.get_by_id(image_id)
            log.error(f"DynamoDB remove_like failed: {e}")
            raise DynamoDBException(f"Failed to unlike image: {e}")
        except BotoCoreError as e:
            log.error(f"DynamoDB remove_like failed: {e}")
            raise DynamoDBException(f"Failed to unlike image: {e}")
        return Image.from_item(attrs)

    def increment_views(self, image_id: str, by: int = 1) -> Image:
        try:
            attrs = self._update(
                image_id,
                UpdateExpression="ADD #views :by",
                ConditionExpression="attribute_exists(image_id)",
                ExpressionAttributeNames={"#views": "views"},
                ExpressionAttributeValues={":by": by},
            )
        except ClientError as e:
            if _condition_failed(e):
                raise ImageNotFoundException(image_id)
            log.error(f"DynamoDB increment_views failed: {e}")
            raise DynamoDBException(f"Failed to record view: {e}")
        except BotoCoreError as e:
            log.error(f"DynamoDB increment_views failed: {e}")
            raise DynamoDBException(f"Failed to record view: {e}")
        return Image.from_item(attrs)

    def delete(self, image_id: str) -> None:
        """Removes the record; of two concurrent deletes only one succeeds."""
        try:
            self.table.delete_item(
                Key={"image_id": image_id},
                ConditionExpression="attribute_exists(image_id)",
            )
        except ClientError as e:
            if _condition_failed(e):
                raise ImageNotFoundException(image_id)
            log.error(f"DynamoDB delete_item failed: {e}")
            raise DynamoDBException(f"Failed to delete image metadata: {e}")
        except BotoCoreError as e:
            log.error(f"DynamoDB delete_item failed: {e}")
            raise DynamoDBException(f"Failed to delete image metadata: {e}")
        log.info("Deleted image metadata %s", image_id)
