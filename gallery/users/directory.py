"""Read-only lookups against the Users table."""
import logging
from typing import Dict, Iterable, Optional
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel

from gallery.image_service.models import CamelModel
from gallery.storage.dynamodb import DynamoDBService, USERNAME_INDEX
from gallery.exceptions import DynamoDBException, UserNotFoundException

log = logging.getLogger(__name__)

class User(BaseModel):
    user_id: str
    username: str
    profile_image: str = ""
    bio: str = ""

class UserProfile(CamelModel):
    id: str
    username: str
    profile_image: str
    bio: str

    @classmethod
    def from_user(cls, user: User) -> "UserProfile":
        return cls(id=user.user_id, username=user.username, profile_image=user.profile_image, bio=user.bio)


class UserDirectory:
    def __init__(self, db: DynamoDBService):
        self.db = db

    def get(self, user_id: str) -> Optional[User]:
        try:
            resp = self.db.users.get_item(Key={"user_id": user_id})
        except (BotoCoreError, ClientError) as e:
            log.error(f"DynamoDB user lookup failed: {e}")
            raise DynamoDBException(f"Failed to look up user: {e}")
        item = resp.get("Item")
        return User.model_validate(item) if item else None

    def get_by_id(self, user_id: str) -> User:
        user = self.get(user_id)
        if user is None:
            raise UserNotFoundException(user_id)
        return user

    def get_by_username(self, username: str) -> User:
        try:
            resp = self.db.users.query(
                IndexName=USERNAME_INDEX,
                KeyConditionExpression=Key("username").eq(username),
                Limit=1,
            )
        except (BotoCoreError, ClientError) as e:
            log.error(f"DynamoDB username lookup failed: {e}")
            raise DynamoDBException(f"Failed to look up user: {e}")
        items = resp.get("Items", [])
        if not items:
            raise UserNotFoundException(username)
        return User.model_validate(items[0])

    def get_many(self, user_ids: Iterable[str]) -> Dict[str, User]:
        """Users keyed by id; unknown ids are simply absent from the result."""
        found = {}
        for user_id in set(user_ids):
            user = self.get(user_id)
            if user is not None:
                found[user_id] = user
        return found
