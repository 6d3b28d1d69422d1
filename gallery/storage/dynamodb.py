import threading
import boto3
from botocore.exceptions import ClientError
from gallery.settings import settings
import logging

log = logging.getLogger(__name__)

ARTIST_USERNAME_INDEX = "ArtistUsernameIndex"
USERNAME_INDEX = "UsernameIndex"

THROUGHPUT = {"ReadCapacityUnits": 5, "WriteCapacityUnits": 5}

# -------------------------
# DynamoDB Service
# -------------------------
class DynamoDBService:
    def __init__(self):
        # boto3 resources are not thread-safe; each worker thread gets its own
        self._local = threading.local()
        log.info("Initialized DynamoDB service")

        # Ensure tables exist at initialization
        self.ensure_tables()

    @property
    def resource(self):
        resource = getattr(self._local, "resource", None)
        if resource is None:
            session = boto3.session.Session(region_name=settings.aws_region)
            kwargs = {
                "aws_access_key_id": settings.aws_access_key_id,
                "aws_secret_access_key": settings.aws_secret_access_key,
            }
            if settings.aws_endpoint_url:
                kwargs["endpoint_url"] = settings.aws_endpoint_url
            resource = session.resource("dynamodb", **kwargs)
            self._local.resource = resource
            log.debug("Created DynamoDB resource for thread %s", threading.get_ident())
        return resource

    @property
    def images(self):
        return self.resource.Table(settings.images_table)

    @property
    def users(self):
        return self.resource.Table(settings.users_table)

    # Refer here: https://boto3.amazonaws.com/v1/documentation/api/latest/reference/services/dynamodb/client/create_table.html
    def ensure_tables(self):
        self._ensure_table(
            TableName=settings.images_table,
            KeySchema=[{"AttributeName": "image_id", "KeyType": "HASH"}],
            AttributeDefinitions=[
                {"AttributeName": "image_id", "AttributeType": "S"},
                {"AttributeName": "artist_username", "AttributeType": "S"},
                {"AttributeName": "created_at", "AttributeType": "S"},
            ],
            GlobalSecondaryIndexes=[
                {
                    "IndexName": ARTIST_USERNAME_INDEX,
                    "KeySchema": [
                        {"AttributeName": "artist_username", "KeyType": "HASH"},
                        {"AttributeName": "created_at", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                    "ProvisionedThroughput": THROUGHPUT,
                }
            ],
            ProvisionedThroughput=THROUGHPUT,
        )
        self._ensure_table(
            TableName=settings.users_table,
            KeySchema=[{"AttributeName": "user_id", "KeyType": "HASH"}],
            AttributeDefinitions=[
                {"AttributeName": "user_id", "AttributeType": "S"},
                {"AttributeName": "username", "AttributeType": "S"},
            ],
            GlobalSecondaryIndexes=[
                {
                    "IndexName": USERNAME_INDEX,
                    "KeySchema": [{"AttributeName": "username", "KeyType": "HASH"}],
                    "Projection": {"ProjectionType": "ALL"},
                    "ProvisionedThroughput": THROUGHPUT,
                }
            ],
            ProvisionedThroughput=THROUGHPUT,
        )

    def _ensure_table(self, **table_spec):
        name = table_spec["TableName"]
        try:
            self.resource.Table(name).load()
            log.debug("Table %s already exists", name)
        except ClientError:
            table = self.resource.create_table(**table_spec)
            table.wait_until_exists()
            log.info("Created table %s", name)

    def close(self):
        log.info("Closed DynamoDB resource")
