import boto3
from io import BytesIO
from typing import Optional
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from gallery.settings import settings
from gallery.storage.base import BlobStore, StoredBlob, blob_name
from gallery.exceptions import StorageException
import logging

log = logging.getLogger(__name__)

MISSING_OBJECT_CODES = {"404", "NoSuchKey", "NotFound"}

# -------------------------
# S3 Blob Store
# -------------------------
class S3BlobStore(BlobStore):
    def __init__(self, bucket: Optional[str] = None):
        self.bucket = bucket or settings.s3_bucket
        session = boto3.session.Session(region_name=settings.aws_region)
        kwargs = {
            "aws_access_key_id": settings.aws_access_key_id,
            "aws_secret_access_key": settings.aws_secret_access_key,
            # bounded calls, single attempt: callers decide on retries
            "config": Config(
                connect_timeout=settings.storage_timeout_seconds,
                read_timeout=settings.storage_timeout_seconds,
                retries={"total_max_attempts": 1},
            ),
        }
        if settings.aws_endpoint_url:
            kwargs["endpoint_url"] = settings.aws_endpoint_url

        self.client = session.client("s3", **kwargs)
        log.info("Initialized S3 client")

        # Ensure bucket exists at initialization
        self.ensure_bucket()

    def ensure_bucket(self):
        try:
            self.client.head_bucket(Bucket=self.bucket)
            log.debug("Bucket %s already exists", self.bucket)
        except ClientError as e:
            error_code = e.response["Error"]["Code"]
            if error_code in MISSING_OBJECT_CODES or error_code == "NoSuchBucket":
                self.client.create_bucket(Bucket=self.bucket)
                log.info("Created bucket %s", self.bucket)
            else:
                log.error("Failed to check/create bucket: %s", e)
                raise

    def store(self, data: bytes, *, filename: str, content_type: str) -> StoredBlob:
        key = f"images/{blob_name(filename)}"
        try:
            self.client.upload_fileobj(
                Fileobj=BytesIO(data),
                Bucket=self.bucket,
                Key=key,
                ExtraArgs={"ContentType": content_type},
            )
        except (BotoCoreError, ClientError) as e:
            log.error("S3 upload of %s failed: %s", key, e)
            raise StorageException(f"Failed to upload image to storage: {e}")
        log.debug("Uploaded %s to s3://%s/%s", filename, self.bucket, key)
        return StoredBlob(url=self.object_url(key), deletion_handle=key)

    def object_url(self, key: str) -> str:
        if settings.s3_public_url:
            return f"{settings.s3_public_url.rstrip('/')}/{key}"
        if settings.aws_endpoint_url:
            return f"{settings.aws_endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{settings.aws_region}.amazonaws.com/{key}"

    def exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] in MISSING_OBJECT_CODES:
                return False
            raise

    def delete(self, deletion_handle: str) -> bool:
        try:
            if not self.exists(deletion_handle):
                log.debug("s3://%s/%s already absent", self.bucket, deletion_handle)
                return False
            self.client.delete_object(Bucket=self.bucket, Key=deletion_handle)
        except (BotoCoreError, ClientError) as e:
            log.error("S3 delete of %s failed: %s", deletion_handle, e)
            raise StorageException(f"Failed to delete image from storage: {e}")
        log.debug("Deleted s3://%s/%s", self.bucket, deletion_handle)
        return True

    def close(self):
        log.info("Closed S3 client")
