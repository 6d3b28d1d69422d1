import os
import pytest
from moto import mock_aws
from fastapi.testclient import TestClient

# Dummy AWS credentials for moto, set BEFORE importing app modules
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["AWS_SECURITY_TOKEN"] = "testing"
os.environ["AWS_SESSION_TOKEN"] = "testing"
os.environ["AWS_REGION"] = "us-east-1"
os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
os.environ["S3_BUCKET"] = "gallery-test-bucket"
os.environ["IMAGES_TABLE"] = "Images"
os.environ["USERS_TABLE"] = "Users"
os.environ["STORAGE_BACKEND"] = "s3"
os.environ["JWT_SECRET"] = "test-secret"
# Clear the AWS_ENDPOINT_URL so moto mocks are used instead of localstack
os.environ.pop("AWS_ENDPOINT_URL", None)

from gallery.main import app
from gallery.auth import create_access_token
from gallery.storage.dynamodb import DynamoDBService
from gallery.storage.s3 import S3BlobStore
from gallery.storage.disk import DiskBlobStore
from gallery.image_service.repository import ImageRepository
from gallery.users.directory import UserDirectory


USERS = [
    {"user_id": "u-alice", "username": "alice", "profile_image": "/avatars/alice.png", "bio": "Paints skies"},
    {"user_id": "u-bob", "username": "bob", "profile_image": "/avatars/bob.png", "bio": "Photographer"},
    {"user_id": "u-carol", "username": "carol", "profile_image": "", "bio": ""},
]


def auth_headers(user_id: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture(scope="function")
def aws_mock():
    with mock_aws():
        yield


@pytest.fixture(scope="function")
def db(aws_mock):
    service = DynamoDBService()
    for user in USERS:
        service.users.put_item(Item=user)
    return service


@pytest.fixture(scope="function")
def image_repo(db):
    return ImageRepository(db)


@pytest.fixture(scope="function")
def user_directory(db):
    return UserDirectory(db)


@pytest.fixture(scope="function")
def s3_store(aws_mock):
    return S3BlobStore()


@pytest.fixture(scope="function")
def disk_store(tmp_path):
    return DiskBlobStore(upload_dir=str(tmp_path / "uploads"), url_prefix="/uploads")


@pytest.fixture(scope="function")
def test_client(aws_mock):
    with TestClient(app) as client:
        # lifespan has created the tables; seed the user directory
        for user in USERS:
            app.state.db.users.put_item(Item=user)
        yield client


@pytest.fixture
def alice_headers():
    return auth_headers("u-alice")


@pytest.fixture
def bob_headers():
    return auth_headers("u-bob")
