import os
import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from gallery.exceptions import StorageException
from gallery.settings import settings
from gallery.storage.base import blob_name


# ------------------------------
# blob_name
# ------------------------------

def test_blob_name_keeps_extension_and_is_unique():
    first = blob_name("my photo.png")
    second = blob_name("my photo.png")
    assert first != second
    assert first.endswith("_my_photo.png")


def test_blob_name_strips_directories():
    name = blob_name("../../etc/passwd.jpg")
    assert "/" not in name
    assert name.endswith("passwd.jpg")


# ------------------------------
# S3BlobStore
# ------------------------------

def test_s3_store_and_delete(s3_store):
    stored = s3_store.store(b"abc", filename="a.png", content_type="image/png")

    assert stored.deletion_handle.startswith("images/")
    assert stored.deletion_handle.endswith("a.png")
    assert stored.url.endswith(stored.deletion_handle)
    obj = s3_store.client.get_object(Bucket=settings.s3_bucket, Key=stored.deletion_handle)
    assert obj["Body"].read() == b"abc"
    assert obj["ContentType"] == "image/png"

    assert s3_store.delete(stored.deletion_handle) is True
    assert s3_store.exists(stored.deletion_handle) is False


def test_s3_delete_missing_is_not_an_error(s3_store):
    assert s3_store.delete("images/never-there.png") is False


def test_s3_public_url_setting(s3_store, monkeypatch):
    monkeypatch.setattr(settings, "s3_public_url", "https://cdn.example.com/")
    assert s3_store.object_url("images/x.png") == "https://cdn.example.com/images/x.png"


def test_s3_store_failure_raises_storage_exception(s3_store, mocker):
    mocker.patch.object(
        s3_store.client,
        "upload_fileobj",
        side_effect=ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject"),
    )
    with pytest.raises(StorageException):
        s3_store.store(b"abc", filename="a.png", content_type="image/png")


def test_s3_delete_unreachable_raises_storage_exception(s3_store, mocker):
    mocker.patch.object(
        s3_store.client,
        "head_object",
        side_effect=EndpointConnectionError(endpoint_url="http://s3.invalid"),
    )
    with pytest.raises(StorageException):
        s3_store.delete("images/a.png")


# ------------------------------
# DiskBlobStore
# ------------------------------

def test_disk_store_and_delete(disk_store):
    stored = disk_store.store(b"pixels", filename="cat.jpg", content_type="image/jpeg")

    assert stored.url == f"/uploads/{stored.deletion_handle}"
    path = disk_store.path_for(stored.deletion_handle)
    with open(path, "rb") as f:
        assert f.read() == b"pixels"

    assert disk_store.delete(stored.deletion_handle) is True
    assert not os.path.exists(path)


def test_disk_delete_missing_is_not_an_error(disk_store):
    assert disk_store.delete("missing.png") is False


def test_disk_delete_cannot_escape_upload_dir(disk_store, tmp_path):
    outside = tmp_path / "keep.txt"
    outside.write_text("keep")
    assert disk_store.delete("../keep.txt") is False
    assert outside.exists()


def test_disk_store_failure_raises_storage_exception(disk_store, mocker):
    mocker.patch("builtins.open", side_effect=PermissionError("read-only"))
    with pytest.raises(StorageException):
        disk_store.store(b"x", filename="x.png", content_type="image/png")
