import os
from typing import Optional
from gallery.settings import settings
from gallery.storage.base import BlobStore, StoredBlob, blob_name
from gallery.exceptions import StorageException
import logging

log = logging.getLogger(__name__)

# -------------------------
# Disk Blob Store
# -------------------------
class DiskBlobStore(BlobStore):
    """Keeps uploads in a local directory served under a URL prefix.

    Stored URLs are relative (``/uploads/<name>``); the feed resolves them
    against the serving host when building responses.
    """

    def __init__(self, upload_dir: Optional[str] = None, url_prefix: Optional[str] = None):
        self.upload_dir = os.path.abspath(upload_dir or settings.upload_dir)
        self.url_prefix = "/" + (url_prefix or settings.uploads_url_prefix).strip("/")
        os.makedirs(self.upload_dir, exist_ok=True)
        log.info("Initialized disk storage at %s", self.upload_dir)

    def path_for(self, name: str) -> str:
        # handles are bare file names; never let one escape the upload dir
        return os.path.join(self.upload_dir, os.path.basename(name))

    def store(self, data: bytes, *, filename: str, content_type: str) -> StoredBlob:
        name = blob_name(filename)
        path = self.path_for(name)
        try:
            with open(path, "wb") as f:
                f.write(data)
        except OSError as e:
            log.error("Writing %s failed: %s", path, e)
            raise StorageException(f"Failed to store image on disk: {e}")
        log.debug("Stored %s (%s, %d bytes) at %s", filename, content_type, len(data), path)
        return StoredBlob(url=f"{self.url_prefix}/{name}", deletion_handle=name)

    def delete(self, deletion_handle: str) -> bool:
        path = self.path_for(deletion_handle)
        log.info("Deleting file from: %s", path)
        try:
            os.remove(path)
        except FileNotFoundError:
            log.info("File %s already absent", path)
            return False
        except OSError as e:
            log.error("Error deleting file %s: %s", path, e)
            raise StorageException(f"Failed to delete image from disk: {e}")
        log.info("File deleted successfully: %s", path)
        return True
