"""Contract shared by the blob store backends."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
import os
import uuid

@dataclass(frozen=True)
class StoredBlob:
    url: str
    deletion_handle: str


class BlobStore(ABC):
    """Stores and removes binary image content.

    Implementations are S3 and the local disk. Services depend on this
    interface, not the implementation.
    """

    @abstractmethod
    def store(self, data: bytes, *, filename: str, content_type: str) -> StoredBlob:
        """Persist the bytes and return where they can be served and removed from.

        Raises:
            StorageException: If the backend rejects the write or is unreachable
        """

    @abstractmethod
    def delete(self, deletion_handle: str) -> bool:
        """Remove the blob behind a deletion handle.

        Returns:
            True if content was removed, False if it was already absent

        Raises:
            StorageException: For any other failure
        """

    def close(self):
        pass


def blob_name(filename: str) -> str:
    """Builds a unique, filesystem-safe object name keeping the original extension."""
    name = os.path.basename(filename or "upload").strip()
    safe = "".join(ch if ch.isalnum() or ch in ("-", "_", ".") else "_" for ch in name)
    safe = safe[-80:] or "upload"
    return f"{uuid.uuid4().hex}_{safe}"
