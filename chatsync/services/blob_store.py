"""
Blob storage for media bytes
"""
import logging
import os
from abc import ABC, abstractmethod

from chatsync.exceptions import BlobExistsError, MediaUnavailableError

logger = logging.getLogger(__name__)


class BlobStore(ABC):
    """Persists raw bytes and hands back a retrievable reference"""

    @abstractmethod
    def write(self, filename: str, data: bytes) -> str:
        """Store bytes under filename and return the reference"""
        pass

    @abstractmethod
    def read(self, reference: str) -> bytes:
        """Return the bytes behind a reference produced by write()"""
        pass


class FilesystemBlobStore(BlobStore):
    """
    Stores blobs as files in a single directory

    References are URL paths (``{url_prefix}/{filename}``) so the directory
    can be served as static files.
    """

    def __init__(self, root_dir: str, url_prefix: str = "/uploads/media"):
        self.root_dir = root_dir
        self.url_prefix = url_prefix.rstrip("/")

    def write(self, filename: str, data: bytes) -> str:
        if os.path.basename(filename) != filename or filename in ("", ".", ".."):
            raise MediaUnavailableError(f"Invalid blob name: {filename!r}")

        path = os.path.join(self.root_dir, filename)
        try:
            os.makedirs(self.root_dir, exist_ok=True)
            with open(path, "xb") as f:
                f.write(data)
        except FileExistsError as e:
            raise BlobExistsError(f"Blob already exists: {filename}") from e
        except OSError as e:
            raise MediaUnavailableError(f"Could not write {path}: {e}") from e

        logger.debug("Stored %d bytes at %s", len(data), path)
        return f"{self.url_prefix}/{filename}"

    def read(self, reference: str) -> bytes:
        filename = reference.rsplit("/", 1)[-1]
        try:
            with open(os.path.join(self.root_dir, filename), "rb") as f:
                return f.read()
        except OSError as e:
            raise MediaUnavailableError(f"Could not read {reference}: {e}") from e
