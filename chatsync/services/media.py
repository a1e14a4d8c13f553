"""
Media Resolver
Fetches message media from the messaging source and persists it as a blob
"""
import logging
import os
import re
import secrets
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from chatsync.config import Settings, get_settings
from chatsync.exceptions import BlobExistsError, MediaUnavailableError
from chatsync.models.message import utcnow
from chatsync.services.blob_store import BlobStore, FilesystemBlobStore
from chatsync.services.records import MediaRef, MessageRecord

logger = logging.getLogger(__name__)


@dataclass
class FetchedMedia:
    """Media payload as downloaded from the source"""
    data: bytes
    mime_type: Optional[str] = None
    filename: Optional[str] = None


class MediaSource(ABC):
    """Messaging-source collaborator that can download message media"""

    @abstractmethod
    def fetch_media(self, message_ref: str) -> Optional[FetchedMedia]:
        """Download media for a message; None or an exception means unavailable"""
        pass


@dataclass
class MediaResult:
    """Outcome of a resolve() call"""
    media: Optional[MediaRef] = None
    reason: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.media is not None

    @classmethod
    def unavailable(cls, reason: str) -> "MediaResult":
        return cls(media=None, reason=reason)


class MediaResolver:
    """
    Turns a media-bearing message into a stored blob reference

    Failures never escape: fetch errors, timeouts, empty downloads and blob
    write errors all produce an unavailable result. There is no retry here;
    a redelivered event is the retry path.

    Each fetch runs on its own daemon thread and the timeout counts from
    the moment that thread starts, so a hung download only ever holds up
    the message it belongs to.
    """

    DEFAULT_EXTENSION = ".bin"
    DEFAULT_MIME_TYPE = "application/octet-stream"

    UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9@._-]")

    def __init__(
        self,
        blob_store: BlobStore,
        source: MediaSource,
        timeout_seconds: float = 30.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.blob_store = blob_store
        self.source = source
        self.timeout_seconds = timeout_seconds
        self.clock = clock

    def resolve(
        self, message: MessageRecord, declared_filename: Optional[str] = None
    ) -> MediaResult:
        """
        Fetch and store media for a message

        Args:
            message: Normalized message that declared media
            declared_filename: Filename announced in the event, used when the
                download itself carries none
        """
        try:
            fetched = self._fetch(message.message_id)
            if fetched is None or not fetched.data:
                raise MediaUnavailableError("source returned no media")

            reference = self._store(
                message.message_id, fetched.filename or declared_filename, fetched.data
            )
        except MediaUnavailableError as e:
            logger.warning("Media unavailable for message %s: %s", message.message_id, e)
            return MediaResult.unavailable(str(e))

        return MediaResult(
            media=MediaRef(
                url=reference,
                mime_type=fetched.mime_type or self.DEFAULT_MIME_TYPE,
                size_bytes=len(fetched.data),
            )
        )

    def _fetch(self, message_ref: str) -> Optional[FetchedMedia]:
        outcome = {}
        finished = threading.Event()

        def download():
            try:
                outcome["media"] = self.source.fetch_media(message_ref)
            except Exception as e:
                outcome["error"] = e
            finally:
                finished.set()

        worker = threading.Thread(
            target=download, name=f"media-fetch-{message_ref}", daemon=True
        )
        worker.start()

        if not finished.wait(self.timeout_seconds):
            raise MediaUnavailableError(f"fetch timed out after {self.timeout_seconds}s")
        if "error" in outcome:
            error = outcome["error"]
            raise MediaUnavailableError(f"fetch failed: {error}") from error
        return outcome.get("media")

    def _store(self, message_id: str, declared_filename: Optional[str], data: bytes) -> str:
        filename = self.build_filename(message_id, declared_filename)
        try:
            return self._write(filename, data)
        except BlobExistsError:
            # Same message fetched twice within one millisecond
            filename = self.build_filename(message_id, declared_filename, unique=True)
            return self._write(filename, data)

    def _write(self, filename: str, data: bytes) -> str:
        try:
            return self.blob_store.write(filename, data)
        except MediaUnavailableError:
            raise
        except Exception as e:
            raise MediaUnavailableError(f"blob write failed: {e}") from e

    def build_filename(
        self,
        message_id: str,
        declared_filename: Optional[str] = None,
        unique: bool = False,
    ) -> str:
        """
        ``{epoch ms}-{message id}{extension}``, unique per ingestion

        With ``unique`` a random token is added before the extension.
        """
        now = self.clock().replace(tzinfo=timezone.utc)
        stamp = int(now.timestamp() * 1000)

        extension = self.DEFAULT_EXTENSION
        if declared_filename:
            suffix = os.path.splitext(os.path.basename(declared_filename))[1].lower()
            suffix = self.UNSAFE_CHARS.sub("", suffix)
            if len(suffix) > 1:
                extension = suffix

        safe_id = self.UNSAFE_CHARS.sub("_", message_id)
        if unique:
            safe_id = f"{safe_id}-{secrets.token_hex(4)}"
        return f"{stamp}-{safe_id}{extension}"


def build_media_resolver(source: MediaSource, settings: Settings = None) -> MediaResolver:
    """Resolver writing to the configured media directory"""
    settings = settings or get_settings()
    return MediaResolver(
        FilesystemBlobStore(settings.media_dir, settings.media_url_prefix),
        source,
        timeout_seconds=settings.media_fetch_timeout,
    )
