"""
Idempotent Writer
Persists each distinct message exactly once and keeps chat counters in step
"""
import logging
from dataclasses import dataclass
from typing import Optional

from chatsync.exceptions import DuplicateKeyError
from chatsync.services.events import RawChatEvent, RawMessageEvent
from chatsync.services.media import MediaResolver
from chatsync.services.normalizer import EventNormalizer
from chatsync.services.records import ChatRecord, MessageRecord
from chatsync.services.repository import ConversationRepository

logger = logging.getLogger(__name__)


# Media outcomes reported on an IngestResult
MEDIA_NONE = "none"            # message declared no media
MEDIA_STORED = "stored"        # reference attached on this call
MEDIA_UNAVAILABLE = "unavailable"  # fetch or write failed, text stored without it
MEDIA_SKIPPED = "skipped"      # redelivery, nothing fetched


@dataclass
class IngestResult:
    """Outcome of ingesting one message event"""
    message: MessageRecord
    created: bool
    media_status: str = MEDIA_NONE
    media_error: Optional[str] = None


class IdempotentWriter:
    """
    Ingestion entry point for source events

    Under at-least-once delivery the same message id can arrive many times,
    possibly concurrently. The primary key on message_id decides which
    delivery wins; every other delivery returns the stored record without
    touching counters.

    A redelivered media message whose first delivery lost its media gets one
    more fetch, and the reference is backfilled if that succeeds.
    """

    def __init__(
        self,
        repository: ConversationRepository,
        media_resolver: Optional[MediaResolver] = None,
        normalizer: Optional[EventNormalizer] = None,
    ):
        self.repository = repository
        self.media_resolver = media_resolver
        self.normalizer = normalizer or EventNormalizer()

    def ingest_chat(self, raw_chat: RawChatEvent) -> ChatRecord:
        """Sync chat metadata without a message"""
        return self.repository.upsert_chat(self.normalizer.normalize_chat(raw_chat))

    def ingest(self, raw_chat: RawChatEvent, raw_message: RawMessageEvent) -> IngestResult:
        """
        Ingest a message event together with its owning chat

        Raises:
            StorageUnavailableError: the chat or message could not be written;
                the event should be redelivered
        """
        chat = self.ingest_chat(raw_chat)
        message = self.normalizer.normalize_message(raw_message, chat_id=chat.chat_id)

        existing = self.repository.find_message(message.message_id)
        if existing is not None:
            return self._redelivered(existing, raw_message)

        media_status = MEDIA_NONE
        media_error = None
        if raw_message.has_media:
            media_status, media_error = self._resolve_media(message, raw_message)

        try:
            stored = self.repository.store_new_message(message)
        except DuplicateKeyError:
            # Lost the race to a concurrent delivery of the same message
            existing = self.repository.find_message(message.message_id)
            logger.debug("Message %s stored concurrently", message.message_id)
            return IngestResult(message=existing, created=False, media_status=MEDIA_SKIPPED)

        logger.info(
            "Stored message %s in chat %s (type=%s, media=%s)",
            stored.message_id, stored.chat_id, stored.message_type, media_status,
        )
        return IngestResult(
            message=stored,
            created=True,
            media_status=media_status,
            media_error=media_error,
        )

    def _resolve_media(self, message: MessageRecord, raw_message: RawMessageEvent):
        if self.media_resolver is None:
            return MEDIA_UNAVAILABLE, "no media resolver configured"

        result = self.media_resolver.resolve(message, raw_message.media_filename)
        if not result.available:
            return MEDIA_UNAVAILABLE, result.reason

        message.media = result.media
        return MEDIA_STORED, None

    def _redelivered(self, existing: MessageRecord, raw_message: RawMessageEvent) -> IngestResult:
        if not (raw_message.has_media and existing.media_pending):
            logger.debug("Message %s already stored, skipping", existing.message_id)
            return IngestResult(message=existing, created=False, media_status=MEDIA_SKIPPED)

        status, error = self._resolve_media(existing, raw_message)
        if status != MEDIA_STORED:
            return IngestResult(
                message=existing, created=False, media_status=status, media_error=error
            )

        attached = self.repository.attach_media(
            existing.message_id, existing.chat_id, existing.media
        )
        if not attached:
            # Another delivery backfilled first; report what is stored
            logger.debug("Media for %s already backfilled", existing.message_id)
            return IngestResult(
                message=self.repository.find_message(existing.message_id),
                created=False,
                media_status=MEDIA_SKIPPED,
            )

        logger.info("Backfilled media for message %s", existing.message_id)
        return IngestResult(message=existing, created=False, media_status=MEDIA_STORED)
