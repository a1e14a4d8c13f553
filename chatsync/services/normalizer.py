"""
Event Normalizer
Converts raw messaging-source events into canonical Chat/Message records
"""
from datetime import datetime, timezone
from typing import Callable, List, Optional

from chatsync.models.message import utcnow
from chatsync.services.events import RawChatEvent, RawMessageEvent
from chatsync.services.records import (
    MESSAGE_TYPES,
    ChatRecord,
    ContactCard,
    GeoLocation,
    MessageRecord,
)


class EventNormalizer:
    """
    Pure transform from source events to canonical records

    Never touches storage or the network. The clock is only consulted when
    the source omits a message timestamp.
    """

    # Source-native type names that differ from the canonical ones
    TYPE_ALIASES = {
        "chat": "chat-event",
        "chat_event": "chat-event",
        "ptt": "audio",
        "voice": "audio",
        "vcard": "contact",
        "multi_vcard": "contact",
        "gif": "video",
    }

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self.clock = clock

    def normalize_chat(self, raw: RawChatEvent) -> ChatRecord:
        """Build a chat record, defaulting every field the source left out"""
        return ChatRecord(
            chat_id=raw.id,
            name=raw.name or raw.id,
            is_group=bool(raw.is_group),
            participants=self._unique(raw.participants or []),
            unread_count=raw.unread_count or 0,
            is_archived=bool(raw.archived),
            is_pinned=bool(raw.pinned),
            description=raw.description or "",
            created_by=raw.created_by,
        )

    def normalize_message(
        self, raw: RawMessageEvent, chat_id: Optional[str] = None
    ) -> MessageRecord:
        """
        Build a message record

        Args:
            raw: Event from the source
            chat_id: Owning chat; overrides the event's own chatId

        Media is never set here: only the media resolver produces references.
        """
        owner = chat_id or raw.chat_id
        if not owner:
            raise ValueError(f"Message {raw.id} has no chat id")

        is_reply = bool(raw.has_quoted_msg or raw.quoted_msg_id)

        location = None
        if raw.location is not None:
            location = GeoLocation(
                latitude=raw.location.latitude,
                longitude=raw.location.longitude,
                name=raw.location.name,
            )

        contact = None
        if raw.contact is not None:
            contact = ContactCard(name=raw.contact.name, number=raw.contact.number)

        return MessageRecord(
            message_id=raw.id,
            chat_id=owner,
            sender_id=raw.sender,
            recipient_id=raw.recipient or "",
            timestamp=self.to_instant(raw.timestamp_seconds),
            message_type=self.canonical_type(raw.message_type),
            body=raw.body or "",
            is_forwarded=bool(raw.is_forwarded),
            is_reply=is_reply,
            reply_to=raw.quoted_msg_id if is_reply else None,
            sender_name=raw.sender_name,
            sender_number=raw.sender_number,
            location=location,
            contact=contact,
        )

    def to_instant(self, seconds: Optional[float]) -> datetime:
        """Convert epoch seconds to a naive UTC datetime"""
        if seconds is None:
            return self.clock()
        return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)

    def canonical_type(self, source_type: Optional[str]) -> str:
        if not source_type:
            return "text"
        value = source_type.strip().lower()
        value = self.TYPE_ALIASES.get(value, value)
        return value if value in MESSAGE_TYPES else "text"

    @staticmethod
    def _unique(values: List[str]) -> List[str]:
        seen = set()
        result = []
        for value in values:
            if value and value not in seen:
                seen.add(value)
                result.append(value)
        return result
