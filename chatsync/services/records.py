"""
Canonical Chat and Message records shared by the ingestion and query sides
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


MESSAGE_TYPES = (
    "text", "image", "video", "audio", "document",
    "location", "contact", "sticker", "chat-event",
)

# Types whose payload normally lives in the media side channel
MEDIA_MESSAGE_TYPES = ("image", "video", "audio", "document", "sticker")


@dataclass
class MediaRef:
    """Reference to media bytes persisted in the blob store"""
    url: str
    mime_type: str
    size_bytes: int


@dataclass
class GeoLocation:
    latitude: float
    longitude: float
    name: Optional[str] = None


@dataclass
class ContactCard:
    name: Optional[str] = None
    number: Optional[str] = None


@dataclass
class ChatRecord:
    """Canonical chat; counters are derived and owned by the writer"""
    chat_id: str
    name: str
    is_group: bool = False
    participants: List[str] = field(default_factory=list)
    unread_count: int = 0
    is_archived: bool = False
    is_pinned: bool = False
    description: str = ""
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    message_count: int = 0
    media_count: int = 0
    updated_at: Optional[datetime] = None


@dataclass
class MessageRecord:
    """Canonical message, immutable once stored apart from media backfill"""
    message_id: str
    chat_id: str
    sender_id: str
    recipient_id: str
    timestamp: datetime
    message_type: str = "text"
    body: str = ""
    is_forwarded: bool = False
    is_reply: bool = False
    reply_to: Optional[str] = None
    sender_name: Optional[str] = None
    sender_number: Optional[str] = None
    media: Optional[MediaRef] = None
    location: Optional[GeoLocation] = None
    contact: Optional[ContactCard] = None
    created_at: Optional[datetime] = None

    @property
    def has_media(self) -> bool:
        return self.media is not None

    @property
    def media_pending(self) -> bool:
        """True for a media type stored without its media reference"""
        return self.message_type in MEDIA_MESSAGE_TYPES and self.media is None


@dataclass
class ChatThread:
    """A chat annotated with a selection of its messages"""
    chat: ChatRecord
    messages: List[MessageRecord] = field(default_factory=list)


@dataclass
class MediaMessageView:
    """A media-bearing message annotated with its chat's name"""
    chat_id: str
    chat_name: str
    message: MessageRecord
