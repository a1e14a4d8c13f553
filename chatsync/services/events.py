"""
Raw events emitted by the messaging-source client

Field aliases follow the source's camelCase payloads so events can be
validated straight from the client's JSON.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

# Last second representable as a datetime (9999-12-31T23:59:59Z)
MAX_TIMESTAMP_SECONDS = 253402300799


class RawEventModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RawLocation(RawEventModel):
    latitude: float
    longitude: float
    name: Optional[str] = None


class RawContact(RawEventModel):
    name: Optional[str] = None
    number: Optional[str] = None


class RawChatEvent(RawEventModel):
    """A chat as reported by the source"""
    id: str
    name: Optional[str] = None
    is_group: bool = Field(False, alias="isGroup")
    participants: Optional[List[str]] = None
    unread_count: Optional[int] = Field(None, alias="unreadCount")
    archived: Optional[bool] = None
    pinned: Optional[bool] = None
    description: Optional[str] = None
    created_by: Optional[str] = Field(None, alias="createdBy")


class RawMessageEvent(RawEventModel):
    """A message as reported by the source"""
    id: str
    chat_id: Optional[str] = Field(None, alias="chatId")
    sender: str = Field(alias="from")
    recipient: str = Field("", alias="to")
    timestamp_seconds: Optional[float] = Field(
        None, alias="timestampSeconds", ge=0, le=MAX_TIMESTAMP_SECONDS
    )
    message_type: str = Field("text", alias="type")
    body: Optional[str] = None
    is_forwarded: bool = Field(False, alias="isForwarded")
    has_quoted_msg: bool = Field(False, alias="hasQuotedMsg")
    quoted_msg_id: Optional[str] = Field(None, alias="quotedMsgId")
    has_media: bool = Field(False, alias="hasMedia")

    # Contact lookup results and typed payloads
    sender_name: Optional[str] = Field(None, alias="senderName")
    sender_number: Optional[str] = Field(None, alias="senderNumber")
    location: Optional[RawLocation] = None
    contact: Optional[RawContact] = None
    media_filename: Optional[str] = Field(None, alias="mediaFilename")
