"""
Message model - individual message observed on the messaging source
"""
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, Text, Integer, Boolean, Float, Index

from chatsync.database import Base


def utcnow() -> datetime:
    """Naive UTC wall clock, the storage convention for all timestamps"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Message(Base):
    """Represents a single message, keyed by the source's message id"""

    __tablename__ = "messages"

    message_id = Column(String(255), primary_key=True)
    chat_id = Column(String(255), nullable=False, index=True)

    # Addressing
    sender_id = Column(String(255), nullable=False)
    recipient_id = Column(String(255), nullable=False)
    sender_name = Column(String(255), nullable=True)
    sender_number = Column(String(64), nullable=True)

    # Content
    timestamp = Column(DateTime, nullable=False)
    message_type = Column(String(50), nullable=False, default="text")
    body = Column(Text, nullable=True)
    is_forwarded = Column(Boolean, default=False)
    is_reply = Column(Boolean, default=False)
    reply_to = Column(String(255), nullable=True)

    # Media side channel, absent until the blob is persisted
    media_url = Column(String(1024), nullable=True)
    media_mime_type = Column(String(255), nullable=True)
    media_size = Column(Integer, nullable=True)

    location_latitude = Column(Float, nullable=True)
    location_longitude = Column(Float, nullable=True)
    location_name = Column(String(255), nullable=True)

    contact_name = Column(String(255), nullable=True)
    contact_number = Column(String(64), nullable=True)

    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        Index("ix_messages_chat_timestamp", "chat_id", "timestamp"),
        Index("ix_messages_sender_timestamp", "sender_id", "timestamp"),
        Index("ix_messages_type_timestamp", "message_type", "timestamp"),
    )
