"""
Chat model - a conversation mirrored from the messaging source
"""
from sqlalchemy import Column, String, DateTime, Text, Integer, Boolean

from chatsync.database import Base
from chatsync.models.message import utcnow


class Chat(Base):
    """Represents a private or group conversation"""

    __tablename__ = "chats"

    chat_id = Column(String(255), primary_key=True)
    name = Column(String(255), nullable=True, index=True)
    is_group = Column(Boolean, default=False, index=True)
    participants = Column(Text, nullable=True)  # JSON array of participant ids

    unread_count = Column(Integer, default=0)
    is_archived = Column(Boolean, default=False)
    is_pinned = Column(Boolean, default=False)

    # Metadata
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    created_by = Column(String(255), nullable=True)

    # Derived counters, only changed through relative updates
    message_count = Column(Integer, nullable=False, default=0)
    media_count = Column(Integer, nullable=False, default=0)

    updated_at = Column(DateTime, default=utcnow, index=True)
