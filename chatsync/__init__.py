"""
chatsync package initialization - SQLAlchemy models
"""
from chatsync.database import Base
from chatsync.models.chat import Chat
from chatsync.models.message import Message

__all__ = ["Base", "Chat", "Message"]
