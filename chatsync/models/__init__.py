"""Models package initialization"""
from chatsync.models.chat import Chat
from chatsync.models.message import Message

__all__ = ["Chat", "Message"]
