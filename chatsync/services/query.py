"""
Query Layer
Read-side operations over the conversation repository
"""
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from chatsync.models.message import utcnow
from chatsync.services.records import (
    MEDIA_MESSAGE_TYPES,
    ChatRecord,
    ChatThread,
    MediaMessageView,
    MessageRecord,
)
from chatsync.services.repository import ConversationRepository


class ConversationQuery:
    """
    Stateless read operations; results are newest first

    Absent chats come back as None, False or an empty list. Nothing here
    writes, except delete_chat which hands straight to the repository.
    """

    UNKNOWN_CHAT_NAME = "Unknown"

    def __init__(
        self,
        repository: ConversationRepository,
        recent_window: timedelta = timedelta(hours=24),
        default_message_limit: int = 50,
        media_list_limit: int = 50,
    ):
        self.repository = repository
        self.recent_window = recent_window
        self.default_message_limit = default_message_limit
        self.media_list_limit = media_list_limit

    def list_chats(self, offset: int = 0, limit: Optional[int] = None) -> List[ChatRecord]:
        return self.repository.list_chats(offset=offset, limit=limit)

    def list_group_chats(self) -> List[ChatRecord]:
        return self.repository.list_chats(is_group=True)

    def list_private_chats(self) -> List[ChatRecord]:
        return self.repository.list_chats(is_group=False)

    def list_recent_chats(self, now: Optional[datetime] = None) -> List[ChatRecord]:
        """Chats updated within the trailing window"""
        cutoff = (now or utcnow()) - self.recent_window
        return self.repository.list_chats(updated_since=cutoff)

    def get_chat(
        self,
        chat_id: str,
        include_messages: bool = True,
        message_limit: Optional[int] = None,
    ) -> Optional[ChatThread]:
        """A chat with its most recent messages"""
        chat = self.repository.find_chat(chat_id)
        if chat is None:
            return None

        if not include_messages:
            return ChatThread(chat=chat)

        limit = message_limit or self.default_message_limit
        return ChatThread(chat=chat, messages=self.repository.list_messages(chat_id, limit=limit))

    def get_chat_messages(
        self, chat_id: str, limit: Optional[int] = None, offset: int = 0
    ) -> Optional[List[MessageRecord]]:
        if self.repository.find_chat(chat_id) is None:
            return None
        return self.repository.list_messages(
            chat_id, limit=limit or self.default_message_limit, offset=offset
        )

    def search(self, term: str) -> List[ChatThread]:
        """
        Case-insensitive substring search over message bodies

        Each returned chat carries only its matching messages.
        """
        if not term or not term.strip():
            raise ValueError("Search term must not be empty")

        matches = self.repository.search_messages(term)

        by_chat: Dict[str, List[MessageRecord]] = {}
        for message in matches:
            by_chat.setdefault(message.chat_id, []).append(message)

        chats = self.repository.find_chats(by_chat.keys())
        return [ChatThread(chat=chat, messages=by_chat[chat.chat_id]) for chat in chats]

    def list_media(
        self, media_type: Optional[str] = None, limit: Optional[int] = None
    ) -> List[MediaMessageView]:
        """Media-bearing messages annotated with their chat's name"""
        if media_type is not None and media_type not in MEDIA_MESSAGE_TYPES:
            raise ValueError(f"Invalid media type: {media_type}")

        messages = self.repository.list_media_messages(
            media_type=media_type, limit=limit or self.media_list_limit
        )
        names = {
            chat.chat_id: chat.name
            for chat in self.repository.find_chats(m.chat_id for m in messages)
        }

        return [
            MediaMessageView(
                chat_id=message.chat_id,
                chat_name=names.get(message.chat_id) or self.UNKNOWN_CHAT_NAME,
                message=message,
            )
            for message in messages
        ]

    def delete_chat(self, chat_id: str) -> bool:
        """Remove a chat and all of its messages"""
        return self.repository.delete_chat(chat_id)
