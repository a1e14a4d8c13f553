"""
Conversation Repository
Durable keyed storage for chats and messages on top of SQLAlchemy
"""
import json
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional

from sqlalchemy import delete, desc, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from chatsync.exceptions import DuplicateKeyError, StorageUnavailableError
from chatsync.models import Chat, Message
from chatsync.models.message import utcnow
from chatsync.services.records import (
    ChatRecord,
    ContactCard,
    GeoLocation,
    MediaRef,
    MessageRecord,
)

logger = logging.getLogger(__name__)

# Columns an upsert may overwrite; counters and created_at are never listed
CHAT_MERGE_FIELDS = (
    "name",
    "is_group",
    "participants",
    "unread_count",
    "is_archived",
    "is_pinned",
    "description",
    "created_by",
    "updated_at",
)

UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class ConversationRepository:
    """
    Repository for chat and message operations

    Every call runs in its own short transaction, so no state is held
    between calls. Uniqueness of ``message_id`` is enforced by the primary
    key and counters only move through single-statement relative updates,
    which keeps both safe under parallel writers.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[Session]:
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except IntegrityError:
            session.rollback()
            raise
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("Storage failure during %s: %s", operation, e)
            raise StorageUnavailableError(f"{operation} failed: {e}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Chats
    # ------------------------------------------------------------------

    def upsert_chat(self, chat: ChatRecord) -> ChatRecord:
        """
        Create a chat or replace its non-derived fields

        Existing message/media counters and the creation time are kept.
        """
        now = utcnow()
        values = {
            "chat_id": chat.chat_id,
            "name": chat.name,
            "is_group": chat.is_group,
            "participants": json.dumps(list(chat.participants)),
            "unread_count": chat.unread_count,
            "is_archived": chat.is_archived,
            "is_pinned": chat.is_pinned,
            "description": chat.description,
            "created_by": chat.created_by,
            "created_at": chat.created_at or now,
            "updated_at": now,
            "message_count": 0,
            "media_count": 0,
        }

        with self._transaction("upsert_chat") as session:
            self._merge_chat(session, values)
            row = session.get(Chat, chat.chat_id)
            return self._to_chat_record(row)

    def _merge_chat(self, session: Session, values: Dict) -> None:
        insert = UPSERT_DIALECTS.get(session.get_bind().dialect.name)

        if insert is not None:
            stmt = insert(Chat).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=[Chat.chat_id],
                set_={name: stmt.excluded[name] for name in CHAT_MERGE_FIELDS},
            )
            session.execute(stmt)
            return

        # Dialects without ON CONFLICT: update first, insert when missing
        changes = {name: values[name] for name in CHAT_MERGE_FIELDS}
        result = session.execute(
            update(Chat)
            .where(Chat.chat_id == values["chat_id"])
            .values(**changes)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            session.add(Chat(**values))
            session.flush()

    def find_chat(self, chat_id: str) -> Optional[ChatRecord]:
        with self._transaction("find_chat") as session:
            row = session.get(Chat, chat_id)
            return self._to_chat_record(row) if row else None

    def find_chats(self, chat_ids: Iterable[str]) -> List[ChatRecord]:
        """Fetch several chats, most recently updated first"""
        ids = list(set(chat_ids))
        if not ids:
            return []
        with self._transaction("find_chats") as session:
            rows = session.scalars(
                select(Chat)
                .where(Chat.chat_id.in_(ids))
                .order_by(desc(Chat.updated_at))
            ).all()
            return [self._to_chat_record(row) for row in rows]

    def list_chats(
        self,
        is_group: Optional[bool] = None,
        updated_since: Optional[datetime] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[ChatRecord]:
        """List chats ordered by recency, optionally filtered"""
        query = select(Chat)

        if is_group is not None:
            query = query.where(Chat.is_group == is_group)

        if updated_since is not None:
            query = query.where(Chat.updated_at >= updated_since)

        query = query.order_by(desc(Chat.updated_at)).offset(offset)
        if limit is not None:
            query = query.limit(limit)

        with self._transaction("list_chats") as session:
            return [self._to_chat_record(row) for row in session.scalars(query).all()]

    def increment_chat_counters(
        self, chat_id: str, message_delta: int = 0, media_delta: int = 0
    ) -> bool:
        """Relative counter update that also bumps updated_at"""
        with self._transaction("increment_chat_counters") as session:
            return self._increment(session, chat_id, message_delta, media_delta)

    @staticmethod
    def _increment(
        session: Session, chat_id: str, message_delta: int, media_delta: int
    ) -> bool:
        result = session.execute(
            update(Chat)
            .where(Chat.chat_id == chat_id)
            .values(
                message_count=Chat.message_count + message_delta,
                media_count=Chat.media_count + media_delta,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    def delete_chat(self, chat_id: str) -> bool:
        """Delete a chat and every message it owns in one transaction"""
        with self._transaction("delete_chat") as session:
            purged = session.execute(
                delete(Message)
                .where(Message.chat_id == chat_id)
                .execution_options(synchronize_session=False)
            ).rowcount
            removed = session.execute(
                delete(Chat)
                .where(Chat.chat_id == chat_id)
                .execution_options(synchronize_session=False)
            ).rowcount

        logger.info("Deleted chat %s with %d messages", chat_id, purged)
        return removed > 0

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def find_message(self, message_id: str) -> Optional[MessageRecord]:
        with self._transaction("find_message") as session:
            row = session.get(Message, message_id)
            return self._to_message_record(row) if row else None

    def insert_message(self, message: MessageRecord) -> MessageRecord:
        """
        Insert a new message

        Raises:
            DuplicateKeyError: a message with this id is already stored
        """
        return self._insert(message, count=False)

    def store_new_message(self, message: MessageRecord) -> MessageRecord:
        """
        Insert a new message and count it on its chat in the same transaction

        Raises:
            DuplicateKeyError: a message with this id is already stored
            StorageUnavailableError: the chat no longer exists, nothing is stored
        """
        return self._insert(message, count=True)

    def _insert(self, message: MessageRecord, count: bool) -> MessageRecord:
        row = Message(**self._message_columns(message))
        row.created_at = utcnow()

        try:
            with self._transaction("insert_message") as session:
                session.add(row)
                session.flush()
                if count and not self._increment(
                    session, message.chat_id, 1, 1 if message.media else 0
                ):
                    raise StorageUnavailableError(
                        f"Chat {message.chat_id} is gone; message {message.message_id} not stored"
                    )
        except IntegrityError as e:
            if self.find_message(message.message_id) is None:
                raise StorageUnavailableError(
                    f"insert_message rejected {message.message_id}: {e}"
                ) from e
            raise DuplicateKeyError(message.message_id) from e

        return self._to_message_record(row)

    def attach_media(self, message_id: str, chat_id: str, media: MediaRef) -> bool:
        """
        Attach a media reference to a stored message that has none yet

        The owning chat's media counter moves in the same transaction, and
        only when this call is the one that attached the reference.
        """
        with self._transaction("attach_media") as session:
            result = session.execute(
                update(Message)
                .where(Message.message_id == message_id, Message.media_url.is_(None))
                .values(
                    media_url=media.url,
                    media_mime_type=media.mime_type,
                    media_size=media.size_bytes,
                )
                .execution_options(synchronize_session=False)
            )
            attached = result.rowcount > 0
            if attached:
                self._increment(session, chat_id, 0, 1)
            return attached

    def list_messages(
        self, chat_id: str, limit: Optional[int] = None, offset: int = 0
    ) -> List[MessageRecord]:
        """Messages of a chat, newest first"""
        query = (
            select(Message)
            .where(Message.chat_id == chat_id)
            .order_by(desc(Message.timestamp))
            .offset(offset)
        )
        if limit is not None:
            query = query.limit(limit)

        with self._transaction("list_messages") as session:
            return [self._to_message_record(row) for row in session.scalars(query).all()]

    def search_messages(self, term: str) -> List[MessageRecord]:
        """Case-insensitive literal substring match on message bodies"""
        with self._transaction("search_messages") as session:
            if session.get_bind().dialect.name == "sqlite":
                # SQLite ILIKE only folds ASCII letters
                pattern = f"%{self._escape_like(term.casefold())}%"
                condition = func.casefold(Message.body).like(pattern, escape="\\")
            else:
                pattern = f"%{self._escape_like(term)}%"
                condition = Message.body.ilike(pattern, escape="\\")

            query = select(Message).where(condition).order_by(desc(Message.timestamp))
            return [self._to_message_record(row) for row in session.scalars(query).all()]

    def list_media_messages(
        self, media_type: Optional[str] = None, limit: int = 50
    ) -> List[MessageRecord]:
        """Messages carrying a media reference, newest first"""
        query = select(Message).where(Message.media_url.is_not(None))
        if media_type:
            query = query.where(Message.message_type == media_type)
        query = query.order_by(desc(Message.timestamp)).limit(limit)

        with self._transaction("list_media_messages") as session:
            return [self._to_message_record(row) for row in session.scalars(query).all()]

    def count_messages(self, chat_id: str, with_media: bool = False) -> int:
        """Count stored messages of a chat, optionally only media-bearing ones"""
        query = select(func.count()).select_from(Message).where(Message.chat_id == chat_id)
        if with_media:
            query = query.where(Message.media_url.is_not(None))
        with self._transaction("count_messages") as session:
            return session.scalar(query) or 0

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _escape_like(term: str) -> str:
        return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

    @staticmethod
    def _message_columns(message: MessageRecord) -> Dict:
        columns = {
            "message_id": message.message_id,
            "chat_id": message.chat_id,
            "sender_id": message.sender_id,
            "recipient_id": message.recipient_id,
            "sender_name": message.sender_name,
            "sender_number": message.sender_number,
            "timestamp": message.timestamp,
            "message_type": message.message_type,
            "body": message.body,
            "is_forwarded": message.is_forwarded,
            "is_reply": message.is_reply,
            "reply_to": message.reply_to,
        }
        if message.media:
            columns.update(
                media_url=message.media.url,
                media_mime_type=message.media.mime_type,
                media_size=message.media.size_bytes,
            )
        if message.location:
            columns.update(
                location_latitude=message.location.latitude,
                location_longitude=message.location.longitude,
                location_name=message.location.name,
            )
        if message.contact:
            columns.update(
                contact_name=message.contact.name,
                contact_number=message.contact.number,
            )
        return columns

    @staticmethod
    def _to_chat_record(row: Chat) -> ChatRecord:
        return ChatRecord(
            chat_id=row.chat_id,
            name=row.name,
            is_group=bool(row.is_group),
            participants=json.loads(row.participants) if row.participants else [],
            unread_count=row.unread_count or 0,
            is_archived=bool(row.is_archived),
            is_pinned=bool(row.is_pinned),
            description=row.description or "",
            created_by=row.created_by,
            created_at=row.created_at,
            message_count=row.message_count or 0,
            media_count=row.media_count or 0,
            updated_at=row.updated_at,
        )

    @staticmethod
    def _to_message_record(row: Message) -> MessageRecord:
        media = None
        if row.media_url:
            media = MediaRef(
                url=row.media_url,
                mime_type=row.media_mime_type,
                size_bytes=row.media_size or 0,
            )

        location = None
        if row.location_latitude is not None and row.location_longitude is not None:
            location = GeoLocation(
                latitude=row.location_latitude,
                longitude=row.location_longitude,
                name=row.location_name,
            )

        contact = None
        if row.contact_name or row.contact_number:
            contact = ContactCard(name=row.contact_name, number=row.contact_number)

        return MessageRecord(
            message_id=row.message_id,
            chat_id=row.chat_id,
            sender_id=row.sender_id,
            recipient_id=row.recipient_id,
            timestamp=row.timestamp,
            message_type=row.message_type,
            body=row.body or "",
            is_forwarded=bool(row.is_forwarded),
            is_reply=bool(row.is_reply),
            reply_to=row.reply_to,
            sender_name=row.sender_name,
            sender_number=row.sender_number,
            media=media,
            location=location,
            contact=contact,
            created_at=row.created_at,
        )
