"""
Tests for the Query Layer
"""
import pytest
from datetime import datetime, timedelta

from chatsync.models.message import utcnow
from chatsync.services.records import MediaRef, MessageRecord


class TestSearch:
    """Substring search over message bodies"""

    def test_search_scenario(self, writer, query, events):
        writer.ingest(events.chat("c1", name="Alice"), events.message("m1", body="hi"))

        results = query.search("hi")

        assert len(results) == 1
        assert results[0].chat.chat_id == "c1"
        assert [m.message_id for m in results[0].messages] == ["m1"]

    def test_only_matching_messages_attached(self, writer, query, events):
        chat = events.chat("c1", name="Alice")
        writer.ingest(chat, events.message("m1", body="Hi Bob"))
        writer.ingest(chat, events.message("m2", body="see you later"))
        writer.ingest(events.chat("c2", name="Carol"), events.message("m3", chat_id="c2", body="oh hi!"))
        writer.ingest(events.chat("c3", name="Dave"), events.message("m4", chat_id="c3", body="nope"))

        results = {thread.chat.chat_id: thread for thread in query.search("HI")}

        assert set(results) == {"c1", "c2"}
        assert [m.message_id for m in results["c1"].messages] == ["m1"]
        assert [m.message_id for m in results["c2"].messages] == ["m3"]

    def test_blank_term_rejected(self, query):
        with pytest.raises(ValueError):
            query.search("   ")

    def test_no_matches(self, query):
        assert query.search("anything") == []


class TestChatListing:
    """Chat lists and single-chat lookups"""

    def test_group_and_private(self, writer, query, events):
        writer.ingest_chat(events.chat("p1", name="Alice"))
        writer.ingest_chat(events.chat("g1", name="Team", is_group=True))

        assert [c.chat_id for c in query.list_chats()] == ["g1", "p1"]
        assert [c.chat_id for c in query.list_group_chats()] == ["g1"]
        assert [c.chat_id for c in query.list_private_chats()] == ["p1"]

    def test_recent_window(self, writer, query, events):
        writer.ingest_chat(events.chat("c1"))

        assert [c.chat_id for c in query.list_recent_chats()] == ["c1"]
        assert query.list_recent_chats(now=utcnow() + timedelta(hours=25)) == []
        assert len(query.list_recent_chats(now=utcnow() + timedelta(hours=23))) == 1

    def test_message_activity_moves_chat_to_front(self, writer, query, events):
        writer.ingest_chat(events.chat("c1"))
        writer.ingest_chat(events.chat("c2"))
        assert [c.chat_id for c in query.list_chats()] == ["c2", "c1"]

        query.repository.increment_chat_counters("c1", message_delta=0)

        assert [c.chat_id for c in query.list_chats()] == ["c1", "c2"]

    def test_get_chat_with_recent_messages(self, writer, query, events):
        chat = events.chat("c1")
        for raw in events.conversation("c1", num_messages=8):
            writer.ingest(chat, raw)

        thread = query.get_chat("c1", message_limit=3)

        assert thread.chat.message_count == 8
        assert [m.message_id for m in thread.messages] == ["c1-m7", "c1-m6", "c1-m5"]

    def test_get_chat_default_limit(self, writer, repository, events):
        from chatsync.services import ConversationQuery

        chat = events.chat("c1")
        for raw in events.conversation("c1", num_messages=6):
            writer.ingest(chat, raw)

        thread = ConversationQuery(repository, default_message_limit=4).get_chat("c1")

        assert len(thread.messages) == 4

    def test_get_chat_without_messages(self, writer, query, events):
        writer.ingest(events.chat("c1"), events.message("m1"))
        assert query.get_chat("c1", include_messages=False).messages == []

    def test_absent_chat(self, query):
        assert query.get_chat("nope") is None
        assert query.get_chat_messages("nope") is None
        assert query.delete_chat("nope") is False

    def test_paged_messages(self, writer, query, events):
        chat = events.chat("c1")
        for raw in events.conversation("c1", num_messages=5):
            writer.ingest(chat, raw)

        page = query.get_chat_messages("c1", limit=2, offset=2)

        assert [m.message_id for m in page] == ["c1-m2", "c1-m1"]


class TestMediaListing:
    """Media listing with chat names"""

    def test_list_media_by_type(self, writer, query, events):
        chat = events.chat("c1", name="Alice")
        writer.ingest(chat, events.message("m1", message_type="image", has_media=True))
        writer.ingest(chat, events.message("m2", message_type="video", has_media=True,
                                           at=datetime(2024, 1, 2, tzinfo=events.start.tzinfo)))
        writer.ingest(chat, events.message("m3", body="text only"))

        everything = query.list_media()
        images = query.list_media("image")

        assert [v.message.message_id for v in everything] == ["m2", "m1"]
        assert all(v.chat_name == "Alice" for v in everything)
        assert [v.message.message_id for v in images] == ["m1"]
        assert len(query.list_media(limit=1)) == 1

    def test_orphan_message_gets_unknown_name(self, repository, query):
        repository.insert_message(MessageRecord(
            message_id="orphan",
            chat_id="gone",
            sender_id="a",
            recipient_id="b",
            timestamp=datetime(2024, 1, 1),
            message_type="image",
            media=MediaRef(url="/uploads/media/x.png", mime_type="image/png", size_bytes=1),
        ))

        views = query.list_media()

        assert views[0].chat_id == "gone"
        assert views[0].chat_name == "Unknown"

    def test_default_media_limit(self, writer, repository, events):
        from chatsync.services import ConversationQuery

        chat = events.chat("c1")
        for i in range(4):
            writer.ingest(chat, events.message(f"m{i}", message_type="image", has_media=True))

        limited = ConversationQuery(repository, media_list_limit=3)

        assert len(limited.list_media()) == 3
        assert len(limited.list_media(limit=4)) == 4

    def test_invalid_media_type(self, query):
        with pytest.raises(ValueError):
            query.list_media("spreadsheet")


class TestDeletion:
    """Whole-chat deletion"""

    def test_delete_leaves_no_messages(self, writer, query, repository, events):
        chat = events.chat("c1")
        for raw in events.conversation("c1", num_messages=12, media_every=3):
            writer.ingest(chat, raw)

        assert query.delete_chat("c1") is True

        assert query.get_chat("c1") is None
        assert repository.count_messages("c1") == 0
        assert query.search("a") == []
        assert query.list_media() == []
