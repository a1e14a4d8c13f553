"""
Unit tests for the Event Normalizer
"""
import pytest
from datetime import datetime
from pydantic import ValidationError

from chatsync.services.events import RawChatEvent, RawMessageEvent
from chatsync.services.normalizer import EventNormalizer


FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0)


@pytest.fixture
def normalizer():
    return EventNormalizer(clock=lambda: FIXED_NOW)


class TestChatNormalization:
    """Test suite for chat normalization"""

    def test_defaults_absent_fields(self, normalizer):
        chat = normalizer.normalize_chat(RawChatEvent(id="c1", name="Alice"))

        assert chat.chat_id == "c1"
        assert chat.name == "Alice"
        assert chat.is_group is False
        assert chat.participants == []
        assert chat.unread_count == 0
        assert chat.is_archived is False
        assert chat.is_pinned is False
        assert chat.description == ""
        assert chat.message_count == 0
        assert chat.media_count == 0

    def test_maps_source_flags(self, normalizer):
        raw = RawChatEvent.model_validate({
            "id": "g1@g.us",
            "name": "Team",
            "isGroup": True,
            "participants": ["a@c.us", "b@c.us", "a@c.us"],
            "unreadCount": 4,
            "archived": True,
            "pinned": True,
            "description": "Weekly sync",
            "createdBy": "a@c.us",
        })

        chat = normalizer.normalize_chat(raw)

        assert chat.is_group is True
        assert chat.participants == ["a@c.us", "b@c.us"]
        assert chat.unread_count == 4
        assert chat.is_archived is True
        assert chat.is_pinned is True
        assert chat.description == "Weekly sync"
        assert chat.created_by == "a@c.us"

    def test_name_falls_back_to_id(self, normalizer):
        chat = normalizer.normalize_chat(RawChatEvent(id="123@c.us"))
        assert chat.name == "123@c.us"


class TestMessageNormalization:
    """Test suite for message normalization"""

    def test_converts_epoch_seconds(self, normalizer):
        raw = RawMessageEvent(id="m1", chat_id="c1", sender="a", timestamp_seconds=1700000000)

        message = normalizer.normalize_message(raw)

        assert message.timestamp == datetime(2023, 11, 14, 22, 13, 20)
        assert message.timestamp.tzinfo is None

    def test_missing_timestamp_uses_clock(self, normalizer):
        raw = RawMessageEvent(id="m1", chat_id="c1", sender="a")
        assert normalizer.normalize_message(raw).timestamp == FIXED_NOW

    def test_reply_derived_from_quoted_message(self, normalizer):
        quoted = RawMessageEvent(
            id="m2", chat_id="c1", sender="a", has_quoted_msg=True, quoted_msg_id="m1"
        )
        plain = RawMessageEvent(id="m3", chat_id="c1", sender="a", quoted_msg_id=None)

        assert normalizer.normalize_message(quoted).is_reply is True
        assert normalizer.normalize_message(quoted).reply_to == "m1"
        assert normalizer.normalize_message(plain).is_reply is False
        assert normalizer.normalize_message(plain).reply_to is None

    def test_quoted_id_alone_marks_reply(self, normalizer):
        raw = RawMessageEvent(id="m2", chat_id="c1", sender="a", quoted_msg_id="m1")
        assert normalizer.normalize_message(raw).is_reply is True

    def test_media_never_set(self, normalizer):
        raw = RawMessageEvent(id="m1", chat_id="c1", sender="a", message_type="image", has_media=True)

        message = normalizer.normalize_message(raw)

        assert message.media is None
        assert message.media_pending is True

    def test_type_mapping(self, normalizer):
        def type_of(source_type):
            raw = RawMessageEvent(id="m", chat_id="c", sender="a", message_type=source_type)
            return normalizer.normalize_message(raw).message_type

        assert type_of("IMAGE") == "image"
        assert type_of("chat") == "chat-event"
        assert type_of("ptt") == "audio"
        assert type_of("vcard") == "contact"
        assert type_of("something-new") == "text"
        assert type_of("") == "text"

    def test_chat_id_argument_wins(self, normalizer):
        raw = RawMessageEvent(id="m1", chat_id="other", sender="a")
        assert normalizer.normalize_message(raw, chat_id="c1").chat_id == "c1"

    def test_missing_chat_id_rejected(self, normalizer):
        raw = RawMessageEvent(id="m1", sender="a")
        with pytest.raises(ValueError):
            normalizer.normalize_message(raw)

    def test_camel_case_payload(self, normalizer):
        raw = RawMessageEvent.model_validate({
            "id": "m1",
            "chatId": "c1",
            "from": "alice@c.us",
            "to": "me@c.us",
            "timestampSeconds": 1700000000,
            "type": "location",
            "body": None,
            "isForwarded": True,
            "hasQuotedMsg": False,
            "hasMedia": False,
            "location": {"latitude": 52.37, "longitude": 4.89, "name": "Dam"},
        })

        message = normalizer.normalize_message(raw)

        assert message.sender_id == "alice@c.us"
        assert message.recipient_id == "me@c.us"
        assert message.body == ""
        assert message.is_forwarded is True
        assert message.message_type == "location"
        assert message.location.latitude == 52.37
        assert message.location.name == "Dam"
        assert message.contact is None

    @pytest.mark.parametrize("seconds", [-1, 1704100000000, 1e20])
    def test_out_of_range_timestamp_rejected(self, seconds):
        with pytest.raises(ValidationError):
            RawMessageEvent.model_validate({"id": "m1", "from": "a", "timestampSeconds": seconds})

    def test_latest_representable_timestamp(self, normalizer):
        raw = RawMessageEvent(id="m1", chat_id="c1", sender="a", timestamp_seconds=253402300799)
        assert normalizer.normalize_message(raw).timestamp == datetime(9999, 12, 31, 23, 59, 59)

    def test_deterministic(self, normalizer):
        raw = RawMessageEvent(id="m1", chat_id="c1", sender="a", body="hi", timestamp_seconds=10)
        assert normalizer.normalize_message(raw) == normalizer.normalize_message(raw)
