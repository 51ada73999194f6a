"""Unit tests for conversation models and settings."""
from datetime import timezone

import pytest
from hypothesis import given
from hypothesis import strategies as st

from parley.config import ControllerSettings
from parley.conversation import (
    ConversationView,
    Message,
    MessageIdGenerator,
    Phase,
    Role,
    format_context,
)


def _messages(*pairs):
    return [Message(id=i, role=role, text=text) for i, (role, text) in enumerate(pairs)]


class TestMessage:
    """Tests for the Message model."""

    def test_defaults(self):
        msg = Message(id=1, role=Role.USER, text="hi")

        assert msg.image is None
        assert msg.has_image is False
        assert msg.created_at.tzinfo is not None
        assert msg.created_at.utcoffset() == timezone.utc.utcoffset(None)

    def test_is_frozen(self):
        """Test messages cannot be mutated after creation."""
        msg = Message(id=1, role=Role.USER, text="hi")
        with pytest.raises(ValueError):
            msg.text = "changed"  # type: ignore

    def test_negative_id_rejected(self):
        with pytest.raises(ValueError):
            Message(id=-1, role=Role.USER, text="hi")

    def test_content_alias(self):
        """Test the legacy 'content' key fills text."""
        msg = Message.model_validate({"id": 5, "role": "assistant", "content": "hello"})
        assert msg.text == "hello"
        assert msg.role is Role.ASSISTANT

    def test_image_from_base64(self):
        msg = Message.model_validate({"id": 1, "role": "user", "text": "x", "image": "YWJj"})
        assert msg.image == b"abc"
        assert msg.has_image is True

    def test_invalid_base64_rejected(self):
        with pytest.raises(ValueError):
            Message.model_validate({"id": 1, "role": "user", "text": "x", "image": "not base64!"})


class TestMessageIdGenerator:
    """Tests for id allocation."""

    def test_ids_follow_clock(self):
        generator = MessageIdGenerator(clock=lambda: 1700000000.5)
        assert generator.next_id() == 1700000000500

    def test_same_millisecond_still_unique(self):
        """Test ids keep increasing when the clock does not move."""
        generator = MessageIdGenerator(clock=lambda: 10.0)
        assert [generator.next_id() for _ in range(3)] == [10000, 10001, 10002]

    def test_clock_going_backwards(self):
        """Test ids never decrease even if the clock does."""
        times = iter([5.0, 1.0])
        generator = MessageIdGenerator(clock=lambda: next(times))

        first = generator.next_id()
        assert generator.next_id() == first + 1

    def test_seed_continues_after_loaded(self):
        generator = MessageIdGenerator(clock=lambda: 0.0)
        generator.seed(_messages((Role.USER, "a"), (Role.ASSISTANT, "b")))
        assert generator.next_id() == 2

    @given(st.lists(st.floats(min_value=0, max_value=4e9), min_size=1, max_size=30))
    def test_ids_strictly_increase(self, times):
        """Property test: ids strictly increase for any clock readings."""
        readings = iter(times)
        generator = MessageIdGenerator(clock=lambda: next(readings))
        ids = [generator.next_id() for _ in times]
        assert all(a < b for a, b in zip(ids, ids[1:]))


class TestFormatContext:
    """Tests for context serialization."""

    def test_role_prefixed_lines(self):
        messages = _messages((Role.USER, "hi"), (Role.ASSISTANT, "hello"), (Role.SYSTEM, "notice"))
        assert format_context(messages, 12) == "user: hi\nassistant: hello\nsystem: notice"

    def test_limit_keeps_most_recent(self):
        messages = _messages((Role.USER, "1"), (Role.ASSISTANT, "2"), (Role.USER, "3"))
        assert format_context(messages, 2) == "assistant: 2\nuser: 3"

    def test_empty(self):
        assert format_context([], 12) == ""
        assert format_context(_messages((Role.USER, "x")), 0) == ""

    @given(st.integers(min_value=1, max_value=30), st.integers(min_value=0, max_value=40))
    def test_line_count_is_bounded(self, limit: int, count: int):
        """Property test: context never holds more than the window."""
        messages = _messages(*[(Role.USER, f"m{i}") for i in range(count)])
        context = format_context(messages, limit)

        expected = min(limit, count)
        assert (len(context.split("\n")) if context else 0) == expected


class TestConversationView:
    def test_pending_send_follows_phase(self):
        assert ConversationView().pending_send is False
        assert ConversationView(phase=Phase.RETRYING).pending_send is True


class TestControllerSettings:
    """Tests for ControllerSettings validation."""

    def test_defaults(self):
        settings = ControllerSettings()

        assert settings.context_window == 12
        assert settings.reveal_interval == pytest.approx(0.018)
        assert settings.probe_interval == 4.0
        assert settings.image_placeholder == "(image)"

    @given(st.integers(min_value=0, max_value=100))
    def test_context_window_within_bounds(self, window: int):
        """Property test: context window should accept 0-100."""
        assert ControllerSettings(context_window=window).context_window == window

    @pytest.mark.parametrize("field,value", [
        ("context_window", -1),
        ("context_window", 101),
        ("reveal_interval", -0.1),
        ("probe_interval", -1.0),
    ])
    def test_out_of_bounds_rejected(self, field, value):
        with pytest.raises(ValueError):
            ControllerSettings(**{field: value})