"""Data models for the conversation.

These models define the structure of messages and the observable controller
state, independent of the storage backend or UI used.
"""

import base64
import time
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_serializer, field_validator

from ..recovery import RetryState


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class Role(str, Enum):
    """Author of a message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"  # Local notices (degraded/restored service)


class Phase(str, Enum):
    """Controller phase for the current turn."""

    IDLE = "idle"
    SENDING = "sending"
    REVEALING = "revealing"
    RETRYING = "retrying"


class Message(BaseModel):
    """A single conversation entry. Never mutated after creation.

    Also accepts the browser client's stored layout (``content`` instead of
    ``text``, string ids, no timestamp).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int = Field(ge=0, description="Unique, increasing with creation time")
    role: Role = Field(description="Role of the message author")
    text: str = Field(
        validation_alias=AliasChoices("text", "content"),
        description="Message text"
    )
    image: bytes | None = Field(default=None, description="Attached image bytes")
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("image", mode="before")
    @classmethod
    def decode_image(cls, value: Any) -> Any:
        """Accept base64 text (the JSON form) and normalize empty payloads."""
        if isinstance(value, (bytes, str)) and not value:
            return None
        if isinstance(value, str):
            return base64.b64decode(value, validate=True)
        return value

    @field_serializer("image", when_used="json")
    def serialize_image(self, value: bytes | None) -> str | None:
        """Serialize image bytes as base64 text."""
        return base64.b64encode(value).decode("ascii") if value else None

    @property
    def has_image(self) -> bool:
        return bool(self.image)


class TypingState(BaseModel):
    """Progress of the reveal currently on screen."""

    model_config = ConfigDict(frozen=True)

    target_message_id: int
    revealed_prefix_length: int = Field(default=0, ge=0)


class ConversationView(BaseModel):
    """Immutable snapshot of the controller state handed to listeners."""

    model_config = ConfigDict(frozen=True)

    messages: tuple[Message, ...] = ()
    phase: Phase = Phase.IDLE
    typing: TypingState | None = None
    typing_text: str = ""
    retry: RetryState = Field(default_factory=RetryState)

    @property
    def pending_send(self) -> bool:
        return self.phase is not Phase.IDLE


class MessageIdGenerator:
    """Allocates millisecond-based ids that never repeat or go backwards."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._last = 0

    def seed(self, messages: Sequence[Message]) -> None:
        """Continue after the largest id already in use."""
        if messages:
            self._last = max(self._last, max(m.id for m in messages))

    def next_id(self) -> int:
        candidate = int(self._clock() * 1000)
        self._last = max(candidate, self._last + 1)
        return self._last


def format_context(messages: Sequence[Message], limit: int) -> str:
    """Serialize the most recent messages as ``role: text`` lines.

    Args:
        messages: Conversation so far, oldest first
        limit: Maximum number of messages to include

    Returns:
        Newline-joined context string (empty when there is nothing to send)
    """
    if limit <= 0 or not messages:
        return ""
    return "\n".join(f"{m.role.value}: {m.text}" for m in messages[-limit:])
