"""Abstract base class for conversation snapshot stores.

This module defines the interface for persisting the ordered message list.
The abstraction hides:
- Storage format (JSON file, SQLite, process memory)
- Persistence mechanism and atomicity
- Connection management

A store holds one slot per conversation key; every save overwrites the whole
message list.
"""

import json
from abc import ABC, abstractmethod
from typing import Any

from pydantic import TypeAdapter, ValidationError

from ..config import CONVERSATION_KEY
from ..conversation.models import Message
from ..errors import PersistenceFailure

_MESSAGES = TypeAdapter(list[Message])


def dump_messages(messages: list[Message]) -> str:
    """Serialize an ordered message list to JSON text."""
    return _MESSAGES.dump_json(messages).decode("utf-8")


def load_messages(raw: str | bytes, key: str | None = None) -> list[Message]:
    """Parse JSON text produced by ``dump_messages``.

    Raises:
        PersistenceFailure: If the snapshot is not a valid message list
    """
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise PersistenceFailure(f"invalid snapshot: {e}", key=key) from e
    return messages_from_data(data, key)


def messages_to_data(messages: list[Message]) -> list[dict[str, Any]]:
    """Convert messages to JSON-compatible Python data."""
    return _MESSAGES.dump_python(messages, mode="json")


def messages_from_data(data: Any, key: str | None = None) -> list[Message]:
    """Inverse of ``messages_to_data``.

    Entries whose id is not a number (older clients saved failure replies
    under a fixed string id) get the next id after the one before them.

    Raises:
        PersistenceFailure: If the data is not a valid message list
    """
    try:
        return _MESSAGES.validate_python(_renumber_legacy_ids(data))
    except ValidationError as e:
        raise PersistenceFailure(f"invalid snapshot: {e.error_count()} error(s)", key=key) from e


def _renumber_legacy_ids(data: Any) -> Any:
    if not isinstance(data, list):
        return data

    repaired = []
    last = -1
    for item in data:
        if isinstance(item, dict):
            raw_id = item.get("id")
            if isinstance(raw_id, str) and raw_id.isdecimal():
                raw_id = int(raw_id)
            if isinstance(raw_id, int) and not isinstance(raw_id, bool) and raw_id >= 0:
                last = max(last, raw_id)
            elif "id" in item:
                last += 1
                item = {**item, "id": last}
        repaired.append(item)
    return repaired


class MessageStore(ABC):
    """Abstract conversation snapshot store.

    Supports async context manager protocol:
        async with store:
            messages = await store.load()
    """

    def __init__(self, key: str = CONVERSATION_KEY) -> None:
        self._key = key

    @property
    def key(self) -> str:
        """Conversation identifier this store reads and writes."""
        return self._key

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the store."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the store gracefully."""

    @abstractmethod
    async def load(self) -> list[Message]:
        """Read the stored message list (empty if nothing was saved).

        Raises:
            PersistenceFailure: If the stored data cannot be read or parsed
        """

    @abstractmethod
    async def save(self, messages: list[Message]) -> None:
        """Overwrite the stored message list.

        Raises:
            PersistenceFailure: If the data cannot be written
        """

    async def clear(self) -> None:
        """Empty the stored conversation."""
        await self.save([])

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""

    async def __aenter__(self) -> "MessageStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()
