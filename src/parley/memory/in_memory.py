"""In-memory snapshot store.

Simple dict-based storage for session-only conversations.
Data is lost when the application exits.
"""

from ..config import CONVERSATION_KEY
from ..conversation.models import Message
from .base import MessageStore, dump_messages, load_messages


class InMemoryMessageStore(MessageStore):
    """In-memory snapshot store (session-only).

    Snapshots are kept as serialized JSON so that loads behave exactly like
    the durable backends. Suitable for single-session use or testing.
    """

    def __init__(
        self,
        key: str = CONVERSATION_KEY,
        slots: dict[str, str] | None = None
    ) -> None:
        super().__init__(key)
        self._slots: dict[str, str] = slots if slots is not None else {}

    async def connect(self) -> None:
        """Initialize memory (no-op for in-memory)."""
        pass

    async def disconnect(self) -> None:
        """Close memory (no-op for in-memory)."""
        pass

    async def load(self) -> list[Message]:
        raw = self._slots.get(self._key)
        if raw is None:
            return []
        return load_messages(raw, key=self._key)

    async def save(self, messages: list[Message]) -> None:
        self._slots[self._key] = dump_messages(messages)

    @property
    def backend_type(self) -> str:
        return "memory"
