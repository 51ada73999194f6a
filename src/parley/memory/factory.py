"""Factory for creating conversation snapshot stores."""

from typing import Any

from .base import MessageStore


def create_message_store(
    backend: str = "memory",
    **kwargs: Any
) -> MessageStore:
    """Create a snapshot store.

    Args:
        backend: Backend type ("memory", "json" or "sqlite")
        **kwargs: Backend-specific configuration
            For all backends:
                - key: str (conversation slot, default: 'parley_chats_v1')
            For json and sqlite:
                - path: str | Path

    Returns:
        MessageStore instance

    Raises:
        ValueError: If backend type is not supported
    """
    if backend == "memory":
        from .in_memory import InMemoryMessageStore
        return InMemoryMessageStore(**kwargs)

    elif backend == "json":
        from .json_file import JsonFileMessageStore
        return JsonFileMessageStore(**kwargs)

    elif backend == "sqlite":
        from .sqlite import SQLiteMessageStore
        return SQLiteMessageStore(**kwargs)

    raise ValueError(
        f"Unsupported store backend: {backend}. "
        f"Supported backends: memory, json, sqlite"
    )
