"""Conversation persistence for parley.

Stores the ordered message list under a fixed conversation key.
"""

from .base import MessageStore, dump_messages, load_messages
from .factory import create_message_store
from .in_memory import InMemoryMessageStore
from .json_file import JsonFileMessageStore

__all__ = [
    "InMemoryMessageStore",
    "JsonFileMessageStore",
    "MessageStore",
    "create_message_store",
    "dump_messages",
    "load_messages",
]
