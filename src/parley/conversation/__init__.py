"""Conversation state machine for parley.

Owns the ordered message list and drives each send/reveal/recovery turn.
"""

from .controller import ConversationController
from .models import (
    ConversationView,
    Message,
    MessageIdGenerator,
    Phase,
    Role,
    TypingState,
    format_context,
)

__all__ = [
    "ConversationController",
    "ConversationView",
    "Message",
    "MessageIdGenerator",
    "Phase",
    "Role",
    "TypingState",
    "format_context",
]
