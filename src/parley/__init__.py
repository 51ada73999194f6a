"""
Parley: a resilient chat client core.

Turns user input into a persisted, ordered conversation, exchanges it with a
remote chat service, reveals answers incrementally and waits out service
outages with periodic probes.
"""

__version__ = "0.1.0"

from .config import ControllerSettings
from .conversation import (
    ConversationController,
    ConversationView,
    Message,
    Phase,
    Role,
    TypingState,
)
from .errors import ParleyError, PersistenceFailure, ProbeFailure, TransportError
from .memory import MessageStore, create_message_store
from .recovery import RecoveryAction, RecoveryPolicy, RetryState
from .reveal import Reveal, RevealScheduler, grapheme_prefixes
from .transport import ChatPayload, ChatTransport, create_transport

__all__ = [
    "ChatPayload",
    "ChatTransport",
    "ControllerSettings",
    "ConversationController",
    "ConversationView",
    "Message",
    "MessageStore",
    "ParleyError",
    "PersistenceFailure",
    "Phase",
    "ProbeFailure",
    "RecoveryAction",
    "RecoveryPolicy",
    "RetryState",
    "Reveal",
    "RevealScheduler",
    "Role",
    "TransportError",
    "TypingState",
    "create_message_store",
    "create_transport",
    "grapheme_prefixes",
]
