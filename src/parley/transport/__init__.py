from .base import ChatTransport
from .factory import create_transport
from .models import ChatPayload, ChatReply
from .providers import HttpChatTransport, OpenAIChatTransport

__all__ = [
    "ChatTransport",
    "create_transport",
    "ChatPayload",
    "ChatReply",
    "HttpChatTransport",
    "OpenAIChatTransport",
]
