from .http import HttpChatTransport
from .openai import OpenAIChatTransport

__all__ = ["HttpChatTransport", "OpenAIChatTransport"]
