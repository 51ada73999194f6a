from typing import Any

from .base import ChatTransport
from .providers import HttpChatTransport, OpenAIChatTransport


def create_transport(kind: str = "http", **config: Any) -> ChatTransport:
    """Create a chat transport instance.

    This factory function hides the instantiation logic for different transports.

    Args:
        kind: Transport type ('http', 'openai')
        **config: Transport-specific configuration
            For HTTP:
                - endpoint: str (default: 'http://127.0.0.1:8000/api/chat/')
                - probe_endpoint: str (default: 'http://127.0.0.1:8000/')
                - timeout: float
            For OpenAI:
                - api_key: str (required)
                - model: str (default: 'gpt-4o-mini')
                - base_url: str | None

    Returns:
        Initialized transport instance

    Raises:
        ValueError: If transport type is not supported
        TypeError: If required configuration is missing

    Examples:
        >>> transport = create_transport(
        ...     "http",
        ...     endpoint="http://localhost:8000/api/chat/"
        ... )

        >>> transport = create_transport(
        ...     "openai",
        ...     api_key="sk-...",
        ...     model="gpt-4o-mini"
        ... )
    """
    kind_lower = kind.lower()

    if kind_lower == "http":
        return HttpChatTransport(**config)

    if kind_lower == "openai":
        if "api_key" not in config:
            raise TypeError("OpenAI transport requires 'api_key' in config")
        return OpenAIChatTransport(**config)

    raise ValueError(
        f"Unsupported transport: {kind}. "
        f"Supported transports: 'http', 'openai'"
    )
