from abc import ABC, abstractmethod
from typing import Any

from ..errors import ProbeFailure
from .models import ChatPayload


class ChatTransport(ABC):
    """Abstract base class for chat service transports.

    This module hides the design decision of how the chat service is reached.
    Implementations must handle:
    - Client setup and connection reuse
    - Request/response format conversion
    - Mapping every failure to TransportError (send) or ProbeFailure (ping)

    Transports hold no conversation state.

    Supports async context manager protocol for proper resource cleanup:
        async with transport:
            answer = await transport.send(payload)
        # Automatically cleaned up
    """

    def __init__(self) -> None:
        self._debug_callback: Any = None

    @abstractmethod
    async def send(self, payload: ChatPayload) -> str:
        """Send one user turn and return the complete answer.

        Args:
            payload: Message, recent context and optional image

        Returns:
            The answer text

        Raises:
            TransportError: On network failure, non-2xx status or a
                malformed response body
        """
        pass

    @abstractmethod
    async def ping(self) -> None:
        """Cheap liveness check without conversational semantics.

        Raises:
            ProbeFailure: If the service is not reachable or not healthy
        """
        pass

    async def probe(self) -> bool:
        """Run ``ping`` and report whether the service is alive."""
        try:
            await self.ping()
        except ProbeFailure as e:
            self._debug("debug", "Transport", str(e))
            return False
        return True

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections or resources."""
        pass

    def set_debug_callback(self, callback: Any) -> None:
        """Set the debug callback for request logging.

        Args:
            callback: Callable(level: str, component: str, message: str)
        """
        self._debug_callback = callback

    def _debug(self, level: str, component: str, message: str) -> None:
        if not self._debug_callback:
            return
        try:
            self._debug_callback(level, component, message)
        except Exception:
            # A broken log sink must not change the outcome of the caller
            pass

    async def __aenter__(self) -> "ChatTransport":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit with automatic cleanup.

        Note: Suppresses "Event loop is closed" errors during cleanup.
        This is a known harmless race condition in httpx/anyio cleanup:
        https://github.com/encode/httpx/issues/914
        """
        try:
            await self.close()
        except RuntimeError as e:
            # Suppress harmless cleanup errors from httpx/anyio
            if "Event loop is closed" not in str(e):
                raise
