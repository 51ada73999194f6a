"""Error taxonomy for parley.

Every error carries its own retry decision so the recovery policy does not
need to know which component raised it.
"""


class ParleyError(Exception):
    """Base class for parley errors."""

    def is_retryable(self) -> bool:
        """Override in subclasses to control retry behavior."""
        return False


class TransportError(ParleyError):
    """Sending a message to the chat service failed.

    Network failures and 5xx responses are retryable (the service may still be
    waking up); 4xx responses and malformed bodies are not.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retryable: bool = True
    ):
        msg = f"Transport error: {message}"
        if status_code is not None:
            msg += f" (status: {status_code})"
        super().__init__(msg)
        self.status_code = status_code
        self._retryable = retryable

    def is_retryable(self) -> bool:
        return self._retryable


class ProbeFailure(ParleyError):
    """Liveness check failed (expected while the service is down)."""

    def __init__(self, message: str):
        super().__init__(f"Probe failed: {message}")

    def is_retryable(self) -> bool:
        return True


class PersistenceFailure(ParleyError):
    """Loading or saving the local conversation snapshot failed (non-fatal)."""

    def __init__(self, message: str, key: str | None = None):
        msg = f"Persistence error: {message}"
        if key:
            msg += f" (key: {key})"
        super().__init__(msg)
        self.key = key
