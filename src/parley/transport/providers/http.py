from typing import Any

import httpx
from pydantic import ValidationError

from ...config import DEFAULT_API_URL, DEFAULT_PROBE_TIMEOUT, DEFAULT_PROBE_URL, DEFAULT_TIMEOUT
from ...errors import ProbeFailure, TransportError
from ..base import ChatTransport
from ..models import ChatPayload, ChatReply

# Statuses worth waiting out even though they are 4xx
RETRYABLE_CLIENT_STATUSES = {408, 425, 429}


def _is_retryable_status(status_code: int) -> bool:
    return status_code >= 500 or status_code in RETRYABLE_CLIENT_STATUSES


class HttpChatTransport(ChatTransport):
    """JSON-over-HTTP chat service transport.

    Hidden design decisions:
    - HTTP client lifecycle (one pooled httpx.AsyncClient per transport)
    - Request body layout ({message, context, image_base64?})
    - Status code to retry classification
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_API_URL,
        probe_endpoint: str = DEFAULT_PROBE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
        **client_kwargs: Any
    ):
        """Initialize the HTTP transport.

        Args:
            endpoint: URL receiving POSTed messages
            probe_endpoint: URL answering GET liveness checks
            timeout: Seconds before a send is abandoned
            probe_timeout: Seconds before a probe is abandoned
            **client_kwargs: Additional kwargs for httpx.AsyncClient
        """
        super().__init__()
        self._endpoint = endpoint
        self._probe_endpoint = probe_endpoint
        self._timeout = timeout
        self._probe_timeout = probe_timeout
        self._client = httpx.AsyncClient(**client_kwargs)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def probe_endpoint(self) -> str:
        return self._probe_endpoint

    async def send(self, payload: ChatPayload) -> str:
        self._debug("debug", "Transport", f"POST {self._endpoint}")
        try:
            response = await self._client.post(
                self._endpoint,
                json=payload.to_request_body(),
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise TransportError(
                response.reason_phrase or "request failed",
                status_code=response.status_code,
                retryable=_is_retryable_status(response.status_code),
            )

        try:
            reply = ChatReply.model_validate(response.json())
        except ValueError as e:
            # ValidationError is a ValueError; so is a JSON decode error
            detail = "missing answer field" if isinstance(e, ValidationError) else "body is not JSON"
            raise TransportError(
                f"malformed response: {detail}",
                status_code=response.status_code,
                retryable=False,
            ) from e

        return reply.answer

    async def ping(self) -> None:
        try:
            response = await self._client.get(
                self._probe_endpoint,
                timeout=self._probe_timeout,
            )
        except httpx.HTTPError as e:
            raise ProbeFailure(f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise ProbeFailure(f"status {response.status_code}")

    async def close(self) -> None:
        """Close the pooled HTTP client."""
        await self._client.aclose()
