from typing import Any

import openai
from openai import AsyncOpenAI

from ...config import DEFAULT_TIMEOUT
from ...errors import ProbeFailure, TransportError
from ..base import ChatTransport
from ..models import ChatPayload

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant. Answer the user's latest message."


def _payload_to_messages(payload: ChatPayload, system_prompt: str) -> list[dict[str, Any]]:
    """Convert a chat payload to Chat Completions messages.

    The context lines travel inside the system message; an attached image
    becomes a data URL content part next to the text.
    """
    system_content = system_prompt
    if payload.context:
        system_content += f"\n\nConversation so far:\n{payload.context}"

    if payload.image_base64:
        user_content: Any = [
            {"type": "text", "text": payload.message or "Describe this image."},
            {
                "type": "image_url",
                "image_url": {"url": f"data:image/jpeg;base64,{payload.image_base64}"},
            },
        ]
    else:
        user_content = payload.message

    return [
        {"role": "system", "content": system_content},
        {"role": "user", "content": user_content},
    ]


class OpenAIChatTransport(ChatTransport):
    """Transport for OpenAI-compatible chat completion servers.

    Hidden design decisions:
    - OpenAI API client initialization
    - Payload to message format conversion
    - Mapping SDK errors to TransportError / ProbeFailure
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        temperature: float = 0.7,
        timeout: float = DEFAULT_TIMEOUT,
        **client_kwargs: Any
    ):
        """Initialize OpenAI transport.

        Args:
            api_key: OpenAI API key
            model: Model used for every completion
            base_url: Optional custom API base URL (any compatible server)
            system_prompt: Instructions placed before the context
            temperature: Sampling temperature
            timeout: Seconds before a request is abandoned
            **client_kwargs: Additional kwargs for AsyncOpenAI client
        """
        super().__init__()
        self._model = model
        self._system_prompt = system_prompt
        self._temperature = temperature
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
            **client_kwargs
        )

    @property
    def model(self) -> str:
        """Get the model name."""
        return self._model

    async def send(self, payload: ChatPayload) -> str:
        self._debug("debug", "Transport", f"chat.completions.create model={self._model}")
        try:
            completion = await self._client.chat.completions.create(
                model=self._model,
                messages=_payload_to_messages(payload, self._system_prompt),
                temperature=self._temperature,
            )
        except openai.APIStatusError as e:
            raise TransportError(
                e.message,
                status_code=e.status_code,
                retryable=e.status_code >= 500 or e.status_code == 429,
            ) from e
        except openai.APIError as e:
            # Connection errors and timeouts
            raise TransportError(str(e)) from e

        if not completion.choices or completion.choices[0].message.content is None:
            raise TransportError("malformed response: no answer content", retryable=False)
        return completion.choices[0].message.content

    async def ping(self) -> None:
        try:
            await self._client.models.list()
        except openai.APIError as e:
            raise ProbeFailure(str(e)) from e

    async def close(self) -> None:
        """Close the OpenAI client.

        Note: Uses the OpenAI SDK's async context manager for proper cleanup.
        See: https://github.com/openai/openai-python#async-usage
        """
        await self._client.close()
