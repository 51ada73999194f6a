import base64
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChatPayload(BaseModel):
    """Request sent to the chat service for one user turn."""

    model_config = ConfigDict(frozen=True)

    message: str = Field(description="Text of the new user message")
    context: str = Field(default="", description="Recent messages as 'role: text' lines")
    image_base64: str | None = Field(
        default=None,
        description="Base64-encoded image attached to the message"
    )

    @classmethod
    def build(cls, message: str, context: str = "", image: bytes | None = None) -> "ChatPayload":
        """Create a payload, encoding the image when one is attached."""
        encoded = base64.b64encode(image).decode("ascii") if image else None
        return cls(message=message, context=context, image_base64=encoded)

    def to_request_body(self) -> dict[str, Any]:
        """JSON body for the chat endpoint (image omitted when absent)."""
        return self.model_dump(exclude_none=True)


class ChatReply(BaseModel):
    """Response body returned by the chat service."""

    answer: str = Field(description="Complete answer text")
