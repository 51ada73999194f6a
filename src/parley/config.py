"""Configuration constants and settings for the message lifecycle.

Centralizes magic numbers and configuration values for the controller.
"""

from pydantic import BaseModel, ConfigDict, Field

# Conversation context
CONTEXT_WINDOW = 12  # Prior messages sent along with each new message

# Reveal animation
REVEAL_INTERVAL = 0.018  # Seconds between reveal steps

# Recovery probing
PROBE_INTERVAL = 4.0  # Seconds between liveness probes while degraded

# Persistence
CONVERSATION_KEY = "parley_chats_v1"  # Storage slot for the message list
DEFAULT_JSON_STORE_PATH = "./parley_chats.json"
DEFAULT_SQLITE_STORE_PATH = "./parley_chats.db"

# Transport
DEFAULT_API_URL = "http://127.0.0.1:8000/api/chat/"
DEFAULT_PROBE_URL = "http://127.0.0.1:8000/"
DEFAULT_TIMEOUT = 60.0  # Seconds before a send is abandoned
DEFAULT_PROBE_TIMEOUT = 5.0

# Message texts
IMAGE_PLACEHOLDER = "(image)"  # Stored text for image-only user messages
DEGRADED_NOTICE = "The service is not responding. Waiting for it to come back..."
RESTORED_NOTICE = "The service is back. Send your message again."
FAILURE_REPLY = "Something went wrong while answering. Please try again."


class ControllerSettings(BaseModel):
    """Tunable settings for a conversation controller."""

    model_config = ConfigDict(frozen=True)

    context_window: int = Field(
        default=CONTEXT_WINDOW,
        ge=0,
        le=100,
        description="Number of prior messages sent as context"
    )
    reveal_interval: float = Field(
        default=REVEAL_INTERVAL,
        ge=0.0,
        description="Seconds between reveal steps"
    )
    probe_interval: float = Field(
        default=PROBE_INTERVAL,
        ge=0.0,
        description="Seconds between recovery probes"
    )
    degraded_notice: str = DEGRADED_NOTICE
    restored_notice: str = RESTORED_NOTICE
    failure_reply: str = FAILURE_REPLY
    image_placeholder: str = IMAGE_PLACEHOLDER
