"""Client package for talking to the chat relay API."""

from .chat_api import (
    CONNECTION_LOST_ERROR,
    EMPTY_MESSAGE_ERROR,
    RATE_LIMITED_ERROR,
    ChatApiClient,
    ChatApiError,
    message_for_status,
)

__all__ = [
    "ChatApiClient",
    "ChatApiError",
    "message_for_status",
    "CONNECTION_LOST_ERROR",
    "EMPTY_MESSAGE_ERROR",
    "RATE_LIMITED_ERROR",
]
