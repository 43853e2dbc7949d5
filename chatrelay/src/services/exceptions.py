"""
Error types raised by the service layer.

The API layer translates these into HTTP responses or stream frames:
- Upstream failures become a generic 500 or a single ``error`` frame
- Cancellation-caused failures are swallowed
- Storage failures are fatal to the request
"""

from typing import Optional


class ChatRelayError(Exception):
    """Base class for service-layer errors."""


class LLMError(ChatRelayError):
    """Error raised while talking to an LLM backend."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class UpstreamFailure(LLMError):
    """The LLM backend call failed; the message is safe to show to clients."""


class StreamCancelledError(LLMError):
    """The upstream stream broke because the consumer cancelled it."""


class StorageError(ChatRelayError):
    """The message store could not read or write its backing file."""


class FrameDecodeError(ChatRelayError, ValueError):
    """A payload does not match any stream event shape."""
