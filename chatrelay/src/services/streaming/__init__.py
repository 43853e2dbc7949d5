"""Streaming package.

Provides the pieces of a streamed chat exchange:
- Stream events and the event-stream frame codec
- The cancellation token shared with the transport
- The token relay and the stream session controller
"""

from .cancellation import CancellationToken
from .codec import FrameDecoder, decode_stream, encode_event, encode_event_bytes
from .events import DoneEvent, ErrorEvent, StreamEvent, TokenEvent, is_terminal
from .relay import GENERIC_STREAM_ERROR, PartialReply, RelayOutcome, TokenRelay
from .session import SessionState, StreamSession

__all__ = [
    "CancellationToken",
    "FrameDecoder",
    "decode_stream",
    "encode_event",
    "encode_event_bytes",
    "DoneEvent",
    "ErrorEvent",
    "StreamEvent",
    "TokenEvent",
    "is_terminal",
    "GENERIC_STREAM_ERROR",
    "PartialReply",
    "RelayOutcome",
    "TokenRelay",
    "SessionState",
    "StreamSession",
]
