"""Server-Sent Events (SSE) utilities.

This module contains the helper that wraps a frame iterator in an event-stream
response.
"""

import logging
from typing import Callable, Iterable, Iterator, Optional

from flask import Response, stream_with_context

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

# Comment line written first; Werkzeug sends status and headers with the first chunk
STREAM_OPEN_COMMENT = ": ok\n\n"


def _open_stream(frames: Iterable[str]) -> Iterator[str]:
    iterator = iter(frames)
    try:
        yield STREAM_OPEN_COMMENT
        yield from iterator
    finally:
        close = getattr(iterator, "close", None)
        if callable(close):
            close()


def create_sse_response(
    frames: Iterable[str],
    on_close: Optional[Callable[[], None]] = None,
) -> Response:
    """Create a Server-Sent Events (SSE) response.

    The body starts with a comment line so the client sees the response before
    the first frame is ready. Each frame is written and flushed as soon as it is
    produced. When the connection closes, normally or because the client went
    away, the frame iterator is closed and ``on_close`` runs.

    Args:
        frames: Iterable of already-encoded ``data: ...`` frames
        on_close: Callback run once the response is closed

    Returns:
        Flask Response configured for SSE
    """
    response = Response(
        stream_with_context(_open_stream(frames)),
        mimetype="text/event-stream",
        headers=SSE_HEADERS,
    )
    if on_close is not None:
        response.call_on_close(on_close)
    return response
