"""Event-stream frame encoding and byte-stream-aware decoding.

Each event travels as one ``data: <json-object>\\n\\n`` frame. The decoder accepts
raw byte chunks that may split a UTF-8 character or a JSON object anywhere.
"""

import codecs
import json
import logging
from typing import Iterable, Iterator, List, Optional

from chatrelay.src.services.exceptions import FrameDecodeError
from chatrelay.src.services.streaming.events import (
    StreamEvent,
    TokenEvent,
    event_from_payload,
    event_to_payload,
    is_terminal,
)

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
FRAME_SEPARATOR = "\n\n"

# Upper bound on text held back for an unfinished line or a broken frame
MAX_CARRY_CHARS = 64 * 1024


def encode_event(event: StreamEvent) -> str:
    """Serialize an event to a single wire frame.

    Args:
        event: Event to serialize

    Returns:
        Frame string of the form ``data: <json>\\n\\n``
    """
    payload = json.dumps(event_to_payload(event), ensure_ascii=False)
    return f"{DATA_PREFIX}{payload}{FRAME_SEPARATOR}"


def encode_event_bytes(event: StreamEvent) -> bytes:
    """Serialize an event to UTF-8 wire bytes."""
    return encode_event(event).encode("utf-8")


class FrameDecoder:
    """Incremental decoder turning raw byte chunks into stream events.

    Text after the last newline is buffered until more bytes arrive. A complete
    ``data:`` line whose JSON does not parse is carried over and joined with the
    following line(s) until it does. A line that grows past ``MAX_CARRY_CHARS``
    without a newline is dropped. Once a ``done`` or ``error`` event has been
    decoded the decoder is finished and ignores all further input.

    Attributes:
        finished (bool): Whether a terminal event has been decoded
    """

    def __init__(self) -> None:
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._carry: Optional[str] = None
        self._skipping_line = False
        self._closed = False
        self.finished = False

    def feed(self, chunk: bytes) -> List[StreamEvent]:
        """Decode one chunk of raw bytes.

        Args:
            chunk: Next slice of the response body

        Returns:
            Events completed by this chunk, in wire order
        """
        if self.finished or self._closed:
            return []

        text = self._utf8.decode(chunk)
        if self._skipping_line:
            # Rest of an oversized line that was already dropped
            newline = text.find("\n")
            if newline < 0:
                return []
            text = text[newline + 1 :]
            self._skipping_line = False

        self._buffer += text
        lines = self._buffer.split("\n")
        # The last piece has no newline yet; keep it for the next chunk
        self._buffer = lines.pop()
        events = self._process_lines(lines)

        if len(self._buffer) > MAX_CARRY_CHARS:
            logger.warning(
                f"Dropping line after {len(self._buffer)} chars without a newline"
            )
            self._buffer = ""
            self._skipping_line = True
        return events

    def close(self) -> List[StreamEvent]:
        """Flush pending bytes at end of input.

        Returns:
            Events decoded from the remaining buffer, if any
        """
        if self._closed:
            return []
        self._closed = True
        if self.finished:
            return []

        self._buffer += self._utf8.decode(b"", final=True)
        remaining, self._buffer = self._buffer, ""

        events: List[StreamEvent] = []
        if remaining.strip():
            events = self._process_lines([remaining])

        if self._carry is not None and not self.finished:
            logger.warning(
                f"Stream ended inside an incomplete frame, dropping {len(self._carry)} chars"
            )
            self._carry = None
        return events

    def _process_lines(self, lines: List[str]) -> List[StreamEvent]:
        events: List[StreamEvent] = []
        for line in lines:
            event = self._process_line(line.strip())
            if event is None:
                continue
            if isinstance(event, TokenEvent) and not event.text:
                continue
            events.append(event)
            if is_terminal(event):
                self.finished = True
                self._buffer = ""
                self._carry = None
                break
        return events

    def _process_line(self, line: str) -> Optional[StreamEvent]:
        if self._carry is not None:
            return self._continue_carry(line)

        if not line.startswith(DATA_PREFIX):
            # Keep-alive blank lines, comments and other SSE fields
            return None

        payload = line[len(DATA_PREFIX) :]
        try:
            return self._parse(payload)
        except json.JSONDecodeError:
            self._carry = payload
            return None

    def _continue_carry(self, line: str) -> Optional[StreamEvent]:
        assert self._carry is not None
        if not line:
            return None

        if line.startswith(DATA_PREFIX):
            try:
                event = self._parse(line[len(DATA_PREFIX) :])
            except json.JSONDecodeError:
                event = None
            if event is not None:
                logger.warning(
                    f"Discarding malformed frame before a new frame: {self._carry[:80]!r}"
                )
                self._carry = None
                return event

        candidate = self._carry + line
        try:
            event = self._parse(candidate)
        except json.JSONDecodeError:
            if len(candidate) > MAX_CARRY_CHARS:
                logger.warning(
                    f"Dropping malformed frame after {len(candidate)} chars without a parse"
                )
                self._carry = None
            else:
                self._carry = candidate
            return None

        self._carry = None
        return event

    @staticmethod
    def _parse(payload: str) -> Optional[StreamEvent]:
        """Parse the JSON part of a data line.

        Raises:
            json.JSONDecodeError: If the text is not (yet) valid JSON
        """
        data = json.loads(payload)
        try:
            return event_from_payload(data)
        except FrameDecodeError as e:
            logger.debug(f"Ignoring unrecognised frame: {e}")
            return None


def decode_stream(chunks: Iterable[bytes]) -> Iterator[StreamEvent]:
    """Decode a whole byte stream, stopping after the first terminal event.

    Args:
        chunks: Raw byte chunks in arrival order

    Yields:
        Decoded stream events
    """
    decoder = FrameDecoder()
    for chunk in chunks:
        yield from decoder.feed(chunk)
        if decoder.finished:
            return
    yield from decoder.close()
