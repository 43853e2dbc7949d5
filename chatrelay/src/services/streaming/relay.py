"""Token relay: turns an upstream token iterator into event-stream frames.

The relay pulls one token at a time, checks the cancellation token after every
pull, emits each non-empty token as a frame immediately and keeps the
concatenated text so the caller can persist it however the stream ended.
"""

import logging
import traceback
from enum import Enum
from typing import Iterable, Iterator, List, Optional

from chatrelay.src.services.exceptions import StreamCancelledError
from chatrelay.src.services.streaming.cancellation import CancellationToken
from chatrelay.src.services.streaming.codec import encode_event
from chatrelay.src.services.streaming.events import DoneEvent, ErrorEvent, TokenEvent

logger = logging.getLogger(__name__)

# Sent instead of the upstream error detail
GENERIC_STREAM_ERROR = "Failed to stream response"


class RelayOutcome(Enum):
    """How a relay run ended."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class PartialReply:
    """Accumulator for the reply text of one in-flight stream."""

    def __init__(self) -> None:
        self._parts: List[str] = []

    def append(self, token: str) -> None:
        self._parts.append(token)

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def __bool__(self) -> bool:
        return any(self._parts)

    def __len__(self) -> int:
        return len(self._parts)


class TokenRelay:
    """Relays tokens from an upstream source to wire frames.

    Attributes:
        reply (PartialReply): Text produced so far
        outcome (Optional[RelayOutcome]): Set once ``frames()`` stops
        frames_emitted (int): Number of frames yielded, terminal frame included
    """

    def __init__(self, source: Iterable[str], cancel_token: CancellationToken):
        """Initialize the relay.

        Args:
            source: Lazy, finite, non-restartable sequence of text fragments
            cancel_token: Token checked between pulls; set when the consumer leaves
        """
        self._source = source
        self._cancel_token = cancel_token
        self._consumed = False
        self.reply = PartialReply()
        self.outcome: Optional[RelayOutcome] = None
        self.frames_emitted = 0

    @property
    def text(self) -> str:
        return self.reply.text

    def frames(self) -> Iterator[str]:
        """Pull tokens and yield encoded frames.

        Yields:
            One ``token`` frame per non-empty token, then exactly one ``done`` frame
            on exhaustion or one ``error`` frame on failure. Nothing follows a
            cancellation.

        Raises:
            RuntimeError: If called a second time
        """
        if self._consumed:
            raise RuntimeError("TokenRelay.frames() can only be consumed once")
        self._consumed = True

        upstream = iter(self._source)
        try:
            while True:
                self._cancel_token.raise_if_cancelled()
                try:
                    token = next(upstream)
                except StopIteration:
                    break
                # A token pulled after cancellation is dropped
                self._cancel_token.raise_if_cancelled()
                if not token:
                    continue

                self.reply.append(token)
                self.frames_emitted += 1
                yield encode_event(TokenEvent(token))
        except GeneratorExit:
            # The consumer closed us mid-stream: the transport went away
            self._cancel_token.cancel()
            self._mark_cancelled()
            raise
        except StreamCancelledError:
            self._mark_cancelled()
            return
        except Exception as e:
            if self._cancel_token.cancelled:
                logger.debug(f"Upstream stopped after cancellation: {str(e)}")
                self._mark_cancelled()
                return
            logger.error(f"Upstream token stream failed: {str(e)}")
            logger.error(traceback.format_exc())
            self.outcome = RelayOutcome.FAILED
            self.frames_emitted += 1
            yield encode_event(ErrorEvent(GENERIC_STREAM_ERROR))
            return
        finally:
            self._close_upstream(upstream)

        self.outcome = RelayOutcome.COMPLETED
        self.frames_emitted += 1
        yield encode_event(DoneEvent())

    def _mark_cancelled(self) -> None:
        if self.outcome is None:
            logger.info(
                f"Stream cancelled by consumer after {len(self.reply)} tokens"
            )
            self.outcome = RelayOutcome.CANCELLED

    @staticmethod
    def _close_upstream(upstream: Iterator[str]) -> None:
        """Release the upstream iterator so the backend call stops too."""
        close = getattr(upstream, "close", None)
        if not callable(close):
            return
        try:
            close()
        except Exception as e:
            logger.debug(f"Error while closing upstream stream: {str(e)}")
