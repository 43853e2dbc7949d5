"""Unit tests for the TokenRelay class."""

import unittest
from typing import Iterator, List
from unittest.mock import Mock

from chatrelay.src.services.exceptions import StreamCancelledError, UpstreamFailure
from chatrelay.src.services.streaming.cancellation import CancellationToken
from chatrelay.src.services.streaming.codec import encode_event
from chatrelay.src.services.streaming.events import DoneEvent, ErrorEvent, TokenEvent
from chatrelay.src.services.streaming.relay import (
    GENERIC_STREAM_ERROR,
    PartialReply,
    RelayOutcome,
    TokenRelay,
)


class ClosableSource:
    """Iterator with a close() method, like an SDK stream object."""

    def __init__(self, tokens: List[str]) -> None:
        self._tokens = iter(tokens)
        self.closed = False

    def __iter__(self) -> "ClosableSource":
        return self

    def __next__(self) -> str:
        return next(self._tokens)

    def close(self) -> None:
        self.closed = True


def failing_source(tokens: List[str], error: Exception) -> Iterator[str]:
    yield from tokens
    raise error


class TestPartialReply(unittest.TestCase):
    def test_accumulates_text(self) -> None:
        reply = PartialReply()
        self.assertFalse(reply)
        reply.append("Hel")
        reply.append("lo")
        self.assertTrue(reply)
        self.assertEqual(reply.text, "Hello")
        self.assertEqual(len(reply), 2)


class TestTokenRelay(unittest.TestCase):
    """Test cases for TokenRelay."""

    def setUp(self) -> None:
        self.token = CancellationToken()

    def test_relays_tokens_then_done(self) -> None:
        relay = TokenRelay(["Hello", " World"], self.token)
        frames = list(relay.frames())

        self.assertEqual(
            frames,
            [
                encode_event(TokenEvent("Hello")),
                encode_event(TokenEvent(" World")),
                encode_event(DoneEvent()),
            ],
        )
        self.assertEqual(relay.text, "Hello World")
        self.assertEqual(relay.outcome, RelayOutcome.COMPLETED)
        self.assertEqual(relay.frames_emitted, 3)

    def test_empty_upstream_yields_only_done(self) -> None:
        relay = TokenRelay([], self.token)
        self.assertEqual(list(relay.frames()), [encode_event(DoneEvent())])
        self.assertEqual(relay.text, "")

    def test_empty_tokens_are_skipped(self) -> None:
        relay = TokenRelay(["a", "", "b"], self.token)
        frames = list(relay.frames())
        self.assertEqual(len(frames), 3)
        self.assertEqual(relay.text, "ab")

    def test_upstream_failure_yields_one_generic_error(self) -> None:
        source = failing_source(["Hel"], UpstreamFailure("secret detail"))
        relay = TokenRelay(source, self.token)

        with self.assertLogs("chatrelay.src.services.streaming.relay", level="ERROR"):
            frames = list(relay.frames())

        self.assertEqual(
            frames,
            [
                encode_event(TokenEvent("Hel")),
                encode_event(ErrorEvent(GENERIC_STREAM_ERROR)),
            ],
        )
        self.assertNotIn("secret", "".join(frames))
        self.assertEqual(relay.outcome, RelayOutcome.FAILED)
        self.assertEqual(relay.text, "Hel")

    def test_cancel_between_tokens_stops_without_terminal_frame(self) -> None:
        relay = TokenRelay(["Hello", " World", "!"], self.token)
        frames = relay.frames()

        self.assertEqual(next(frames), encode_event(TokenEvent("Hello")))
        self.token.cancel()
        self.assertEqual(list(frames), [])
        self.assertEqual(relay.outcome, RelayOutcome.CANCELLED)
        self.assertEqual(relay.text, "Hello")

    def test_cancel_before_start_never_pulls_upstream(self) -> None:
        pulled = Mock()

        def source() -> Iterator[str]:
            pulled()
            yield "a"

        self.token.cancel()
        relay = TokenRelay(source(), self.token)

        self.assertEqual(list(relay.frames()), [])
        self.assertEqual(relay.outcome, RelayOutcome.CANCELLED)
        pulled.assert_not_called()

    def test_token_pulled_after_cancel_is_dropped(self) -> None:
        def source() -> Iterator[str]:
            yield "Hello"
            self.token.cancel()
            yield " World"

        relay = TokenRelay(source(), self.token)
        frames = list(relay.frames())

        self.assertEqual(frames, [encode_event(TokenEvent("Hello"))])
        self.assertEqual(relay.text, "Hello")
        self.assertEqual(relay.outcome, RelayOutcome.CANCELLED)

    def test_failure_caused_by_cancellation_is_swallowed(self) -> None:
        def source() -> Iterator[str]:
            yield "Hello"
            self.token.cancel()
            raise ConnectionError("aborted")

        relay = TokenRelay(source(), self.token)
        frames = list(relay.frames())

        self.assertEqual(frames, [encode_event(TokenEvent("Hello"))])
        self.assertEqual(relay.outcome, RelayOutcome.CANCELLED)

    def test_stream_cancelled_error_is_swallowed(self) -> None:
        relay = TokenRelay(failing_source(["a"], StreamCancelledError("gone")), self.token)
        frames = list(relay.frames())
        self.assertEqual(frames, [encode_event(TokenEvent("a"))])
        self.assertEqual(relay.outcome, RelayOutcome.CANCELLED)

    def test_closing_frames_cancels_and_closes_upstream(self) -> None:
        closed = Mock()

        def source() -> Iterator[str]:
            try:
                yield "a"
                yield "b"
            finally:
                closed()

        relay = TokenRelay(source(), self.token)
        frames = relay.frames()
        next(frames)
        frames.close()

        self.assertTrue(self.token.cancelled)
        self.assertEqual(relay.outcome, RelayOutcome.CANCELLED)
        closed.assert_called_once()

    def test_upstream_closed_after_completion(self) -> None:
        upstream = ClosableSource(["a"])

        relay = TokenRelay(upstream, self.token)
        list(relay.frames())

        self.assertTrue(upstream.closed)

    def test_frames_can_only_be_consumed_once(self) -> None:
        relay = TokenRelay(["a"], self.token)
        list(relay.frames())
        with self.assertRaises(RuntimeError):
            list(relay.frames())


if __name__ == "__main__":
    unittest.main()
