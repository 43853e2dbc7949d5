"""Unit tests for the StreamSession controller."""

import os
import tempfile
import unittest
from typing import Iterator, List
from unittest.mock import Mock

from chatrelay.src.data_classes.chat_message import ChatMessage, Sender
from chatrelay.src.services.exceptions import StorageError, UpstreamFailure
from chatrelay.src.services.store.chat_history_service import ChatHistoryService
from chatrelay.src.services.streaming.cancellation import CancellationToken
from chatrelay.src.services.streaming.codec import encode_event
from chatrelay.src.services.streaming.events import DoneEvent, ErrorEvent, TokenEvent
from chatrelay.src.services.streaming.relay import GENERIC_STREAM_ERROR, RelayOutcome
from chatrelay.src.services.streaming.session import SessionState, StreamSession


def tokens_factory(tokens: List[str]):
    def factory(cancel_token: CancellationToken) -> Iterator[str]:
        return iter(tokens)

    return factory


class TestStreamSession(unittest.TestCase):
    """Test cases for StreamSession."""

    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.history = ChatHistoryService(os.path.join(self.temp_dir.name, "history.json"))

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _texts(self, session_id: str = "s1") -> List[tuple]:
        return [(m.sender, m.text) for m in self.history.list_by_session(session_id)]

    def test_start_persists_user_message_once(self) -> None:
        factory = Mock()
        session = StreamSession(self.history, "s1", "hi", factory)

        first = session.start()
        second = session.start()

        self.assertIs(first, second)
        self.assertEqual(session.state, SessionState.USER_PERSISTED)
        self.assertEqual(self._texts(), [(Sender.USER, "hi")])
        factory.assert_not_called()

    def test_completed_stream_persists_reply(self) -> None:
        session = StreamSession(
            self.history, "s1", "test message", tokens_factory(["Hello", " World"])
        )
        frames = list(session.events())

        self.assertEqual(frames[-1], encode_event(DoneEvent()))
        self.assertEqual(session.outcome, RelayOutcome.COMPLETED)
        self.assertEqual(session.state, SessionState.CLOSED)
        self.assertEqual(
            self._texts(),
            [(Sender.USER, "test message"), (Sender.BOT, "Hello World")],
        )

    def test_disconnect_persists_partial_reply(self) -> None:
        session = StreamSession(
            self.history, "s1", "q", tokens_factory(["Hello", " World"])
        )
        session.start()
        frames = session.events()

        self.assertEqual(next(frames), encode_event(TokenEvent("Hello")))
        frames.close()

        self.assertTrue(session.cancel_token.cancelled)
        self.assertEqual(session.outcome, RelayOutcome.CANCELLED)
        self.assertEqual(self._texts(), [(Sender.USER, "q"), (Sender.BOT, "Hello")])

    def test_close_callback_after_cancel_persists_partial_reply(self) -> None:
        session = StreamSession(
            self.history, "s1", "q", tokens_factory(["Hello", " World"])
        )
        frames = session.events()
        next(frames)

        session.cancel()
        self.assertEqual(list(frames), [])
        session.close()

        self.assertEqual(session.outcome, RelayOutcome.CANCELLED)
        self.assertEqual(self._texts(), [(Sender.USER, "q"), (Sender.BOT, "Hello")])

    def test_no_tokens_persists_no_bot_message(self) -> None:
        session = StreamSession(self.history, "s1", "q", tokens_factory([]))
        frames = list(session.events())

        self.assertEqual(frames, [encode_event(DoneEvent())])
        self.assertEqual(self._texts(), [(Sender.USER, "q")])

    def test_upstream_failure_sends_error_and_keeps_partial_reply(self) -> None:
        def factory(cancel_token: CancellationToken) -> Iterator[str]:
            yield "Par"
            raise UpstreamFailure("backend down")

        session = StreamSession(self.history, "s1", "q", factory)
        with self.assertLogs("chatrelay.src.services.streaming.relay", level="ERROR"):
            frames = list(session.events())

        self.assertEqual(frames[-1], encode_event(ErrorEvent(GENERIC_STREAM_ERROR)))
        self.assertEqual(session.outcome, RelayOutcome.FAILED)
        self.assertEqual(self._texts(), [(Sender.USER, "q"), (Sender.BOT, "Par")])

    def test_factory_failure_becomes_error_frame(self) -> None:
        factory = Mock(side_effect=RuntimeError("cannot connect"))
        session = StreamSession(self.history, "s1", "q", factory)

        with self.assertLogs("chatrelay.src.services.streaming.relay", level="ERROR"):
            frames = list(session.events())

        self.assertEqual(frames, [encode_event(ErrorEvent(GENERIC_STREAM_ERROR))])
        self.assertEqual(self._texts(), [(Sender.USER, "q")])

    def test_close_is_idempotent(self) -> None:
        session = StreamSession(self.history, "s1", "q", tokens_factory(["a"]))
        list(session.events())
        session.close()
        session.close()

        self.assertEqual(self._texts(), [(Sender.USER, "q"), (Sender.BOT, "a")])

    def test_close_before_streaming(self) -> None:
        factory = Mock()
        session = StreamSession(self.history, "s1", "q", factory)
        session.start()
        session.close()

        self.assertEqual(session.state, SessionState.CLOSED)
        self.assertEqual(session.outcome, RelayOutcome.CANCELLED)
        self.assertEqual(list(session.events()), [])
        factory.assert_not_called()

    def test_events_can_only_be_consumed_once(self) -> None:
        session = StreamSession(self.history, "s1", "q", tokens_factory(["a"]))
        list(session.events())
        with self.assertRaises(RuntimeError):
            list(session.events())

    def test_user_persistence_failure_propagates(self) -> None:
        history = Mock()
        history.save.side_effect = StorageError("disk full")
        session = StreamSession(history, "s1", "q", Mock())

        with self.assertRaises(StorageError):
            session.start()

    def test_bot_persistence_failure_is_logged(self) -> None:
        history = Mock()
        history.save.side_effect = [
            ChatMessage.from_user("s1", "q"),
            StorageError("disk full"),
        ]
        session = StreamSession(history, "s1", "q", tokens_factory(["a"]))

        with self.assertLogs(
            "chatrelay.src.services.streaming.session", level="ERROR"
        ):
            frames = list(session.events())

        self.assertEqual(frames[-1], encode_event(DoneEvent()))
        self.assertIsNone(session.bot_message)
        self.assertEqual(session.state, SessionState.CLOSED)


if __name__ == "__main__":
    unittest.main()
