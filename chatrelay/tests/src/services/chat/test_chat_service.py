"""Unit tests for the ChatService class."""

import os
import tempfile
import unittest
from unittest.mock import Mock

from chatrelay.conf.config import Config
from chatrelay.src.data_classes.chat_message import Sender
from chatrelay.src.services.chat.chat_service import ChatService
from chatrelay.src.services.exceptions import UpstreamFailure
from chatrelay.src.services.llm.llm_service import BaseLLMService, ChatPrompt
from chatrelay.src.services.retrieval.retrieval_service import RetrievalService
from chatrelay.src.services.store.chat_history_service import ChatHistoryService
from chatrelay.src.services.streaming.codec import encode_event
from chatrelay.src.services.streaming.events import DoneEvent, TokenEvent
from chatrelay.src.services.streaming.session import SessionState


class TestChatService(unittest.TestCase):
    """Test cases for ChatService."""

    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.history = ChatHistoryService(os.path.join(self.temp_dir.name, "history.json"))
        self.llm = Mock(spec=BaseLLMService)
        self.retrieval = Mock(spec=RetrievalService)
        self.retrieval.top_matches.return_value = ["snippet one", "snippet two"]
        self.service = ChatService(self.llm, self.retrieval, self.history)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _history(self, session_id: str = "s1"):
        return [(m.sender, m.text) for m in self.service.get_chat_history(session_id)]

    def test_build_prompt_includes_retrieved_context(self) -> None:
        prompt = self.service.build_prompt("What is TDD?")

        self.retrieval.top_matches.assert_called_once_with(
            "What is TDD?", Config.RETRIEVAL_TOP_K
        )
        self.assertIsInstance(prompt, ChatPrompt)
        self.assertIn("snippet one\n\nsnippet two", prompt.system_prompt)
        self.assertEqual(prompt.user_message, "What is TDD?")

    def test_build_prompt_without_context(self) -> None:
        self.retrieval.top_matches.return_value = []
        prompt = self.service.build_prompt("hi")
        self.assertNotIn("{context}", prompt.system_prompt)

    def test_process_message_persists_both_messages(self) -> None:
        self.llm.complete.return_value = "Hello World"

        reply = self.service.process_message("test message", "s1")

        self.assertEqual(reply, "Hello World")
        self.assertEqual(
            self._history(),
            [(Sender.USER, "test message"), (Sender.BOT, "Hello World")],
        )

    def test_process_message_failure_keeps_user_message(self) -> None:
        self.llm.complete.side_effect = UpstreamFailure("Failed to get response from AI service")

        with self.assertRaises(UpstreamFailure):
            self.service.process_message("test message", "s1")

        self.assertEqual(self._history(), [(Sender.USER, "test message")])

    def test_streamed_exchange_persists_history(self) -> None:
        self.llm.stream.return_value = iter(["Hello", " World"])

        session = self.service.open_stream("test message", "s1")
        self.assertEqual(session.state, SessionState.USER_PERSISTED)
        self.llm.stream.assert_not_called()

        frames = list(session.events())

        self.assertEqual(
            frames,
            [
                encode_event(TokenEvent("Hello")),
                encode_event(TokenEvent(" World")),
                encode_event(DoneEvent()),
            ],
        )
        prompt, cancel_token = self.llm.stream.call_args.args
        self.assertEqual(prompt.user_message, "test message")
        self.assertIs(cancel_token, session.cancel_token)
        self.assertEqual(
            self._history(),
            [(Sender.USER, "test message"), (Sender.BOT, "Hello World")],
        )

    def test_sessions_are_separate(self) -> None:
        self.llm.complete.return_value = "reply"
        self.service.process_message("one", "s1")
        self.service.process_message("two", "s2")

        self.assertEqual(self._history("s2"), [(Sender.USER, "two"), (Sender.BOT, "reply")])


if __name__ == "__main__":
    unittest.main()
