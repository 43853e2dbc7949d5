"""Unit tests for stream event conversion."""

import unittest

from chatrelay.src.services.exceptions import FrameDecodeError
from chatrelay.src.services.streaming.events import (
    DoneEvent,
    ErrorEvent,
    TokenEvent,
    event_from_payload,
    event_to_payload,
    is_terminal,
)


class TestStreamEvents(unittest.TestCase):
    """Test cases for event payload conversion."""

    def test_payload_shapes(self) -> None:
        self.assertEqual(event_to_payload(TokenEvent("a")), {"token": "a"})
        self.assertEqual(event_to_payload(DoneEvent()), {"done": True})
        self.assertEqual(event_to_payload(ErrorEvent("bad")), {"error": "bad"})

    def test_from_payload(self) -> None:
        self.assertEqual(event_from_payload({"token": "a"}), TokenEvent("a"))
        self.assertEqual(event_from_payload({"done": True}), DoneEvent())
        self.assertEqual(event_from_payload({"error": "bad"}), ErrorEvent("bad"))

    def test_unknown_event_type_is_rejected(self) -> None:
        with self.assertRaises(TypeError):
            event_to_payload("token")  # type: ignore

    def test_invalid_payloads(self) -> None:
        for payload in ([], "token", {"token": 3}, {"error": None}, {"done": False}, {}):
            with self.subTest(payload=payload):
                with self.assertRaises(FrameDecodeError):
                    event_from_payload(payload)

    def test_is_terminal(self) -> None:
        self.assertFalse(is_terminal(TokenEvent("a")))
        self.assertTrue(is_terminal(DoneEvent()))
        self.assertTrue(is_terminal(ErrorEvent("bad")))


if __name__ == "__main__":
    unittest.main()
