"""Unit tests for the CancellationToken class."""

import threading
import unittest

from chatrelay.src.services.exceptions import StreamCancelledError
from chatrelay.src.services.streaming.cancellation import CancellationToken


class TestCancellationToken(unittest.TestCase):
    def test_initial_state(self) -> None:
        token = CancellationToken()
        self.assertFalse(token.cancelled)
        token.raise_if_cancelled()

    def test_cancel_is_idempotent(self) -> None:
        token = CancellationToken()
        token.cancel()
        token.cancel()
        self.assertTrue(token.cancelled)
        with self.assertRaises(StreamCancelledError):
            token.raise_if_cancelled()

    def test_cancel_from_another_thread(self) -> None:
        token = CancellationToken()
        thread = threading.Thread(target=token.cancel)
        thread.start()
        thread.join()
        self.assertTrue(token.cancelled)
        self.assertIn("cancelled=True", repr(token))


if __name__ == "__main__":
    unittest.main()
