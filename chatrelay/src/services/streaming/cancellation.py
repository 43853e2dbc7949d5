"""Cancellation token shared between the transport and the token relay."""

import threading

from chatrelay.src.services.exceptions import StreamCancelledError


class CancellationToken:
    """One-way flag signalling that the consumer of a stream has gone away.

    Setting the flag is the only mutation. Readers check it between token pulls
    and never block on it, so repeated checks and repeated cancels are harmless.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """Whether cancellation has been requested."""
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise ``StreamCancelledError`` if cancellation has been requested."""
        if self._event.is_set():
            raise StreamCancelledError("Stream cancelled by consumer")

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"
