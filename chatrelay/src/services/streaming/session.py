"""Stream session controller.

Drives one streamed chat exchange from start to finish:

1. Persist the user message before anything is requested upstream
2. Relay upstream tokens as event-stream frames until done, error or disconnect
3. Persist whatever reply text was produced, even after a disconnect
4. Close exactly once, however many times the transport reports closing
"""

import logging
import threading
import traceback
from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterable, Iterator, Optional

from chatrelay.src.data_classes.chat_message import ChatMessage
from chatrelay.src.services.streaming.cancellation import CancellationToken
from chatrelay.src.services.streaming.relay import RelayOutcome, TokenRelay

if TYPE_CHECKING:
    from chatrelay.src.services.store.chat_history_service import ChatHistoryService

logger = logging.getLogger(__name__)

# Builds the upstream token source; called lazily once streaming starts
UpstreamFactory = Callable[[CancellationToken], Iterable[str]]


class SessionState(Enum):
    """Lifecycle states of a stream session."""

    IDLE = "idle"
    USER_PERSISTED = "user_persisted"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ABORTED = "aborted"
    FAILED = "failed"
    BOT_PERSISTED = "bot_persisted"
    CLOSED = "closed"


_OUTCOME_STATES = {
    RelayOutcome.COMPLETED: SessionState.COMPLETED,
    RelayOutcome.CANCELLED: SessionState.ABORTED,
    RelayOutcome.FAILED: SessionState.FAILED,
}


class StreamSession:
    """Orchestrates one streamed exchange for one session key.

    Attributes:
        session_id (str): Conversation key the messages are stored under
        state (SessionState): Current lifecycle state
        cancel_token (CancellationToken): Fired on transport disconnect
        user_message (Optional[ChatMessage]): Persisted user message
        bot_message (Optional[ChatMessage]): Persisted (possibly partial) reply
        outcome (Optional[RelayOutcome]): How the relay ended
    """

    def __init__(
        self,
        history_service: "ChatHistoryService",
        session_id: str,
        message: str,
        upstream_factory: UpstreamFactory,
        cancel_token: Optional[CancellationToken] = None,
    ):
        """Initialize the session without touching storage or the backend.

        Args:
            history_service: Store the messages are persisted to
            session_id: Conversation key
            message: Validated, non-empty user message
            upstream_factory: Returns the backend token source for this exchange
            cancel_token: Token to use; a fresh one is created if omitted
        """
        self.session_id = session_id
        self.message = message
        self.cancel_token = cancel_token or CancellationToken()
        self.state = SessionState.IDLE
        self.user_message: Optional[ChatMessage] = None
        self.bot_message: Optional[ChatMessage] = None
        self.outcome: Optional[RelayOutcome] = None

        self._history = history_service
        self._upstream_factory = upstream_factory
        self._relay: Optional[TokenRelay] = None
        self._streamed = False
        self._lock = threading.RLock()

    @property
    def reply_text(self) -> str:
        """Reply text produced so far."""
        return self._relay.text if self._relay is not None else ""

    def start(self) -> ChatMessage:
        """Persist the user message. Safe to call more than once.

        Returns:
            The persisted user message

        Raises:
            StorageError: If the message cannot be stored
        """
        with self._lock:
            if self.user_message is not None:
                return self.user_message
            if self.state is not SessionState.IDLE:
                raise RuntimeError(f"Cannot start a session in state {self.state.value}")

            self.user_message = self._history.save(
                ChatMessage.from_user(self.session_id, self.message)
            )
            self.state = SessionState.USER_PERSISTED
            logger.debug(f"User message persisted for session {self.session_id}")
            return self.user_message

    def cancel(self) -> None:
        """Signal that the client disconnected."""
        self.cancel_token.cancel()

    def events(self) -> Iterator[str]:
        """Yield the wire frames of this exchange.

        The generator persists the reply when it finishes or is closed by the
        transport, so a client that disconnects mid-stream still gets its partial
        answer saved.

        Yields:
            Encoded event-stream frames
        """
        with self._lock:
            if self._streamed:
                raise RuntimeError("StreamSession.events() can only be consumed once")
            self._streamed = True
            if self.state is SessionState.CLOSED:
                return
            if self.state is SessionState.IDLE:
                self.start()
            self._relay = TokenRelay(self._upstream(), self.cancel_token)
            self.state = SessionState.STREAMING

        try:
            yield from self._relay.frames()
        except GeneratorExit:
            self.cancel_token.cancel()
            raise
        finally:
            self.close()

    def close(self) -> None:
        """Finish the exchange: persist the reply and mark the session closed.

        Registered as the transport's close callback. Calls after the first are
        no-ops.
        """
        with self._lock:
            if self.state is SessionState.CLOSED:
                return

            if self._relay is None:
                # Transport closed before streaming started
                self.cancel_token.cancel()
                self.outcome = RelayOutcome.CANCELLED
                self.state = SessionState.ABORTED
            else:
                if self._relay.outcome is None:
                    self.cancel_token.cancel()
                self.outcome = self._relay.outcome or RelayOutcome.CANCELLED
                self.state = _OUTCOME_STATES[self.outcome]
                self._persist_reply()

            self.state = SessionState.CLOSED
            logger.info(
                f"Stream for session {self.session_id} closed "
                f"({self.outcome.value}, {len(self.reply_text)} chars)"
            )

    def _upstream(self) -> Iterator[str]:
        # Deferred so that failures while building the source become error frames
        yield from self._upstream_factory(self.cancel_token)

    def _persist_reply(self) -> None:
        text = self.reply_text
        if not text or self.bot_message is not None:
            return
        try:
            self.bot_message = self._history.save(
                ChatMessage.from_bot(self.session_id, text)
            )
            self.state = SessionState.BOT_PERSISTED
        except Exception as e:
            # The peer already got a terminal frame or is gone; nothing to report to
            logger.error(
                f"Failed to persist reply for session {self.session_id}: {str(e)}"
            )
            logger.error(traceback.format_exc())
