"""HTTP client for the chat relay API.

``stream_message`` consumes the event-stream body incrementally and reports the
outcome through callbacks: ``on_token`` for every fragment, then exactly one of
``on_complete`` or ``on_error``. Failures are mapped to short messages suitable
for showing to an end user.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

import requests

from chatrelay.conf.config import Config
from chatrelay.src.services.streaming.codec import decode_stream
from chatrelay.src.services.streaming.events import DoneEvent, ErrorEvent, TokenEvent

logger = logging.getLogger(__name__)

EMPTY_MESSAGE_ERROR = "Message cannot be empty."
RATE_LIMITED_ERROR = "Too many requests. Please wait a moment."
CONNECTION_LOST_ERROR = "Connection lost, please retry."

_STATUS_MESSAGES = {
    400: EMPTY_MESSAGE_ERROR,
    429: RATE_LIMITED_ERROR,
}


def message_for_status(status_code: int) -> str:
    """Map an HTTP error status to the message shown to the user."""
    return _STATUS_MESSAGES.get(status_code, CONNECTION_LOST_ERROR)


class ChatApiError(Exception):
    """A chat request failed.

    Attributes:
        message: User-facing description of the failure
        status_code: HTTP status, if the server answered at all
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ChatApiClient:
    """Client for the chat relay endpoints.

    Attributes:
        base_url (str): Server root, e.g. ``http://localhost:3000``
        session (requests.Session): HTTP session used for all calls
        timeout (float): Connect and read timeout in seconds
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or Config.CLIENT_BASE_URL).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout or Config.CLIENT_TIMEOUT_SECONDS

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    @staticmethod
    def _payload(message: str, session_id: Optional[str]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"message": message}
        if session_id is not None:
            payload["session_id"] = session_id
        return payload

    @staticmethod
    def _raise_for_status(response: requests.Response) -> None:
        if not response.ok:
            raise ChatApiError(message_for_status(response.status_code), response.status_code)

    def send_message(self, message: str, session_id: Optional[str] = None) -> str:
        """Send a message and wait for the whole reply.

        Args:
            message: Text to send
            session_id: Conversation key; the server uses the caller's address if omitted

        Returns:
            The reply text

        Raises:
            ChatApiError: If the request fails or the server rejects it
        """
        try:
            response = self.session.post(
                self._url("/chat"),
                json=self._payload(message, session_id),
                timeout=self.timeout,
            )
            self._raise_for_status(response)
            return response.json()["reply"]
        except (requests.RequestException, ValueError, KeyError) as e:
            logger.error(f"Chat request failed: {str(e)}")
            raise ChatApiError(CONNECTION_LOST_ERROR) from e

    def stream_message(
        self,
        message: str,
        on_token: Callable[[str], None],
        on_complete: Callable[[], None],
        on_error: Callable[[str], None],
        session_id: Optional[str] = None,
    ) -> None:
        """Send a message and receive the reply token by token.

        A body that ends without a terminal frame counts as completion.

        Args:
            message: Text to send
            on_token: Called with each reply fragment as it arrives
            on_complete: Called once when the reply is finished
            on_error: Called once with a user-facing message if the exchange fails
            session_id: Conversation key; the server uses the caller's address if omitted
        """
        try:
            error = self._consume_stream(message, session_id, on_token)
        except ChatApiError as e:
            error = e.message
        except requests.RequestException as e:
            logger.warning(f"Stream interrupted: {str(e)}")
            error = CONNECTION_LOST_ERROR

        if error is None:
            on_complete()
        else:
            on_error(error)

    def _consume_stream(
        self,
        message: str,
        session_id: Optional[str],
        on_token: Callable[[str], None],
    ) -> Optional[str]:
        """Read the stream and return the server's error message, if any."""
        with self.session.post(
            self._url("/chat/stream"),
            json=self._payload(message, session_id),
            stream=True,
            timeout=self.timeout,
        ) as response:
            self._raise_for_status(response)
            for event in decode_stream(response.iter_content(chunk_size=None)):
                if isinstance(event, TokenEvent):
                    on_token(event.text)
                elif isinstance(event, ErrorEvent):
                    return event.message
                elif isinstance(event, DoneEvent):
                    break
        return None

    def get_history(self, session: Optional[str] = None) -> List[Dict[str, Any]]:
        """Fetch the stored messages of a conversation.

        Args:
            session: Conversation key; the server uses the caller's address if omitted

        Returns:
            Messages in conversation order

        Raises:
            ChatApiError: If the request fails
        """
        params = {"session": session} if session else None
        try:
            response = self.session.get(
                self._url("/chat/history"), params=params, timeout=self.timeout
            )
            self._raise_for_status(response)
            return response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"History request failed: {str(e)}")
            raise ChatApiError(CONNECTION_LOST_ERROR) from e
