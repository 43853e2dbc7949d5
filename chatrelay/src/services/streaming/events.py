"""Stream event variants carried over the event-stream wire format."""

from dataclasses import dataclass
from typing import Any, Dict, Union

from chatrelay.src.services.exceptions import FrameDecodeError


@dataclass(frozen=True)
class TokenEvent:
    """A fragment of the generated reply."""

    text: str


@dataclass(frozen=True)
class DoneEvent:
    """The reply finished normally."""


@dataclass(frozen=True)
class ErrorEvent:
    """The reply failed; ``message`` is safe to show to the user."""

    message: str


StreamEvent = Union[TokenEvent, DoneEvent, ErrorEvent]


def is_terminal(event: StreamEvent) -> bool:
    """Whether the event ends the stream."""
    return isinstance(event, (DoneEvent, ErrorEvent))


def event_to_payload(event: StreamEvent) -> Dict[str, Any]:
    """Convert an event to the JSON object sent on the wire.

    Args:
        event: Event to convert

    Returns:
        Dictionary with exactly one of the keys ``token``, ``done`` or ``error``
    """
    if isinstance(event, TokenEvent):
        return {"token": event.text}
    if isinstance(event, DoneEvent):
        return {"done": True}
    if isinstance(event, ErrorEvent):
        return {"error": event.message}
    raise TypeError(f"Unsupported stream event: {event!r}")


def event_from_payload(payload: Any) -> StreamEvent:
    """Convert a decoded wire object back into an event.

    Args:
        payload: Object decoded from the JSON part of a ``data:`` line

    Returns:
        The matching stream event

    Raises:
        FrameDecodeError: If the object does not match any event shape
    """
    if not isinstance(payload, dict):
        raise FrameDecodeError(f"Expected a JSON object, got {type(payload).__name__}")

    if "token" in payload:
        token = payload["token"]
        if not isinstance(token, str):
            raise FrameDecodeError("Token payload must be a string")
        return TokenEvent(token)
    if payload.get("done") is True:
        return DoneEvent()
    if "error" in payload:
        message = payload["error"]
        if not isinstance(message, str):
            raise FrameDecodeError("Error payload must be a string")
        return ErrorEvent(message)

    raise FrameDecodeError(f"Unknown stream event keys: {sorted(payload)}")
