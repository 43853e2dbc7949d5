"""Data class representing a single persisted chat message."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict


class Sender(str, Enum):
    """Author of a chat message."""

    USER = "user"
    BOT = "bot"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ChatMessage:
    """One message in a conversation.

    Messages are immutable once persisted. Within a session, conversation order is
    the ascending order of ``timestamp``.

    Attributes:
        session_id: Opaque key grouping the messages of one conversation
        text: Message body
        sender: Whether the user or the bot wrote the message
        timestamp: When the message was created (timezone-aware, UTC)
        id: Unique identifier of the message
    """

    session_id: str
    text: str
    sender: Sender
    timestamp: datetime = field(default_factory=_utcnow)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @classmethod
    def from_user(cls, session_id: str, text: str) -> "ChatMessage":
        return cls(session_id=session_id, text=text, sender=Sender.USER)

    @classmethod
    def from_bot(cls, session_id: str, text: str) -> "ChatMessage":
        return cls(session_id=session_id, text=text, sender=Sender.BOT)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the message to a JSON-serializable dictionary.

        Returns:
            Dictionary with the timestamp rendered in ISO 8601 format
        """
        return {
            "id": self.id,
            "session_id": self.session_id,
            "text": self.text,
            "sender": self.sender.value,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatMessage":
        """Create a ChatMessage from a dictionary produced by ``to_dict``.

        Args:
            data: Dictionary containing message data
        """
        return cls(
            id=data["id"],
            session_id=data["session_id"],
            text=data["text"],
            sender=Sender(data["sender"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )
