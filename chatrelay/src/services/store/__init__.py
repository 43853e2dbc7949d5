"""Storage services package.

This package provides the message store:
- ChatHistoryService: JSON-file based, append-only storage for chat messages

Messages are returned per session in conversation order with thread-safe
concurrent access.
"""

from .chat_history_service import ChatHistoryService

__all__ = ["ChatHistoryService"]
