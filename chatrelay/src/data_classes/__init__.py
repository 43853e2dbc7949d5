"""Data classes module for chat messages and knowledge chunks.

Classes:
    - ChatMessage: A persisted message of one conversation
    - Sender: Author of a chat message (user or bot)
    - KnowledgeChunk: A window of text cut from a knowledge file
"""

from chatrelay.src.data_classes.chat_message import ChatMessage, Sender
from chatrelay.src.data_classes.knowledge_chunk import KnowledgeChunk

__all__ = [
    "ChatMessage",
    "Sender",
    "KnowledgeChunk",
]
