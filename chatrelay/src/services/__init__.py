"""Services package for the chat relay.

This package contains all service components for business logic.
"""

from .chat import ChatService
from .factory import (
    create_chat_history_service,
    create_chat_service,
    create_llm_service,
    create_retrieval_service,
)
from .llm import (
    BaseLLMService,
    ChatPrompt,
    DeepseekLLMService,
    GeminiLLMService,
    UnconfiguredLLMService,
)
from .retrieval import RetrievalService
from .store import ChatHistoryService

__all__ = [
    # LLM Services
    "BaseLLMService",
    "ChatPrompt",
    "GeminiLLMService",
    "DeepseekLLMService",
    "UnconfiguredLLMService",
    # Other Services
    "ChatService",
    "RetrievalService",
    "ChatHistoryService",
    # Factory Functions
    "create_llm_service",
    "create_retrieval_service",
    "create_chat_history_service",
    "create_chat_service",
]
