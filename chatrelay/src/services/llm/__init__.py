"""LLM service package."""

from .llm_service import (
    BaseLLMService,
    ChatPrompt,
    DeepseekLLMService,
    GeminiLLMService,
    UnconfiguredLLMService,
)

__all__ = [
    "BaseLLMService",
    "ChatPrompt",
    "GeminiLLMService",
    "DeepseekLLMService",
    "UnconfiguredLLMService",
]
