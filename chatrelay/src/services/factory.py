"""Service factory module for centralized service instantiation.

This module provides factory methods for creating service instances,
keeping service initialization logic in one place.
"""

import logging
from typing import Optional

from chatrelay.conf.config import Config
from chatrelay.src.services.chat.chat_service import ChatService
from chatrelay.src.services.llm.llm_service import (
    BaseLLMService,
    DeepseekLLMService,
    GeminiLLMService,
    UnconfiguredLLMService,
)
from chatrelay.src.services.retrieval.retrieval_service import RetrievalService
from chatrelay.src.services.store.chat_history_service import ChatHistoryService

logger = logging.getLogger(__name__)


def create_llm_service() -> BaseLLMService:
    """Create the LLM service selected by Config.LLM_SERVICE.

    A missing API key is not fatal: the server still starts and answers every
    message with an advisory telling the operator which variable to set.

    Returns:
        Initialized LLM service

    Raises:
        ValueError: If the configured service name is not supported
    """
    if not Config.active_api_key():
        logger.warning(
            f"{Config.api_key_env_var()} not set, chat replies will be an advisory message"
        )
        return UnconfiguredLLMService(Config.api_key_env_var())

    try:
        if Config.LLM_SERVICE == "gemini":
            return GeminiLLMService()
        elif Config.LLM_SERVICE == "deepseek":
            return DeepseekLLMService()
        else:
            raise ValueError(f"Unsupported LLM service: {Config.LLM_SERVICE}")
    except Exception as e:
        logger.error(f"Failed to create {Config.LLM_SERVICE} LLM service: {e}")
        raise e


def create_retrieval_service() -> RetrievalService:
    """Create a RetrievalService indexed over the knowledge directory.

    Returns:
        Configured RetrievalService instance
    """
    logger.info(f"Indexing knowledge base from {Config.KNOWLEDGE_DIR}")
    return RetrievalService.from_directory(
        Config.KNOWLEDGE_DIR, Config.CHUNK_SIZE, Config.CHUNK_OVERLAP
    )


def create_chat_history_service() -> ChatHistoryService:
    """Create and configure a ChatHistoryService instance.

    Returns:
        Configured ChatHistoryService instance
    """
    return ChatHistoryService(Config.CHAT_HISTORY_PATH)


def create_chat_service(
    llm_service: Optional[BaseLLMService] = None,
    retrieval_service: Optional[RetrievalService] = None,
    history_service: Optional[ChatHistoryService] = None,
) -> ChatService:
    """Create a ChatService, building any collaborator that is not provided.

    Args:
        llm_service: Backend generating replies
        retrieval_service: Knowledge lookup for prompt context
        history_service: Message store

    Returns:
        Configured ChatService instance
    """
    if llm_service is None:
        logger.info("No LLM service provided, creating new one")
        llm_service = create_llm_service()

    if retrieval_service is None:
        logger.info("No retrieval service provided, creating new one")
        retrieval_service = create_retrieval_service()

    if history_service is None:
        logger.info("No chat history service provided, creating new one")
        history_service = create_chat_history_service()

    logger.info(f"Initializing ChatService with {llm_service.name} backend")
    return ChatService(
        llm_service=llm_service,
        retrieval_service=retrieval_service,
        history_service=history_service,
    )
