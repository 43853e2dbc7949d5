"""Chat service tying retrieval, the LLM backend and the message store together.

Both request paths follow the same order: the user message is persisted first,
then the prompt is built from retrieved knowledge, then the backend is called.
The buffered path stores the bot reply only when the backend succeeds; the
streaming path delegates persistence of the (possibly partial) reply to a
StreamSession.
"""

import logging
from typing import Iterator, List

from chatrelay.conf.config import Config
from chatrelay.conf.prompts import CHAT_SYSTEM_PROMPT
from chatrelay.src.data_classes.chat_message import ChatMessage
from chatrelay.src.services.llm.llm_service import BaseLLMService, ChatPrompt
from chatrelay.src.services.retrieval.retrieval_service import RetrievalService
from chatrelay.src.services.store.chat_history_service import ChatHistoryService
from chatrelay.src.services.streaming.cancellation import CancellationToken
from chatrelay.src.services.streaming.session import StreamSession

logger = logging.getLogger(__name__)


class ChatService:
    """Handles chat exchanges for the API layer.

    Attributes:
        llm_service (BaseLLMService): Backend generating replies
        retrieval_service (RetrievalService): Knowledge lookup for prompt context
        history_service (ChatHistoryService): Message store
    """

    def __init__(
        self,
        llm_service: BaseLLMService,
        retrieval_service: RetrievalService,
        history_service: ChatHistoryService,
    ):
        self.llm_service = llm_service
        self.retrieval_service = retrieval_service
        self.history_service = history_service

    def build_prompt(self, message: str) -> ChatPrompt:
        """Build the backend prompt with the best-matching knowledge snippets.

        Args:
            message: User message

        Returns:
            Prompt with the retrieved context filled into the system instructions
        """
        snippets = self.retrieval_service.top_matches(message, Config.RETRIEVAL_TOP_K)
        logger.debug(f"Retrieved {len(snippets)} knowledge snippets for prompt")
        context = "\n\n".join(snippets)
        return ChatPrompt(
            system_prompt=CHAT_SYSTEM_PROMPT.format(context=context),
            user_message=message,
        )

    def process_message(self, message: str, session_id: str) -> str:
        """Answer a message in one piece.

        Args:
            message: Validated, non-empty user message
            session_id: Conversation key

        Returns:
            The full reply text

        Raises:
            UpstreamFailure: If the backend fails; the user message stays stored
            StorageError: If a message cannot be stored
        """
        self.history_service.save(ChatMessage.from_user(session_id, message))

        reply = self.llm_service.complete(self.build_prompt(message))

        self.history_service.save(ChatMessage.from_bot(session_id, reply))
        logger.info(f"Processed message for session {session_id} ({len(reply)} chars)")
        return reply

    def open_stream(self, message: str, session_id: str) -> StreamSession:
        """Start a streamed exchange.

        The user message is persisted before this returns, so a storage failure
        surfaces before any frame is written.

        Args:
            message: Validated, non-empty user message
            session_id: Conversation key

        Returns:
            A started session whose ``events()`` yields the wire frames

        Raises:
            StorageError: If the user message cannot be stored
        """

        def upstream(cancel_token: CancellationToken) -> Iterator[str]:
            return self.llm_service.stream(self.build_prompt(message), cancel_token)

        session = StreamSession(self.history_service, session_id, message, upstream)
        session.start()
        return session

    def get_chat_history(self, session_id: str) -> List[ChatMessage]:
        """Return the stored messages of a session in conversation order."""
        return self.history_service.list_by_session(session_id)
