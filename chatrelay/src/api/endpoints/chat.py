"""Chat endpoints module.

This module provides Flask routes for chat functionality:
1. Buffered chat, returning the whole reply as JSON
2. Streamed chat, relaying reply tokens as server-sent events
3. Chat history of a session
"""

import logging
from typing import Any, Dict, List, Optional

from flask import Blueprint, Response, jsonify, request
from flask_pydantic import validate  # type: ignore
from pydantic import BaseModel, Field, field_validator
from werkzeug.exceptions import BadRequest, HTTPException, UnsupportedMediaType

from chatrelay.src.api.middleware.exceptions import (
    RateLimitError,
    ServiceError,
    ValidationError,
)
from chatrelay.src.api.middleware.rate_limit import FixedWindowRateLimiter
from chatrelay.src.api.utils.sse import create_sse_response
from chatrelay.src.services.chat.chat_service import ChatService
from chatrelay.src.services.exceptions import StorageError, UpstreamFailure

logger = logging.getLogger(__name__)


# Schema definitions
class ChatRequest(BaseModel):
    """Chat request model for validation."""

    message: str = Field(..., description="User's message")
    session_id: Optional[str] = Field(
        None, description="Conversation key; defaults to the caller's address"
    )

    @field_validator("message")
    @classmethod
    def message_not_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Message cannot be empty")
        return value


class HistoryQuery(BaseModel):
    """Query parameters of the history endpoint."""

    session: Optional[str] = Field(None, description="Conversation key")


class ChatResponseModel(BaseModel):
    """Chat response model."""

    reply: str = Field(..., description="Generated reply text")


def client_key() -> str:
    """Address of the caller, used for rate limiting and as default session key."""
    return request.remote_addr or "unknown"


def init_chat_routes(
    chat_service: ChatService,
    rate_limiter: FixedWindowRateLimiter,
) -> Blueprint:
    """Initialize chat routes with the provided services.

    Args:
        chat_service: Service handling chat exchanges
        rate_limiter: Limiter applied to every chat route

    Returns:
        Blueprint: Flask blueprint with configured chat routes.
    """
    chat_bp = Blueprint("chat", __name__)

    @chat_bp.before_request
    def enforce_rate_limit() -> None:
        if request.method == "OPTIONS":
            return
        key = client_key()
        if not rate_limiter.hit(key):
            logger.warning(f"Rate limit exceeded for {key}")
            raise RateLimitError()

    @chat_bp.errorhandler(BadRequest)
    @chat_bp.errorhandler(UnsupportedMediaType)
    def handle_unreadable_body(error: HTTPException) -> Any:  # type: ignore
        # A missing or non-JSON body is an invalid message, not a media-type problem
        logger.info(f"Rejected unreadable request body: {error.description}")
        return ValidationError(details=error.description).to_response()

    @chat_bp.route("/chat", methods=["POST"])
    @validate()
    def chat(body: ChatRequest) -> Any:  # type: ignore
        """Answer a message with the complete reply.

        Args:
            body: Validated request body

        Returns:
            JSON body ``{"reply": ...}``
        """
        session_id = body.session_id or client_key()
        try:
            reply = chat_service.process_message(body.message, session_id)
        except UpstreamFailure as e:
            raise ServiceError(message=str(e))
        except StorageError as e:
            raise ServiceError(message="Failed to store chat message", details=str(e))

        return jsonify(ChatResponseModel(reply=reply).model_dump())

    @chat_bp.route("/chat/stream", methods=["POST"])
    @validate()
    def chat_stream(body: ChatRequest) -> Response:  # type: ignore
        """Stream the reply as ``data:`` frames.

        The user message is stored before the response starts, so storage
        failures still produce a regular HTTP 500.

        Args:
            body: Validated request body

        Returns:
            Event-stream response of token frames ending in a done or error frame
        """
        session_id = body.session_id or client_key()
        try:
            session = chat_service.open_stream(body.message, session_id)
        except StorageError as e:
            raise ServiceError(message="Failed to store chat message", details=str(e))

        logger.info(f"Streaming reply for session {session_id}")
        return create_sse_response(session.events(), on_close=session.close)

    @chat_bp.route("/chat/history", methods=["GET"])
    @validate()
    def chat_history(query: HistoryQuery) -> Any:  # type: ignore
        """Return the messages of a session in conversation order.

        Args:
            query: Optional ``session`` parameter; defaults to the caller's address

        Returns:
            JSON array of messages
        """
        session_id = query.session or client_key()
        try:
            messages = chat_service.get_chat_history(session_id)
        except StorageError as e:
            raise ServiceError(message="Failed to load chat history", details=str(e))

        history: List[Dict[str, Any]] = [message.to_dict() for message in messages]
        return jsonify(history)

    return chat_bp
