"""Core API setup and configuration.

This module configures API middleware, error handling, and other global API components.
"""

import logging

from flask import Flask

from chatrelay.src.api.endpoints import register_endpoints
from chatrelay.src.api.middleware import register_middleware
from chatrelay.src.api.middleware.rate_limit import FixedWindowRateLimiter
from chatrelay.src.services.chat.chat_service import ChatService

logger = logging.getLogger(__name__)


def setup_api(
    app: Flask,
    chat_service: ChatService,
    rate_limiter: FixedWindowRateLimiter,
) -> None:
    """Set up API with middleware and endpoints.

    Args:
        app: Flask application
        chat_service: Service handling chat exchanges
        rate_limiter: Limiter applied to the chat routes
    """
    register_middleware(app)
    register_endpoints(app, chat_service, rate_limiter)
    logger.info("API routes configured")
