"""API endpoints package.

This package contains endpoint definitions for the API.
"""

from flask import Flask

from chatrelay.src.api.endpoints.chat import init_chat_routes
from chatrelay.src.api.endpoints.health import init_health_routes
from chatrelay.src.api.middleware.rate_limit import FixedWindowRateLimiter
from chatrelay.src.services.chat.chat_service import ChatService


def register_endpoints(
    app: Flask,
    chat_service: ChatService,
    rate_limiter: FixedWindowRateLimiter,
) -> None:
    """Register all API endpoints with the application.

    Args:
        app: Flask application
        chat_service: Service handling chat exchanges
        rate_limiter: Limiter applied to the chat routes
    """
    app.register_blueprint(init_chat_routes(chat_service, rate_limiter))
    app.register_blueprint(init_health_routes(chat_service.llm_service))
