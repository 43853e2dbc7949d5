"""Flask application for the streaming chat relay."""

import argparse
import logging
from typing import Optional

from flask import Flask
from flask_cors import CORS

from chatrelay.conf.config import Config
from chatrelay.src.api import setup_api
from chatrelay.src.api.middleware.rate_limit import FixedWindowRateLimiter
from chatrelay.src.services import ChatService, create_chat_service

# Logging is configured in chatrelay/__init__.py
logger = logging.getLogger(__name__)


def create_app(
    chat_service: Optional[ChatService] = None,
    rate_limiter: Optional[FixedWindowRateLimiter] = None,
) -> Flask:
    """Create and configure the Flask application.

    The rate limiter's sweep thread is started here; call ``shutdown(app)`` to
    stop it.

    Args:
        chat_service: Chat service to serve; built from Config if omitted
        rate_limiter: Limiter for the chat routes; built from Config if omitted

    Returns:
        Configured Flask application
    """
    logger.info("Starting application setup...")

    app = Flask(__name__)
    CORS(app, origins=Config.CORS_ALLOW_ORIGINS)

    if chat_service is None:
        chat_service = create_chat_service()
    if rate_limiter is None:
        rate_limiter = FixedWindowRateLimiter()

    setup_api(app, chat_service, rate_limiter)

    rate_limiter.start()
    app.extensions["chat_service"] = chat_service
    app.extensions["rate_limiter"] = rate_limiter

    logger.info("Application setup complete")
    return app


def shutdown(app: Flask) -> None:
    """Release background resources owned by the application."""
    rate_limiter: Optional[FixedWindowRateLimiter] = app.extensions.get("rate_limiter")
    if rate_limiter is not None:
        rate_limiter.stop()
    logger.info("Application shut down")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run the chat relay server (--llm, --host, --port)"
    )
    parser.add_argument(
        "--llm",
        type=str,
        choices=Config.VALID_LLM_SERVICES,
        default=Config.LLM_SERVICE,
        help=f"LLM service to use (default: {Config.LLM_SERVICE})",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=Config.FLASK_HOST,
        help=f"Interface to bind (default: {Config.FLASK_HOST})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=Config.FLASK_PORT,
        help=f"Port to listen on (default: {Config.FLASK_PORT})",
    )
    args = parser.parse_args()

    # Set configuration from command line arguments
    Config.LLM_SERVICE = args.llm
    Config.FLASK_HOST = args.host
    Config.FLASK_PORT = args.port

    logger.info(f"Using LLM service: {Config.LLM_SERVICE}")

    app = create_app()
    try:
        app.run(host=Config.FLASK_HOST, port=Config.FLASK_PORT, threaded=True)
    finally:
        shutdown(app)


if __name__ == "__main__":
    main()
