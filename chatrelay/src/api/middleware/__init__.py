"""Middleware package for API request processing.

This module registers middleware functions for the API.
"""

from flask import Flask

from chatrelay.src.api.middleware.exceptions import (
    APIError,
    ErrorResponseModel,
    RateLimitError,
    ServiceError,
    ValidationError,
)
from chatrelay.src.api.middleware.rate_limit import FixedWindowRateLimiter


def register_middleware(app: Flask) -> None:
    """Register middleware with the Flask application.

    Args:
        app: Flask application
    """
    # Register error handler middleware
    from chatrelay.src.api.middleware.error_handler import register_error_handlers

    register_error_handlers(app)


__all__ = [
    "register_middleware",
    "APIError",
    "ErrorResponseModel",
    "FixedWindowRateLimiter",
    "RateLimitError",
    "ServiceError",
    "ValidationError",
]
