"""API package for the chat relay.

This package contains the API endpoints, middleware and utilities of the HTTP
surface.
"""

from .core import setup_api

__all__ = ["setup_api"]
