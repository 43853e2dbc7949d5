"""Utilities for the API layer."""

from .sse import create_sse_response

__all__ = ["create_sse_response"]
