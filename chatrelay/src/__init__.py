"""
Core package for the chat relay.

This package contains the main application logic and components including:
- Data classes for chat messages and knowledge chunks
- Services for streaming, LLM access, retrieval and message storage
- API routes and endpoints
- The HTTP client used by callers of the API
"""
