"""Custom exception types for the API.

This module defines the HTTP errors raised by endpoints and the JSON body they
are rendered as.
"""

from typing import Any, Dict, List, Optional, Tuple, Union

from flask import Response, jsonify
from pydantic import BaseModel, Field


class ErrorResponseModel(BaseModel):
    """Error response model."""

    error: str = Field(..., description="Error message")
    details: Optional[Union[str, List[Dict[str, Any]]]] = Field(
        None, description="Additional error details"
    )
    status_code: int = Field(400, description="HTTP status code")


class APIError(Exception):
    """Base class for all API errors."""

    status_code = 500
    default_message = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Union[str, List[Dict[str, Any]]]] = None,
    ):
        """Initialize the API error.

        Args:
            message: Custom error message (uses default_message if None)
            details: Additional error details
        """
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_response(self) -> Tuple[Response, int]:
        """Render the error as a JSON response and status code."""
        body = ErrorResponseModel(
            error=self.message, details=self.details, status_code=self.status_code
        )
        return jsonify(body.model_dump()), self.status_code


class ValidationError(APIError):
    """The request body failed validation (e.g. an empty message)."""

    status_code = 400
    default_message = "Message cannot be empty"


class RateLimitError(APIError):
    """The caller exceeded its request quota for the current window."""

    status_code = 429
    default_message = "Too many requests"


class ServiceError(APIError):
    """A backing service (LLM or store) failed."""

    status_code = 500
    default_message = "Service error"
