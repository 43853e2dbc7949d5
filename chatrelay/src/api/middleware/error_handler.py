"""Error handling middleware for API requests.

Turns API errors, request validation failures and uncaught exceptions into JSON
error bodies.
"""

import logging
import traceback
from typing import Any, Dict, List, Tuple

from flask import Flask, Response, current_app, jsonify
from flask_pydantic.exceptions import ValidationError as RequestValidationError  # type: ignore
from pydantic import ValidationError as PydanticValidationError
from werkzeug.exceptions import HTTPException

from chatrelay.src.api.middleware.exceptions import (
    APIError,
    ErrorResponseModel,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _error_details(errors: List[Dict[str, Any]]) -> str:
    return "\n".join(str(e.get("msg", e)) for e in errors)


def register_error_handlers(app: Flask) -> None:
    """Register error handlers with the Flask application.

    Args:
        app: Flask application
    """
    # Let flask-pydantic raise so its failures share the JSON error body below
    app.config["FLASK_PYDANTIC_VALIDATION_ERROR_RAISE"] = True

    @app.errorhandler(RequestValidationError)
    def handle_request_validation_error(error: RequestValidationError) -> Tuple[Response, int]:  # type: ignore
        """Handle request bodies rejected by flask-pydantic.

        Args:
            error: Validation error collected by ``@validate()``

        Returns:
            JSON response with error details
        """
        errors: List[Dict[str, Any]] = []
        for params in (
            error.body_params,
            error.form_params,
            error.path_params,
            error.query_params,
        ):
            errors.extend(params or [])
        logger.warning(f"Request validation error: {errors}")
        return ValidationError(details=_error_details(errors)).to_response()

    @app.errorhandler(PydanticValidationError)
    def handle_pydantic_validation_error(error: PydanticValidationError) -> Tuple[Response, int]:  # type: ignore
        """Handle Pydantic validation errors raised inside endpoints.

        Args:
            error: Validation error from Pydantic

        Returns:
            JSON response with error details
        """
        logger.warning(f"Validation error: {error}")
        return ValidationError(
            details=_error_details(list(error.errors()))  # type: ignore
        ).to_response()

    @app.errorhandler(APIError)
    def handle_api_error(error: APIError) -> Tuple[Response, int]:  # type: ignore
        """Handle custom API errors.

        Args:
            error: Custom API error

        Returns:
            JSON response with error details
        """
        if error.status_code >= 500:
            logger.error(f"API error ({error.__class__.__name__}): {error.message}")
            if error.details:
                logger.error(f"Error details: {error.details}")
        else:
            logger.info(f"Rejected request ({error.__class__.__name__}): {error.message}")

        return error.to_response()

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException) -> Tuple[Response, int]:  # type: ignore
        """Render Werkzeug HTTP errors (404, 405, 415, ...) as JSON."""
        status_code = error.code or 500
        response = ErrorResponseModel(
            error=error.name, details=error.description, status_code=status_code
        )
        return jsonify(response.model_dump()), status_code

    @app.errorhandler(Exception)
    def handle_exception(error: Exception) -> Tuple[Response, int]:  # type: ignore
        """Handle uncaught exceptions.

        Args:
            error: Exception that was raised

        Returns:
            JSON response with error message
        """
        logger.error(f"Unhandled exception: {str(error)}")
        logger.error(traceback.format_exc())

        # Only include detailed error info in debug mode
        details = str(error) if current_app.debug else None

        response = ErrorResponseModel(
            error="Internal server error", details=details, status_code=500
        )
        return jsonify(response.model_dump()), 500
