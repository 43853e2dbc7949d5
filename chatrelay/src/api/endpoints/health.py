"""Health check endpoint."""

from typing import Any

from flask import Blueprint, jsonify

from chatrelay.src.services.llm.llm_service import BaseLLMService


def init_health_routes(llm_service: BaseLLMService) -> Blueprint:
    """Initialize the health route.

    Args:
        llm_service: Backend whose configuration state is reported

    Returns:
        Blueprint: Flask blueprint with the health route.
    """
    health_bp = Blueprint("health", __name__)

    @health_bp.route("/healthz", methods=["GET"])
    def healthz() -> Any:
        return jsonify({"status": "ok", "llm_configured": llm_service.configured})

    return health_bp
