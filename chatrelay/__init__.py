"""
Streaming chat relay backend.

This package contains:
- Flask application and API routes for plain and streamed chat
- Token relay, cancellation and event-stream frame encoding
- LLM backends and the knowledge retrieval step used to build prompts
- The message store and the HTTP client used by callers
- Configuration and prompt modules
"""

import logging
import os

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class RelativePathFilter(logging.Filter):
    """Rewrite record paths relative to the project root so they stay clickable."""

    def filter(self, record: logging.LogRecord) -> bool:
        if hasattr(record, "pathname"):
            try:
                record.pathname = os.path.relpath(record.pathname, _PROJECT_ROOT)
            except ValueError:
                # Different drive on Windows
                pass
        return True


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger once for the whole package.

    Args:
        level: Name of the log level to use, e.g. ``"DEBUG"``
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(levelname)s: %(pathname)s:%(lineno)d %(message)s",
    )
    root = logging.getLogger()
    if not any(isinstance(f, RelativePathFilter) for f in root.filters):
        root.addFilter(RelativePathFilter())


# Configure logging before anything else imports logging
configure_logging(os.getenv("CHATRELAY_LOG_LEVEL", "INFO"))
