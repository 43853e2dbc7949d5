"""Configuration module for the chat relay."""

import os
from pathlib import Path
from typing import List, Optional


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable, falling back on bad values."""
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


class ConfigMeta(type):
    """Metaclass to prevent direct instantiation and enforce singleton attributes."""

    def __call__(cls, *args: object, **kwargs: object) -> None:
        """Prevent direct instantiation."""
        raise TypeError("Config cannot be instantiated directly. Use class attributes.")


class Config(metaclass=ConfigMeta):
    """Singleton configuration class. Access attributes directly via the class."""

    # =========================================================================
    # Path Configuration
    # =========================================================================
    BASE_DIR: Path = Path(__file__).parent.parent.parent
    PACKAGE_DIR: Path = BASE_DIR / "chatrelay"
    KNOWLEDGE_DIR: Path = Path(
        os.getenv("KNOWLEDGE_DIR", str(PACKAGE_DIR / "knowledge"))
    )
    CHAT_HISTORY_PATH: Path = Path(
        os.getenv("CHAT_HISTORY_PATH", str(BASE_DIR / "data" / "chat_history.json"))
    )

    # =========================================================================
    # Server Configuration
    # =========================================================================
    FLASK_HOST: str = os.getenv("FLASK_HOST", "0.0.0.0")
    FLASK_PORT: int = _env_int("FLASK_PORT", 3000)
    CORS_ALLOW_ORIGINS: List[str] = os.getenv("CORS_ALLOW_ORIGINS", "*").split(",")

    # =========================================================================
    # Rate Limiting (fixed window per session key)
    # =========================================================================
    RATE_LIMIT_REQUESTS: int = _env_int("RATE_LIMIT_REQUESTS", 5)
    RATE_LIMIT_WINDOW_SECONDS: int = _env_int("RATE_LIMIT_WINDOW_SECONDS", 60)
    RATE_LIMIT_CLEANUP_SECONDS: int = 5 * 60

    # =========================================================================
    # Retrieval Configuration
    # =========================================================================
    CHUNK_SIZE: int = 1000  # Characters per knowledge chunk
    CHUNK_OVERLAP: int = 200
    RETRIEVAL_TOP_K: int = 3
    RETRIEVAL_STOPWORDS: str = "en"

    # =========================================================================
    # LLM Configuration
    # =========================================================================
    LLM_SERVICE: str = os.getenv("LLM_SERVICE", "gemini")  # Options: gemini, deepseek
    VALID_LLM_SERVICES: List[str] = ["gemini", "deepseek"]

    # Gemini configuration
    GEMINI_MODEL_NAME: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
    GEMINI_TEMPERATURE: float = 0.7
    GEMINI_MAX_TOKENS: int = 2048
    GEMINI_API_KEY: Optional[str] = os.getenv("GEMINI_API_KEY")

    # DeepSeek configuration
    DEEPSEEK_MODEL_NAME: str = "deepseek-chat"
    DEEPSEEK_BASE_URL: str = "https://api.deepseek.com/v1"
    DEEPSEEK_TEMPERATURE: float = 0.7
    DEEPSEEK_MAX_TOKENS: int = 2048
    DEEPSEEK_API_KEY: Optional[str] = os.getenv("DEEPSEEK_API_KEY")

    # Validate LLM service selection
    if LLM_SERVICE not in VALID_LLM_SERVICES:
        raise ValueError(
            f"Invalid LLM service: {LLM_SERVICE}. Must be one of {VALID_LLM_SERVICES}"
        )

    # =========================================================================
    # Client Configuration
    # =========================================================================
    CLIENT_BASE_URL: str = os.getenv("CHATRELAY_URL", "http://localhost:3000")
    CLIENT_TIMEOUT_SECONDS: float = 30.0

    @classmethod
    def api_key_env_var(cls) -> str:
        """Name of the environment variable holding the active backend's API key."""
        return f"{cls.LLM_SERVICE.upper()}_API_KEY"

    @classmethod
    def active_api_key(cls) -> Optional[str]:
        """API key for the selected LLM service, if any."""
        if cls.LLM_SERVICE == "deepseek":
            return cls.DEEPSEEK_API_KEY
        return cls.GEMINI_API_KEY
