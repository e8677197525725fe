"""Configuration values for the chat front end and its backend."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List


class ConfigurationError(RuntimeError):
    """Raised when required backend settings are missing."""


def _env_str(name: str, default: str) -> str:
    """Read a string environment variable with a non-empty fallback."""
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return value or default


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable with safe fallback."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    """Read a float environment variable with safe fallback."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if raw in {"1", "true", "yes", "on"}:
        return True
    if raw in {"0", "false", "no", "off"}:
        return False
    return default


@dataclass
class Settings:
    """Runtime settings loaded from environment variables."""

    # default_factory defers the lookup to Settings() so load_dotenv() values are seen.
    chat_endpoint: str = field(
        default_factory=lambda: _env_str("RAG_CHAT_ENDPOINT", "http://127.0.0.1:8000/api/chat")
    )
    request_timeout_seconds: float = field(default_factory=lambda: _env_float("RAG_REQUEST_TIMEOUT_SECONDS", 60.0))
    display_delay_seconds: float = field(default_factory=lambda: _env_float("RAG_DISPLAY_DELAY_SECONDS", 0.5))
    sound_enabled: bool = field(default_factory=lambda: _env_bool("RAG_SOUND_ENABLED", True))
    app_title: str = field(default_factory=lambda: _env_str("RAG_APP_TITLE", "RAG Nutritional Chatbot"))

    embedding_model_name: str = field(default_factory=lambda: _env_str("EMBEDDING_MODEL_NAME", "all-MiniLM-L6-v2"))
    chroma_dir: Path = field(default_factory=lambda: Path(_env_str("CHROMA_DIR", "data/chroma")))
    collection_name: str = field(default_factory=lambda: _env_str("CHROMA_COLLECTION", "document_chunks"))
    match_count: int = field(default_factory=lambda: _env_int("MATCH_COUNT", 5))
    # An explicitly empty DOCUMENT_FILTER disables filtering.
    document_filter: str = field(
        default_factory=lambda: os.getenv("DOCUMENT_FILTER", "human-nutrition-text.pdf").strip()
    )
    chunk_size: int = field(default_factory=lambda: _env_int("CHUNK_SIZE", 400))
    chunk_overlap: int = field(default_factory=lambda: _env_int("CHUNK_OVERLAP", 100))

    gemini_api_key: str = field(default_factory=lambda: os.getenv("GEMINI_API_KEY", "").strip())
    gemini_model_name: str = field(default_factory=lambda: _env_str("GEMINI_MODEL", "gemini-2.5-flash"))
    gemini_temperature: float = field(default_factory=lambda: _env_float("GEMINI_TEMPERATURE", 0.7))
    gemini_max_output_tokens: int = field(default_factory=lambda: _env_int("GEMINI_MAX_OUTPUT_TOKENS", 1000))

    server_host: str = field(default_factory=lambda: _env_str("RAG_SERVER_HOST", "127.0.0.1"))
    server_port: int = field(default_factory=lambda: _env_int("RAG_SERVER_PORT", 8000))
    log_level: str = field(default_factory=lambda: _env_str("LOG_LEVEL", "INFO").upper())

    def missing_backend_settings(self) -> List[str]:
        """Names of the variables the chat endpoint needs but does not have."""
        required = {
            "GEMINI_API_KEY": self.gemini_api_key,
            "EMBEDDING_MODEL_NAME": self.embedding_model_name,
            "CHROMA_DIR": str(self.chroma_dir) if str(self.chroma_dir) not in {"", "."} else "",
            "CHROMA_COLLECTION": self.collection_name,
        }
        return [name for name, value in required.items() if not str(value).strip()]

    def require_backend_settings(self) -> None:
        missing = self.missing_backend_settings()
        if missing:
            raise ConfigurationError("Missing required environment variables: " + ", ".join(missing))
