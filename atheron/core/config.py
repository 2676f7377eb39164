"""
Configuration management via environment variables.

This module loads configuration from .env file using python-dotenv.
All configuration values are accessed through the Settings class.

Why environment variables:
1. Security - Provider keys never committed to Git
2. Flexibility - Different values per environment (dev/staging/prod)
3. Easy override - Tests and CI can swap the database or timings
"""
import os
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


# Load .env file from project root
# This must happen before accessing os.environ
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(env_path)


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    frozen=True makes the dataclass immutable, preventing accidental
    modification of settings at runtime.

    Attributes:
        app_name: Application identifier for logging
        app_env: Environment name (development, staging, production)
        log_level: Logging verbosity (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        database_url: SQLAlchemy connection string for sessions/messages
        perplexity_api_key: API key for the search-capable Perplexity models
        perplexity_base_url: OpenAI-compatible endpoint of Perplexity
        groq_api_key: API key for Groq (fallback provider)
        google_api_key: API key for Google Gemini (fallback provider)
        llm_model: Primary (search-capable) model identifier
        llm_model_fallback: Groq model used when the primary fails
        llm_model_google: Gemini model used as last resort
        llm_temperature: LLM creativity (0.0 = deterministic, 1.0 = creative)
        llm_max_tokens: Maximum response length
        quiescence_seconds: Quiet time after the last delta before an
            assistant turn is considered final (observers without a
            stream; an open stream waits for its completion)
        min_assistant_chars: Assistant text must be longer than this
            to be persisted
        loading_placeholder: In-flight placeholder text that is never persisted
        title_max_length: Session titles are cut to this many characters
    """
    # Application settings
    app_name: str
    app_env: str
    log_level: str

    # Database settings
    database_url: str

    # LLM settings
    perplexity_api_key: str
    perplexity_base_url: str
    groq_api_key: str
    google_api_key: str
    llm_model: str
    llm_model_fallback: str
    llm_model_google: str
    llm_temperature: float
    llm_max_tokens: int

    # Turn persistence settings
    quiescence_seconds: float
    min_assistant_chars: int
    loading_placeholder: str
    title_max_length: int

    # Safety settings
    rate_limit_per_minute: int
    enable_audit_logging: bool

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app_env.lower() == "development"


def _get_env(key: str, default: Optional[str] = None) -> str:
    """
    Get environment variable with optional default.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        Environment variable value

    Raises:
        ValueError: If required variable is not set and no default provided
    """
    value = os.environ.get(key, default)
    if value is None:
        raise ValueError(
            f"Required environment variable '{key}' is not set. "
            f"Please check your .env file."
        )
    return value


def _resolve_database_url() -> str:
    """
    Work out the SQLAlchemy URL for conversation storage.

    Priority:
    1. DATABASE_URL (hosted Postgres/MySQL)
    2. Local components (DB_HOST, DB_USER, ...) when DB_HOST is set
    3. A local SQLite file
    """
    database_url = os.environ.get("DATABASE_URL")

    if not database_url and os.environ.get("DB_HOST"):
        host = _get_env("DB_HOST")
        port = _get_env("DB_PORT", "3306")
        user = _get_env("DB_USER", "root")
        password = _get_env("DB_PASSWORD", "")
        name = _get_env("DB_NAME", "atheron")
        database_url = f"mysql+pymysql://{user}:{password}@{host}:{port}/{name}"

    if not database_url:
        database_url = "sqlite:///./atheron.db"

    # Hosted providers hand out URLs with legacy dialect names
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)
    if database_url.startswith("mysql://"):
        database_url = database_url.replace("mysql://", "mysql+pymysql://", 1)

    # pymysql does not understand ssl-mode
    if "ssl-mode=" in database_url:
        database_url = re.sub(r"[?&]ssl-mode=[^&]+", "", database_url)
        if "?" not in database_url and "&" in database_url:
            database_url = database_url.replace("&", "?", 1)

    return database_url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Why lru_cache:
    - Settings are read once at startup
    - Avoids re-parsing .env on every access
    - maxsize=1 ensures only one instance exists

    Tests that change the environment call get_settings.cache_clear().

    Returns:
        Settings instance with all configuration values
    """
    return Settings(
        # Application
        app_name=_get_env("APP_NAME", "Atheron"),
        app_env=_get_env("APP_ENV", "development"),
        log_level=_get_env("LOG_LEVEL", "INFO"),

        # Database
        database_url=_resolve_database_url(),

        # LLM
        perplexity_api_key=_get_env("PERPLEXITY_API_KEY", ""),
        perplexity_base_url=_get_env("PERPLEXITY_BASE_URL", "https://api.perplexity.ai"),
        groq_api_key=_get_env("GROQ_API_KEY", ""),
        google_api_key=_get_env("GOOGLE_API_KEY", ""),
        llm_model=_get_env("LLM_MODEL", "sonar"),
        llm_model_fallback=_get_env("LLM_MODEL_FALLBACK", "llama-3.3-70b-versatile"),
        llm_model_google=_get_env("LLM_MODEL_GOOGLE", "gemini-2.0-flash"),
        llm_temperature=float(_get_env("LLM_TEMPERATURE", "0.2")),
        llm_max_tokens=int(_get_env("LLM_MAX_TOKENS", "2048")),

        # Turn persistence
        quiescence_seconds=float(_get_env("QUIESCENCE_SECONDS", "3.0")),
        min_assistant_chars=int(_get_env("MIN_ASSISTANT_CHARS", "50")),
        loading_placeholder=_get_env("LOADING_PLACEHOLDER", "Hold on"),
        title_max_length=int(_get_env("TITLE_MAX_LENGTH", "50")),

        # Safety
        rate_limit_per_minute=int(_get_env("RATE_LIMIT_PER_MINUTE", "30")),
        enable_audit_logging=_get_env("ENABLE_AUDIT_LOGGING", "true").lower() == "true",
    )
