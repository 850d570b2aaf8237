"""
Configuration module for the SNXai assistant service.

Uses pydantic-settings for environment-based configuration with sensible defaults.
"""

import os
import pathlib
from typing import Dict, List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Detect if we're running in a Docker container
_IS_DOCKER = pathlib.Path("/.dockerenv").exists() or os.getenv("DOCKER_CONTAINER", "").lower() == "true"

if _IS_DOCKER:
    _DEFAULT_SQLITE_PATH = "/data/snxai.sqlite"
else:
    _SERVICE_DIR = pathlib.Path(__file__).parent.parent
    _DEFAULT_SQLITE_PATH = str(_SERVICE_DIR / "data" / "snxai.sqlite")


def parse_csv(value: str) -> List[str]:
    return [x.strip() for x in (value or "").split(",") if x.strip()]


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Example: GEMINI_API_KEY=... MAX_ROUND_TRIPS=5
    """

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    # Language-model service
    MODEL_PROVIDER: str = Field(
        default="gemini",
        description="Model backend: 'gemini' or 'openai_compat'"
    )
    GEMINI_API_KEY: str | None = Field(default=None, description="Google AI Studio API key")
    GEMINI_BASE_URL: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Gemini REST base URL"
    )
    GEMINI_MODEL: str = Field(default="gemini-1.5-flash", description="Model for the platform assistant")
    MENTOR_MODEL: str = Field(default="gemini-1.5-pro-latest", description="Model for the tech mentor")

    LLM_BASE_URL: str = Field(
        default="http://localhost:8001/v1",
        description="OpenAI-compatible base URL (vLLM, etc.)"
    )
    LLM_MODEL: str = Field(default="local-model", description="OpenAI-compatible model name")
    LLM_API_KEY: str | None = Field(default=None, description="Bearer key for the OpenAI-compatible endpoint")

    TEMPERATURE: float = Field(default=0.7)
    MAX_OUTPUT_TOKENS: int = Field(default=4096)

    # Loop limits / timeouts
    MAX_ROUND_TRIPS: int = Field(
        default=8,
        description="Maximum model round trips per request before giving up"
    )
    MODEL_TIMEOUT_S: float = Field(default=60.0, description="Timeout for one model round trip")
    TOOL_TIMEOUT_S: float = Field(default=15.0, description="Timeout for one data tool execution")
    HISTORY_LIMIT: int = Field(default=40, description="Most recent history turns replayed to the model")

    # Authentication
    AUTH_TOKENS: str = Field(
        default="",
        description="Comma-separated token:userId pairs accepted as bearer credentials"
    )
    AUTH_DISABLED: bool = Field(default=False, description="Skip bearer auth (local development only)")
    DEV_USER_ID: str = Field(default="dev-user", description="User id assumed when auth is disabled")

    # Document store
    STORE: str = Field(default="memory", description="Storage backend: 'memory' or 'sqlite'")
    SQLITE_PATH: str = Field(default=_DEFAULT_SQLITE_PATH, description="Path to SQLite database file")
    SEED_PATH: str | None = Field(default=None, description="Optional JSON file with seed documents")

    # Web search (mentor tool)
    SEARCH_API_KEY: str | None = Field(default=None)
    SEARCH_ENGINE_ID: str | None = Field(default=None)
    SEARCH_BASE_URL: str = Field(default="https://www.googleapis.com/customsearch/v1")

    CORS_ORIGINS: str = Field(default="http://localhost:3000,http://127.0.0.1:3000")
    LOG_LEVEL: str = Field(default="INFO")

    # Service metadata
    SERVICE_NAME: str = Field(default="snxai")
    SERVICE_VERSION: str = Field(default="1.0.0")

    def auth_token_map(self) -> Dict[str, str]:
        """Parse AUTH_TOKENS into {token: user_id}. Malformed pairs are ignored."""
        tokens: Dict[str, str] = {}
        for pair in parse_csv(self.AUTH_TOKENS):
            token, sep, user_id = pair.partition(":")
            if sep and token.strip() and user_id.strip():
                tokens[token.strip()] = user_id.strip()
        return tokens

    def model_api_configured(self) -> bool:
        if self.MODEL_PROVIDER == "openai_compat":
            return bool(self.LLM_BASE_URL)
        return bool(self.GEMINI_API_KEY)


# Singleton settings instance
settings = Settings()
