"""
Library configuration using pydantic-settings.

WHAT: Credentials, endpoints and transport defaults from environment variables
WHY: Adapters read credentials here, never the node itself
HOW: Pydantic BaseSettings reads from .env and environment
"""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # OpenAI
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_ORGANIZATION: Optional[str] = None
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"

    # Anthropic
    ANTHROPIC_API_KEY: Optional[str] = None
    ANTHROPIC_BASE_URL: str = "https://api.anthropic.com"
    ANTHROPIC_VERSION: str = "2023-06-01"

    # Google Generative AI
    GOOGLE_API_KEY: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GOOGLE_API_KEY", "GEMINI_API_KEY"),
    )
    GOOGLE_GENAI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GOOGLE_GENAI_DEFAULT_MAX_TOKENS: int = 3000

    # OpenAI-compatible vendors
    XAI_API_KEY: Optional[str] = None
    GROK_BASE_URL: str = "https://api.x.ai/v1"
    OLLAMA_BASE_URL: str = "http://localhost:11434/v1"

    # AWS Bedrock
    AWS_REGION: Optional[str] = None

    # Transport
    LLM_TIMEOUT: float = 60.0  # seconds, read timeout
    LLM_CONNECT_TIMEOUT: float = 5.0
    LLM_MAX_RETRIES: int = 2  # connection-level retries performed by the httpx transport

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None


# Singleton instance
settings = Settings()
