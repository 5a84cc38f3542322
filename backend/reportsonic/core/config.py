"""
Centralized configuration management.

All application configuration is loaded and validated here.
"""
import os
import logging
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class Settings(BaseModel):
    """Application settings with validation."""

    # Dataset limits (enforced by the HTTP layer, not the analysis core)
    max_dataset_rows: int = Field(default=100000, ge=100, le=1000000, description="Maximum rows accepted per request")
    max_dataset_columns: int = Field(default=500, ge=10, le=5000, description="Maximum columns accepted per request")

    # Rate limiting
    rate_limit_per_minute: int = Field(default=10, ge=1, le=10000, description="Rate limit per minute per IP")

    # Request timeout
    request_timeout_seconds: int = Field(default=120, ge=1, le=3600, description="Request timeout in seconds")

    # CORS
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:3001",
        description="Comma-separated list of allowed CORS origins"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    # Provider credentials (a provider without a key is not configured)
    groq_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    deepseek_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None

    # Provider models
    groq_model: str = Field(default="llama-3.1-8b-instant", description="Groq model to use")
    gemini_model: str = Field(default="gemini-1.5-flash", description="Gemini model to use")
    deepseek_model: str = Field(default="deepseek-chat", description="DeepSeek model to use")
    openai_model: str = Field(default="gpt-4o-mini", description="OpenAI model to use")
    anthropic_model: str = Field(default="claude-3-5-haiku-latest", description="Anthropic model to use")

    # Provider endpoints
    deepseek_base_url: str = Field(default="https://api.deepseek.com/v1")
    openai_base_url: str = Field(default="https://api.openai.com/v1")
    anthropic_base_url: str = Field(default="https://api.anthropic.com/v1")

    # Per-call provider timeouts
    free_provider_timeout_seconds: float = Field(default=15.0, gt=0, le=300, description="Timeout for free/fast providers")
    paid_provider_timeout_seconds: float = Field(default=30.0, gt=0, le=600, description="Timeout for paid/slow providers")

    # Prompt construction
    prompt_sample_rows: int = Field(default=10, ge=1, le=100, description="Rows embedded in provider prompts")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}, got '{v}'")
        return v.upper()

    @field_validator('groq_api_key', 'gemini_api_key', 'deepseek_api_key', 'openai_api_key', 'anthropic_api_key')
    @classmethod
    def blank_key_is_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty or whitespace keys as not configured."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @property
    def allowed_origins_list(self) -> List[str]:
        """Get allowed origins as a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def configured_providers(self) -> List[str]:
        """Names of the external providers that have credentials."""
        keys = [
            ("Groq", self.groq_api_key),
            ("Gemini", self.gemini_api_key),
            ("DeepSeek", self.deepseek_api_key),
            ("OpenAI", self.openai_api_key),
            ("Claude", self.anthropic_api_key),
        ]
        return [name for name, key in keys if key]

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            max_dataset_rows=int(os.getenv("MAX_DATASET_ROWS", "100000")),
            max_dataset_columns=int(os.getenv("MAX_DATASET_COLUMNS", "500")),
            rate_limit_per_minute=int(os.getenv("RATE_LIMIT_PER_MINUTE", "10")),
            request_timeout_seconds=int(os.getenv("REQUEST_TIMEOUT_SECONDS", "120")),
            allowed_origins=os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:3001"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            groq_api_key=os.getenv("GROQ_API_KEY"),
            gemini_api_key=os.getenv("GEMINI_API_KEY"),
            deepseek_api_key=os.getenv("DEEPSEEK_API_KEY"),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
            groq_model=os.getenv("GROQ_MODEL", "llama-3.1-8b-instant"),
            gemini_model=os.getenv("GEMINI_MODEL", "gemini-1.5-flash"),
            deepseek_model=os.getenv("DEEPSEEK_MODEL", "deepseek-chat"),
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            anthropic_model=os.getenv("ANTHROPIC_MODEL", "claude-3-5-haiku-latest"),
            deepseek_base_url=os.getenv("DEEPSEEK_BASE_URL", "https://api.deepseek.com/v1"),
            openai_base_url=os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1"),
            anthropic_base_url=os.getenv("ANTHROPIC_BASE_URL", "https://api.anthropic.com/v1"),
            free_provider_timeout_seconds=float(os.getenv("FREE_PROVIDER_TIMEOUT_SECONDS", "15")),
            paid_provider_timeout_seconds=float(os.getenv("PAID_PROVIDER_TIMEOUT_SECONDS", "30")),
            prompt_sample_rows=int(os.getenv("PROMPT_SAMPLE_ROWS", "10")),
        )


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
        logger.info("Configuration loaded and validated successfully")
    return _settings


def reload_settings() -> Settings:
    """Reload settings (useful for testing)."""
    global _settings
    _settings = None
    return get_settings()
