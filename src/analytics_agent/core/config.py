from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Analytics Agent"
    app_env: str = "development"  # development, testing, production
    debug: bool = False
    enable_openapi: bool = True  # Set to False in production

    # Shutdown
    shutdown_grace_period: int = 30  # seconds to wait for in-flight workflow runs

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Metrics
    metrics_api_key: str | None = None  # If set, /metrics requires this key

    # Language model (OpenRouter)
    openrouter_api_key: str | None = None  # Required for schema interpretation / query generation
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_app_url: str = "http://localhost:3001"
    openrouter_app_name: str = "SailoGrowth"
    default_model: str = "anthropic/claude-3-sonnet"
    default_temperature: float = 0.7
    llm_timeout_seconds: float = 60.0

    # Data sources
    datasource_timeout_seconds: float = 30.0
    # Default Supabase project for the query and schema endpoints
    supabase_url: str | None = None
    supabase_anon_key: str | None = None

    # Actions
    action_timeout_seconds: float = 10.0
    resend_api_key: str | None = None  # If not set, email alerts are logged but not sent
    email_from: str = "alerts@example.com"

    # Rate limiting (slowapi limit string)
    workflow_rate_limit: str = "30/minute"
    query_rate_limit: str = "20/minute"

    @field_validator("cors_origins")
    @classmethod
    def validate_cors_origins(cls, v: list[str]) -> list[str]:
        """Validate CORS origins - reject wildcards when credentials are used."""
        for origin in v:
            if origin == "*":
                raise ValueError(
                    "CORS wildcard '*' is not allowed when allow_credentials=True. "
                    "Specify explicit origins instead."
                )
        return v

    @field_validator("default_temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        if not 0 <= v <= 2:
            raise ValueError("DEFAULT_TEMPERATURE must be between 0 and 2")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
