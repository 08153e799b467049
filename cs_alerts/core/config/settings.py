# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

Settings are loaded from environment variables with sensible defaults.
The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from cs_alerts.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.alerts.max_alerts)
    10
"""

from functools import lru_cache
from typing import Any, Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DB_PASSWORD = "cs_alerts_password"


class DatabaseSettings(BaseSettings):
    """Durable alert store configuration.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
    """

    model_config = SettingsConfigDict(
        env_prefix="ALERTS_DB_",
        extra="ignore",
    )

    user: str = "cs_alerts"
    password: SecretStr = SecretStr(DEFAULT_DB_PASSWORD)
    host: str = "localhost"
    port: int = 5432
    database: str = "cs_alerts"
    pool_size: int = 5
    max_overflow: int = 10

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"

    @property
    def sync_url(self) -> str:
        """Build the sync database URL for migrations."""
        pwd = self.password.get_secret_value()
        return f"postgresql://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class LLMSettings(BaseSettings):
    """LLM provider configuration using LiteLLM.

    LiteLLM handles provider routing based on model prefix, so the
    scoring service can run on any of the supported providers.

    Attributes:
        default_provider: Default LLM provider to use.
        ollama_base_url: Base URL for Ollama server.
        ollama_api_key: API key for remote Ollama instances.
        ollama_default_model: Default Ollama model.
        openai_api_key: OpenAI API key.
        openai_default_model: Default OpenAI model.
        anthropic_api_key: Anthropic API key.
        anthropic_default_model: Default Anthropic model.
        google_api_key: Google AI API key.
        google_default_model: Default Google model.
        request_timeout: Request timeout in seconds.
        max_retries: Maximum retry attempts.
    """

    model_config = SettingsConfigDict(
        extra="ignore",
    )

    default_provider: Literal["ollama", "openai", "anthropic", "google"] = "google"

    ollama_base_url: str = Field(
        default="http://localhost:11434",
        validation_alias="OLLAMA_BASE_URL",
    )
    ollama_api_key: SecretStr | None = Field(
        default=None,
        validation_alias="OLLAMA_API_KEY",
    )
    ollama_default_model: str = Field(
        default="qwen2.5:7b",
        validation_alias="OLLAMA_DEFAULT_MODEL",
    )

    openai_api_key: SecretStr | None = Field(
        default=None,
        validation_alias="OPENAI_API_KEY",
    )
    openai_default_model: str = Field(
        default="gpt-4o-mini",
        validation_alias="OPENAI_DEFAULT_MODEL",
    )

    anthropic_api_key: SecretStr | None = Field(
        default=None,
        validation_alias="ANTHROPIC_API_KEY",
    )
    anthropic_default_model: str = Field(
        default="claude-3-5-sonnet-20241022",
        validation_alias="ANTHROPIC_DEFAULT_MODEL",
    )

    google_api_key: SecretStr | None = Field(
        default=None,
        validation_alias="GOOGLE_API_KEY",
    )
    google_default_model: str = Field(
        default="gemini-2.0-flash",
        validation_alias="GOOGLE_DEFAULT_MODEL",
    )

    request_timeout: float = 60.0
    max_retries: int = 2

    def get_default_model(self) -> str:
        """Get the default model for the configured provider.

        Returns:
            Model identifier string in LiteLLM format.
        """
        models = {
            "ollama": f"ollama/{self.ollama_default_model}",
            "openai": self.openai_default_model,
            "anthropic": self.anthropic_default_model,
            "google": f"gemini/{self.google_default_model}",
        }
        return models[self.default_provider]

    def get_provider_params(self, model: str) -> dict[str, Any]:
        """Get api_base/api_key to pass to LiteLLM for a model.

        API keys are passed directly to acompletion() rather than through
        environment variables.

        Args:
            model: Model string in LiteLLM format.

        Returns:
            Dictionary with api_base and/or api_key if configured.
        """
        params: dict[str, Any] = {}

        if model.startswith(("ollama/", "ollama_chat/")):
            params["api_base"] = self.ollama_base_url
            key = self.ollama_api_key
        elif model.startswith("gemini/"):
            key = self.google_api_key
        elif model.startswith("claude") or model.startswith("anthropic/"):
            key = self.anthropic_api_key
        else:
            key = self.openai_api_key

        if key is not None:
            params["api_key"] = key.get_secret_value()

        return params


class AlertEngineSettings(BaseSettings):
    """Alert generation pipeline configuration.

    Attributes:
        max_alerts: Maximum alerts the oracle may propose per run.
        open_alert_prompt_limit: Open alerts summarized in the oracle prompt.
        existing_alert_fetch_limit: Stored alerts loaded for deduplication.
        list_default_limit: Default page size for alert listings.
        temperature: Oracle sampling temperature.
        max_output_tokens: Oracle response token cap.
    """

    model_config = SettingsConfigDict(
        env_prefix="ALERTS_",
        extra="ignore",
    )

    max_alerts: int = Field(default=10, ge=1)
    open_alert_prompt_limit: int = Field(default=20, ge=0)
    existing_alert_fetch_limit: int = Field(default=100, ge=1)
    list_default_limit: int = Field(default=50, ge=1)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=4096, ge=1)


class APISettings(BaseSettings):
    """HTTP API configuration.

    Attributes:
        title: OpenAPI title.
        version: Service version reported by health checks.
        prefix: Prefix for versioned routes.
    """

    model_config = SettingsConfigDict(
        env_prefix="API_",
        extra="ignore",
    )

    title: str = "Customer Success Alerts API"
    version: str = "0.1.0"
    prefix: str = "/api/v1"


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        database: Durable alert store settings.
        llm: LLM provider settings.
        alerts: Alert generation settings.
        api: API server settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    alerts: AlertEngineSettings = Field(default_factory=AlertEngineSettings)
    api: APISettings = Field(default_factory=APISettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production":
            if self.database.password.get_secret_value() == DEFAULT_DB_PASSWORD:
                raise ValueError(
                    "Database password must be changed from default in production. "
                    "Set ALERTS_DB_PASSWORD environment variable."
                )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
