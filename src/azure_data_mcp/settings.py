"""Settings module for azure-data-mcp."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from azure_data_mcp.schema import DEFAULT_SAMPLE_SIZE, VALIDATION_SAMPLE_SIZE
from azure_data_mcp.validation import ViolationPolicy


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Environment variables:
        AZURE_STORAGE_CONNECTION_STRING: Storage connection string
        AZURE_STORAGE_ACCOUNT_NAME: Storage account name, used with
            DefaultAzureCredential when no connection string is set
        AZURE_SEARCH_ENDPOINT: Azure AI Search endpoint URL
        AZURE_SEARCH_API_KEY: Search key (default: DefaultAzureCredential)
        AZURE_SCHEMA_SAMPLE_SIZE: Records sampled by schema inspection (default: 10)
        AZURE_VALIDATION_SAMPLE_SIZE: Records sampled before a write (default: 20)
        AZURE_SCHEMA_CACHE_TTL: Seconds to cache inferred schemas (default: 0, disabled)
        AZURE_ON_VIOLATION: "warn" or "reject" (default: warn)
        AZURE_LOG_LEVEL: Logging level (default: INFO)
    """

    model_config = SettingsConfigDict(env_prefix="AZURE_")

    storage_connection_string: str | None = None
    storage_account_name: str | None = None
    search_endpoint: str | None = None
    search_api_key: str | None = None
    schema_sample_size: int = Field(default=DEFAULT_SAMPLE_SIZE, ge=1)
    validation_sample_size: int = Field(default=VALIDATION_SAMPLE_SIZE, ge=1)
    schema_cache_ttl: float = Field(default=0.0, ge=0)
    on_violation: ViolationPolicy = ViolationPolicy.WARN
    log_level: str = "INFO"

    @property
    def storage_account_url(self) -> str | None:
        """Table endpoint derived from the account name, if set."""
        if not self.storage_account_name:
            return None
        return f"https://{self.storage_account_name}.table.core.windows.net"

    @property
    def search_enabled(self) -> bool:
        return bool(self.search_endpoint)


@lru_cache
def get_settings() -> Settings:
    """Get the cached settings instance.

    Settings are read from environment variables on first call and cached.
    Use get_settings.cache_clear() in tests to reset.

    Returns:
        Cached Settings instance.

    Raises:
        ValidationError: If an environment variable has an invalid value.
    """
    return Settings()
