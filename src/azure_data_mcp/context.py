"""Application context management for azure-data-mcp."""

from functools import lru_cache

from azure.core.credentials import AzureKeyCredential
from azure.data.tables import TableServiceClient
from azure.identity import DefaultAzureCredential
from azure.search.documents import SearchClient

from azure_data_mcp.errors import ConfigurationError
from azure_data_mcp.schema_cache import SchemaCache
from azure_data_mcp.search import SearchTools
from azure_data_mcp.settings import get_settings
from azure_data_mcp.tables import TableTools


@lru_cache
def get_credential() -> DefaultAzureCredential:
    """Get the cached default Azure credential."""
    return DefaultAzureCredential()


@lru_cache
def get_table_service() -> TableServiceClient:
    """Get the cached table service client.

    Raises:
        ConfigurationError: If neither a connection string nor an account
            name is configured.
    """
    settings = get_settings()
    if settings.storage_connection_string:
        return TableServiceClient.from_connection_string(
            settings.storage_connection_string
        )
    if settings.storage_account_url:
        return TableServiceClient(
            endpoint=settings.storage_account_url, credential=get_credential()
        )
    raise ConfigurationError(
        "Azure Storage is not configured: set AZURE_STORAGE_CONNECTION_STRING "
        "or AZURE_STORAGE_ACCOUNT_NAME"
    )


@lru_cache(maxsize=None)
def get_search_client(index_name: str) -> SearchClient:
    """Get the cached search client for an index.

    Raises:
        ConfigurationError: If no search endpoint is configured.
    """
    settings = get_settings()
    if not settings.search_endpoint:
        raise ConfigurationError(
            "Azure AI Search is not configured: set AZURE_SEARCH_ENDPOINT"
        )
    credential = (
        AzureKeyCredential(settings.search_api_key)
        if settings.search_api_key
        else get_credential()
    )
    return SearchClient(settings.search_endpoint, index_name, credential)


@lru_cache
def get_schema_cache() -> SchemaCache:
    """Get the cached schema cache instance."""
    return SchemaCache(get_settings().schema_cache_ttl)


@lru_cache
def get_table_tools() -> TableTools:
    """Get the cached table tools instance."""
    return TableTools(get_table_service(), get_settings(), get_schema_cache())


@lru_cache
def get_search_tools() -> SearchTools:
    """Get the cached search tools instance."""
    return SearchTools(get_search_client)
