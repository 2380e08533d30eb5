"""Configuration models for the catalog sync system."""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class NotionConfig(BaseModel):
    """Configuration for the Notion product database."""

    api_key: str = Field(default=..., description="Notion integration token")
    database_id: str = Field(default=..., description="ID of the product database")
    api_version: str = Field(default="2022-06-28", description="Notion-Version header value")
    base_url: str = Field(default="https://api.notion.com/v1", description="Notion API base URL")
    page_size: int = Field(default=100, ge=1, le=100, description="Results requested per page")


class ShopifyAccountConfig(BaseModel):
    """A connected Shopify store."""

    shop_domain: str = Field(default=..., description="Store domain, e.g. example.myshopify.com")
    access_token: str = Field(default=..., description="Admin API access token")


class ShopifyConfig(BaseModel):
    """Configuration for Shopify Admin API access."""

    api_version: str = Field(default="2024-01", description="Admin API version")
    page_size: int = Field(default=250, ge=1, le=250, description="Products requested per page")
    default_vendor: str = Field(
        default="Notion Sync", description="Vendor used when creating products without one"
    )
    accounts: dict[str, ShopifyAccountConfig] = Field(
        default_factory=dict, description="Connected stores keyed by account id"
    )


class SyncConfig(BaseModel):
    """Configuration for synchronization runs."""

    request_timeout_seconds: float = Field(
        default=30.0, gt=0, le=300, description="Timeout applied to every HTTP request"
    )
    max_pages: int = Field(
        default=1000, ge=1, description="Upper bound on pages fetched per catalog read"
    )
    max_retries: int = Field(default=3, ge=0, le=10, description="Transport retries per request")
    retry_base_delay: float = Field(default=1.0, ge=0.0, description="Initial backoff in seconds")
    retry_max_delay: float = Field(default=60.0, ge=0.0, description="Maximum backoff in seconds")
    include_unchanged: bool = Field(
        default=False, description="Keep Unchanged entries in detected change sets"
    )
    render_descriptions: bool = Field(
        default=True, description="Render database page content for description comparison"
    )


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        description="If True, output JSON logs. If False, use console format.",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional path to log file. If None, logs only to stdout.",
    )


class AppConfig(BaseSettings):
    """Main application configuration.

    Values can also come from environment variables with the CATALOG_SYNC_
    prefix, using ``__`` between nested keys
    (e.g. ``CATALOG_SYNC_NOTION__DATABASE_ID``).
    """

    model_config = SettingsConfigDict(
        env_prefix="CATALOG_SYNC_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    notion: NotionConfig
    shopify: ShopifyConfig = Field(default_factory=ShopifyConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
