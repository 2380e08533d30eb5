"""Data models for the catalog sync system."""

from catalog_sync.models.config import (
    AppConfig,
    LoggingConfig,
    NotionConfig,
    ShopifyAccountConfig,
    ShopifyConfig,
    SyncConfig,
)
from catalog_sync.models.product import (
    CanonicalProduct,
    Credential,
    ProductStatus,
    ProductUpdate,
    to_decimal,
)

__all__ = [
    "CanonicalProduct",
    "Credential",
    "ProductStatus",
    "ProductUpdate",
    "to_decimal",
    "AppConfig",
    "LoggingConfig",
    "NotionConfig",
    "ShopifyAccountConfig",
    "ShopifyConfig",
    "SyncConfig",
]
