"""Clients for the product database and the commerce store"""

from catalog_sync.sources.base import CommerceCatalog, SourceCatalog
from catalog_sync.sources.credentials import CredentialProvider, CredentialStore
from catalog_sync.sources.notion_client import NotionCatalog
from catalog_sync.sources.shopify_client import ShopifyCatalog

__all__ = [
    "CommerceCatalog",
    "CredentialProvider",
    "CredentialStore",
    "NotionCatalog",
    "ShopifyCatalog",
    "SourceCatalog",
]
