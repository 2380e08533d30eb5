"""Keeps a Shopify product catalog in sync with a Notion product database."""

__version__ = "0.1.0"
