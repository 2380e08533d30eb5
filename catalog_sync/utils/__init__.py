"""Utility modules for catalog-sync."""

from catalog_sync.utils.retry import RetryPolicy, exponential_backoff_retry

__all__ = ["RetryPolicy", "exponential_backoff_retry"]
