"""Credential lookup for connected commerce accounts."""

from typing import Iterable, Protocol

import structlog

from catalog_sync.errors import CredentialNotFoundError
from catalog_sync.models.config import ShopifyConfig
from catalog_sync.models.product import Credential

log = structlog.stdlib.get_logger()


class CredentialProvider(Protocol):
    def fetch_credential(self, account_id: str) -> Credential:
        ...


class CredentialStore:
    """Read-only, in-memory credential lookup keyed by account id."""

    def __init__(self, credentials: Iterable[Credential] = ()):
        self._credentials: dict[str, Credential] = {c.account_id: c for c in credentials}

    @classmethod
    def from_config(cls, shopify: ShopifyConfig) -> "CredentialStore":
        return cls(
            Credential(
                account_id=account_id,
                shop_domain=account.shop_domain,
                access_token=account.access_token,
            )
            for account_id, account in shopify.accounts.items()
        )

    def fetch_credential(self, account_id: str) -> Credential:
        """
        Return the credential for an account.

        Raises:
            CredentialNotFoundError: If the account is not connected
        """
        credential = self._credentials.get(account_id)
        if credential is None:
            log.error("credential_not_found", account_id=account_id)
            raise CredentialNotFoundError(account_id)
        return credential

