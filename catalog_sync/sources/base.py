"""Ports implemented by the database and commerce clients."""

from typing import Any, Protocol, runtime_checkable

from catalog_sync.models.product import CanonicalProduct, ProductUpdate


@runtime_checkable
class SourceCatalog(Protocol):
    """The product database, the writer of record."""

    def read_all(self) -> list[CanonicalProduct]:
        ...

    def render_html(self, page_id: str) -> str:
        ...

    def write_back(self, source_id: str, fields: dict[str, Any]) -> None:
        ...

    def link_back(self, source_id: str, external_id: str) -> None:
        ...

    def create_record(self, product: CanonicalProduct, description: str = "") -> str:
        ...


@runtime_checkable
class CommerceCatalog(Protocol):
    """The commerce store that mirrors the product database."""

    def read_all(self) -> list[CanonicalProduct]:
        ...

    def create_record(
        self, product: CanonicalProduct, description_html: str | None = None
    ) -> str:
        ...

    def update_record(self, external_id: str, update: ProductUpdate) -> None:
        ...


__all__ = ["CommerceCatalog", "SourceCatalog"]
