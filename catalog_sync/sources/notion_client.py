"""Notion product database client: reader, link writer and content renderer."""

from decimal import Decimal
from typing import Any

import requests
import structlog
from pydantic import ValidationError

from catalog_sync.errors import ApiError, FetchError, WriteError
from catalog_sync.models.config import NotionConfig, SyncConfig
from catalog_sync.models.product import CanonicalProduct, ProductStatus
from catalog_sync.sources.http import ApiSession
from catalog_sync.sources.pagination import Page, iter_pages
from catalog_sync.sources.rendering import block_to_html, strip_markup

log = structlog.stdlib.get_logger()

# Database property names, keyed by canonical field
PROPERTY_NAMES: dict[str, str] = {
    "title": "Title",
    "price": "Price",
    "inventory": "Inventory",
    "sku": "SKU",
    "image_url": "Image URL",
    "external_id": "Shopify ID",
    "status": "Status",
    "category": "Category",
    "tags": "Tags",
    "vendor": "Vendor",
    "collection": "Collection",
    "shipping_weight": "Shipping Weight",
}

_RICH_TEXT_FIELDS = {"sku", "external_id", "category", "tags", "vendor", "collection"}
_NUMBER_FIELDS = {"price", "inventory", "shipping_weight"}

# Notion rejects rich text content longer than 2000 characters
MAX_TEXT_LENGTH = 2000
MAX_RENDER_DEPTH = 3


class NotionCatalog:
    """Reads and patches product pages in a Notion database."""

    SOURCE_NAME = "notion"

    def __init__(
        self,
        api_key: str,
        database_id: str,
        api_version: str = "2022-06-28",
        base_url: str = "https://api.notion.com/v1",
        page_size: int = 100,
        timeout: float = 30.0,
        max_pages: int = 1000,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        retry_max_delay: float = 60.0,
        session: requests.Session | None = None,
    ):
        """
        Initialize the Notion client.

        Args:
            api_key: Integration token with access to the database
            database_id: ID of the product database
            api_version: Value of the Notion-Version header
            base_url: API base URL
            page_size: Results requested per page (max 100)
            timeout: Timeout in seconds for every request
            max_pages: Upper bound on pages fetched per paginated read
            max_retries: Transport retries per request
            retry_base_delay: Initial backoff delay in seconds
            retry_max_delay: Maximum backoff delay in seconds
            session: Optional requests session (for connection reuse and tests)
        """
        self._database_id = database_id
        self._page_size = page_size
        self._max_pages = max_pages
        self._api = ApiSession(
            service=self.SOURCE_NAME,
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Notion-Version": api_version,
                "Content-Type": "application/json",
            },
            timeout=timeout,
            max_retries=max_retries,
            retry_base_delay=retry_base_delay,
            retry_max_delay=retry_max_delay,
            session=session,
        )
        log.info("notion_client_initialized", database_id=database_id)

    @classmethod
    def from_config(cls, notion: NotionConfig, sync: SyncConfig) -> "NotionCatalog":
        return cls(
            api_key=notion.api_key,
            database_id=notion.database_id,
            api_version=notion.api_version,
            base_url=notion.base_url,
            page_size=notion.page_size,
            timeout=sync.request_timeout_seconds,
            max_pages=sync.max_pages,
            max_retries=sync.max_retries,
            retry_base_delay=sync.retry_base_delay,
            retry_max_delay=sync.retry_max_delay,
        )

    def read_all(self) -> list[CanonicalProduct]:
        """
        Read every product page of the database.

        Returns:
            Canonical products in database query order

        Raises:
            FetchError: If any page of the query fails
        """
        log.info("fetching_database_products", database_id=self._database_id)

        products: list[CanonicalProduct] = []
        try:
            for items in iter_pages(self._query_page, self.SOURCE_NAME, self._max_pages):
                for page in items:
                    try:
                        products.append(self._convert_to_product(page))
                    except (ValidationError, ValueError) as e:
                        log.warning(
                            "failed_to_convert_page",
                            page_id=page.get("id"),
                            error=str(e),
                        )
        except (ApiError, requests.RequestException) as e:
            log.error("failed_to_fetch_database_products", error=str(e))
            raise FetchError(self.SOURCE_NAME, str(e)) from e

        log.info("database_products_fetched", product_count=len(products))
        return products

    def render_html(self, page_id: str) -> str:
        """
        Render the block content of a page as HTML.

        Child blocks are rendered after their parent, down to
        MAX_RENDER_DEPTH levels.

        Raises:
            ApiError: If the page or one of its blocks cannot be read
        """
        log.debug("rendering_page_content", page_id=page_id)
        return self._render_children(page_id, depth=0)

    def render_content(self, page_id: str) -> str:
        """Render the block content of a page as plain text."""
        return strip_markup(self.render_html(page_id))

    def write_back(self, source_id: str, fields: dict[str, Any]) -> None:
        """
        Patch canonical fields onto a product page.

        Args:
            source_id: Page ID of the product
            fields: Canonical field names mapped to new values

        Raises:
            WriteError: If the update request fails
            ValueError: If a field has no database property
        """
        properties = build_properties(fields)
        log.info("updating_database_product", page_id=source_id, fields=sorted(fields))

        try:
            self._api.patch(f"pages/{source_id}", {"properties": properties})
        except (ApiError, requests.RequestException) as e:
            log.error("failed_to_update_database_product", page_id=source_id, error=str(e))
            raise WriteError(f"Failed to update page {source_id}: {e}") from e

    def link_back(self, source_id: str, external_id: str) -> None:
        """Store the commerce product ID on the page, establishing the link."""
        self.write_back(source_id, {"external_id": external_id})
        log.info("product_linked", page_id=source_id, external_id=external_id)

    def create_record(self, product: CanonicalProduct, description: str = "") -> str:
        """
        Create a product page, optionally with a description paragraph.

        A failure to append the description is logged and does not undo
        the page creation.

        Returns:
            ID of the new page

        Raises:
            WriteError: If the page cannot be created
        """
        fields = product.model_dump(
            include=set(PROPERTY_NAMES),
            exclude_none=True,
        )
        payload = {
            "parent": {"database_id": self._database_id},
            "properties": build_properties(fields),
        }

        try:
            response = self._api.post("pages", payload)
        except (ApiError, requests.RequestException) as e:
            log.error("failed_to_create_database_product", title=product.title, error=str(e))
            raise WriteError(f"Failed to create page for {product.label}: {e}") from e

        page_id = response.json()["id"]
        log.info("database_product_created", page_id=page_id, title=product.title)

        if description:
            self._append_paragraph(page_id, description)

        return page_id

    def _append_paragraph(self, page_id: str, text: str) -> None:
        block = {
            "object": "block",
            "type": "paragraph",
            "paragraph": {"rich_text": [_text_item(text)]},
        }
        try:
            self._api.patch(f"blocks/{page_id}/children", {"children": [block]})
            log.debug("description_appended", page_id=page_id)
        except (ApiError, requests.RequestException) as e:
            log.warning("description_append_failed", page_id=page_id, error=str(e))

    def _query_page(self, cursor: str | None) -> Page:
        payload: dict[str, Any] = {"page_size": self._page_size}
        if cursor:
            payload["start_cursor"] = cursor
        body = self._api.query(f"databases/{self._database_id}/query", payload).json()
        return _page_from_body(body)

    def _children_page(self, block_id: str, cursor: str | None) -> Page:
        params: dict[str, Any] = {"page_size": self._page_size}
        if cursor:
            params["start_cursor"] = cursor
        body = self._api.get(f"blocks/{block_id}/children", params=params).json()
        return _page_from_body(body)

    def _render_children(self, block_id: str, depth: int) -> str:
        parts: list[str] = []
        pages = iter_pages(
            lambda cursor: self._children_page(block_id, cursor),
            self.SOURCE_NAME,
            self._max_pages,
        )
        for blocks in pages:
            for block in blocks:
                parts.append(block_to_html(block))
                if block.get("has_children") and depth + 1 < MAX_RENDER_DEPTH:
                    parts.append(self._render_children(block["id"], depth + 1))
        return "".join(parts)

    def _convert_to_product(self, page: dict[str, Any]) -> CanonicalProduct:
        """
        Convert a database page to a canonical product.

        Missing properties fall back to model defaults; a missing or empty
        Shopify ID stays None.

        Raises:
            ValueError: If the page has no ID
        """
        if not page.get("id"):
            raise ValueError("Database page without an id")

        props = page.get("properties") or {}

        def prop(field: str) -> dict[str, Any]:
            return props.get(PROPERTY_NAMES[field]) or {}

        status_name = (prop("status").get("select") or {}).get("name")

        return CanonicalProduct(
            source_id=page["id"],
            external_id=_rich_text_value(prop("external_id")) or None,
            title=_joined_text(prop("title").get("title")),
            price=prop("price").get("number"),
            inventory=prop("inventory").get("number"),
            sku=_rich_text_value(prop("sku")),
            image_url=prop("image_url").get("url") or "",
            status=ProductStatus.parse(status_name),
            category=_rich_text_value(prop("category")),
            tags=_rich_text_value(prop("tags")),
            vendor=_rich_text_value(prop("vendor")),
            collection=_rich_text_value(prop("collection")),
            shipping_weight=prop("shipping_weight").get("number"),
        )


def _page_from_body(body: dict[str, Any]) -> Page:
    next_cursor = body.get("next_cursor") if body.get("has_more") else None
    return Page(body.get("results", []), next_cursor)


def _joined_text(items: list[dict[str, Any]] | None) -> str:
    if not items:
        return ""
    return "".join(
        item.get("plain_text") or (item.get("text") or {}).get("content", "") for item in items
    )


def _rich_text_value(prop: dict[str, Any]) -> str:
    return _joined_text(prop.get("rich_text"))


def _text_item(text: str) -> dict[str, Any]:
    if len(text) > MAX_TEXT_LENGTH:
        text = f"{text[: MAX_TEXT_LENGTH - 3]}..."
    return {"type": "text", "text": {"content": text}}


def build_properties(fields: dict[str, Any]) -> dict[str, Any]:
    """
    Build a Notion properties payload from canonical field values.

    Raises:
        ValueError: If a field has no database property
    """
    properties: dict[str, Any] = {}

    for field, value in fields.items():
        if field not in PROPERTY_NAMES:
            raise ValueError(f"No database property for field: {field}")
        name = PROPERTY_NAMES[field]

        if field == "title":
            properties[name] = {"title": [_text_item(value or "")]}
        elif field in _RICH_TEXT_FIELDS:
            properties[name] = {"rich_text": [_text_item(str(value))] if value else []}
        elif field in _NUMBER_FIELDS:
            if value is None:
                properties[name] = {"number": None}
            elif field == "inventory":
                properties[name] = {"number": int(value)}
            else:
                properties[name] = {"number": float(Decimal(str(value)))}
        elif field == "status":
            status = value if isinstance(value, ProductStatus) else ProductStatus.parse(value)
            properties[name] = {"select": {"name": status.value}}
        elif field == "image_url":
            properties[name] = {"url": value or None}

    return properties
