"""Shopify Admin REST client: catalog reader and product writer."""

import html
from typing import Any

import requests
import structlog
from pydantic import ValidationError

from catalog_sync.errors import ApiError, FetchError, PartialWriteError, WriteError
from catalog_sync.models.config import ShopifyConfig, SyncConfig
from catalog_sync.models.product import CanonicalProduct, Credential, ProductStatus, ProductUpdate
from catalog_sync.sources.http import ApiSession
from catalog_sync.sources.pagination import Page, iter_pages
from catalog_sync.sources.rendering import strip_markup

log = structlog.stdlib.get_logger()

PRODUCT_FIELDS = "id,title,status,body_html,product_type,vendor,tags,variants,image"

# Metafield tagging a created product with the database page it came from
SOURCE_ID_NAMESPACE = "catalog_sync"
SOURCE_ID_KEY = "source_id"


class ShopifyCatalog:
    """Reads, creates and updates products in one Shopify store."""

    SOURCE_NAME = "shopify"

    def __init__(
        self,
        shop_domain: str,
        access_token: str,
        api_version: str = "2024-01",
        page_size: int = 250,
        default_vendor: str = "Notion Sync",
        timeout: float = 30.0,
        max_pages: int = 1000,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        retry_max_delay: float = 60.0,
        session: requests.Session | None = None,
    ):
        self._shop_domain = shop_domain
        self._page_size = page_size
        self._default_vendor = default_vendor
        self._max_pages = max_pages
        self._api = ApiSession(
            service=self.SOURCE_NAME,
            base_url=f"https://{shop_domain}/admin/api/{api_version}",
            headers={
                "Content-Type": "application/json",
                "X-Shopify-Access-Token": access_token,
            },
            timeout=timeout,
            max_retries=max_retries,
            retry_base_delay=retry_base_delay,
            retry_max_delay=retry_max_delay,
            session=session,
        )
        log.info("shopify_client_initialized", shop_domain=shop_domain, api_version=api_version)

    @classmethod
    def from_credential(
        cls, credential: Credential, shopify: ShopifyConfig, sync: SyncConfig
    ) -> "ShopifyCatalog":
        return cls(
            shop_domain=credential.shop_domain,
            access_token=credential.access_token.get_secret_value(),
            api_version=shopify.api_version,
            page_size=shopify.page_size,
            default_vendor=shopify.default_vendor,
            timeout=sync.request_timeout_seconds,
            max_pages=sync.max_pages,
            max_retries=sync.max_retries,
            retry_base_delay=sync.retry_base_delay,
            retry_max_delay=sync.retry_max_delay,
        )

    def read_all(self) -> list[CanonicalProduct]:
        """
        Read every product of the store, following Link header pagination.

        Raises:
            FetchError: If any page request fails
        """
        log.info("fetching_store_products", shop_domain=self._shop_domain)

        products: list[CanonicalProduct] = []
        try:
            for items in iter_pages(self._products_page, self.SOURCE_NAME, self._max_pages):
                for raw in items:
                    try:
                        products.append(self._convert_to_product(raw))
                    except (ValidationError, ValueError) as e:
                        log.warning(
                            "failed_to_convert_product",
                            product_id=raw.get("id"),
                            error=str(e),
                        )
        except (ApiError, requests.RequestException) as e:
            log.error("failed_to_fetch_store_products", shop_domain=self._shop_domain, error=str(e))
            raise FetchError(self.SOURCE_NAME, str(e)) from e

        log.info(
            "store_products_fetched",
            shop_domain=self._shop_domain,
            product_count=len(products),
        )
        return products

    def create_record(self, product: CanonicalProduct, description_html: str | None = None) -> str:
        """
        Create a product with a single variant.

        Args:
            product: Canonical product to create
            description_html: Optional rendered body; falls back to the
                product's plain-text description

        Returns:
            ID of the created product

        Raises:
            WriteError: If the create request fails
        """
        body = description_html
        if body is None:
            body = _text_to_html(product.description)
        payload: dict[str, Any] = {
            "product": {
                "title": product.title,
                "body_html": body,
                "vendor": product.vendor or self._default_vendor,
                "product_type": product.category,
                "tags": product.tags,
                "status": product.status.to_commerce(),
                "variants": [
                    {
                        "price": str(product.price),
                        "sku": product.sku,
                        "inventory_quantity": product.inventory,
                        "weight": float(product.shipping_weight),
                        "inventory_management": "shopify",
                    }
                ],
            }
        }
        if product.image_url:
            payload["product"]["images"] = [{"src": product.image_url}]
        if product.source_id:
            payload["product"]["metafields"] = [
                {
                    "namespace": SOURCE_ID_NAMESPACE,
                    "key": SOURCE_ID_KEY,
                    "type": "single_line_text_field",
                    "value": product.source_id,
                }
            ]

        log.info("creating_store_product", title=product.title, source_id=product.source_id)
        try:
            response = self._api.post("products.json", payload)
        except (ApiError, requests.RequestException) as e:
            log.error("failed_to_create_store_product", title=product.title, error=str(e))
            raise WriteError(f"Failed to create product {product.label}: {e}") from e

        external_id = str(response.json()["product"]["id"])
        log.info("store_product_created", external_id=external_id, title=product.title)
        return external_id

    def update_record(self, external_id: str, update: ProductUpdate) -> None:
        """
        Apply a partial update to a product.

        Variant-level fields (price, sku, inventory, weight) are written to the
        first variant before the product-level fields. The two calls are not
        atomic.

        Raises:
            WriteError: If the first mutation fails (nothing was applied)
            PartialWriteError: If the product call fails after the variant call succeeded
        """
        variant_fields = update.variant_fields
        product_fields = update.product_fields
        completed: list[str] = []

        log.info(
            "updating_store_product",
            external_id=external_id,
            variant_fields=sorted(variant_fields),
            product_fields=sorted(product_fields),
        )

        if variant_fields:
            try:
                variant_id = self._first_variant_id(external_id)
                self._api.put(
                    f"variants/{variant_id}.json",
                    {"variant": _variant_payload(variant_fields)},
                )
            except (ApiError, requests.RequestException) as e:
                log.error("failed_to_update_variant", external_id=external_id, error=str(e))
                raise WriteError(f"Failed to update variant of product {external_id}: {e}") from e
            completed.append("variant")

        if product_fields:
            try:
                self._api.put(
                    f"products/{external_id}.json",
                    {"product": _product_payload(product_fields)},
                )
            except (ApiError, requests.RequestException) as e:
                log.error(
                    "failed_to_update_product",
                    external_id=external_id,
                    completed_calls=completed,
                    error=str(e),
                )
                if completed:
                    raise PartialWriteError("product", completed, e) from e
                raise WriteError(f"Failed to update product {external_id}: {e}") from e
            completed.append("product")

        log.info("store_product_updated", external_id=external_id, calls=completed)

    def _first_variant_id(self, external_id: str) -> str:
        response = self._api.get(f"products/{external_id}.json", params={"fields": "id,variants"})
        body = response.json()
        variants = (body.get("product") or {}).get("variants") or []
        if not variants:
            raise WriteError(f"Product {external_id} has no variants")
        return str(variants[0]["id"])

    def _products_page(self, cursor: str | None) -> Page:
        if cursor is None:
            response = self._api.get(
                "products.json",
                params={"limit": self._page_size, "fields": PRODUCT_FIELDS},
            )
        else:
            # The next-page URL already carries page_info and limit
            response = self._api.get(cursor)
        next_url = response.links.get("next", {}).get("url")
        return Page(response.json().get("products", []), next_url)

    def _convert_to_product(self, raw: dict[str, Any]) -> CanonicalProduct:
        """
        Convert a REST product to a canonical product.

        Variant data comes from the first variant. The description is the
        plain text of body_html.

        Raises:
            ValueError: If the product has no id
        """
        if raw.get("id") in (None, ""):
            raise ValueError("Store product without an id")

        variants = raw.get("variants") or []
        variant = variants[0] if variants else {}
        image = raw.get("image") or {}

        return CanonicalProduct(
            external_id=str(raw["id"]),
            title=raw.get("title"),
            price=variant.get("price"),
            inventory=variant.get("inventory_quantity"),
            sku=variant.get("sku"),
            status=ProductStatus.parse(raw.get("status")),
            category=raw.get("product_type"),
            vendor=raw.get("vendor"),
            tags=raw.get("tags"),
            image_url=image.get("src"),
            shipping_weight=variant.get("weight"),
            description=strip_markup(raw.get("body_html")),
        )


def _text_to_html(text: str) -> str:
    return f"<p>{html.escape(text)}</p>" if text else ""


def _variant_payload(fields: dict[str, Any]) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    if "price" in fields:
        payload["price"] = str(fields["price"])
    if "sku" in fields:
        payload["sku"] = fields["sku"]
    if "inventory" in fields:
        payload["inventory_quantity"] = int(fields["inventory"])
    if "shipping_weight" in fields:
        payload["weight"] = float(fields["shipping_weight"])
    return payload


def _product_payload(fields: dict[str, Any]) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    if "title" in fields:
        payload["title"] = fields["title"]
    if "description_html" in fields:
        payload["body_html"] = fields["description_html"]
    if "category" in fields:
        payload["product_type"] = fields["category"]
    if "vendor" in fields:
        payload["vendor"] = fields["vendor"]
    if "tags" in fields:
        payload["tags"] = fields["tags"]
    if "status" in fields:
        payload["status"] = ProductStatus.parse(fields["status"]).to_commerce()
    return payload
