"""Pydantic models for canonical product records."""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator


class ProductStatus(str, Enum):
    """Publication status of a product."""

    ACTIVE = "Active"
    DRAFT = "Draft"

    @classmethod
    def parse(cls, value: str | None) -> "ProductStatus":
        """Map either vocabulary (Active/Draft, active/draft/archived) to a status."""
        return cls.ACTIVE if (value or "").lower() == "active" else cls.DRAFT

    def to_commerce(self) -> str:
        return "active" if self is ProductStatus.ACTIVE else "draft"


def to_decimal(value: Any) -> Decimal:
    """Parse a number or numeric string into a Decimal, defaulting to zero."""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        # str() first so floats keep their shortest repr ("19.99", not the binary expansion)
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"Not a valid decimal: {value!r}")


class CanonicalProduct(BaseModel):
    """Source-independent representation of a product."""

    source_id: str | None = Field(default=None, description="Database page identifier")
    external_id: str | None = Field(
        default=None, description="Commerce product identifier; None means unlinked"
    )
    title: str = Field(default="", description="Product title")
    price: Decimal = Field(default=Decimal("0"), description="Unit price")
    inventory: int = Field(default=0, description="Stock count")
    sku: str = Field(default="", description="Stock keeping unit")
    status: ProductStatus = Field(default=ProductStatus.DRAFT, description="Publication status")
    category: str = Field(default="", description="Free-text product category")
    vendor: str = Field(default="", description="Free-text vendor name")
    tags: str = Field(default="", description="Comma-separated tags")
    collection: str = Field(default="", description="Free-text collection name")
    image_url: str = Field(default="", description="Primary image URL")
    shipping_weight: Decimal = Field(default=Decimal("0"), description="Shipping weight")
    description: str = Field(default="", description="Plain-text description")

    @field_validator("price", "shipping_weight", mode="before")
    @classmethod
    def parse_decimal(cls, v: Any) -> Decimal:
        return to_decimal(v)

    @field_validator("inventory", mode="before")
    @classmethod
    def parse_inventory(cls, v: Any) -> int:
        if v is None or v == "":
            return 0
        return int(to_decimal(v))

    @field_validator(
        "title", "sku", "category", "vendor", "tags", "collection", "image_url", "description",
        mode="before",
    )
    @classmethod
    def default_text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v: Any) -> Any:
        # Either vocabulary; blank or unknown values fall back to Draft
        if isinstance(v, ProductStatus):
            return v
        if v is None or isinstance(v, str):
            return ProductStatus.parse(v)
        return v

    @field_validator("source_id", "external_id", mode="before")
    @classmethod
    def normalize_identifier(cls, v: Any) -> str | None:
        # An empty identifier is no identifier; never keep "" as a link
        if v is None:
            return None
        text = str(v).strip()
        return text or None

    @property
    def is_linked(self) -> bool:
        return self.external_id is not None

    @property
    def label(self) -> str:
        """Human-readable identifier for logs and error reports."""
        return self.title or self.source_id or self.external_id or "<untitled>"

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "source_id": "0f6c1a9e-4f3b-4d8e-9a63-1e2b3c4d5e6f",
                "external_id": "8123456789",
                "title": "Stoneware Mug",
                "price": "19.99",
                "inventory": 12,
                "sku": "MUG-001",
                "status": "Active",
                "category": "Kitchen",
                "vendor": "Clayworks",
                "tags": "ceramic, handmade",
                "image_url": "https://cdn.example.com/mug.jpg",
                "shipping_weight": "0.4",
                "description": "Hand-thrown stoneware mug.",
            }
        },
    )


def _filled(value: str) -> str | None:
    return value if value.strip() else None


class ProductUpdate(BaseModel):
    """Partial set of fields to write to an existing commerce product.

    Fields left as None are not sent.
    """

    title: str | None = None
    description_html: str | None = None
    category: str | None = None
    vendor: str | None = None
    tags: str | None = None
    status: ProductStatus | None = None
    price: Decimal | None = None
    inventory: int | None = None
    sku: str | None = None
    shipping_weight: Decimal | None = None

    VARIANT_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"price", "inventory", "sku", "shipping_weight"}
    )

    @classmethod
    def from_product(
        cls, product: CanonicalProduct, description_html: str | None = None
    ) -> "ProductUpdate":
        """Build a full update from a canonical record.

        Blank text fields are left out and the store keeps its value for them;
        the description is only included when it was actually rendered.
        """
        return cls(
            title=_filled(product.title),
            description_html=description_html,
            category=_filled(product.category),
            vendor=_filled(product.vendor),
            tags=_filled(product.tags),
            status=product.status,
            price=product.price,
            inventory=product.inventory,
            sku=_filled(product.sku),
            shipping_weight=product.shipping_weight,
        )

    def fields_set(self) -> dict[str, Any]:
        return {
            name: getattr(self, name)
            for name in type(self).model_fields
            if getattr(self, name) is not None
        }

    @property
    def variant_fields(self) -> dict[str, Any]:
        return {k: v for k, v in self.fields_set().items() if k in self.VARIANT_FIELDS}

    @property
    def product_fields(self) -> dict[str, Any]:
        return {k: v for k, v in self.fields_set().items() if k not in self.VARIANT_FIELDS}


class Credential(BaseModel):
    """Access credential for one connected commerce store."""

    account_id: str = Field(default=..., description="Connected account identifier")
    shop_domain: str = Field(default=..., description="Store domain, e.g. example.myshopify.com")
    access_token: SecretStr = Field(default=..., description="Admin API access token")
