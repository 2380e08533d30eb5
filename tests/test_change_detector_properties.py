"""Property-based tests for change detection.

**Feature: catalog-sync, Property 1: Unlinked records are new**
**Feature: catalog-sync, Property 2: Equal pairs are unchanged**
**Feature: catalog-sync, Property 3: Single-field drift is detected**
"""

from decimal import Decimal

import pytest
import structlog
from hypothesis import given, settings
from hypothesis import strategies as st

from catalog_sync.errors import ApiError
from catalog_sync.models import CanonicalProduct, ProductStatus
from catalog_sync.sync.change_detector import COMPARED_FIELDS, ChangeDetector
from catalog_sync.sync.models import ChangeClassification

log = structlog.stdlib.get_logger()

words = st.text(alphabet="abcdefghijklmnopqrstuvwxyz -", max_size=20)
filled_words = st.text(alphabet="abcdefghijklmnopqrstuvwxyz", min_size=1, max_size=20)


@st.composite
def product_strategy(draw, linked: bool | None = None, text=words) -> CanonicalProduct:
    """Generate a database record, optionally forcing it linked or unlinked."""
    if linked is None:
        linked = draw(st.booleans())
    return CanonicalProduct(
        source_id=str(draw(st.uuids())),
        external_id=str(draw(st.integers(min_value=1, max_value=10**12))) if linked else None,
        title=draw(text),
        price=draw(st.decimals(min_value=0, max_value=10000, places=2)),
        inventory=draw(st.integers(min_value=0, max_value=10000)),
        sku=draw(text),
        status=draw(st.sampled_from(list(ProductStatus))),
        category=draw(text),
        vendor=draw(text),
        tags=draw(text),
        shipping_weight=draw(st.decimals(min_value=0, max_value=100, places=3)),
    )


def store_copy(product: CanonicalProduct) -> CanonicalProduct:
    """The same product as the store reports it: string prices, padded text."""
    return CanonicalProduct(
        external_id=product.external_id,
        title=f"  {product.title}  ",
        price=str(product.price),
        inventory=str(product.inventory),
        sku=product.sku or None,
        status=product.status.to_commerce(),
        category=product.category,
        vendor=f"{product.vendor}\n",
        tags=product.tags or None,
        shipping_weight=float(product.shipping_weight),
    )


def drifted(product: CanonicalProduct, field: str) -> CanonicalProduct:
    if field == "price":
        value = product.price + Decimal("1.00")
    elif field == "inventory":
        value = product.inventory + 1
    elif field == "status":
        value = (
            ProductStatus.DRAFT if product.status is ProductStatus.ACTIVE else ProductStatus.ACTIVE
        )
    else:
        value = f"{getattr(product, field)}x"
    return product.model_copy(update={field: value})


@given(
    st.lists(product_strategy(linked=False), max_size=10),
    st.lists(product_strategy(linked=True), max_size=10),
)
@settings(max_examples=100)
def test_property_1_unlinked_records_are_new(
    unlinked: list[CanonicalProduct], store: list[CanonicalProduct]
):
    """Property 1: Unlinked records are new.

    For any record without a link, the classification is New regardless of
    its fields or of what the store holds.
    """
    change_set = ChangeDetector().detect(unlinked, store)

    assert len(change_set) == len(unlinked)
    assert all(e.classification == ChangeClassification.NEW for e in change_set.entries)
    assert all(e.target_record is None and not e.dangling_link for e in change_set.entries)


@given(product_strategy(linked=True))
@settings(max_examples=100)
def test_property_2_equal_pairs_are_unchanged(product: CanonicalProduct):
    """Property 2: Equal pairs are unchanged.

    For any linked pair equal after normalizing numbers, padding and empty
    text, the classification is Unchanged and the entry is dropped.
    """
    detector = ChangeDetector()
    target = store_copy(product)

    assert detector.detect([product], [target]).entries == []

    kept = detector.detect([product], [target], include_unchanged=True)
    assert len(kept) == 1
    assert kept.entries[0].classification == ChangeClassification.UNCHANGED
    assert kept.entries[0].changed_fields == []
    assert not kept.has_changes


@given(product_strategy(linked=True, text=filled_words), st.sampled_from(COMPARED_FIELDS))
@settings(max_examples=200)
def test_property_3_single_field_drift_is_updated(product: CanonicalProduct, field: str):
    """Property 3: Single-field drift is detected.

    For any linked pair differing in exactly one compared field, the
    classification is Updated and only that field is reported.
    """
    target = store_copy(drifted(product, field))

    change_set = ChangeDetector().detect([product], [target])

    assert len(change_set) == 1
    entry = change_set.entries[0]
    assert entry.classification == ChangeClassification.UPDATED
    assert entry.changed_fields == [field]
    assert entry.target_record == target


def test_string_and_float_prices_compare_equal():
    source = CanonicalProduct(source_id="s2", external_id="b2", title="Cup", price=9.99)
    target = CanonicalProduct(external_id="b2", title="Cup", price="9.99")

    assert ChangeDetector().changed_fields(source, target) == []


def test_dangling_link_is_new_and_flagged():
    source = CanonicalProduct(source_id="s3", external_id="gone", title="Bowl")

    change_set = ChangeDetector().detect([source], [])

    (entry,) = change_set.entries
    assert entry.classification == ChangeClassification.NEW
    assert entry.dangling_link is True
    assert change_set.dangling_entries == [entry]


def test_entries_follow_source_order():
    sources = [
        CanonicalProduct(source_id="a", title="A"),
        CanonicalProduct(source_id="b", external_id="1", title="B"),
        CanonicalProduct(source_id="c", title="C"),
    ]
    store = [CanonicalProduct(external_id="1", title="Changed")]

    change_set = ChangeDetector().detect(sources, store)

    assert [e.source_record.source_id for e in change_set.entries] == ["a", "b", "c"]
    assert len(change_set.new_entries) == 2
    assert len(change_set.updated_entries) == 1


class TestDescriptionComparison:
    """Descriptions are compared only when rendered content is available."""

    source = CanonicalProduct(source_id="s1", external_id="b1", title="Mug")

    def test_matching_description_after_stripping_markup(self):
        target = self.source.model_copy(
            update={"source_id": None, "description": "Hand thrown mug"}
        )

        change_set = ChangeDetector().detect(
            [self.source],
            [target],
            render_content=lambda page_id: "<p>Hand&nbsp;thrown <strong>mug</strong></p>",
            include_unchanged=True,
        )

        (entry,) = change_set.entries
        assert entry.classification == ChangeClassification.UNCHANGED
        assert entry.compared_description == "Hand thrown mug"
        assert entry.rendered_content.startswith("<p>")

    def test_changed_description_is_updated(self):
        target = self.source.model_copy(update={"source_id": None, "description": "Old text"})

        change_set = ChangeDetector().detect(
            [self.source], [target], render_content=lambda page_id: "<p>New text</p>"
        )

        assert change_set.entries[0].changed_fields == ["description"]

    def test_description_ignored_without_renderer(self):
        target = self.source.model_copy(update={"source_id": None, "description": "Anything"})

        assert ChangeDetector().detect([self.source], [target]).entries == []

    def test_render_failure_is_a_warning(self):
        target = self.source.model_copy(update={"source_id": None, "description": "Anything"})

        def failing_render(page_id: str) -> str:
            raise ApiError("rate limited", status_code=429)

        change_set = ChangeDetector().detect(
            [self.source], [target], render_content=failing_render, include_unchanged=True
        )

        (entry,) = change_set.entries
        assert entry.classification == ChangeClassification.UNCHANGED
        assert entry.compared_description is None
        assert len(change_set.warnings) == 1
        assert "Mug" in change_set.warnings[0]

    def test_renderer_called_only_for_linked_and_found_records(self):
        calls: list[str] = []

        def render(page_id: str) -> str:
            calls.append(page_id)
            return ""

        sources = [
            self.source,
            CanonicalProduct(source_id="s2", title="Unlinked"),
            CanonicalProduct(source_id="s3", external_id="gone", title="Dangling"),
        ]
        store = [self.source.model_copy(update={"source_id": None})]
        ChangeDetector().detect(sources, store, render)

        assert calls == ["s1"]


@pytest.mark.parametrize(
    "source_value,target_value",
    [(None, ""), ("", None), (" ", ""), ("MUG-1 ", "MUG-1")],
)
def test_empty_and_padded_text_compare_equal(source_value, target_value):
    source = CanonicalProduct(source_id="s1", external_id="b1", sku=source_value)
    target = CanonicalProduct(external_id="b1", sku=target_value)

    assert not ChangeDetector().is_changed(source, target)


def test_missing_target_counts_as_changed():
    assert ChangeDetector().is_changed(CanonicalProduct(source_id="s1"), None)


@given(product_strategy(linked=True), st.sampled_from(["sku", "category", "vendor", "tags"]))
@settings(max_examples=100)
def test_blank_database_text_is_not_compared(product: CanonicalProduct, field: str):
    """A blank database field leaves whatever the store holds unmanaged."""
    source = product.model_copy(update={field: ""})
    target = store_copy(product).model_copy(update={field: "Notion Sync"})

    assert field not in ChangeDetector().changed_fields(source, target)


def test_store_status_vocabulary_is_accepted():
    source = CanonicalProduct(source_id="s1", external_id="b1", title="Mug", status="Active")
    target = CanonicalProduct(external_id="b1", title="Mug", status="active")

    assert target.status is ProductStatus.ACTIVE
    assert ChangeDetector().changed_fields(source, target) == []
