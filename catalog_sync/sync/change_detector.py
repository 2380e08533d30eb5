"""Change detection between database records and store products."""

from typing import Callable

import structlog

from catalog_sync.models.product import CanonicalProduct
from catalog_sync.sources.rendering import strip_markup
from catalog_sync.sync.models import ChangeClassification, ChangeEntry, ChangeSet

log = structlog.stdlib.get_logger()

TEXT_FIELDS = ("title", "sku", "category", "vendor", "tags")
COMPARED_FIELDS = ("title", "price", "inventory", "sku", "status", "category", "vendor", "tags")


def _text(value: str | None) -> str:
    return (value or "").strip()


class ChangeDetector:
    """Classifies database records as New, Updated or Unchanged against the store."""

    def detect(
        self,
        source_records: list[CanonicalProduct],
        target_records: list[CanonicalProduct],
        render_content: Callable[[str], str] | None = None,
        include_unchanged: bool = False,
    ) -> ChangeSet:
        """
        Detect which database records need to be created or updated.

        Args:
            source_records: Records read from the product database
            target_records: Records read from the commerce store
            render_content: Optional callable returning the rendered content
                of a database page; when given, descriptions are compared too
            include_unchanged: Keep Unchanged entries in the result

        Returns:
            ChangeSet with one entry per actionable record, in source order
        """
        log.info(
            "detecting_changes",
            source_count=len(source_records),
            target_count=len(target_records),
            compare_descriptions=render_content is not None,
        )

        targets_by_id: dict[str, CanonicalProduct] = {
            record.external_id: record
            for record in target_records
            if record.external_id is not None
        }

        change_set = ChangeSet()
        for source in source_records:
            entry = self._detect_one(source, targets_by_id, render_content, change_set.warnings)
            if entry.classification == ChangeClassification.UNCHANGED and not include_unchanged:
                continue
            change_set.entries.append(entry)

        log.info(
            "changes_detected",
            new=len(change_set.new_entries),
            updated=len(change_set.updated_entries),
            dangling=len(change_set.dangling_entries),
            warnings=len(change_set.warnings),
        )
        return change_set

    def _detect_one(
        self,
        source: CanonicalProduct,
        targets_by_id: dict[str, CanonicalProduct],
        render_content: Callable[[str], str] | None,
        warnings: list[str],
    ) -> ChangeEntry:
        if source.external_id is None:
            return ChangeEntry(source_record=source, classification=ChangeClassification.NEW)

        target = targets_by_id.get(source.external_id)
        if target is None:
            log.warning(
                "dangling_link_detected",
                source_id=source.source_id,
                external_id=source.external_id,
                title=source.title,
            )
            return ChangeEntry(
                source_record=source,
                classification=ChangeClassification.NEW,
                dangling_link=True,
            )

        rendered: str | None = None
        description: str | None = None
        if render_content is not None and source.source_id:
            try:
                rendered = render_content(source.source_id)
                description = strip_markup(rendered)
            except Exception as e:
                message = f"Could not render description for {source.label}: {e}"
                warnings.append(message)
                log.warning(
                    "description_render_failed",
                    source_id=source.source_id,
                    title=source.title,
                    error=str(e),
                )

        changed = self.changed_fields(source, target, description)
        if changed:
            log.debug(
                "product_changed",
                source_id=source.source_id,
                external_id=source.external_id,
                changed_fields=changed,
            )

        classification = (
            ChangeClassification.UPDATED if changed else ChangeClassification.UNCHANGED
        )
        return ChangeEntry(
            source_record=source,
            target_record=target,
            classification=classification,
            compared_description=description,
            rendered_content=rendered,
            changed_fields=changed,
        )

    def changed_fields(
        self,
        source: CanonicalProduct,
        target: CanonicalProduct,
        description: str | None = None,
    ) -> list[str]:
        """
        List the compared fields on which two records differ.

        Text is compared with surrounding whitespace ignored, numbers as
        decimals. A blank database text field is never written to the store,
        so it is not compared either. The description is only compared when
        given.
        """
        changed: list[str] = []

        for field in COMPARED_FIELDS:
            left = getattr(source, field)
            right = getattr(target, field)
            if field in TEXT_FIELDS:
                left, right = _text(left), _text(right)
                if not left:
                    continue
            if left != right:
                changed.append(field)

        if description is not None and _text(description) != _text(target.description):
            changed.append("description")

        return changed

    def is_changed(
        self,
        source: CanonicalProduct,
        target: CanonicalProduct | None,
        description: str | None = None,
    ) -> bool:
        """Return True if the pair differs, or if there is no store product at all."""
        if target is None:
            return True
        return bool(self.changed_fields(source, target, description))
