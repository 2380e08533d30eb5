"""Synchronization coordinator for pushing the product database to a commerce store."""

import threading
from functools import partial
from typing import Callable

import structlog

from catalog_sync.errors import (
    CatalogSyncError,
    FatalSyncError,
    LinkInconsistency,
    RecordValidationError,
)
from catalog_sync.models.config import AppConfig, SyncConfig
from catalog_sync.models.product import CanonicalProduct, Credential, ProductUpdate
from catalog_sync.sources.base import CommerceCatalog, SourceCatalog
from catalog_sync.sources.credentials import CredentialProvider, CredentialStore
from catalog_sync.sources.notion_client import NotionCatalog
from catalog_sync.sources.shopify_client import ShopifyCatalog
from catalog_sync.sync.change_detector import ChangeDetector
from catalog_sync.sync.models import (
    LinkRecord,
    RecordOutcome,
    RecordState,
    SyncResult,
    SyncStrategy,
)

log = structlog.stdlib.get_logger()

CommerceFactory = Callable[[Credential], CommerceCatalog]

IMPORT_OPERATION = "import_from_commerce"


class SyncCoordinator:
    """Orchestrates synchronization from the product database to a commerce store."""

    def __init__(
        self,
        source_catalog: SourceCatalog,
        credential_provider: CredentialProvider,
        commerce_factory: CommerceFactory,
        change_detector: ChangeDetector | None = None,
        sync_config: SyncConfig | None = None,
    ):
        """
        Initialize sync coordinator.

        Args:
            source_catalog: Client for the product database
            credential_provider: Lookup of commerce credentials by account id
            commerce_factory: Builds a commerce client for a credential
            change_detector: Optional detector (a default one is created if None)
            sync_config: Optional run settings (defaults if None)
        """
        self._source = source_catalog
        self._credentials = credential_provider
        self._commerce_factory = commerce_factory
        self._change_detector = change_detector or ChangeDetector()
        self._sync_config = sync_config or SyncConfig()

        log.info("sync_coordinator_initialized")

    @classmethod
    def from_config(cls, config: AppConfig) -> "SyncCoordinator":
        """Wire the Notion and Shopify clients described by the application config."""
        return cls(
            source_catalog=NotionCatalog.from_config(config.notion, config.sync),
            credential_provider=CredentialStore.from_config(config.shopify),
            commerce_factory=partial(
                ShopifyCatalog.from_credential, shopify=config.shopify, sync=config.sync
            ),
            sync_config=config.sync,
        )

    def run(
        self,
        strategy: SyncStrategy | str,
        account_id: str,
        cancel_event: threading.Event | None = None,
    ) -> SyncResult:
        """
        Run one synchronization pass.

        Fatal problems (a catalog that cannot be read, a missing credential)
        end the run and are reported in ``fatal_error``. Failures of single
        records are recorded in the result and never stop the batch.

        Args:
            strategy: Full, SmartIncremental or CreateOnly
            account_id: Connected account whose store is synchronized
            cancel_event: Optional event; once set, remaining records are left unprocessed

        Returns:
            SyncResult with counts, per-record errors and warnings
        """
        strategy = SyncStrategy(strategy)
        result = SyncResult(strategy=strategy.value, account_id=account_id)

        with structlog.contextvars.bound_contextvars(
            strategy=strategy.value, account_id=account_id
        ):
            log.info("sync_run_started")
            try:
                commerce = self._connect(account_id)
                if strategy == SyncStrategy.FULL:
                    self._run_full(commerce, result, cancel_event)
                elif strategy == SyncStrategy.SMART_INCREMENTAL:
                    self._run_smart(commerce, result, cancel_event)
                else:
                    self._run_create_only(commerce, result, cancel_event)
            except FatalSyncError as e:
                result.fatal_error = str(e)
                log.error("sync_run_failed", error_type=type(e).__name__, error=str(e))

            return self._finish(result)

    def sync_product(
        self,
        account_id: str,
        product: CanonicalProduct,
        description: str | None = None,
    ) -> RecordOutcome:
        """
        Push a single linked record to the store.

        Args:
            account_id: Connected account whose store is updated
            product: Record to push
            description: Optional description markup; rendered from the
                database page when omitted

        Returns:
            RecordOutcome (updated, skipped when unlinked, or failed)

        Raises:
            FatalSyncError: If no credential exists for the account
        """
        commerce = self._connect(account_id)
        warnings: list[str] = []
        outcome = self._attempt(
            product,
            lambda: self._update_product(commerce, product, warnings, description),
        )
        log.info(
            "single_product_synced",
            source_id=product.source_id,
            state=outcome.state.value,
            warnings=len(warnings),
        )
        return outcome

    def import_from_commerce(
        self, account_id: str, cancel_event: threading.Event | None = None
    ) -> SyncResult:
        """
        Create a database page for every store product not yet linked to one.

        Returns:
            SyncResult whose ``created`` counts new pages
        """
        result = SyncResult(strategy=IMPORT_OPERATION, account_id=account_id)
        log.info("import_started", account_id=account_id)

        try:
            commerce = self._connect(account_id)
            store_products = commerce.read_all()
            linked_ids = {
                record.external_id for record in self._source.read_all() if record.is_linked
            }
        except FatalSyncError as e:
            result.fatal_error = str(e)
            log.error("import_failed", account_id=account_id, error=str(e))
            return self._finish(result)

        result.total_considered = len(store_products)
        self._process(
            store_products,
            result,
            cancel_event,
            lambda product: self._import_product(product, linked_ids),
        )
        return self._finish(result)

    def repair_link(self, source_id: str, external_id: str) -> None:
        """
        Store a link that a previous run failed to write.

        Used to resolve a reported link inconsistency once the operator has
        confirmed which store product belongs to the page.

        Raises:
            WriteError: If the page cannot be updated
        """
        log.info("repairing_link", source_id=source_id, external_id=external_id)
        self._source.link_back(source_id, external_id)

    def _connect(self, account_id: str) -> CommerceCatalog:
        credential = self._credentials.fetch_credential(account_id)
        return self._commerce_factory(credential)

    def _run_full(
        self,
        commerce: CommerceCatalog,
        result: SyncResult,
        cancel_event: threading.Event | None,
    ) -> None:
        products = self._source.read_all()
        result.total_considered = len(products)

        self._process(
            products,
            result,
            cancel_event,
            lambda product: self._update_product(commerce, product, result.warnings),
        )

    def _run_smart(
        self,
        commerce: CommerceCatalog,
        result: SyncResult,
        cancel_event: threading.Event | None,
    ) -> None:
        source_products = self._source.read_all()
        store_products = commerce.read_all()
        result.total_considered = len(source_products)

        render = self._source.render_html if self._sync_config.render_descriptions else None
        change_set = self._change_detector.detect(
            source_products,
            store_products,
            render_content=render,
            include_unchanged=self._sync_config.include_unchanged,
        )
        result.warnings.extend(change_set.warnings)
        result.changed = len(change_set.updated_entries)
        result.dangling_links = [
            entry.source_record.source_id or entry.source_record.label
            for entry in change_set.dangling_entries
        ]

        updated = change_set.updated_entries
        rendered = {
            entry.source_record.source_id: entry.rendered_content
            for entry in updated
            if entry.rendered_content is not None
        }
        self._process(
            [entry.source_record for entry in updated],
            result,
            cancel_event,
            lambda product: self._update_product(
                commerce,
                product,
                result.warnings,
                rendered.get(product.source_id),
                render_missing=False,
            ),
        )

    def _run_create_only(
        self,
        commerce: CommerceCatalog,
        result: SyncResult,
        cancel_event: threading.Event | None,
    ) -> None:
        products = self._source.read_all()
        result.total_considered = len(products)

        unlinked = [product for product in products if product.external_id is None]
        result.changed = len(unlinked)

        self._process(
            unlinked,
            result,
            cancel_event,
            lambda product: self._create_product(commerce, product, result),
        )

    def _process(
        self,
        products: list[CanonicalProduct],
        result: SyncResult,
        cancel_event: threading.Event | None,
        handle: Callable[[CanonicalProduct], RecordOutcome],
    ) -> None:
        """Process records one at a time, in order, isolating per-record failures."""
        for index, product in enumerate(products):
            if cancel_event is not None and cancel_event.is_set():
                result.cancelled = True
                log.warning(
                    "sync_run_cancelled",
                    processed=index,
                    remaining=len(products) - index,
                )
                return
            result.record(self._attempt(product, lambda: handle(product)))

    def _attempt(
        self, product: CanonicalProduct, action: Callable[[], RecordOutcome]
    ) -> RecordOutcome:
        try:
            return action()
        except RecordValidationError as e:
            log.info(
                "record_skipped",
                source_id=product.source_id,
                title=product.title,
                reason=e.reason,
            )
            return RecordOutcome(
                source_id=product.source_id,
                title=product.title,
                state=RecordState.SKIPPED,
                external_id=product.external_id,
                reason=e.reason,
            )
        except Exception as e:
            log.error(
                "record_sync_failed",
                source_id=product.source_id,
                external_id=product.external_id,
                title=product.title,
                error_type=type(e).__name__,
                error=str(e),
            )
            return RecordOutcome(
                source_id=product.source_id,
                title=product.title,
                state=RecordState.FAILED,
                external_id=product.external_id,
                error_kind=type(e).__name__,
                detail=str(e),
            )

    def _update_product(
        self,
        commerce: CommerceCatalog,
        product: CanonicalProduct,
        warnings: list[str],
        description_html: str | None = None,
        render_missing: bool = True,
    ) -> RecordOutcome:
        if product.external_id is None:
            raise RecordValidationError("not_linked", product.source_id)

        if description_html is None and render_missing:
            description_html = self._render_description(product, warnings)

        commerce.update_record(
            product.external_id,
            ProductUpdate.from_product(product, description_html=description_html),
        )
        log.info("product_synced", source_id=product.source_id, external_id=product.external_id)
        return RecordOutcome(
            source_id=product.source_id,
            title=product.title,
            state=RecordState.UPDATED,
            external_id=product.external_id,
        )

    def _create_product(
        self,
        commerce: CommerceCatalog,
        product: CanonicalProduct,
        result: SyncResult,
    ) -> RecordOutcome:
        if product.source_id is None:
            raise RecordValidationError("missing_source_id")
        if not product.title.strip():
            raise RecordValidationError("missing_title", product.source_id)

        description_html = self._render_description(product, result.warnings)
        external_id = commerce.create_record(product, description_html=description_html)

        try:
            self._source.link_back(product.source_id, external_id)
        except CatalogSyncError as e:
            # The record stays unlinked; report the orphan store id instead of retrying
            result.link_inconsistencies.append(
                LinkRecord(source_id=product.source_id, external_id=external_id)
            )
            log.error(
                "link_inconsistency",
                source_id=product.source_id,
                external_id=external_id,
                error=str(e),
            )
            raise LinkInconsistency(product.source_id, external_id, e) from e

        log.info("product_created", source_id=product.source_id, external_id=external_id)
        return RecordOutcome(
            source_id=product.source_id,
            title=product.title,
            state=RecordState.CREATED,
            external_id=external_id,
        )

    def _import_product(self, product: CanonicalProduct, linked_ids: set[str]) -> RecordOutcome:
        if product.external_id in linked_ids:
            raise RecordValidationError("already_linked")

        page_id = self._source.create_record(product, description=product.description)
        log.info("product_imported", external_id=product.external_id, page_id=page_id)
        return RecordOutcome(
            source_id=page_id,
            title=product.title,
            state=RecordState.CREATED,
            external_id=product.external_id,
        )

    def _render_description(self, product: CanonicalProduct, warnings: list[str]) -> str | None:
        """Render the page content, or None when rendering is off or fails."""
        if not self._sync_config.render_descriptions or product.source_id is None:
            return None
        try:
            return self._source.render_html(product.source_id)
        except Exception as e:
            warnings.append(f"Could not render description for {product.label}: {e}")
            log.warning(
                "description_render_failed",
                source_id=product.source_id,
                title=product.title,
                error=str(e),
            )
            return None

    def _finish(self, result: SyncResult) -> SyncResult:
        result.finish()
        log.info(
            "sync_run_completed",
            strategy=result.strategy,
            account_id=result.account_id,
            total_considered=result.total_considered,
            created=result.created,
            synced=result.synced,
            skipped=result.skipped,
            errors=len(result.errors),
            cancelled=result.cancelled,
            duration_seconds=result.duration_seconds,
            success=result.success,
        )
        return result
