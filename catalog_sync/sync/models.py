"""Data models for synchronization operations."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from catalog_sync.models.product import CanonicalProduct


class SyncStrategy(str, Enum):
    """Which records a run processes and how."""

    FULL = "full"
    SMART_INCREMENTAL = "smart_incremental"
    CREATE_ONLY = "create_only"


class ChangeClassification(str, Enum):
    NEW = "new"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


class RecordState(str, Enum):
    """Terminal states of a record within one run."""

    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


class ChangeEntry(BaseModel):
    """Detector verdict for one database record."""

    source_record: CanonicalProduct
    target_record: CanonicalProduct | None = None
    classification: ChangeClassification
    compared_description: str | None = Field(
        default=None, description="Plain text compared against the store description"
    )
    rendered_content: str | None = Field(
        default=None, description="Rendered page markup the description was derived from"
    )
    dangling_link: bool = Field(
        default=False, description="Linked, but the store product no longer exists"
    )
    changed_fields: list[str] = Field(default_factory=list)


class ChangeSet(BaseModel):
    """Changes detected between the database and the store."""

    entries: list[ChangeEntry] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Soft failures, e.g. descriptions that could not be rendered",
    )

    def __len__(self) -> int:
        return len(self.entries)

    def _with(self, classification: ChangeClassification) -> list[ChangeEntry]:
        return [e for e in self.entries if e.classification == classification]

    @property
    def new_entries(self) -> list[ChangeEntry]:
        return self._with(ChangeClassification.NEW)

    @property
    def updated_entries(self) -> list[ChangeEntry]:
        return self._with(ChangeClassification.UPDATED)

    @property
    def dangling_entries(self) -> list[ChangeEntry]:
        return [e for e in self.entries if e.dangling_link]

    @property
    def has_changes(self) -> bool:
        """Check if there are any actionable entries."""
        return any(e.classification != ChangeClassification.UNCHANGED for e in self.entries)


class RecordOutcome(BaseModel):
    """Result of processing a single record."""

    source_id: str | None = None
    title: str = ""
    state: RecordState
    external_id: str | None = None
    reason: str | None = Field(default=None, description="Why the record was skipped")
    error_kind: str | None = None
    detail: str | None = None


class RecordError(BaseModel):
    """A record whose write was attempted and failed."""

    source_id: str | None = None
    title: str = ""
    error_kind: str = Field(default=..., description="Error class name, e.g. WriteError")
    detail: str = ""


class SkippedRecord(BaseModel):
    """A record that was intentionally not attempted."""

    source_id: str | None = None
    title: str = ""
    reason: str


class LinkRecord(BaseModel):
    """A store product created for a database record whose link was not stored."""

    source_id: str
    external_id: str


class SyncResult(BaseModel):
    """Summary of one synchronization run."""

    strategy: str = Field(default=..., description="Strategy or operation that produced the result")
    account_id: str = Field(default=..., description="Connected account the run used")
    total_considered: int = Field(default=0, ge=0, description="Records the run looked at")
    changed: int = Field(default=0, ge=0, description="Actionable entries found by detection")
    created: int = Field(default=0, ge=0)
    synced: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    errors: list[RecordError] = Field(default_factory=list)
    skipped_records: list[SkippedRecord] = Field(default_factory=list)
    link_inconsistencies: list[LinkRecord] = Field(default_factory=list)
    dangling_links: list[str] = Field(
        default_factory=list, description="Source ids linked to store products that no longer exist"
    )
    warnings: list[str] = Field(default_factory=list)
    fatal_error: str | None = Field(default=None, description="Set when the run was aborted")
    cancelled: bool = False
    start_time: datetime = Field(default_factory=datetime.now)
    end_time: datetime | None = None
    duration_seconds: float = Field(default=0.0, ge=0.0)

    @property
    def total_processed(self) -> int:
        return self.created + self.synced + self.skipped + len(self.errors)

    @property
    def success(self) -> bool:
        """Check if the run completed without fatal or per-record errors."""
        return self.fatal_error is None and not self.errors

    def record(self, outcome: RecordOutcome) -> None:
        """Count a terminal record outcome."""
        if outcome.state == RecordState.CREATED:
            self.created += 1
        elif outcome.state == RecordState.UPDATED:
            self.synced += 1
        elif outcome.state == RecordState.SKIPPED:
            self.skipped += 1
            self.skipped_records.append(
                SkippedRecord(
                    source_id=outcome.source_id,
                    title=outcome.title,
                    reason=outcome.reason or "",
                )
            )
        else:
            self.errors.append(
                RecordError(
                    source_id=outcome.source_id,
                    title=outcome.title,
                    error_kind=outcome.error_kind or "Error",
                    detail=outcome.detail or "",
                )
            )

    def finish(self) -> "SyncResult":
        self.end_time = datetime.now()
        self.duration_seconds = max((self.end_time - self.start_time).total_seconds(), 0.0)
        return self
