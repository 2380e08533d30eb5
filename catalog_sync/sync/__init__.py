"""Change detection and synchronization between the product database and the store."""

from catalog_sync.sync.change_detector import ChangeDetector
from catalog_sync.sync.models import (
    ChangeClassification,
    ChangeEntry,
    ChangeSet,
    LinkRecord,
    RecordError,
    RecordOutcome,
    RecordState,
    SkippedRecord,
    SyncResult,
    SyncStrategy,
)
from catalog_sync.sync.sync_coordinator import SyncCoordinator

__all__ = [
    "ChangeClassification",
    "ChangeDetector",
    "ChangeEntry",
    "ChangeSet",
    "LinkRecord",
    "RecordError",
    "RecordOutcome",
    "RecordState",
    "SkippedRecord",
    "SyncCoordinator",
    "SyncResult",
    "SyncStrategy",
]
