#!/usr/bin/env python3
"""
Catalog synchronization script.

Pushes the Notion product database to a connected Shopify store using one
of three strategies:
- full: update every linked product
- smart_incremental: update only linked products whose fields changed
- create_only: create store products for unlinked pages and link them back

Designed to be run on a schedule (e.g., via cron or a CI job).

Usage:
    python scripts/run_sync.py [--config CONFIG_PATH] [--strategy STRATEGY] [--account ACCOUNT_ID]
    python scripts/run_sync.py --import [--account ACCOUNT_ID]
    python scripts/run_sync.py --repair-link SOURCE_ID EXTERNAL_ID
"""

import argparse
import sys

from catalog_sync.errors import CatalogSyncError
from catalog_sync.sync.models import SyncResult, SyncStrategy
from catalog_sync.sync.sync_coordinator import SyncCoordinator
from catalog_sync.utils.config_loader import ConfigLoader, ConfigurationError
from catalog_sync.utils.logging_config import configure_from, get_logger

log = get_logger(__name__)


def print_summary(result: SyncResult) -> None:
    """Print a human-readable summary of a run."""
    print("\n" + "=" * 60)
    print("SYNCHRONIZATION SUMMARY")
    print("=" * 60)

    print(f"Status: {'SUCCESS' if result.success else 'FAILED'}")
    print(f"Strategy: {result.strategy}")
    print(f"Account: {result.account_id}")

    if result.fatal_error:
        print(f"Error: {result.fatal_error}")
    else:
        print(f"Records Considered: {result.total_considered}")
        print(f"Created: {result.created}")
        print(f"Synced: {result.synced}")
        print(f"Skipped: {result.skipped}")
        print(f"Errors: {len(result.errors)}")
        for error in result.errors:
            print(f"  - {error.title or error.source_id}: {error.error_kind}: {error.detail}")
        for link in result.link_inconsistencies:
            print(
                f"  ! {link.source_id} was created as {link.external_id} but not linked; "
                f"run --repair-link {link.source_id} {link.external_id}"
            )
        for source_id in result.dangling_links:
            print(f"  ? {source_id} is linked to a product that no longer exists")
        if result.warnings:
            print(f"Warnings: {len(result.warnings)}")
        if result.cancelled:
            print("Run was cancelled before all records were processed")

    print(f"Duration: {result.duration_seconds:.2f} seconds")
    print("=" * 60)


def main() -> None:
    """Main entry point for the sync script."""
    parser = argparse.ArgumentParser(description="Synchronize a Notion product database to Shopify")
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration file",
        default=None,
    )
    parser.add_argument(
        "--strategy",
        choices=[s.value for s in SyncStrategy],
        default=SyncStrategy.SMART_INCREMENTAL.value,
        help="Synchronization strategy (default: smart_incremental)",
    )
    parser.add_argument(
        "--account",
        type=str,
        default="main",
        help="Connected Shopify account id (default: main)",
    )
    parser.add_argument(
        "--import",
        dest="import_products",
        action="store_true",
        help="Import store products into the database instead of syncing",
    )
    parser.add_argument(
        "--repair-link",
        nargs=2,
        metavar=("SOURCE_ID", "EXTERNAL_ID"),
        help="Store a missing link reported by a previous create_only run",
    )

    args = parser.parse_args()

    try:
        config_loader = ConfigLoader()
        config = config_loader.load_config(args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    configure_from(config.logging)
    for warning in config_loader.validate_config(config):
        log.warning("configuration_warning", warning=warning)

    coordinator = SyncCoordinator.from_config(config)

    if args.repair_link:
        source_id, external_id = args.repair_link
        try:
            coordinator.repair_link(source_id, external_id)
        except CatalogSyncError as e:
            log.error("repair_link_failed", source_id=source_id, error=str(e))
            print(f"Failed to link {source_id} to {external_id}: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"Linked {source_id} to {external_id}")
        sys.exit(0)

    if args.import_products:
        result = coordinator.import_from_commerce(args.account)
    else:
        result = coordinator.run(args.strategy, args.account)

    print_summary(result)

    sys.exit(0 if result.success else 1)


if __name__ == "__main__":
    main()
