#!/usr/bin/env python3
"""
Trust & Safety Maintenance Script
=================================

Batch jobs for the warnings collection and store setup. Intended to be run
on a schedule (cron, k8s CronJob) against the configured document store.

Usage:
    python scripts/maintenance.py --all
    python scripts/maintenance.py --create-indexes
    python scripts/maintenance.py --expire-warnings
    python scripts/maintenance.py --cleanup-days 365
    python scripts/maintenance.py --sync-counts

Version: 0.1.0
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from services.trust_safety.services import WarningService
from services.trust_safety.services.warnings import DEFAULT_RETENTION_DAYS
from shared.exceptions import TrustSafetyError
from shared.logging import get_logger, setup_logging
from shared.store import DocumentStore, StoreError, get_document_store

setup_logging(log_level="INFO", json_logs=False, service_name="trust-safety-maintenance")
logger = get_logger(__name__)


async def create_indexes(store: DocumentStore) -> bool:
    """Build the store's unique and lookup indexes."""
    try:
        await store.create_indexes()
        logger.info("indexes_created", mode=store.mode.value)
        return True
    except StoreError as e:
        logger.error("index_creation_failed", error=str(e))
        return False


async def expire_warnings(service: WarningService) -> bool:
    try:
        expired = await service.expire_old_warnings()
        logger.info("expire_sweep_finished", expired=expired)
        return True
    except (TrustSafetyError, StoreError) as e:
        logger.error("expire_sweep_failed", error=str(e))
        return False


async def cleanup_warnings(service: WarningService, days_old: int) -> bool:
    try:
        result = await service.cleanup_expired_warnings(days_old)
        logger.info(
            "cleanup_finished",
            deleted=result["deleted"],
            cutoff_date=result["cutoff_date"].isoformat(),
        )
        return True
    except (TrustSafetyError, StoreError) as e:
        logger.error("cleanup_failed", error=str(e), days_old=days_old)
        return False


async def sync_counts(service: WarningService) -> bool:
    try:
        result = await service.sync_profile_warning_counts()
        logger.info("count_sync_finished", **result)
        return True
    except (TrustSafetyError, StoreError) as e:
        logger.error("count_sync_failed", error=str(e))
        return False


async def main(args: argparse.Namespace) -> int:
    """Run the selected jobs in a fixed order and report failures."""
    store = get_document_store()
    await store.connect()
    service = WarningService(store)

    results: dict[str, bool] = {}
    try:
        if args.all or args.create_indexes:
            results["create_indexes"] = await create_indexes(store)

        if args.all or args.expire_warnings:
            results["expire_warnings"] = await expire_warnings(service)

        if args.all or args.cleanup_days is not None:
            days = args.cleanup_days if args.cleanup_days is not None else DEFAULT_RETENTION_DAYS
            results["cleanup"] = await cleanup_warnings(service, days)

        if args.all or args.sync_counts:
            results["sync_counts"] = await sync_counts(service)
    finally:
        await store.close()

    failed = [name for name, success in results.items() if not success]
    if failed:
        logger.error("maintenance_failed", failed=failed)
        return 1

    logger.info("maintenance_completed", jobs=list(results))
    return 0


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Trust & Safety maintenance jobs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--create-indexes",
        action="store_true",
        help="Create document store indexes",
    )
    parser.add_argument(
        "--expire-warnings",
        action="store_true",
        help="Expire active warnings past their expiry date",
    )
    parser.add_argument(
        "--cleanup-days",
        type=int,
        default=None,
        metavar="N",
        help="Delete expired warnings whose expiry is older than N days",
    )
    parser.add_argument(
        "--sync-counts",
        action="store_true",
        help="Recount every profile's active warnings",
    )
    parser.add_argument(
        "--all",
        action="store_true",
        help="Run every job (cleanup uses the default retention)",
    )

    args = parser.parse_args(argv)

    if args.cleanup_days is not None and args.cleanup_days < 1:
        parser.error("--cleanup-days must be at least 1")

    # Nothing selected means everything
    if not (args.create_indexes or args.expire_warnings or args.sync_counts) and (
        args.cleanup_days is None
    ):
        args.all = True

    return args


if __name__ == "__main__":
    args = parse_args()
    exit_code = asyncio.run(main(args))
    sys.exit(exit_code)
