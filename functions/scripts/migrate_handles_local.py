"""
Assign handles to legacy users from a local machine.

Runs the same migration as the `migrate_user_handles` cloud function against
the Firestore project configured by Application Default Credentials (or the
emulator when FIRESTORE_EMULATOR_HOST is set).
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import firebase_admin
from firebase_admin import firestore

from migrations.handles import migrate_user_handles
from shared.config import get_settings


logger = logging.getLogger(__name__)


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Backfill user handles")
    parser.add_argument(
        "--project",
        default=None,
        help="Firebase project id (defaults to the ADC project)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=settings.max_batch_ops,
        help="Max writes per Firestore batch (two per user, at most 500)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report how many users would be migrated without saving",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")

    options = {"projectId": args.project} if args.project else None
    firebase_admin.initialize_app(options=options)
    db = firestore.client()

    try:
        result = migrate_user_handles(
            db, max_batch_ops=args.batch_size, dry_run=args.dry_run
        )
    except ValueError as e:
        logger.error("Invalid arguments: %s", e)
        return 2

    logger.info(
        "%s %d of %d users",
        "Would migrate" if args.dry_run else "Migrated",
        result.migrated,
        result.total,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
