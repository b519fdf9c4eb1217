#!/usr/bin/env python
"""
Distributor shop-count resync.

Recomputes retailShopCount / wholesaleShopCount for distributors by merging the shops
table with the legacy retailShops / wholesaleShops lists (deduplicated by identity key).

Usage:
    # Resync every distributor
    python scripts/resync_shop_counts.py --all

    # Resync one distributor
    python scripts/resync_shop_counts.py --distributor=42

    # Show what would change without writing
    python scripts/resync_shop_counts.py --all --dry-run

    # List legacy entries that already exist in the shops table
    python scripts/resync_shop_counts.py --report-duplicates

Environment:
    DATABASE_URL: database connection string
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.fieldops.modules.distributors.models import Distributor  # noqa: E402
from app.fieldops.modules.shops.reconcile import (  # noqa: E402
    SyncResult,
    find_duplicate_legacy_entries,
    sync_all_distributor_shop_counts,
    sync_distributor_shop_counts,
)
from scripts._db_utils import script_session  # noqa: E402


def _print_result(r: SyncResult) -> None:
    marker = "CHANGED" if r.changed else "ok"
    print(
        f"  distributor {r.distributor_id}: retail {r.before.retail} -> {r.after.retail}, "
        f"wholesale {r.before.wholesale} -> {r.after.wholesale} [{marker}]"
    )


def resync_all(db_url: str, *, dry_run: bool) -> int:
    with script_session(db_url) as s:
        results = sync_all_distributor_shop_counts(s, dry_run=dry_run)
        changed = [r for r in results if r.changed]
        print(f"Checked {len(results)} distributors; {len(changed)} with stale counts.")
        for r in changed:
            _print_result(r)
        if dry_run:
            s.rollback()
            print("Dry run: no changes written.")
    return 0


def resync_one(db_url: str, distributor_id: int) -> int:
    with script_session(db_url) as s:
        counts = sync_distributor_shop_counts(s, distributor_id)
        if counts is None:
            print(f"ERROR: Distributor (ID {distributor_id}) not found.")
            return 1
        print(f"Distributor {distributor_id}: retail={counts.retail} wholesale={counts.wholesale}")
    return 0


def report_duplicates(db_url: str) -> int:
    with script_session(db_url) as s:
        total = 0
        for d in s.query(Distributor).order_by(Distributor.id.asc()).all():
            dupes = find_duplicate_legacy_entries(s, d)
            if not dupes:
                continue
            total += len(dupes)
            print(f"\n=== Distributor {d.id}: {d.name} ({len(dupes)} mirrored legacy entries) ===")
            for e in dupes:
                print(f"   [{e.bucket}] {e.shop_name} / {e.owner_name} / {e.address} (legacy id {e.id})")
        if not total:
            print("No legacy entries duplicated in the shops table.")
        s.rollback()
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Distributor shop-count resync tool")
    parser.add_argument("--all", action="store_true", help="Resync every distributor")
    parser.add_argument("--distributor", type=int, help="Resync one distributor by id")
    parser.add_argument("--report-duplicates", action="store_true", help="List legacy entries already in the shops table")
    parser.add_argument("--dry-run", action="store_true", help="Compute without writing (with --all)")
    parser.add_argument("--verbose", action="store_true", help="Log each correction")

    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    db_url = (os.environ.get("DATABASE_URL") or "sqlite:///fieldops.db").strip()

    if args.all:
        sys.exit(resync_all(db_url, dry_run=args.dry_run))
    elif args.distributor is not None:
        sys.exit(resync_one(db_url, args.distributor))
    elif args.report_duplicates:
        sys.exit(report_duplicates(db_url))
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
