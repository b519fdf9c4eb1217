"""
Distributor shop-count reconciliation.

retail_shop_count / wholesale_shop_count on Distributor are a cache of:

    active shops of that type
    + legacy entries of that bucket whose identity key has no active shop of that type

They are recomputed from scratch after every shop mutation (never incremented in place)
and written back only when the stored value differs, so repeated syncs are free.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from app.fieldops.constants import SHOP_TYPE_RETAILER, SHOP_TYPE_WHOLESELLER
from app.fieldops.modules.distributors.models import Distributor, LegacyShopEntry
from app.fieldops.modules.distributors.service import get_distributor_by_id
from app.fieldops.modules.shops.service import list_shops_by_distributor
from app.fieldops.modules.shops.utils import entry_identity_key, shop_record_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShopCounts:
    retail: int
    wholesale: int


@dataclass(frozen=True)
class SyncResult:
    distributor_id: int
    before: ShopCounts
    after: ShopCounts
    written: bool

    @property
    def changed(self) -> bool:
        return self.before != self.after


def _shop_keys_by_type(s: Session, distributor: Distributor) -> tuple[dict[str, int], dict[str, set[str]]]:
    counts = {SHOP_TYPE_RETAILER: 0, SHOP_TYPE_WHOLESELLER: 0}
    keys: dict[str, set[str]] = {SHOP_TYPE_RETAILER: set(), SHOP_TYPE_WHOLESELLER: set()}
    for shop in list_shops_by_distributor(s, distributor.id):
        # Anything that is not a retailer lands in the wholesale bucket, same as the legacy lists.
        t = SHOP_TYPE_RETAILER if shop.type == SHOP_TYPE_RETAILER else SHOP_TYPE_WHOLESELLER
        counts[t] += 1
        keys[t].add(shop_record_key(shop))
    return counts, keys


def compute_shop_counts(s: Session, distributor: Distributor) -> ShopCounts:
    """Deduplicated totals for a distributor. Read-only."""
    counts, keys = _shop_keys_by_type(s, distributor)
    legacy_retail = sum(1 for e in distributor.retail_shops if entry_identity_key(e) not in keys[SHOP_TYPE_RETAILER])
    legacy_wholesale = sum(
        1 for e in distributor.wholesale_shops if entry_identity_key(e) not in keys[SHOP_TYPE_WHOLESELLER]
    )
    return ShopCounts(
        retail=counts[SHOP_TYPE_RETAILER] + legacy_retail,
        wholesale=counts[SHOP_TYPE_WHOLESELLER] + legacy_wholesale,
    )


def _sync(s: Session, distributor: Distributor, *, dry_run: bool = False) -> SyncResult:
    before = ShopCounts(retail=distributor.retail_shop_count or 0, wholesale=distributor.wholesale_shop_count or 0)
    after = compute_shop_counts(s, distributor)
    written = False
    if after != before and not dry_run:
        distributor.retail_shop_count = after.retail
        distributor.wholesale_shop_count = after.wholesale
        distributor.updated_at = datetime.utcnow()
        s.flush()
        written = True
        logger.info(
            "Shop counts corrected distributor_id=%s retail %s->%s wholesale %s->%s",
            distributor.id,
            before.retail,
            after.retail,
            before.wholesale,
            after.wholesale,
        )
    return SyncResult(distributor_id=distributor.id, before=before, after=after, written=written)


def sync_distributor_shop_counts(s: Session, distributor_id: int) -> ShopCounts | None:
    """
    Recompute and persist the cached shop counts for one distributor.

    Returns None (and does nothing) when the distributor does not exist: count sync is
    housekeeping and must never turn into a user-facing error.
    """
    s.flush()
    distributor = get_distributor_by_id(s, distributor_id)
    if distributor is None:
        logger.debug("Shop count sync skipped; distributor_id=%s not found", distributor_id)
        return None
    return _sync(s, distributor).after


def sync_all_distributor_shop_counts(s: Session, *, dry_run: bool = False) -> list[SyncResult]:
    s.flush()
    results = []
    for distributor in s.query(Distributor).order_by(Distributor.id.asc()).all():
        results.append(_sync(s, distributor, dry_run=dry_run))
    corrected = sum(1 for r in results if r.changed)
    logger.info("Shop count sync: distributors=%d corrected=%d dry_run=%s", len(results), corrected, dry_run)
    return results


def find_duplicate_legacy_entries(s: Session, distributor: Distributor) -> list[LegacyShopEntry]:
    """Legacy entries that already have an active shop of the same type and identity key."""
    _counts, keys = _shop_keys_by_type(s, distributor)
    dupes = [e for e in distributor.retail_shops if entry_identity_key(e) in keys[SHOP_TYPE_RETAILER]]
    dupes.extend(e for e in distributor.wholesale_shops if entry_identity_key(e) in keys[SHOP_TYPE_WHOLESELLER])
    return dupes
