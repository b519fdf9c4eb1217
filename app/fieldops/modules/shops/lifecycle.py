"""
SHOP LIFECYCLE
==============

Public shop operations. Each one writes the shops table first, then brings the
distributor's legacy shop lists and cached counts in line:

Operation | Shop Store          | Legacy lists                                   | Count sync
----------|---------------------|------------------------------------------------|-------------------
add       | insert              | append unless an entry with the same key exists | distributor
update    | partial update      | move / retype / patch the matching entry       | old (+ new) distributor
delete    | is_active = False   | remove the exact matching entry                | distributor
list      | read                | merged in as isLegacy entries                   | distributor

FAILURE SEMANTICS:
- ValidationError / NotFoundError / ConflictError are raised before the shops table is written.
- Deleted shops cannot be updated (NotFoundError). Deleting one again changes nothing.
- Legacy list and count steps run in their own SAVEPOINT. A failure there is logged as a
  ReconciliationWarning and rolled back to the savepoint; the shop write stands and the
  counts catch up on the next sync.

LOCKING:
- Affected distributor rows are taken FOR UPDATE (ascending id) before the shop write so
  concurrent mutations for one distributor serialize on Postgres. Toggle with
  SHOP_COUNT_LOCKING; sqlite has no row locks and ignores it.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from flask import current_app, has_app_context
from sqlalchemy.orm import Session

from app.fieldops.audit import record_event
from app.fieldops.constants import LEGACY_ID_PREFIX, SHOP_TYPE_RETAILER, SHOP_TYPE_WHOLESELLER
from app.fieldops.errors import ReconciliationWarning
from app.fieldops.models import User
from app.fieldops.modules.distributors import legacy
from app.fieldops.modules.distributors.models import Distributor, LegacyShopEntry
from app.fieldops.modules.distributors.service import (
    distributor_view,
    get_distributor_by_id,
    lock_distributors,
    require_distributor,
)
from app.fieldops.modules.shops import service as store
from app.fieldops.modules.shops.models import Shop
from app.fieldops.modules.shops.reconcile import sync_distributor_shop_counts
from app.fieldops.modules.shops.utils import entry_identity_key, normalize_shop_type, shop_record_key

logger = logging.getLogger(__name__)

_SNAPSHOT_FIELDS = ("name", "owner_name", "address", "type", "distributor_id")


@contextmanager
def _best_effort(s: Session, step: str, **context: Any) -> Generator[None, None, None]:
    try:
        with s.begin_nested():
            yield
    except Exception as e:
        warning = ReconciliationWarning(f"{step} failed: {e}")
        logger.warning("%s: %s context=%s", type(warning).__name__, warning, context, exc_info=True)


def _lock(s: Session, distributor_ids: list[int | None]) -> None:
    enabled = current_app.config.get("SHOP_COUNT_LOCKING", True) if has_app_context() else True
    if not enabled:
        return
    lock_distributors(s, [i for i in distributor_ids if i is not None])


def _snapshot(shop: Shop) -> dict[str, Any]:
    return {f: getattr(shop, f) for f in _SNAPSHOT_FIELDS}


def _sync_counts(s: Session, distributor_id: int) -> None:
    with _best_effort(s, "shop count sync", distributor_id=distributor_id):
        sync_distributor_shop_counts(s, distributor_id)


def shop_view(shop: Shop) -> dict[str, Any]:
    return {
        "_id": shop.id,
        "name": shop.name,
        "ownerName": shop.owner_name,
        "address": shop.address,
        "type": shop.type,
        "distributorId": shop.distributor_id,
        "isLegacy": False,
        "isActive": shop.is_active,
        "createdBy": shop.created_by_user_id,
        "createdAt": shop.created_at.isoformat() if shop.created_at else None,
        "updatedAt": shop.updated_at.isoformat() if shop.updated_at else None,
    }


def legacy_entry_view(entry: LegacyShopEntry, shop_type: str, distributor_id: int) -> dict[str, Any]:
    return {
        "_id": f"{LEGACY_ID_PREFIX}{entry.id}",
        "name": entry.shop_name,
        "ownerName": entry.owner_name,
        "address": entry.address,
        "type": shop_type,
        "distributorId": distributor_id,
        "isLegacy": True,
        "isActive": True,
    }


def add_shop(s: Session, payload: dict[str, Any], *, user: User | None = None) -> Shop:
    fields = store.clean_shop_payload(payload)
    _lock(s, [fields["distributor_id"]])

    shop = store.add_shop(
        s,
        name=fields["name"],
        owner_name=fields["owner_name"],
        address=fields["address"],
        shop_type=fields["type"],
        distributor_id=fields["distributor_id"],
        created_by_user_id=user.id if user else None,
    )

    with _best_effort(s, "legacy mirror add", shop_id=shop.id, distributor_id=shop.distributor_id):
        distributor = require_distributor(s, shop.distributor_id)
        # Skipped when an old legacy entry already describes this shop, so it is not counted twice.
        legacy.add_entry(s, distributor, shop.type, shop.name, shop.owner_name, shop.address)
        s.flush()

    _sync_counts(s, shop.distributor_id)

    record_event(
        s,
        actor=user,
        action="shop.create",
        entity_type="Shop",
        entity_id=str(shop.id),
        metadata={"distributor_id": shop.distributor_id, "name": shop.name, "type": shop.type},
    )
    return shop


def _mirror_update(s: Session, before: dict[str, Any], after: dict[str, Any]) -> None:
    original = get_distributor_by_id(s, before["distributor_id"])
    if original is None:
        return

    moved = after["distributor_id"] != before["distributor_id"]
    retyped = after["type"] != before["type"]

    if moved or retyped:
        legacy.remove_entry(s, original, before["type"], before["name"], before["owner_name"], before["address"])
        target: Distributor = require_distributor(s, after["distributor_id"]) if moved else original
        legacy.add_entry(s, target, after["type"], after["name"], after["owner_name"], after["address"])
    elif any(before[f] != after[f] for f in ("name", "owner_name", "address")):
        legacy.update_entry_fields(
            original,
            before["type"],
            (before["name"], before["owner_name"], before["address"]),
            {"shop_name": after["name"], "owner_name": after["owner_name"], "address": after["address"]},
        )
    s.flush()


def update_shop(s: Session, shop_id: int, payload: dict[str, Any], *, user: User | None = None) -> Shop:
    fields = store.clean_shop_payload(payload, partial=True)
    shop = store.get_active_shop_by_id(s, shop_id)
    _lock(s, [shop.distributor_id, fields.get("distributor_id")])

    before = _snapshot(shop)
    store.update_shop_record(s, shop, fields)
    after = _snapshot(shop)

    with _best_effort(s, "legacy mirror update", shop_id=shop.id, distributor_id=before["distributor_id"]):
        _mirror_update(s, before, after)

    _sync_counts(s, before["distributor_id"])
    if after["distributor_id"] != before["distributor_id"]:
        _sync_counts(s, after["distributor_id"])

    fields_changed = [k for k in _SNAPSHOT_FIELDS if before[k] != after[k]]
    record_event(
        s,
        actor=user,
        action="shop.update",
        entity_type="Shop",
        entity_id=str(shop.id),
        metadata={"before": before, "after": after, "fields_changed": fields_changed},
    )
    return shop


def delete_shop(s: Session, shop_id: int, *, user: User | None = None) -> None:
    shop = store.get_shop_by_id(s, shop_id)
    _lock(s, [shop.distributor_id])

    if not store.soft_delete_shop(s, shop):
        # Already inactive; a re-added shop may own the matching legacy entry now.
        return

    with _best_effort(s, "legacy mirror remove", shop_id=shop.id, distributor_id=shop.distributor_id):
        distributor = get_distributor_by_id(s, shop.distributor_id)
        if distributor is not None:
            legacy.remove_entry(s, distributor, shop.type, shop.name, shop.owner_name, shop.address)
            s.flush()

    _sync_counts(s, shop.distributor_id)

    record_event(
        s,
        actor=user,
        action="shop.delete",
        entity_type="Shop",
        entity_id=str(shop.id),
        metadata={"distributor_id": shop.distributor_id, "name": shop.name},
    )


def get_shop(s: Session, shop_id: int) -> dict[str, Any]:
    return shop_view(store.get_shop_by_id(s, shop_id))


def _merged_views(s: Session, distributor: Distributor, shop_type: str | None) -> list[dict[str, Any]]:
    shops = store.list_shops_by_distributor(s, distributor.id, shop_type)
    views = [shop_view(shop) for shop in shops]

    for t in (SHOP_TYPE_RETAILER, SHOP_TYPE_WHOLESELLER):
        if shop_type and shop_type != t:
            continue
        # Match within the same type, as the count sync does.
        keys = {shop_record_key(shop) for shop in shops if shop.type == t}
        for entry in legacy.entries_for_type(distributor, t):
            if entry_identity_key(entry) not in keys:
                views.append(legacy_entry_view(entry, t, distributor.id))

    views.sort(key=lambda v: ((v["name"] or "").casefold(), v["name"] or ""))
    return views


def list_shops_for_distributor(s: Session, distributor_id: int, shop_type: str | None = None) -> list[dict[str, Any]]:
    """
    Active shops plus legacy-only entries (isLegacy=True), sorted by name.
    Runs a count sync for the distributor before returning.
    """
    wanted_type = normalize_shop_type(shop_type) if shop_type else None
    distributor = require_distributor(s, distributor_id)
    views = _merged_views(s, distributor, wanted_type)
    _sync_counts(s, distributor.id)
    return views


def get_distributor_details(s: Session, distributor_id: int) -> dict[str, Any]:
    views = list_shops_for_distributor(s, distributor_id)
    distributor = require_distributor(s, distributor_id)
    data = distributor_view(distributor)
    data["shops"] = {
        "retailShops": [v for v in views if v["type"] == SHOP_TYPE_RETAILER],
        "wholesaleShops": [v for v in views if v["type"] == SHOP_TYPE_WHOLESELLER],
    }
    return data
