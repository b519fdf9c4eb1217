"""
Legacy shop lists on Distributor (retailShops / wholesaleShops).

Kept as a backward-compatible mirror of the shops table. Entries are matched two ways:
- by identity key (case-insensitive) when deciding whether a shop is already mirrored
- by exact shop_name/owner_name/address when removing an entry
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Session

from app.fieldops.constants import LEGACY_BUCKET_RETAIL
from app.fieldops.modules.distributors.models import Distributor, LegacyShopEntry
from app.fieldops.modules.shops.utils import entry_identity_key, legacy_bucket_for_type, shop_identity_key


def entries_for_type(distributor: Distributor, shop_type: str) -> list[LegacyShopEntry]:
    if legacy_bucket_for_type(shop_type) == LEGACY_BUCKET_RETAIL:
        return distributor.retail_shops
    return distributor.wholesale_shops


def find_entry(
    distributor: Distributor,
    shop_type: str,
    shop_name: str | None,
    owner_name: str | None,
    address: str | None,
) -> LegacyShopEntry | None:
    key = shop_identity_key(shop_name, owner_name, address)
    for e in entries_for_type(distributor, shop_type):
        if entry_identity_key(e) == key:
            return e
    return None


def _exact_matches(
    distributor: Distributor,
    shop_type: str,
    shop_name: str | None,
    owner_name: str | None,
    address: str | None,
) -> list[LegacyShopEntry]:
    return [
        e
        for e in entries_for_type(distributor, shop_type)
        if e.shop_name == shop_name and e.owner_name == owner_name and e.address == address
    ]


def add_entry(
    s: Session,
    distributor: Distributor,
    shop_type: str,
    shop_name: str,
    owner_name: str,
    address: str,
) -> LegacyShopEntry | None:
    """Append to the bucket for shop_type unless an entry with the same identity key is already there."""
    if find_entry(distributor, shop_type, shop_name, owner_name, address) is not None:
        return None
    e = LegacyShopEntry(
        distributor_id=distributor.id,
        bucket=legacy_bucket_for_type(shop_type),
        shop_name=shop_name,
        owner_name=owner_name,
        address=address,
    )
    entries_for_type(distributor, shop_type).append(e)
    s.add(e)
    return e


def remove_entry(
    s: Session,
    distributor: Distributor,
    shop_type: str,
    shop_name: str | None,
    owner_name: str | None,
    address: str | None,
) -> int:
    """Remove every entry matching all three fields exactly. Returns how many were removed."""
    matches = _exact_matches(distributor, shop_type, shop_name, owner_name, address)
    entries = entries_for_type(distributor, shop_type)
    for e in matches:
        entries.remove(e)
        state = sa_inspect(e)
        if state.persistent:
            s.delete(e)
        elif state.pending:
            s.expunge(e)
    return len(matches)


def update_entry_fields(
    distributor: Distributor,
    shop_type: str,
    match: tuple[str | None, str | None, str | None],
    new_fields: dict[str, Any],
) -> LegacyShopEntry | None:
    """
    Patch shop_name/owner_name/address in place on the entry whose identity key equals
    that of `match` (shop_name, owner_name, address). Unknown keys in new_fields are ignored.
    """
    e = find_entry(distributor, shop_type, *match)
    if e is None:
        return None
    for attr in ("shop_name", "owner_name", "address"):
        val = new_fields.get(attr)
        if val:
            setattr(e, attr, val)
    return e
