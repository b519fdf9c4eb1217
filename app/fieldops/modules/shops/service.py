"""
Shop Store: the shops table.

Shops are owned by a distributor and never hard-deleted. This module only touches the
shops table; keeping the distributor's legacy lists and cached counts in step is the job
of app.fieldops.modules.shops.lifecycle.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from app.fieldops.errors import ConflictError, FieldError, NotFoundError, ValidationError
from app.fieldops.modules.distributors.service import get_distributor_by_id
from app.fieldops.modules.shops.models import Shop
from app.fieldops.modules.shops.utils import normalize_shop_type

# payload key -> (Shop attribute, accepted aliases)
SHOP_FIELDS: dict[str, tuple[str, tuple[str, ...]]] = {
    "name": ("name", ("name", "shopName", "shop_name")),
    "ownerName": ("owner_name", ("ownerName", "owner_name")),
    "address": ("address", ("address",)),
    "type": ("type", ("type", "shopType", "shop_type")),
    "distributorId": ("distributor_id", ("distributorId", "distributor_id")),
}

_REQUIRED_MESSAGES = {
    "name": "Shop name is required.",
    "ownerName": "Shop owner name is required.",
    "address": "Shop address is required.",
    "type": "Shop type is required.",
    "distributorId": "Distributor ID is required.",
}


def _raw(payload: dict[str, Any], field: str) -> Any:
    for alias in SHOP_FIELDS[field][1]:
        if alias in payload and payload[alias] is not None:
            return payload[alias]
    return None


def _text(val: Any) -> str:
    return str(val).strip() if val is not None else ""


def validate_shop_payload(payload: dict[str, Any], *, partial: bool = False) -> list[FieldError]:
    errs: list[FieldError] = []
    for field, message in _REQUIRED_MESSAGES.items():
        raw = _raw(payload, field)
        if raw is None and partial:
            continue
        if not _text(raw):
            errs.append(FieldError(field, message))
    if _text(_raw(payload, "type")):
        try:
            normalize_shop_type(_text(_raw(payload, "type")))
        except ValidationError as e:
            errs.extend(e.errors)
    dist = _text(_raw(payload, "distributorId"))
    if dist:
        try:
            int(dist)
        except ValueError:
            errs.append(FieldError("distributorId", "Distributor ID must be a number."))
    return errs


def clean_shop_payload(payload: dict[str, Any], *, partial: bool = False) -> dict[str, Any]:
    """
    Validate and map a client payload onto Shop attribute names.

    With partial=True, only supplied non-empty fields are returned (update semantics).
    Raises ValidationError.
    """
    errs = validate_shop_payload(payload, partial=partial)
    if errs:
        raise ValidationError(errs)
    cleaned: dict[str, Any] = {}
    for field, (attr, _aliases) in SHOP_FIELDS.items():
        val = _text(_raw(payload, field))
        if not val:
            continue
        if field == "type":
            cleaned[attr] = normalize_shop_type(val)
        elif field == "distributorId":
            cleaned[attr] = int(val)
        else:
            cleaned[attr] = val
    return cleaned


def get_shop_by_id(s: Session, shop_id: int) -> Shop:
    shop = s.query(Shop).filter(Shop.id == shop_id).one_or_none()
    if shop is None:
        raise NotFoundError("Shop", shop_id)
    return shop


def get_active_shop_by_id(s: Session, shop_id: int) -> Shop:
    """Deleted shops are not editable; they read as missing."""
    shop = get_shop_by_id(s, shop_id)
    if not shop.is_active:
        raise NotFoundError("Shop", shop_id)
    return shop


def find_active_shop_by_name(s: Session, distributor_id: int, name: str) -> Shop | None:
    return (
        s.query(Shop)
        .filter(Shop.distributor_id == distributor_id, Shop.name == name, Shop.is_active.is_(True))
        .first()
    )


def add_shop(
    s: Session,
    *,
    name: str,
    owner_name: str,
    address: str,
    shop_type: str,
    distributor_id: int,
    created_by_user_id: int | None = None,
) -> Shop:
    if get_distributor_by_id(s, distributor_id) is None:
        raise NotFoundError("Distributor", distributor_id)

    # Name-only on purpose; reconciliation matches on the full identity key.
    if find_active_shop_by_name(s, distributor_id, name) is not None:
        raise ConflictError("A shop with this name already exists for this distributor")

    now = datetime.utcnow()
    shop = Shop(
        name=name,
        owner_name=owner_name,
        address=address,
        type=shop_type,
        distributor_id=distributor_id,
        is_active=True,
        created_by_user_id=created_by_user_id,
        created_at=now,
        updated_at=now,
    )
    s.add(shop)
    s.flush()
    return shop


def list_shops_by_distributor(s: Session, distributor_id: int, shop_type: str | None = None) -> list[Shop]:
    query = s.query(Shop).filter(Shop.distributor_id == distributor_id, Shop.is_active.is_(True))
    if shop_type:
        query = query.filter(Shop.type == shop_type)
    return query.order_by(Shop.name.asc(), Shop.id.asc()).all()


def update_shop_record(s: Session, shop: Shop, fields: dict[str, Any]) -> Shop:
    """
    Partial update: only keys present in `fields` (Shop attribute names, as produced by
    clean_shop_payload(partial=True)) change. A new distributor_id must resolve.
    """
    new_distributor_id = fields.get("distributor_id")
    if new_distributor_id is not None and new_distributor_id != shop.distributor_id:
        if get_distributor_by_id(s, new_distributor_id) is None:
            raise NotFoundError("Distributor", new_distributor_id)

    changed = False
    for attr in ("name", "owner_name", "address", "type", "distributor_id"):
        if attr not in fields:
            continue
        val = fields[attr]
        if getattr(shop, attr) != val:
            setattr(shop, attr, val)
            changed = True

    if changed:
        shop.updated_at = datetime.utcnow()
        s.flush()
    return shop


def soft_delete_shop(s: Session, shop: Shop) -> bool:
    """Mark inactive. Returns False when the shop was already inactive."""
    if not shop.is_active:
        return False
    shop.is_active = False
    shop.updated_at = datetime.utcnow()
    s.flush()
    return True
