from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from app.fieldops.errors import NotFoundError
from app.fieldops.modules.distributors.models import Distributor


def get_distributor_by_id(s: Session, distributor_id: int) -> Distributor | None:
    return s.query(Distributor).filter(Distributor.id == distributor_id).one_or_none()


def require_distributor(s: Session, distributor_id: int) -> Distributor:
    d = get_distributor_by_id(s, distributor_id)
    if d is None:
        raise NotFoundError("Distributor", distributor_id)
    return d


def lock_distributors(s: Session, distributor_ids: list[int]) -> dict[int, Distributor]:
    """
    SELECT ... FOR UPDATE the given distributors, in ascending id order so two requests
    touching the same pair cannot deadlock. sqlite ignores FOR UPDATE.

    Missing ids are simply absent from the result.
    """
    ids = sorted({int(i) for i in distributor_ids})
    if not ids:
        return {}
    rows = (
        s.query(Distributor)
        .filter(Distributor.id.in_(ids))
        .order_by(Distributor.id.asc())
        .with_for_update()
        .populate_existing()
        .all()
    )
    return {d.id: d for d in rows}


def create_distributor(s: Session, payload: dict[str, Any]) -> Distributor:
    """Distributor onboarding lives in the admin service; this is used by seeding and tests."""
    name = (payload.get("name") or "").strip()
    if not name:
        raise ValueError("Distributor name is required.")
    now = datetime.utcnow()
    d = Distributor(
        name=name,
        shop_name=(payload.get("shop_name") or "").strip() or None,
        contact=(payload.get("contact") or "").strip() or None,
        phone_number=(payload.get("phone_number") or "").strip() or None,
        address=(payload.get("address") or "").strip() or None,
        is_active=True,
        retail_shop_count=0,
        wholesale_shop_count=0,
        created_at=now,
        updated_at=now,
    )
    s.add(d)
    s.flush()
    return d


def distributor_view(d: Distributor) -> dict[str, Any]:
    return {
        "_id": d.id,
        "name": d.name,
        "shopName": d.shop_name,
        "contact": d.contact,
        "phoneNumber": d.phone_number,
        "address": d.address,
        "retailShopCount": d.retail_shop_count,
        "wholesaleShopCount": d.wholesale_shop_count,
    }
