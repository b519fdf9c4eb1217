from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from app.fieldops.db import db_session
from app.fieldops.models import User
from app.fieldops.modules.shops.lifecycle import (
    add_shop,
    delete_shop,
    get_distributor_details,
    get_shop,
    list_shops_for_distributor,
    shop_view,
    update_shop,
)

bp = Blueprint("shops", __name__)


def _current_user() -> User | None:
    # Set by the upstream auth middleware; anonymous calls are recorded without an actor.
    return getattr(g, "current_user", None)


def _payload() -> dict:
    return request.get_json(silent=True) or request.form.to_dict()


@bp.get("/shops/distributor/<int:distributor_id>")
def shops_by_distributor(distributor_id: int):
    s = db_session()
    shop_type = (request.args.get("type") or "").strip() or None
    shops = list_shops_for_distributor(s, distributor_id, shop_type)
    # listing may have corrected the cached counts
    s.commit()
    return jsonify({"success": True, "count": len(shops), "data": shops})


@bp.post("/shops")
def shops_create():
    s = db_session()
    shop = add_shop(s, _payload(), user=_current_user())
    s.commit()
    return jsonify({"success": True, "data": shop_view(shop)}), 201


@bp.get("/shops/<int:shop_id>")
def shops_detail(shop_id: int):
    s = db_session()
    return jsonify({"success": True, "data": get_shop(s, shop_id)})


@bp.put("/shops/<int:shop_id>")
def shops_update(shop_id: int):
    s = db_session()
    shop = update_shop(s, shop_id, _payload(), user=_current_user())
    s.commit()
    return jsonify({"success": True, "data": shop_view(shop)})


@bp.delete("/shops/<int:shop_id>")
def shops_delete(shop_id: int):
    s = db_session()
    delete_shop(s, shop_id, user=_current_user())
    s.commit()
    return jsonify({"success": True, "data": {}})


@bp.get("/distributors/<int:distributor_id>/details")
def distributor_details(distributor_id: int):
    s = db_session()
    data = get_distributor_details(s, distributor_id)
    s.commit()
    return jsonify({"success": True, "data": data})
