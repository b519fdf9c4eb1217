"""
Tests for the shop lifecycle: shop writes plus the legacy mirror and count sync
that follow them.
"""
import logging

import pytest

from app.fieldops import create_app
from app.fieldops.db import session_scope
from app.fieldops.errors import ConflictError, NotFoundError, ValidationError
from app.fieldops.models import AuditEvent, Base
from app.fieldops.modules.distributors import legacy
from app.fieldops.modules.distributors.models import Distributor, LegacyShopEntry
from app.fieldops.modules.distributors.service import create_distributor
from app.fieldops.modules.shops import lifecycle
from app.fieldops.modules.shops.models import Shop


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)
    return app


def _distributor(app, name="ABC Distributors") -> int:
    with session_scope(app) as s:
        return create_distributor(s, {"name": name}).id


def _legacy(app, distributor_id, bucket, shop_name, owner_name, address):
    with session_scope(app) as s:
        s.add(
            LegacyShopEntry(
                distributor_id=distributor_id,
                bucket=bucket,
                shop_name=shop_name,
                owner_name=owner_name,
                address=address,
            )
        )


def _payload(distributor_id, name="Nandu Shop", owner="Ram", address="Delhi", shop_type="Retailer"):
    return {"name": name, "ownerName": owner, "address": address, "type": shop_type, "distributorId": distributor_id}


def _add(app, distributor_id, **kw) -> int:
    with session_scope(app) as s:
        return lifecycle.add_shop(s, _payload(distributor_id, **kw)).id


def _state(app, distributor_id):
    """(retail count, wholesale count, [(bucket, shop_name, owner_name, address), ...])"""
    with session_scope(app) as s:
        d = s.get(Distributor, distributor_id)
        entries = [(e.bucket, e.shop_name, e.owner_name, e.address) for e in d.retail_shops + d.wholesale_shops]
        return d.retail_shop_count, d.wholesale_shop_count, entries


def _audit_actions(app, entity_id):
    with session_scope(app) as s:
        rows = s.query(AuditEvent).filter(AuditEvent.entity_id == str(entity_id)).order_by(AuditEvent.id).all()
        return [r.action for r in rows]


class TestAddShop:
    def test_add_mirrors_and_counts(self, app):
        d_id = _distributor(app)
        shop_id = _add(app, d_id)

        assert _state(app, d_id) == (1, 0, [("retail", "Nandu Shop", "Ram", "Delhi")])
        assert _audit_actions(app, shop_id) == ["shop.create"]

    def test_add_wholesale_alias(self, app):
        d_id = _distributor(app)
        with session_scope(app) as s:
            shop = lifecycle.add_shop(s, _payload(d_id, shop_type="WholeSeller"))
            assert shop.type == "Whole Seller"

        assert _state(app, d_id) == (0, 1, [("wholesale", "Nandu Shop", "Ram", "Delhi")])

    def test_add_skips_existing_legacy_entry(self, app):
        """An old entry that already describes the shop is reused, not duplicated."""
        d_id = _distributor(app)
        _legacy(app, d_id, "retail", "nandu shop", "ram", "delhi")

        _add(app, d_id)

        retail, wholesale, entries = _state(app, d_id)
        assert (retail, wholesale) == (1, 0)
        assert entries == [("retail", "nandu shop", "ram", "delhi")]

    def test_duplicate_name_conflicts(self, app):
        d_id = _distributor(app)
        _add(app, d_id)

        with pytest.raises(ConflictError):
            with session_scope(app) as s:
                lifecycle.add_shop(s, _payload(d_id, owner="Someone Else", address="Mumbai"))

        with session_scope(app) as s:
            assert s.query(Shop).filter(Shop.distributor_id == d_id, Shop.is_active.is_(True)).count() == 1
        assert _state(app, d_id)[0] == 1

    def test_same_name_allowed_after_delete(self, app):
        d_id = _distributor(app)
        shop_id = _add(app, d_id)
        with session_scope(app) as s:
            lifecycle.delete_shop(s, shop_id)

        _add(app, d_id)
        assert _state(app, d_id)[0] == 1

    def test_missing_fields_write_nothing(self, app):
        d_id = _distributor(app)

        with pytest.raises(ValidationError) as exc:
            with session_scope(app) as s:
                lifecycle.add_shop(s, {"name": "Only A Name", "distributorId": d_id})

        assert {e.field for e in exc.value.errors} == {"ownerName", "address", "type"}
        with session_scope(app) as s:
            assert s.query(Shop).count() == 0
        assert _state(app, d_id) == (0, 0, [])

    def test_unknown_type_rejected(self, app):
        d_id = _distributor(app)
        with pytest.raises(ValidationError):
            with session_scope(app) as s:
                lifecycle.add_shop(s, _payload(d_id, shop_type="Distributor"))

    def test_unknown_distributor(self, app):
        with pytest.raises(NotFoundError):
            with session_scope(app) as s:
                lifecycle.add_shop(s, _payload(404))

        with session_scope(app) as s:
            assert s.query(Shop).count() == 0

    def test_mirror_failure_keeps_shop(self, app, monkeypatch, caplog):
        d_id = _distributor(app)

        def _boom(*args, **kwargs):
            raise RuntimeError("legacy list unavailable")

        monkeypatch.setattr(legacy, "add_entry", _boom)

        with caplog.at_level(logging.WARNING):
            shop_id = _add(app, d_id)

        assert "ReconciliationWarning" in caplog.text
        with session_scope(app) as s:
            assert s.get(Shop, shop_id).is_active is True
        # Count sync still ran after the failed step
        assert _state(app, d_id) == (1, 0, [])


class TestUpdateShop:
    def test_transfer_moves_entry_and_counts(self, app):
        x = _distributor(app, "X")
        y = _distributor(app, "Y")
        shop_id = _add(app, x)

        with session_scope(app) as s:
            lifecycle.update_shop(s, shop_id, {"distributorId": y})

        assert _state(app, x) == (0, 0, [])
        assert _state(app, y) == (1, 0, [("retail", "Nandu Shop", "Ram", "Delhi")])
        with session_scope(app) as s:
            assert s.get(Shop, shop_id).distributor_id == y

    def test_type_change_moves_bucket(self, app):
        d_id = _distributor(app)
        shop_id = _add(app, d_id)

        with session_scope(app) as s:
            lifecycle.update_shop(s, shop_id, {"type": "Whole Seller"})

        assert _state(app, d_id) == (0, 1, [("wholesale", "Nandu Shop", "Ram", "Delhi")])

    def test_rename_patches_entry(self, app):
        d_id = _distributor(app)
        shop_id = _add(app, d_id)

        with session_scope(app) as s:
            lifecycle.update_shop(s, shop_id, {"name": "Nandu General Store"})

        assert _state(app, d_id) == (1, 0, [("retail", "Nandu General Store", "Ram", "Delhi")])

    def test_partial_update_leaves_other_fields(self, app):
        d_id = _distributor(app)
        shop_id = _add(app, d_id)

        with session_scope(app) as s:
            shop = lifecycle.update_shop(s, shop_id, {"address": "Noida"})
            assert (shop.name, shop.owner_name, shop.address, shop.type) == ("Nandu Shop", "Ram", "Noida", "Retailer")

        assert _audit_actions(app, shop_id) == ["shop.create", "shop.update"]

    def test_update_to_missing_distributor(self, app):
        d_id = _distributor(app)
        shop_id = _add(app, d_id)

        with pytest.raises(NotFoundError):
            with session_scope(app) as s:
                lifecycle.update_shop(s, shop_id, {"distributorId": 999, "name": "Moved"})

        with session_scope(app) as s:
            shop = s.get(Shop, shop_id)
            assert (shop.distributor_id, shop.name) == (d_id, "Nandu Shop")
        assert _state(app, d_id)[0] == 1

    def test_update_missing_shop(self, app):
        with pytest.raises(NotFoundError):
            with session_scope(app) as s:
                lifecycle.update_shop(s, 12345, {"name": "Nope"})

    def test_transfer_with_type_change(self, app):
        x = _distributor(app, "X")
        y = _distributor(app, "Y")
        shop_id = _add(app, x)

        with session_scope(app) as s:
            lifecycle.update_shop(s, shop_id, {"distributorId": y, "type": "WholeSeller"})

        assert _state(app, x) == (0, 0, [])
        assert _state(app, y) == (0, 1, [("wholesale", "Nandu Shop", "Ram", "Delhi")])

    def test_deleted_shop_cannot_be_updated(self, app):
        x = _distributor(app, "X")
        y = _distributor(app, "Y")
        shop_id = _add(app, x)
        with session_scope(app) as s:
            lifecycle.delete_shop(s, shop_id)

        with pytest.raises(NotFoundError):
            with session_scope(app) as s:
                lifecycle.update_shop(s, shop_id, {"distributorId": y})

        assert _state(app, y) == (0, 0, [])
        with session_scope(app) as s:
            shop = s.get(Shop, shop_id)
            assert (shop.distributor_id, shop.is_active) == (x, False)
        assert _audit_actions(app, shop_id) == ["shop.create", "shop.delete"]


class TestDeleteShop:
    def test_soft_delete(self, app):
        d_id = _distributor(app)
        keep_id = _add(app, d_id, name="Keep")
        gone_id = _add(app, d_id, name="Gone")
        assert _state(app, d_id)[0] == 2

        with session_scope(app) as s:
            lifecycle.delete_shop(s, gone_id)

        retail, _wholesale, entries = _state(app, d_id)
        assert retail == 1
        assert [e[1] for e in entries] == ["Keep"]
        with session_scope(app) as s:
            assert s.get(Shop, gone_id).is_active is False
            names = [v["name"] for v in lifecycle.list_shops_for_distributor(s, d_id)]
        assert names == ["Keep"]
        assert keep_id != gone_id

    def test_delete_is_idempotent(self, app):
        d_id = _distributor(app)
        shop_id = _add(app, d_id)

        for _ in range(2):
            with session_scope(app) as s:
                lifecycle.delete_shop(s, shop_id)

        assert _state(app, d_id) == (0, 0, [])
        assert _audit_actions(app, shop_id) == ["shop.create", "shop.delete"]

    def test_delete_missing_shop(self, app):
        with pytest.raises(NotFoundError):
            with session_scope(app) as s:
                lifecycle.delete_shop(s, 777)

    def test_repeat_delete_keeps_readded_shop_entry(self, app):
        d_id = _distributor(app)
        old_id = _add(app, d_id)
        with session_scope(app) as s:
            lifecycle.delete_shop(s, old_id)
        new_id = _add(app, d_id)

        with session_scope(app) as s:
            lifecycle.delete_shop(s, old_id)

        assert _state(app, d_id) == (1, 0, [("retail", "Nandu Shop", "Ram", "Delhi")])
        with session_scope(app) as s:
            assert s.get(Shop, new_id).is_active is True
        assert _audit_actions(app, old_id) == ["shop.create", "shop.delete"]


class TestListShops:
    @pytest.fixture()
    def distributor_id(self, app):
        d_id = _distributor(app)
        _legacy(app, d_id, "retail", "Zeta Store", "Z", "Road")
        _legacy(app, d_id, "retail", "beta mart", "o", "a")
        _legacy(app, d_id, "wholesale", "alpha traders", "T", "Market")
        _add(app, d_id, name="Beta Mart", owner="O", address="A")
        return d_id

    def test_merged_and_sorted(self, app, distributor_id):
        with session_scope(app) as s:
            views = lifecycle.list_shops_for_distributor(s, distributor_id)

        assert [(v["name"], v["isLegacy"]) for v in views] == [
            ("alpha traders", True),
            ("Beta Mart", False),
            ("Zeta Store", True),
        ]
        legacy_view = views[0]
        assert legacy_view["type"] == "Whole Seller"
        assert str(legacy_view["_id"]).startswith("legacy-")
        assert _state(app, distributor_id)[:2] == (2, 1)

    def test_type_filter(self, app, distributor_id):
        with session_scope(app) as s:
            retail = lifecycle.list_shops_for_distributor(s, distributor_id, "Retailer")
            wholesale = lifecycle.list_shops_for_distributor(s, distributor_id, "WholeSeller")

        assert [v["name"] for v in retail] == ["Beta Mart", "Zeta Store"]
        assert [v["name"] for v in wholesale] == ["alpha traders"]

    def test_listing_corrects_stale_counts(self, app, distributor_id):
        with session_scope(app) as s:
            s.get(Distributor, distributor_id).retail_shop_count = 99

        with session_scope(app) as s:
            lifecycle.list_shops_for_distributor(s, distributor_id)

        assert _state(app, distributor_id)[:2] == (2, 1)

    def test_unknown_distributor(self, app):
        with pytest.raises(NotFoundError):
            with session_scope(app) as s:
                lifecycle.list_shops_for_distributor(s, 31337)

    def test_distributor_details(self, app, distributor_id):
        with session_scope(app) as s:
            data = lifecycle.get_distributor_details(s, distributor_id)

        assert data["retailShopCount"] == 2
        assert data["wholesaleShopCount"] == 1
        assert [v["name"] for v in data["shops"]["retailShops"]] == ["Beta Mart", "Zeta Store"]
        assert [v["name"] for v in data["shops"]["wholesaleShops"]] == ["alpha traders"]
