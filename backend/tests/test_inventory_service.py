# Overview: Pytest coverage for inventory adjustments, transfers and the audit trail.

import threading

import pytest

from tillpoint import create_app
from tillpoint.errors import ConflictError, ValidationError, INSUFFICIENT_STOCK
from tillpoint.config import TestConfig
from tillpoint.extensions import db
from tillpoint.models import InventoryTransaction, Tenant, Item, StockLocation
from tillpoint.services import inventory_service

from conftest import stock


class TestAdjust:
    def test_first_receive_creates_record(self, db_session, tenant_a, location_a, beans):
        qty = stock(tenant_a, beans, location_a, 5)
        assert qty == 5
        assert inventory_service.get_stock_level(beans.id, location_a.id) == 5

    def test_unstocked_level_is_zero(self, db_session, location_a, beans):
        assert inventory_service.get_stock_level(beans.id, location_a.id) == 0

    def test_level_is_tenant_scoped(self, db_session, tenant_a, tenant_b, location_a, beans):
        stock(tenant_a, beans, location_a, 7)
        assert inventory_service.get_stock_level(beans.id, location_a.id, tenant_id=tenant_a.id) == 7
        with pytest.raises(ValidationError):
            inventory_service.get_stock_level(beans.id, location_a.id, tenant_id=tenant_b.id)

    def test_decrement(self, db_session, tenant_a, location_a, beans):
        stock(tenant_a, beans, location_a, 5)
        qty = inventory_service.adjust(
            tenant_id=tenant_a.id, item_id=beans.id, location_id=location_a.id, delta=-2, reason="shrink",
        )
        assert qty == 3

    def test_decrement_to_exactly_zero(self, db_session, tenant_a, location_a, beans):
        stock(tenant_a, beans, location_a, 2)
        qty = inventory_service.adjust(
            tenant_id=tenant_a.id, item_id=beans.id, location_id=location_a.id, delta=-2, reason="shrink",
        )
        assert qty == 0

    def test_decrement_below_zero_rejected(self, db_session, tenant_a, location_a, beans):
        stock(tenant_a, beans, location_a, 1)
        with pytest.raises(ConflictError) as exc:
            inventory_service.adjust(
                tenant_id=tenant_a.id, item_id=beans.id, location_id=location_a.id, delta=-2, reason="shrink",
            )
        assert exc.value.code == INSUFFICIENT_STOCK
        assert exc.value.details["requested"] == 2
        assert exc.value.details["available"] == 1
        assert inventory_service.get_stock_level(beans.id, location_a.id) == 1

    def test_decrement_of_unstocked_item_rejected(self, db_session, tenant_a, location_a, beans):
        with pytest.raises(ConflictError):
            inventory_service.adjust(
                tenant_id=tenant_a.id, item_id=beans.id, location_id=location_a.id, delta=-1, reason="shrink",
            )

    def test_zero_delta_rejected(self, db_session, tenant_a, location_a, beans):
        with pytest.raises(ValidationError):
            inventory_service.adjust(
                tenant_id=tenant_a.id, item_id=beans.id, location_id=location_a.id, delta=0, reason="noop",
            )

    def test_foreign_item_rejected(self, db_session, tenant_a, location_a, item_b):
        with pytest.raises(ValidationError):
            inventory_service.adjust(
                tenant_id=tenant_a.id, item_id=item_b.id, location_id=location_a.id, delta=1, reason="x",
            )

    def test_every_adjustment_is_audited(self, db_session, tenant_a, location_a, beans):
        stock(tenant_a, beans, location_a, 5)
        inventory_service.adjust(
            tenant_id=tenant_a.id, item_id=beans.id, location_id=location_a.id, delta=-1, reason="damaged",
        )
        rows = inventory_service.list_transactions(tenant_id=tenant_a.id, item_id=beans.id)
        assert [r.quantity_delta for r in rows] == [-1, 5]
        assert rows[0].reason == "damaged"
        assert sum(r.quantity_delta for r in rows) == inventory_service.get_stock_level(beans.id, location_a.id)

    def test_failed_adjustment_writes_no_audit_row(self, db_session, tenant_a, location_a, beans):
        stock(tenant_a, beans, location_a, 1)
        with pytest.raises(ConflictError):
            inventory_service.adjust(
                tenant_id=tenant_a.id, item_id=beans.id, location_id=location_a.id, delta=-5, reason="x",
            )
        assert db_session.query(InventoryTransaction).count() == 1


class TestTransfer:
    def test_transfer_moves_stock(self, db_session, tenant_a, location_a, warehouse_a, beans):
        stock(tenant_a, beans, warehouse_a, 10)
        source, dest = inventory_service.transfer(
            tenant_id=tenant_a.id,
            item_id=beans.id,
            from_location_id=warehouse_a.id,
            to_location_id=location_a.id,
            quantity=4,
            reason="restock",
        )
        assert (source, dest) == (6, 4)

        rows = inventory_service.list_transactions(tenant_id=tenant_a.id, item_id=beans.id, location_id=location_a.id)
        assert rows[0].reason == f"Transfer from location {warehouse_a.id}: restock"

    def test_short_transfer_applies_neither_side(self, db_session, tenant_a, location_a, warehouse_a, beans):
        stock(tenant_a, beans, warehouse_a, 2)
        with pytest.raises(ConflictError):
            inventory_service.transfer(
                tenant_id=tenant_a.id,
                item_id=beans.id,
                from_location_id=warehouse_a.id,
                to_location_id=location_a.id,
                quantity=3,
            )
        assert inventory_service.get_stock_level(beans.id, warehouse_a.id) == 2
        assert inventory_service.get_stock_level(beans.id, location_a.id) == 0

    def test_same_location_rejected(self, db_session, tenant_a, location_a, beans):
        with pytest.raises(ValidationError):
            inventory_service.transfer(
                tenant_id=tenant_a.id,
                item_id=beans.id,
                from_location_id=location_a.id,
                to_location_id=location_a.id,
                quantity=1,
            )


class TestConcurrentAdjust:
    def test_concurrent_decrements_serialize(self, tmp_path):
        """More callers than stock: every success is one unit and one audit row, never below zero."""
        db_path = tmp_path / "inventory.sqlite3"
        FileConfig = type("FileConfig", (TestConfig,), {"SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}"})
        file_app = create_app(FileConfig)

        opening = 30
        with file_app.app_context():
            db.create_all()
            tenant = Tenant(name="Busy Shop", slug="busy", timezone="UTC")
            db.session.add(tenant)
            db.session.flush()
            item = Item(tenant_id=tenant.id, name="Espresso Cups", unit_price=4)
            location = StockLocation(tenant_id=tenant.id, location_name="Front Store")
            db.session.add_all([item, location])
            db.session.commit()
            ids = (tenant.id, item.id, location.id)
            inventory_service.receive(
                tenant_id=tenant.id, item_id=item.id, location_id=location.id, quantity=opening,
            )

        tenant_id, item_id, location_id = ids
        callers = 40
        barrier = threading.Barrier(callers)
        successes = []
        shortfalls = []
        errors = []
        lock = threading.Lock()

        def worker():
            with file_app.app_context():
                barrier.wait()
                try:
                    inventory_service.adjust(
                        tenant_id=tenant_id, item_id=item_id, location_id=location_id, delta=-1, reason="sale",
                    )
                except ConflictError:
                    with lock:
                        shortfalls.append(1)
                except Exception as exc:
                    with lock:
                        errors.append(exc)
                else:
                    with lock:
                        successes.append(1)
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker) for _ in range(callers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=120)

        try:
            assert errors == []
            assert len(successes) == opening
            assert len(shortfalls) == callers - opening
            with file_app.app_context():
                assert inventory_service.get_stock_level(item_id, location_id) == opening - len(successes)
                deltas = [tx.quantity_delta for tx in db.session.query(InventoryTransaction).all()]
                assert sorted(deltas) == [-1] * len(successes) + [opening]
        finally:
            with file_app.app_context():
                db.session.remove()
                db.engine.dispose()
