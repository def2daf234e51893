# Overview: SQLAlchemy models for per-location stock and the inventory audit trail.

from __future__ import annotations

from ..extensions import db
from tillpoint.time_utils import to_utc_z


class InventoryRecord(db.Model):
    """
    Current quantity of one item at one stock location.

    Mutated only through inventory_service.adjust(), which uses a conditional
    atomic UPDATE. The check constraint is the last line of defence for the
    non-negative invariant.
    """
    __tablename__ = "inventory_records"
    __table_args__ = (
        db.UniqueConstraint("item_id", "location_id", name="uq_inventory_records_item_location"),
        db.CheckConstraint("quantity >= 0", name="ck_inventory_records_quantity_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("stock_locations.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    item = db.relationship("Item")
    location = db.relationship("StockLocation")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "location_id": self.location_id,
            "quantity": self.quantity,
            "version_id": self.version_id,
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryTransaction(db.Model):
    """
    Append-only audit row for one quantity change.

    IMMUTABLE: Records are never updated or deleted. Reversals are new rows.
    """
    __tablename__ = "inventory_transactions"
    __table_args__ = (
        db.Index("ix_inventory_txns_item_occurred", "item_id", "occurred_at"),
        db.Index("ix_inventory_txns_tenant_occurred", "tenant_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False)
    location_id = db.Column(db.Integer, db.ForeignKey("stock_locations.id"), nullable=False, index=True)
    actor_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True, index=True)

    # Signed; equals the delta applied to the InventoryRecord
    quantity_delta = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=False)

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "item_id": self.item_id,
            "location_id": self.location_id,
            "actor_id": self.actor_id,
            "quantity_delta": self.quantity_delta,
            "reason": self.reason,
            "sale_id": self.sale_id,
            "occurred_at": to_utc_z(self.occurred_at),
        }
