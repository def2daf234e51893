# Overview: SQLAlchemy models for tenants and stock locations.

from __future__ import annotations

from ..extensions import db
from tillpoint.time_utils import to_utc_z


class Tenant(db.Model):
    """
    Isolated business owning its own catalog, sales and inventory.

    Tenant resolution happens upstream; this row carries only what the
    checkout core needs: local timezone for invoice dates and an optional
    tax rate override.
    """
    __tablename__ = "tenants"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(64), nullable=False, unique=True, index=True)

    # IANA zone name; invoice numbers use the tenant's local calendar day
    timezone = db.Column(db.String(64), nullable=False, default="UTC")
    # NULL -> configured TAX_RATE
    tax_rate = db.Column(db.Numeric(8, 6), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "timezone": self.timezone,
            "tax_rate": str(self.tax_rate) if self.tax_rate is not None else None,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class StockLocation(db.Model):
    """Physical stock location (shop floor, back room, warehouse)."""
    __tablename__ = "stock_locations"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "location_name", name="uq_stock_locations_tenant_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    location_name = db.Column(db.String(128), nullable=False)
    deleted = db.Column(db.Boolean, nullable=False, default=False)

    tenant = db.relationship("Tenant", backref=db.backref("stock_locations", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "location_name": self.location_name,
            "deleted": self.deleted,
        }
