# Overview: SQLAlchemy models for items, customers and employees.

from __future__ import annotations

from ..extensions import db
from tillpoint.money import money_str


class Item(db.Model):
    """
    Catalog item as seen by checkout.

    Catalog maintenance lives elsewhere; checkout reads name, prices and the
    serialized flag, and snapshots price/cost into sale lines.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.Index("ix_items_tenant_deleted", "tenant_id", "deleted"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    item_number = db.Column(db.String(64), nullable=True, index=True)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(128), nullable=True)

    cost_price = db.Column(db.Numeric(18, 6), nullable=False, default=0)
    unit_price = db.Column(db.Numeric(18, 6), nullable=False, default=0)

    is_serialized = db.Column(db.Boolean, nullable=False, default=False)
    allow_alt_description = db.Column(db.Boolean, nullable=False, default=False)
    deleted = db.Column(db.Boolean, nullable=False, default=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "item_number": self.item_number,
            "description": self.description,
            "category": self.category,
            "cost_price": money_str(self.cost_price),
            "unit_price": money_str(self.unit_price),
            "is_serialized": self.is_serialized,
            "allow_alt_description": self.allow_alt_description,
            "deleted": self.deleted,
        }


class Customer(db.Model):
    """Customer record; checkout needs the taxable flag and default discount."""
    __tablename__ = "customers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    first_name = db.Column(db.String(128), nullable=False)
    last_name = db.Column(db.String(128), nullable=False, default="")
    company_name = db.Column(db.String(255), nullable=True)
    account_number = db.Column(db.String(64), nullable=True)

    taxable = db.Column(db.Boolean, nullable=False, default=True)
    discount_percent = db.Column(db.Numeric(8, 4), nullable=False, default=0)
    deleted = db.Column(db.Boolean, nullable=False, default=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "company_name": self.company_name,
            "account_number": self.account_number,
            "taxable": self.taxable,
            "discount_percent": str(self.discount_percent),
            "deleted": self.deleted,
        }


class Employee(db.Model):
    """Employee identity plus commission settings."""
    __tablename__ = "employees"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    username = db.Column(db.String(128), nullable=False)

    # NULL rate -> no commission recorded
    commission_rate = db.Column(db.Numeric(10, 4), nullable=True)
    commission_type = db.Column(db.String(16), nullable=False, default="percentage")  # percentage, fixed

    deleted = db.Column(db.Boolean, nullable=False, default=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "username": self.username,
            "commission_rate": str(self.commission_rate) if self.commission_rate is not None else None,
            "commission_type": self.commission_type,
            "deleted": self.deleted,
        }
