# Overview: SQLAlchemy models for sales, lines, payments and invoice counters.

from __future__ import annotations

from ..extensions import db
from tillpoint.money import money_str
from tillpoint.time_utils import to_utc_z


SALE_STATUSES = ("completed", "suspended", "cancelled")
SALE_TYPES = ("sale", "return")


class Sale(db.Model):
    """
    Persisted sale header.

    Created once. After commit only status moves (completed -> cancelled);
    lines and payments are never rewritten.

    Suspended sales have no invoice number and no inventory effect.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "invoice_number", name="uq_sales_tenant_invoice"),
        db.Index("ix_sales_tenant_status_time", "tenant_id", "status", "sale_time"),
        db.CheckConstraint("status IN ('completed', 'suspended', 'cancelled')", name="ck_sales_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)

    # e.g. "POS-20261019-0001"; NULL while suspended
    invoice_number = db.Column(db.String(64), nullable=True)

    sale_type = db.Column(db.String(16), nullable=False, default="sale")
    status = db.Column(db.String(16), nullable=False, index=True)
    sale_time = db.Column(db.DateTime(timezone=True), nullable=False)
    comment = db.Column(db.Text, nullable=True)

    # Full precision; rounded only when presented
    sale_total = db.Column(db.Numeric(18, 6), nullable=False, default=0)
    tax = db.Column(db.Numeric(18, 6), nullable=False, default=0)

    # Void audit trail
    voided_by_employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)
    voided_at = db.Column(db.DateTime(timezone=True), nullable=True)
    void_reason = db.Column(db.String(255), nullable=True)

    # Set when a suspended sale is claimed back into a cart
    resumed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    tenant = db.relationship("Tenant")
    customer = db.relationship("Customer")
    employee = db.relationship("Employee", foreign_keys=[employee_id])
    lines = db.relationship(
        "SaleLine",
        backref="sale",
        lazy=True,
        order_by="SaleLine.line_index",
    )
    payments = db.relationship("Payment", backref="sale", lazy=True, order_by="Payment.id")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "customer_id": self.customer_id,
            "employee_id": self.employee_id,
            "invoice_number": self.invoice_number,
            "sale_type": self.sale_type,
            "status": self.status,
            "sale_time": to_utc_z(self.sale_time),
            "comment": self.comment,
            "sale_total": money_str(self.sale_total),
            "tax": money_str(self.tax),
            "voided_by_employee_id": self.voided_by_employee_id,
            "voided_at": to_utc_z(self.voided_at) if self.voided_at else None,
            "void_reason": self.void_reason,
            "resumed_at": to_utc_z(self.resumed_at) if self.resumed_at else None,
            "version_id": self.version_id,
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
            data["payments"] = [payment.to_dict() for payment in self.payments]
        return data


class SaleLine(db.Model):
    """
    Snapshot of one cart line at commit (or suspend) time.

    Holds identifiers and the transactional values only; display metadata is
    re-read from the catalog when needed.
    """
    __tablename__ = "sale_lines"
    __table_args__ = (
        db.UniqueConstraint("sale_id", "line_index", name="uq_sale_lines_sale_line"),
        db.CheckConstraint("quantity > 0", name="ck_sale_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("stock_locations.id"), nullable=False)

    line_index = db.Column(db.Integer, nullable=False)
    description = db.Column(db.Text, nullable=True)
    serial_number = db.Column(db.String(128), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_cost = db.Column(db.Numeric(18, 6), nullable=False, default=0)
    unit_price = db.Column(db.Numeric(18, 6), nullable=False)

    # Tagged discount: "percent" -> discount_percent, "fixed" -> discount_amount
    discount_type = db.Column(db.String(16), nullable=False, default="percent")
    discount_percent = db.Column(db.Numeric(8, 4), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(18, 6), nullable=False, default=0)

    line_total = db.Column(db.Numeric(18, 6), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "item_id": self.item_id,
            "location_id": self.location_id,
            "line_index": self.line_index,
            "description": self.description,
            "serial_number": self.serial_number,
            "quantity": self.quantity,
            "unit_cost": money_str(self.unit_cost),
            "unit_price": money_str(self.unit_price),
            "discount_type": self.discount_type,
            "discount_percent": str(self.discount_percent),
            "discount_amount": money_str(self.discount_amount),
            "line_total": money_str(self.line_total),
        }


class Payment(db.Model):
    """Tender recorded against a sale (split payments allowed)."""
    __tablename__ = "sale_payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    payment_type = db.Column(db.String(32), nullable=False)
    payment_amount = db.Column(db.Numeric(18, 6), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "payment_type": self.payment_type,
            "payment_amount": money_str(self.payment_amount),
            "created_at": to_utc_z(self.created_at),
        }


class InvoiceSequence(db.Model):
    """
    Per-tenant, per-local-day invoice counter.

    Advanced only with an atomic UPDATE inside the allocating transaction;
    committed values never move backwards, a rolled-back checkout takes its
    increment with it.
    """
    __tablename__ = "invoice_sequences"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "business_date", name="uq_invoice_sequences_tenant_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    business_date = db.Column(db.Date, nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)

    def __repr__(self) -> str:
        return f"<InvoiceSequence tenant={self.tenant_id} date={self.business_date} next={self.next_number}>"
