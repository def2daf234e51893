# Overview: SQLAlchemy models for loyalty accounts, tiers and commissions.

from __future__ import annotations

from ..extensions import db
from tillpoint.money import money_str
from tillpoint.time_utils import to_utc_z


class LoyaltyAccount(db.Model):
    """
    Loyalty points balance for a customer.

    One account per customer. Balance moves only through atomic UPDATEs in
    rewards_service, each paired with a LoyaltyTransaction.
    """
    __tablename__ = "loyalty_accounts"
    __table_args__ = (
        db.UniqueConstraint("customer_id", name="uq_loyalty_accounts_customer"),
        db.CheckConstraint("points_balance >= 0", name="ck_loyalty_accounts_balance_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    points_balance = db.Column(db.Integer, nullable=False, default=0)
    lifetime_points_earned = db.Column(db.Integer, nullable=False, default=0)
    lifetime_points_redeemed = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("loyalty_account", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "tenant_id": self.tenant_id,
            "points_balance": self.points_balance,
            "lifetime_points_earned": self.lifetime_points_earned,
            "lifetime_points_redeemed": self.lifetime_points_redeemed,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class LoyaltyTransaction(db.Model):
    """
    Append-only ledger of loyalty point events.

    TRANSACTION TYPES:
    - earn: Points earned from a sale
    - redeem: Points spent
    - adjust: Manual correction

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "loyalty_transactions"
    __table_args__ = (
        db.Index("ix_loyalty_txns_account_occurred", "loyalty_account_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    loyalty_account_id = db.Column(db.Integer, db.ForeignKey("loyalty_accounts.id"), nullable=False, index=True)

    transaction_type = db.Column(db.String(16), nullable=False, index=True)
    points = db.Column(db.Integer, nullable=False)  # Positive for earn, negative for redeem

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    comment = db.Column(db.String(255), nullable=True)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False)

    account = db.relationship("LoyaltyAccount", backref=db.backref("transactions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "loyalty_account_id": self.loyalty_account_id,
            "transaction_type": self.transaction_type,
            "points": self.points,
            "sale_id": self.sale_id,
            "comment": self.comment,
            "occurred_at": to_utc_z(self.occurred_at),
        }


class CustomerTier(db.Model):
    """Named loyalty tier reached at min_points."""
    __tablename__ = "customer_tiers"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "name", name="uq_customer_tiers_tenant_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    name = db.Column(db.String(64), nullable=False)
    min_points = db.Column(db.Integer, nullable=False, default=0)
    discount_percent = db.Column(db.Numeric(8, 4), nullable=False, default=0)
    color = db.Column(db.String(16), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "min_points": self.min_points,
            "discount_percent": str(self.discount_percent),
            "color": self.color,
        }


class Commission(db.Model):
    """Commission owed to an employee for one sale. Starts unpaid."""
    __tablename__ = "commissions"
    __table_args__ = (
        db.UniqueConstraint("sale_id", "employee_id", name="uq_commissions_sale_employee"),
        db.Index("ix_commissions_employee_paid", "employee_id", "paid"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)

    sale_amount = db.Column(db.Numeric(18, 6), nullable=False)
    commission_amount = db.Column(db.Numeric(18, 6), nullable=False)
    commission_rate = db.Column(db.Numeric(10, 4), nullable=False)
    commission_type = db.Column(db.String(16), nullable=False)  # percentage, fixed

    paid = db.Column(db.Boolean, nullable=False, default=False)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "sale_id": self.sale_id,
            "sale_amount": money_str(self.sale_amount),
            "commission_amount": money_str(self.commission_amount),
            "commission_rate": str(self.commission_rate),
            "commission_type": self.commission_type,
            "paid": self.paid,
            "paid_at": to_utc_z(self.paid_at) if self.paid_at else None,
            "created_at": to_utc_z(self.created_at),
        }
