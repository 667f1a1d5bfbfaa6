from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

PAYMENT_TYPE_INCOME = "income"
PAYMENT_TYPE_EXPENSE = "expense"
PAYMENT_TYPES = (PAYMENT_TYPE_INCOME, PAYMENT_TYPE_EXPENSE)

PAYMENT_PENDING = "pending"
PAYMENT_COMPLETED = "completed"
PAYMENT_FAILED = "failed"
PAYMENT_REFUNDED = "refunded"
PAYMENT_PARTIAL = "partial"
PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_COMPLETED, PAYMENT_FAILED, PAYMENT_REFUNDED, PAYMENT_PARTIAL)

PAYMENT_METHODS = (
    "cash",
    "card",
    "credit_card",
    "bank_transfer",
    "check",
    "mobile_payment",
)


class Payment(db.Model):
    """
    Money moving for a tenant: income from a client or an expense to a partner.

    NET AMOUNT:
    net_amount_cents = amount - (processing + platform + other fees) - refunds.
    Maintained by payment_service whenever the payment changes.

    Only completed, non-archived, income payments count toward an event's
    paid amount.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.Index("ix_payments_tenant_status", "tenant_id", "status"),
        db.Index("ix_payments_tenant_type", "tenant_id", "payment_type"),
        db.Index("ix_payments_event", "event_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    event_id = db.Column(db.Integer, db.ForeignKey("events.id"), nullable=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=True)

    payment_type = db.Column(db.String(16), nullable=False, default=PAYMENT_TYPE_INCOME)
    amount_cents = db.Column(db.Integer, nullable=False)
    method = db.Column(db.String(32), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=PAYMENT_PENDING)

    reference = db.Column(db.String(128), nullable=True)
    description = db.Column(db.String(500), nullable=True)

    processing_fee_cents = db.Column(db.Integer, nullable=False, default=0)
    platform_fee_cents = db.Column(db.Integer, nullable=False, default=0)
    other_fees_cents = db.Column(db.Integer, nullable=False, default=0)

    refund_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    refund_reason = db.Column(db.String(500), nullable=True)
    refunded_at = db.Column(db.DateTime(timezone=True), nullable=True)

    net_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)

    is_archived = db.Column(db.Boolean, nullable=False, default=False)
    archived_at = db.Column(db.DateTime(timezone=True), nullable=True)
    archived_by_user_id = db.Column(db.Integer, nullable=True)

    processed_by_user_id = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @property
    def total_fees_cents(self) -> int:
        return (self.processing_fee_cents or 0) + (self.platform_fee_cents or 0) + (self.other_fees_cents or 0)

    def __repr__(self) -> str:
        return f"<Payment id={self.id} type={self.payment_type} amount_cents={self.amount_cents} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "event_id": self.event_id,
            "client_id": self.client_id,
            "payment_type": self.payment_type,
            "amount_cents": self.amount_cents,
            "method": self.method,
            "status": self.status,
            "reference": self.reference,
            "description": self.description,
            "processing_fee_cents": self.processing_fee_cents,
            "platform_fee_cents": self.platform_fee_cents,
            "other_fees_cents": self.other_fees_cents,
            "refund_amount_cents": self.refund_amount_cents,
            "refund_reason": self.refund_reason,
            "refunded_at": to_utc_z(self.refunded_at) if self.refunded_at else None,
            "net_amount_cents": self.net_amount_cents,
            "paid_at": to_utc_z(self.paid_at) if self.paid_at else None,
            "is_archived": self.is_archived,
            "archived_at": to_utc_z(self.archived_at) if self.archived_at else None,
            "archived_by_user_id": self.archived_by_user_id,
            "processed_by_user_id": self.processed_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
