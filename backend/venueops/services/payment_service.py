# Overview: Service-layer operations for payments; encapsulates the payment summary of events.

"""
Payment Service

WHY: Payments are recorded against events (deposits, balances, refunds) and
the event carries a derived payment summary: how much was paid, how much is
still due, and whether it is pending, partial or paid.

DESIGN PRINCIPLES:
- Payments are separate from events (many-to-one relationship)
- Paid amount is always recomputed from the payment rows, never incremented
- Only completed, non-archived income payments count, at their net amount
- Every payment write refreshes the linked event in the same transaction
- No automatic refunds: cancelling an event leaves its payments alone
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta

from flask import current_app
from sqlalchemy import func

from ..errors import StateError, ValidationError
from ..extensions import db
from ..models import Event, Payment
from ..models.payments import (
    PAYMENT_TYPE_EXPENSE,
    PAYMENT_TYPE_INCOME,
    PAYMENT_COMPLETED,
    PAYMENT_PENDING,
    PAYMENT_REFUNDED,
)
from ..time_utils import utcnow
from ..validation import (
    PAYMENT_CREATE_POLICY,
    PAYMENT_UPDATE_POLICY,
    enforce_rules_payment,
    validate_payload,
)
from .activity_service import append_activity
from .concurrency import run_with_retry
from .tenant_service import require_client, require_event, require_payment


# =============================================================================
# PAYMENT SUMMARY (CONSTANTS)
# =============================================================================

PAYMENT_SUMMARY_PENDING = "pending"
PAYMENT_SUMMARY_PARTIAL = "partial"
PAYMENT_SUMMARY_PAID = "paid"


@dataclass(frozen=True)
class PaymentSummary:
    status: str
    amount_due_cents: int


def derive_payment_summary(total_cents: int, paid_cents: int) -> PaymentSummary:
    """
    Pure status derivation.

    paid:    total > 0 and paid >= total
    partial: 0 < paid < total
    pending: everything else (including a zero total)
    """
    total = total_cents or 0
    paid = paid_cents or 0

    if total > 0 and paid >= total:
        status = PAYMENT_SUMMARY_PAID
    elif 0 < paid < total:
        status = PAYMENT_SUMMARY_PARTIAL
    else:
        status = PAYMENT_SUMMARY_PENDING

    return PaymentSummary(status=status, amount_due_cents=max(0, total - paid))


def get_paid_amount_cents(tenant_id: int, event_id: int) -> int:
    """Sum of net amounts over completed, non-archived income payments for an event."""
    total = (
        db.session.query(func.coalesce(func.sum(Payment.net_amount_cents), 0))
        .filter(
            Payment.tenant_id == tenant_id,
            Payment.event_id == event_id,
            Payment.payment_type == PAYMENT_TYPE_INCOME,
            Payment.status == PAYMENT_COMPLETED,
            Payment.is_archived.is_(False),
        )
        .scalar()
    )
    return int(total or 0)


def refresh_payment_summary(event: Event) -> PaymentSummary:
    """Recompute paid amount, status and amount due on an event. Does not commit."""
    # Pending payment rows must be visible to the SUM
    db.session.flush()
    paid = get_paid_amount_cents(event.tenant_id, event.id)
    summary = derive_payment_summary(event.total_cents, paid)

    event.paid_amount_cents = paid
    event.payment_status = summary.status
    event.amount_due_cents = summary.amount_due_cents
    return summary


def calculate_net_amount(payment: Payment) -> int:
    """net = amount - fees - refunded amount"""
    return (payment.amount_cents or 0) - payment.total_fees_cents - (payment.refund_amount_cents or 0)


# =============================================================================
# PAYMENT LIFECYCLE
# =============================================================================

def _refresh_linked_event(tenant_id: int, event_id: int | None) -> None:
    if event_id is None:
        return
    event = require_event(tenant_id, event_id)
    refresh_payment_summary(event)


def _apply_status_stamps(payment: Payment) -> None:
    if payment.status == PAYMENT_COMPLETED and payment.paid_at is None:
        payment.paid_at = utcnow()


def record_payment(tenant_id: int, data: dict, actor_user_id: int | None = None) -> Payment:
    """
    Record a payment, optionally against an event.

    Args:
        tenant_id: Owning tenant
        data: amount_cents, method, and optional event_id, client_id,
            payment_type, status, reference, description, fee fields
        actor_user_id: User recording the payment

    Raises:
        ValidationError: invalid payload or non-positive amount
        NotFoundError: event or client not in tenant
    """
    patch = validate_payload(model=Payment, payload=data, policy=PAYMENT_CREATE_POLICY, partial=False)
    enforce_rules_payment(patch)
    if patch["amount_cents"] <= 0:
        raise ValidationError("amount_cents must be positive")

    def _op():
        event = None
        if patch.get("event_id") is not None:
            event = require_event(tenant_id, patch["event_id"])
        if patch.get("client_id") is not None:
            require_client(tenant_id, patch["client_id"])

        payment = Payment(tenant_id=tenant_id, processed_by_user_id=actor_user_id)
        for key, value in patch.items():
            setattr(payment, key, value)
        if payment.client_id is None and event is not None:
            payment.client_id = event.client_id
        if payment.status is None:
            payment.status = PAYMENT_PENDING
        if payment.payment_type is None:
            payment.payment_type = PAYMENT_TYPE_INCOME
        for key in ("processing_fee_cents", "platform_fee_cents", "other_fees_cents", "refund_amount_cents"):
            if getattr(payment, key) is None:
                setattr(payment, key, 0)

        _apply_status_stamps(payment)
        payment.net_amount_cents = calculate_net_amount(payment)

        db.session.add(payment)
        db.session.flush()

        if event is not None:
            refresh_payment_summary(event)

        append_activity(
            tenant_id=tenant_id,
            event_type="payment.recorded",
            entity_type="payment",
            entity_id=payment.id,
            actor_user_id=actor_user_id,
            payload={"event_id": payment.event_id, "amount_cents": payment.amount_cents, "status": payment.status},
        )
        db.session.commit()
        return payment

    return run_with_retry(_op)


def update_payment(tenant_id: int, payment_id: int, data: dict, actor_user_id: int | None = None) -> Payment:
    """Patch a payment and refresh the event(s) it was and is linked to."""
    patch = validate_payload(model=Payment, payload=data, policy=PAYMENT_UPDATE_POLICY, partial=True)
    enforce_rules_payment(patch)
    if "amount_cents" in patch and (patch["amount_cents"] is None or patch["amount_cents"] <= 0):
        raise ValidationError("amount_cents must be positive")

    def _op():
        payment = require_payment(tenant_id, payment_id, lock=True)
        if payment.is_archived:
            raise StateError("Cannot modify an archived payment", details={"payment_id": payment.id})

        if patch.get("event_id") is not None:
            require_event(tenant_id, patch["event_id"])
        if patch.get("client_id") is not None:
            require_client(tenant_id, patch["client_id"])

        previous_event_id = payment.event_id
        for key, value in patch.items():
            setattr(payment, key, value)

        if (payment.refund_amount_cents or 0) > payment.amount_cents:
            raise ValidationError("amount_cents cannot be less than the refunded amount")

        _apply_status_stamps(payment)
        payment.net_amount_cents = calculate_net_amount(payment)

        _refresh_linked_event(tenant_id, payment.event_id)
        if previous_event_id != payment.event_id:
            _refresh_linked_event(tenant_id, previous_event_id)

        append_activity(
            tenant_id=tenant_id,
            event_type="payment.updated",
            entity_type="payment",
            entity_id=payment.id,
            actor_user_id=actor_user_id,
            payload={"fields": sorted(patch.keys())},
        )
        db.session.commit()
        return payment

    return run_with_retry(_op)


def archive_payment(tenant_id: int, payment_id: int, actor_user_id: int | None = None) -> Payment:
    """Archive a payment; it stops counting towards its event's paid amount."""
    def _op():
        payment = require_payment(tenant_id, payment_id, lock=True)
        if payment.is_archived:
            raise StateError("Payment is already archived", details={"payment_id": payment.id})

        payment.is_archived = True
        payment.archived_at = utcnow()
        payment.archived_by_user_id = actor_user_id

        _refresh_linked_event(tenant_id, payment.event_id)
        append_activity(
            tenant_id=tenant_id,
            event_type="payment.archived",
            entity_type="payment",
            entity_id=payment.id,
            actor_user_id=actor_user_id,
        )
        db.session.commit()
        return payment

    return run_with_retry(_op)


def restore_payment(tenant_id: int, payment_id: int, actor_user_id: int | None = None) -> Payment:
    def _op():
        payment = require_payment(tenant_id, payment_id, lock=True)
        if not payment.is_archived:
            raise StateError("Payment is not archived", details={"payment_id": payment.id})

        payment.is_archived = False
        payment.archived_at = None
        payment.archived_by_user_id = None

        _refresh_linked_event(tenant_id, payment.event_id)
        append_activity(
            tenant_id=tenant_id,
            event_type="payment.restored",
            entity_type="payment",
            entity_id=payment.id,
            actor_user_id=actor_user_id,
        )
        db.session.commit()
        return payment

    return run_with_retry(_op)


def refund_payment(
    tenant_id: int,
    payment_id: int,
    amount_cents: int,
    reason: str | None = None,
    actor_user_id: int | None = None,
) -> Payment:
    """
    Refund part or all of a completed payment.

    Refunds accumulate on the payment. A full refund moves the payment to
    `refunded` (no longer counted); a partial refund keeps it `completed`
    with a reduced net amount.

    Raises:
        ValidationError: non-positive amount, or refund exceeds what is left
        StateError: payment archived or not completed
    """
    if not isinstance(amount_cents, int) or isinstance(amount_cents, bool) or amount_cents <= 0:
        raise ValidationError("refund amount_cents must be a positive integer")

    def _op():
        payment = require_payment(tenant_id, payment_id, lock=True)
        if payment.is_archived:
            raise StateError("Cannot refund an archived payment", details={"payment_id": payment.id})
        if payment.status != PAYMENT_COMPLETED:
            raise StateError(
                f"Only completed payments can be refunded (status is {payment.status})",
                details={"payment_id": payment.id, "status": payment.status},
            )

        already = payment.refund_amount_cents or 0
        refundable = payment.amount_cents - already
        if amount_cents > refundable:
            raise ValidationError(
                "Refund exceeds the refundable amount",
                details={"payment_id": payment.id, "requested": amount_cents, "refundable": refundable},
            )

        payment.refund_amount_cents = already + amount_cents
        payment.refund_reason = reason
        payment.refunded_at = utcnow()
        if payment.refund_amount_cents >= payment.amount_cents:
            payment.status = PAYMENT_REFUNDED
        payment.net_amount_cents = calculate_net_amount(payment)

        _refresh_linked_event(tenant_id, payment.event_id)
        append_activity(
            tenant_id=tenant_id,
            event_type="payment.refunded",
            entity_type="payment",
            entity_id=payment.id,
            actor_user_id=actor_user_id,
            note=reason,
            payload={"amount_cents": amount_cents, "status": payment.status},
        )
        db.session.commit()

        current_app.logger.info(
            "Refunded %s cents on payment %s (tenant %s)", amount_cents, payment.id, tenant_id,
        )
        return payment

    return run_with_retry(_op)


def list_event_payments(tenant_id: int, event_id: int) -> list[Payment]:
    require_event(tenant_id, event_id)
    return (
        db.session.query(Payment)
        .filter_by(tenant_id=tenant_id, event_id=event_id)
        .order_by(Payment.id)
        .all()
    )


def get_payment_stats(tenant_id: int, from_date=None, to_date=None) -> dict:
    """
    Totals over the tenant's non-archived payments, optionally limited to
    payments created within [from_date, to_date] (whole days).

    income_cents / expense_cents = SUM(net_amount_cents) of completed payments
    pending_cents = SUM(amount_cents) of pending payments
    net_revenue_cents = income_cents - expense_cents
    """
    base = db.session.query(Payment).filter(Payment.tenant_id == tenant_id)
    if from_date is not None:
        base = base.filter(Payment.created_at >= datetime.combine(from_date, time.min))
    if to_date is not None:
        base = base.filter(Payment.created_at < datetime.combine(to_date + timedelta(days=1), time.min))

    live = base.filter(Payment.is_archived.is_(False))
    completed = live.filter(Payment.status == PAYMENT_COMPLETED)

    def _net_total(payment_type: str) -> int:
        total = (
            completed.filter(Payment.payment_type == payment_type)
            .with_entities(func.coalesce(func.sum(Payment.net_amount_cents), 0))
            .scalar()
        )
        return int(total or 0)

    income = _net_total(PAYMENT_TYPE_INCOME)
    expense = _net_total(PAYMENT_TYPE_EXPENSE)
    pending = (
        live.filter(Payment.status == PAYMENT_PENDING)
        .with_entities(func.coalesce(func.sum(Payment.amount_cents), 0))
        .scalar()
    )

    method_rows = (
        completed.with_entities(
            Payment.method,
            func.count(Payment.id),
            func.coalesce(func.sum(Payment.amount_cents), 0),
        )
        .group_by(Payment.method)
        .order_by(Payment.method)
        .all()
    )

    return {
        "tenant_id": tenant_id,
        "income_cents": income,
        "expense_cents": expense,
        "net_revenue_cents": income - expense,
        "pending_cents": int(pending or 0),
        "completed_count": completed.count(),
        "archived_count": base.filter(Payment.is_archived.is_(True)).count(),
        "by_method": [
            {"method": method, "count": int(count), "amount_cents": int(amount or 0)}
            for method, count, amount in method_rows
        ],
    }
