# Overview: Flask API routes for payments; parses input and returns JSON responses.

# backend/venueops/routes/payments.py
"""
Payment API Routes

WHY: Record deposits and balances against events and keep each event's
payment summary (paid, due, status) current.

DESIGN:
- Payments are recorded, corrected, archived or refunded, never deleted
- Every write refreshes the linked event's payment summary in the same
  transaction
- Cancelling an event does not refund anything; refunds are explicit
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_tenant
from ..errors import BookingError, ValidationError
from ..services import payment_service
from ..services.tenant_service import require_event, require_payment
from ..time_utils import parse_iso_date


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data


def _arg_date(name: str):
    try:
        return parse_iso_date(request.args.get(name))
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date")


def _with_event_summary(payment) -> dict:
    body = {"payment": payment.to_dict()}
    if payment.event_id is not None:
        event = require_event(g.tenant_id, payment.event_id)
        body["event_payment_summary"] = {
            "total_cents": event.total_cents,
            "paid_amount_cents": event.paid_amount_cents,
            "amount_due_cents": event.amount_due_cents,
            "status": event.payment_status,
        }
    return body


# =============================================================================
# PAYMENT CREATION
# =============================================================================

@payments_bp.post("/")
@require_tenant
def record_payment_route():
    """
    Record a payment.

    Request body:
    {
        "event_id": 12,  (optional)
        "amount_cents": 50000,
        "method": "bank_transfer",
        "status": "completed",
        "reference": "INV-2026-014",  (optional)
        "processing_fee_cents": 150  (optional)
    }

    Returns:
        201: Payment plus the event's refreshed payment summary
        400: Invalid input
        404: Event or client not found in tenant
    """
    try:
        payment = payment_service.record_payment(g.tenant_id, _json_body(), actor_user_id=g.actor_user_id)
        return jsonify(_with_event_summary(payment)), 201
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PAYMENT CHANGES
# =============================================================================

@payments_bp.route("/<int:payment_id>", methods=["PATCH", "PUT"])
@require_tenant
def update_payment_route(payment_id: int):
    try:
        payment = payment_service.update_payment(
            g.tenant_id, payment_id, _json_body(), actor_user_id=g.actor_user_id,
        )
        return jsonify(_with_event_summary(payment)), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to update payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/<int:payment_id>/refund")
@require_tenant
def refund_payment_route(payment_id: int):
    """
    Request body:
    {"amount_cents": 2000, "reason": "Reduced guest count"}
    """
    try:
        data = _json_body()
        payment = payment_service.refund_payment(
            g.tenant_id,
            payment_id,
            data.get("amount_cents"),
            reason=data.get("reason"),
            actor_user_id=g.actor_user_id,
        )
        return jsonify(_with_event_summary(payment)), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to refund payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/<int:payment_id>/archive")
@require_tenant
def archive_payment_route(payment_id: int):
    try:
        payment = payment_service.archive_payment(g.tenant_id, payment_id, actor_user_id=g.actor_user_id)
        return jsonify(_with_event_summary(payment)), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to archive payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/<int:payment_id>/restore")
@require_tenant
def restore_payment_route(payment_id: int):
    try:
        payment = payment_service.restore_payment(g.tenant_id, payment_id, actor_user_id=g.actor_user_id)
        return jsonify(_with_event_summary(payment)), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to restore payment")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PAYMENT QUERIES
# =============================================================================

@payments_bp.get("/<int:payment_id>")
@require_tenant
def get_payment_route(payment_id: int):
    try:
        payment = require_payment(g.tenant_id, payment_id)
        return jsonify(payment.to_dict()), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to load payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("/events/<int:event_id>")
@require_tenant
def get_event_payments_route(event_id: int):
    """
    All payments for an event plus its payment summary.

    Query params:
    - include_archived: include archived payments (default: false)
    """
    try:
        include_archived = request.args.get("include_archived", "false").lower() == "true"
        payments = payment_service.list_event_payments(g.tenant_id, event_id)
        if not include_archived:
            payments = [p for p in payments if not p.is_archived]
        event = require_event(g.tenant_id, event_id)
        return jsonify({
            "event_id": event.id,
            "total_cents": event.total_cents,
            "paid_amount_cents": event.paid_amount_cents,
            "amount_due_cents": event.amount_due_cents,
            "status": event.payment_status,
            "payments": [p.to_dict() for p in payments],
        }), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to load event payments")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("/stats")
@require_tenant
def payment_stats_route():
    """
    Income, expense and pending totals over non-archived payments.

    Query params:
    - from, to: only payments created on these days (YYYY-MM-DD, inclusive)
    """
    try:
        stats = payment_service.get_payment_stats(
            g.tenant_id,
            from_date=_arg_date("from"),
            to_date=_arg_date("to"),
        )
        return jsonify(stats), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to compute payment stats")
        return jsonify({"error": "Internal server error"}), 500
