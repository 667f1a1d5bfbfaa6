# Overview: Flask API routes for events; parses input and returns JSON responses.

# backend/venueops/routes/events.py
"""
Event API Routes

WHY: Book events against resources, price them, and move their supplies.

DESIGN:
- Every route is tenant-scoped through require_tenant (X-Tenant-Id)
- Business rejections (BookingError) propagate to the app error handler,
  which renders {"error", "details"} with the mapped status code
- Anything else is logged and returned as a generic 500
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_tenant
from ..errors import BookingError, ValidationError
from ..resource_ref import resource_ref
from ..services import event_service
from ..services.activity_service import list_activity
from ..services.availability_service import check_availability
from ..services.tenant_service import require_resource
from ..time_utils import parse_iso_date, parse_time_of_day


events_bp = Blueprint("events", __name__, url_prefix="/api/events")


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


def _arg_time(name: str):
    try:
        return parse_time_of_day(request.args.get(name))
    except ValueError:
        raise ValidationError(f"{name} must be a time of day (HH:MM)")


def _arg_int(name: str):
    raw = request.args.get(name)
    if raw is None or raw.strip() == "":
        return None
    if not raw.strip().isdigit():
        raise ValidationError(f"{name} must be an integer")
    return int(raw)


# =============================================================================
# EVENT CRUD
# =============================================================================

@events_bp.get("/")
@require_tenant
def list_events_route():
    """
    List events of the tenant.

    Query params:
    - status: filter by status
    - client_id: only events of this client (404 if not in tenant)
    - include_archived: include archived events (default: false)
    - from, to: only events overlapping this date range
    """
    try:
        include_archived = request.args.get("include_archived", "false").lower() == "true"
        events = event_service.list_events(
            g.tenant_id,
            status=request.args.get("status"),
            client_id=_arg_int("client_id"),
            include_archived=include_archived,
            from_date=_arg_date("from"),
            to_date=_arg_date("to"),
        )
        return jsonify({"items": [e.to_dict() for e in events], "count": len(events)}), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to list events")
        return jsonify({"error": "Internal server error"}), 500


@events_bp.post("/")
@require_tenant
def create_event_route():
    """
    Create an event.

    Request body:
    {
        "title": "Smith wedding",
        "client_id": 1,
        "event_type": "wedding",
        "resource_kind": "space",  (none | space | vehicle)
        "resource_id": 3,
        "start_date": "2026-06-01", "start_time": "14:00",
        "end_date": "2026-06-01", "end_time": "23:00",
        "base_price_cents": 100000,
        "discount_type": "percentage", "discount_value": 1000,
        "tax_rate_bps": 1900,
        "services": [{"name": "DJ", "price_cents": 20000}],
        "partners": [{"partner_id": 2, "hours": 4}],
        "supplies": [{"supply_id": 5, "quantity": 120}]
    }

    Returns:
        201: Event created (supplies pending, not allocated)
        400: Invalid input or time range
        404: Referenced record not found in tenant
        409: Resource already booked
    """
    try:
        event = event_service.create_event(g.tenant_id, _json_body(), actor_user_id=g.actor_user_id)
        return jsonify(event.to_dict()), 201
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to create event")
        return jsonify({"error": "Internal server error"}), 500


@events_bp.get("/<int:event_id>")
@require_tenant
def get_event_route(event_id: int):
    try:
        event = event_service.get_event(g.tenant_id, event_id)
        return jsonify(event.to_dict()), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to load event")
        return jsonify({"error": "Internal server error"}), 500


@events_bp.route("/<int:event_id>", methods=["PATCH", "PUT"])
@require_tenant
def update_event_route(event_id: int):
    """
    Patch an event. Any create field may be sent, plus "status".

    "supplies" replaces the supply lines; "services" and "partners" replace
    the manual and partner services respectively.
    """
    try:
        event = event_service.update_event(g.tenant_id, event_id, _json_body(), actor_user_id=g.actor_user_id)
        return jsonify(event.to_dict()), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to update event")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# LIFECYCLE
# =============================================================================

@events_bp.post("/<int:event_id>/cancel")
@require_tenant
def cancel_event_route(event_id: int):
    """
    Cancel an event and return its supplies to stock.

    Request body (optional):
    {"reason": "Client postponed"}
    """
    try:
        reason = _json_body().get("reason")
        event = event_service.cancel_event(
            g.tenant_id, event_id, actor_user_id=g.actor_user_id, reason=reason,
        )
        return jsonify(event.to_dict()), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to cancel event")
        return jsonify({"error": "Internal server error"}), 500


@events_bp.post("/<int:event_id>/status")
@require_tenant
def change_status_route(event_id: int):
    """Request body: {"status": "confirmed", "reason": "..."}"""
    try:
        data = _json_body()
        if not data.get("status"):
            raise ValidationError("status is required")
        event = event_service.change_event_status(
            g.tenant_id,
            event_id,
            data["status"],
            actor_user_id=g.actor_user_id,
            reason=data.get("reason"),
        )
        return jsonify(event.to_dict()), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to change event status")
        return jsonify({"error": "Internal server error"}), 500


@events_bp.post("/<int:event_id>/archive")
@require_tenant
def archive_event_route(event_id: int):
    try:
        event = event_service.archive_event(g.tenant_id, event_id, actor_user_id=g.actor_user_id)
        return jsonify(event.to_dict()), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to archive event")
        return jsonify({"error": "Internal server error"}), 500


@events_bp.post("/<int:event_id>/restore")
@require_tenant
def restore_event_route(event_id: int):
    try:
        event = event_service.restore_event(g.tenant_id, event_id, actor_user_id=g.actor_user_id)
        return jsonify(event.to_dict()), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to restore event")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# SUPPLIES
# =============================================================================

@events_bp.post("/<int:event_id>/supplies/allocate")
@require_tenant
def allocate_supplies_route(event_id: int):
    """
    Take every pending supply line out of stock (all or nothing).

    Returns:
        200: Event with allocated lines and repriced totals
        409: Insufficient stock (details name supply, requested, available)
             or lines already allocated
    """
    try:
        event = event_service.allocate_supplies(g.tenant_id, event_id, actor_user_id=g.actor_user_id)
        return jsonify(event.to_dict()), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to allocate supplies")
        return jsonify({"error": "Internal server error"}), 500


@events_bp.post("/<int:event_id>/supplies/return")
@require_tenant
def return_supplies_route(event_id: int):
    try:
        event = event_service.return_supplies(g.tenant_id, event_id, actor_user_id=g.actor_user_id)
        return jsonify(event.to_dict()), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to return supplies")
        return jsonify({"error": "Internal server error"}), 500


@events_bp.post("/<int:event_id>/supplies/delivered")
@require_tenant
def deliver_supplies_route(event_id: int):
    try:
        event = event_service.mark_supplies_delivered(g.tenant_id, event_id, actor_user_id=g.actor_user_id)
        return jsonify(event.to_dict()), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to mark supplies delivered")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# QUERIES
# =============================================================================

@events_bp.get("/availability")
@require_tenant
def availability_route():
    """
    Check whether a resource is free for a window without booking it.

    Query params: resource_kind, resource_id, start_date, start_time,
    end_date, end_time, exclude_event_id

    Returns:
        200: {"available": true}
        400: Invalid time range
        409: Conflict (details name the conflicting event)
    """
    try:
        resource_id = request.args.get("resource_id", type=int)
        resource = resource_ref(request.args.get("resource_kind"), resource_id)
        require_resource(g.tenant_id, resource)

        start_date = _arg_date("start_date")
        end_date = _arg_date("end_date")
        if start_date is None or end_date is None:
            raise ValidationError("start_date and end_date are required")

        check_availability(
            g.tenant_id,
            resource,
            start_date,
            _arg_time("start_time"),
            end_date,
            _arg_time("end_time"),
            exclude_event_id=request.args.get("exclude_event_id", type=int),
        )
        return jsonify({"available": True}), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to check availability")
        return jsonify({"error": "Internal server error"}), 500


@events_bp.get("/stranded")
@require_tenant
def stranded_allocations_route():
    """Archived events that still hold allocated or delivered supplies."""
    try:
        events = event_service.find_stranded_allocations(g.tenant_id)
        return jsonify({"items": [e.to_dict() for e in events], "count": len(events)}), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to list stranded allocations")
        return jsonify({"error": "Internal server error"}), 500


@events_bp.get("/stats")
@require_tenant
def event_stats_route():
    """
    Booking statistics over non-archived events.

    Returns:
        200: {"total_events", "upcoming_events", "by_status": [...], "by_type": [...]}
    """
    try:
        return jsonify(event_service.get_event_stats(g.tenant_id)), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to compute event stats")
        return jsonify({"error": "Internal server error"}), 500


@events_bp.get("/<int:event_id>/activity")
@require_tenant
def event_activity_route(event_id: int):
    try:
        event = event_service.get_event(g.tenant_id, event_id)
        entries = list_activity(g.tenant_id, entity_type="event", entity_id=event.id)
        return jsonify({"items": [a.to_dict() for a in entries], "count": len(entries)}), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to load event activity")
        return jsonify({"error": "Internal server error"}), 500
