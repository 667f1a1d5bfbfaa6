# Overview: Service-layer operations for events; the event aggregate and its explicit save pipeline.

"""
Event Service

WHY: An event ties a client, a bookable resource, a time window, priced
services and supply lines together. Every write runs the same explicit
pipeline instead of relying on save hooks:

    validate -> tenant ownership -> claim calendar -> collision check
      -> build services / supply lines -> allocate or return stock
      -> reprice -> payment summary -> activity log -> commit

The whole pipeline is one transaction inside run_with_retry. Any exception
rolls back, so an event is never persisted half-priced or half-allocated.

STATUS LIFECYCLE:
    pending -> confirmed -> in-progress -> completed
    any non-terminal status -> cancelled (returns held stock, no refund)

RECORD STATE (orthogonal to status):
    ACTIVE <-> ARCHIVED
    Archiving does not return stock; find_stranded_allocations reports
    archived events that still hold supplies.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..errors import NotFoundError, StateError, ValidationError
from ..extensions import db
from ..models import Event, EventServiceItem, EventSupplyLine, RECORD_ACTIVE, RECORD_ARCHIVED
from ..models.directory import PARTNER_PRICE_HOURLY
from ..models.events import (
    DISCOUNT_FIXED,
    DISCOUNT_PERCENTAGE,
    EVENT_STATUS_CANCELLED,
    EVENT_STATUS_COMPLETED,
    EVENT_STATUS_CONFIRMED,
    EVENT_STATUS_PENDING,
    EVENT_STATUSES,
    EVENT_TRANSITIONS,
    LINE_HOLDING_STATUSES,
    LINE_STATUS_PENDING,
    SERVICE_KIND_MANUAL,
    SERVICE_KIND_PARTNER,
)
from ..resource_ref import KIND_NONE, ResourceRef, resource_ref
from ..time_utils import utcnow
from ..validation import (
    EVENT_CREATE_POLICY,
    EVENT_UPDATE_POLICY,
    MAX_BPS,
    enforce_rules_event,
    validate_payload,
)
from .activity_service import append_activity
from .allocation_service import allocate_lines, cancel_pending_lines, mark_delivered, return_lines
from .availability_service import check_availability, claim_resource_calendar
from .concurrency import run_with_retry
from .payment_service import refresh_payment_summary
from .pricing_service import reprice_event
from .tenant_service import (
    require_client,
    require_event,
    require_partner,
    require_resource,
    require_supply,
)

NESTED_FIELDS = ("services", "supplies", "partners")
TIMING_FIELDS = ("resource_kind", "resource_id", "start_date", "start_time", "end_date", "end_time")


# =============================================================================
# PIPELINE STEPS
# =============================================================================

def _resolve_resource(event: Event, changes: dict) -> ResourceRef:
    kind = changes.get("resource_kind", event.resource_kind)
    if "resource_id" in changes:
        resource_id = changes["resource_id"]
    elif (kind or KIND_NONE) == KIND_NONE:
        resource_id = None
    else:
        resource_id = event.resource_id
    return resource_ref(kind, resource_id)


def _reserve_slot(event: Event, resource: ResourceRef) -> None:
    """Validate the resource, claim its calendar and check the event's window against it."""
    require_resource(event.tenant_id, resource)
    claim_resource_calendar(event.tenant_id, resource)
    check_availability(
        event.tenant_id,
        resource,
        event.start_date,
        event.start_time,
        event.end_date,
        event.end_time,
        exclude_event_id=event.id,
    )


def _build_manual_services(event: Event, items: list[dict]) -> None:
    for item in items:
        event.services.append(
            EventServiceItem(name=item["name"], price_cents=item["price_cents"], kind=SERVICE_KIND_MANUAL)
        )


def _build_partner_services(event: Event, requests: list[dict]) -> None:
    """
    Partner services are priced from the partner's rate card:
    hourly partners charge hours x hourly rate, fixed partners the given cost
    or their fixed rate.
    """
    for req in requests:
        partner = require_partner(event.tenant_id, req["partner_id"])
        if not partner.is_active:
            raise ValidationError("Partner is not active", details={"partner_id": partner.id})

        hours = None
        if partner.price_type == PARTNER_PRICE_HOURLY:
            hours = req.get("hours") or 1
            price = hours * (partner.hourly_rate_cents or 0)
        elif req.get("cost_cents") is not None:
            price = req["cost_cents"]
        else:
            price = partner.fixed_rate_cents or 0

        event.services.append(
            EventServiceItem(
                name=req.get("service") or partner.name,
                price_cents=price,
                kind=SERVICE_KIND_PARTNER,
                partner_id=partner.id,
                hours=hours,
            )
        )


def _replace_services(event: Event, kind: str) -> None:
    for item in [s for s in event.services if s.kind == kind]:
        event.services.remove(item)


def _build_supply_lines(event: Event, requests: list[dict]) -> None:
    """Add pending lines that snapshot the supply's name, unit and prices."""
    for req in requests:
        supply = require_supply(event.tenant_id, req["supply_id"])
        if supply.is_archived:
            raise StateError(
                f"Supply {supply.name} is archived",
                details={"supply_id": supply.id},
            )

        charge = req.get("charge_per_unit_cents")
        if charge is None:
            charge = supply.charge_per_unit_cents or 0

        event.supply_lines.append(
            EventSupplyLine(
                supply_id=supply.id,
                supply_name=supply.name,
                supply_category=supply.category or "Uncategorized",
                unit=supply.unit,
                pricing_type=supply.pricing_type,
                cost_per_unit_cents=supply.cost_per_unit_cents or 0,
                charge_per_unit_cents=charge,
                quantity_requested=req["quantity"],
                quantity_allocated=0,
                status=LINE_STATUS_PENDING,
            )
        )


def _replace_supply_lines(event: Event, requests: list[dict], actor_user_id: int | None) -> None:
    """
    Swap the event's supply lines for a new request list.

    Held lines are returned to stock and kept as cancelled history, pending
    lines are dropped. When the replaced lines held stock the new lines are
    allocated straight away so the event keeps holding its supplies.
    """
    held_before = event.holds_stock
    return_lines(event, actor_user_id)

    dropped = [line for line in event.supply_lines if line.status == LINE_STATUS_PENDING]
    for line in dropped:
        event.supply_lines.remove(line)

    _build_supply_lines(event, requests)

    if held_before and requests:
        allocate_lines(event, actor_user_id)


def _check_discount(event: Event) -> None:
    if event.discount_type == DISCOUNT_PERCENTAGE and (event.discount_value or 0) > MAX_BPS:
        raise ValidationError("percentage discount cannot exceed 10000 bps (100%)")


def _finalize(event: Event) -> None:
    """Reprice and re-derive the payment summary. Allocated quantities are authoritative."""
    _check_discount(event)
    reprice_event(event)
    db.session.flush()
    refresh_payment_summary(event)


def _transition(event: Event, new_status: str) -> None:
    if new_status == event.status:
        return
    allowed = EVENT_TRANSITIONS.get(event.status, set())
    if new_status not in allowed:
        raise StateError(
            f"Cannot change event status from {event.status} to {new_status}",
            details={"event_id": event.id, "from": event.status, "to": new_status},
        )
    event.status = new_status


def _cancel_locked(event: Event, actor_user_id: int | None, reason: str | None) -> None:
    if event.status == EVENT_STATUS_CANCELLED:
        raise StateError("Event is already cancelled", details={"event_id": event.id})
    if event.status == EVENT_STATUS_COMPLETED:
        raise StateError("Cannot cancel a completed event", details={"event_id": event.id})

    event.status = EVENT_STATUS_CANCELLED
    event.cancelled_at = utcnow()
    event.cancelled_by_user_id = actor_user_id
    event.cancellation_reason = reason

    return_lines(event, actor_user_id)
    cancel_pending_lines(event)

    current_app.logger.info("Cancelled event %s (tenant %s)", event.id, event.tenant_id)


def _require_editable(event: Event) -> None:
    if event.is_archived:
        raise StateError("Cannot modify an archived event", details={"event_id": event.id})
    if event.status == EVENT_STATUS_CANCELLED:
        raise StateError("Cannot modify a cancelled event", details={"event_id": event.id})


# =============================================================================
# EVENT OPERATIONS
# =============================================================================

def create_event(tenant_id: int, data: dict, actor_user_id: int | None = None) -> Event:
    """
    Create an event with its services and pending supply lines.

    Supplies are never allocated on create; allocate_supplies does that.

    Raises:
        ValidationError: invalid payload
        InvalidTimeRangeError: end not after start
        NotFoundError: client/resource/partner/supply not in tenant
        SlotConflictError: resource already booked for an overlapping window
    """
    patch = validate_payload(model=Event, payload=data, policy=EVENT_CREATE_POLICY, partial=False)
    enforce_rules_event(patch)
    resource = resource_ref(patch.get("resource_kind"), patch.get("resource_id"))

    def _op():
        require_client(tenant_id, patch["client_id"])

        event = Event(
            tenant_id=tenant_id,
            status=EVENT_STATUS_PENDING,
            record_state=RECORD_ACTIVE,
            event_type="other",
            base_price_cents=0,
            discount_value=0,
            discount_type=DISCOUNT_FIXED,
            tax_rate_bps=0,
            created_by_user_id=actor_user_id,
        )
        for key, value in patch.items():
            if key in NESTED_FIELDS or value is None and key not in ("start_time", "end_time"):
                continue
            setattr(event, key, value)
        event.resource_kind = resource.kind
        event.resource_id = resource.resource_id

        _reserve_slot(event, resource)

        db.session.add(event)
        _build_manual_services(event, patch.get("services", []))
        _build_partner_services(event, patch.get("partners", []))
        _build_supply_lines(event, patch.get("supplies", []))

        _finalize(event)

        append_activity(
            tenant_id=tenant_id,
            event_type="event.created",
            entity_type="event",
            entity_id=event.id,
            actor_user_id=actor_user_id,
            payload={"title": event.title, "total_cents": event.total_cents},
        )
        db.session.commit()
        return event

    return run_with_retry(_op)


def update_event(tenant_id: int, event_id: int, data: dict, actor_user_id: int | None = None) -> Event:
    """
    Patch an event.

    - resource/timing changes re-run the collision check (excluding itself)
    - `supplies` replaces the supply lines
    - `services` replaces manual services, `partners` replaces partner services
    - `status` goes through the transition table; `cancelled` runs the cancel flow
    - the event is always repriced
    """
    patch = validate_payload(model=Event, payload=data, policy=EVENT_UPDATE_POLICY, partial=True)
    enforce_rules_event(patch)

    def _op():
        changes = dict(patch)
        event = require_event(tenant_id, event_id, lock=True)
        _require_editable(event)

        new_status = changes.pop("status", None)

        if changes.get("client_id") is not None:
            require_client(tenant_id, changes["client_id"])

        timing_changed = any(
            key in changes and changes[key] != getattr(event, key) for key in TIMING_FIELDS
        )
        resource = _resolve_resource(event, changes) if timing_changed else event.resource

        for key, value in changes.items():
            if key in NESTED_FIELDS or key in ("resource_kind", "resource_id"):
                continue
            setattr(event, key, value)

        if timing_changed:
            event.resource_kind = resource.kind
            event.resource_id = resource.resource_id
            _reserve_slot(event, resource)

        if "services" in changes:
            _replace_services(event, SERVICE_KIND_MANUAL)
            _build_manual_services(event, changes["services"])
        if "partners" in changes:
            _replace_services(event, SERVICE_KIND_PARTNER)
            _build_partner_services(event, changes["partners"])
        if "supplies" in changes:
            _replace_supply_lines(event, changes["supplies"], actor_user_id)

        if new_status == EVENT_STATUS_CANCELLED:
            _cancel_locked(event, actor_user_id, reason=None)
        elif new_status is not None:
            _transition(event, new_status)

        _finalize(event)

        append_activity(
            tenant_id=tenant_id,
            event_type="event.updated",
            entity_type="event",
            entity_id=event.id,
            actor_user_id=actor_user_id,
            payload={"fields": sorted(patch.keys()), "total_cents": event.total_cents},
        )
        db.session.commit()
        return event

    return run_with_retry(_op)


def cancel_event(
    tenant_id: int,
    event_id: int,
    actor_user_id: int | None = None,
    reason: str | None = None,
) -> Event:
    """
    Cancel an event and return any stock it holds.

    Payments are left untouched: refunds are a separate, explicit operation.
    """
    def _op():
        event = require_event(tenant_id, event_id, lock=True)
        _cancel_locked(event, actor_user_id, reason)
        _finalize(event)

        append_activity(
            tenant_id=tenant_id,
            event_type="event.cancelled",
            entity_type="event",
            entity_id=event.id,
            actor_user_id=actor_user_id,
            note=reason,
        )
        db.session.commit()
        return event

    return run_with_retry(_op)


def change_event_status(
    tenant_id: int,
    event_id: int,
    new_status: str,
    actor_user_id: int | None = None,
    reason: str | None = None,
) -> Event:
    if new_status not in EVENT_STATUSES:
        raise ValidationError(f"status must be one of {list(EVENT_STATUSES)}")
    if new_status == EVENT_STATUS_CANCELLED:
        return cancel_event(tenant_id, event_id, actor_user_id=actor_user_id, reason=reason)

    def _op():
        event = require_event(tenant_id, event_id, lock=True)
        _require_editable(event)
        previous = event.status
        _transition(event, new_status)

        append_activity(
            tenant_id=tenant_id,
            event_type="event.status_changed",
            entity_type="event",
            entity_id=event.id,
            actor_user_id=actor_user_id,
            payload={"from": previous, "to": new_status},
        )
        db.session.commit()
        return event

    return run_with_retry(_op)


def archive_event(tenant_id: int, event_id: int, actor_user_id: int | None = None) -> Event:
    """
    Archive an event. Stock held by its lines stays allocated.
    """
    def _op():
        event = require_event(tenant_id, event_id, lock=True)
        if event.is_archived:
            raise StateError("Event is already archived", details={"event_id": event.id})

        event.record_state = RECORD_ARCHIVED
        event.archived_at = utcnow()
        event.archived_by_user_id = actor_user_id

        if event.holds_stock:
            current_app.logger.warning(
                "Event %s (tenant %s) archived while still holding supplies", event.id, tenant_id,
            )

        append_activity(
            tenant_id=tenant_id,
            event_type="event.archived",
            entity_type="event",
            entity_id=event.id,
            actor_user_id=actor_user_id,
            payload={"holds_stock": event.holds_stock},
        )
        db.session.commit()
        return event

    return run_with_retry(_op)


def restore_event(tenant_id: int, event_id: int, actor_user_id: int | None = None) -> Event:
    """
    Restore an archived event. A non-cancelled event takes its slot back, so
    the collision check runs again against bookings made meanwhile.
    """
    def _op():
        event = require_event(tenant_id, event_id, lock=True)
        if not event.is_archived:
            raise StateError("Event is not archived", details={"event_id": event.id})

        if event.status != EVENT_STATUS_CANCELLED:
            resource = event.resource
            claim_resource_calendar(tenant_id, resource)
            check_availability(
                tenant_id,
                resource,
                event.start_date,
                event.start_time,
                event.end_date,
                event.end_time,
                exclude_event_id=event.id,
            )

        event.record_state = RECORD_ACTIVE
        event.archived_at = None
        event.archived_by_user_id = None

        append_activity(
            tenant_id=tenant_id,
            event_type="event.restored",
            entity_type="event",
            entity_id=event.id,
            actor_user_id=actor_user_id,
        )
        db.session.commit()
        return event

    return run_with_retry(_op)


# =============================================================================
# SUPPLY OPERATIONS
# =============================================================================

def allocate_supplies(tenant_id: int, event_id: int, actor_user_id: int | None = None) -> Event:
    """
    Take every pending line's quantity out of stock, all or nothing.

    Raises:
        StateError: cancelled/archived event, already allocated, nothing pending
        InsufficientStockError: names the supply, requested and available quantity
    """
    def _op():
        event = require_event(tenant_id, event_id, lock=True)
        lines = allocate_lines(event, actor_user_id)
        _finalize(event)

        append_activity(
            tenant_id=tenant_id,
            event_type="event.supplies_allocated",
            entity_type="event",
            entity_id=event.id,
            actor_user_id=actor_user_id,
            payload={"lines": [{"supply_id": line.supply_id, "quantity": line.quantity_allocated} for line in lines]},
        )
        db.session.commit()
        return event

    return run_with_retry(_op)


def return_supplies(tenant_id: int, event_id: int, actor_user_id: int | None = None) -> Event:
    """Return all held stock. Works on archived events so stranded stock can be released."""
    def _op():
        event = require_event(tenant_id, event_id, lock=True)
        lines = return_lines(event, actor_user_id, strict=True)
        _finalize(event)

        append_activity(
            tenant_id=tenant_id,
            event_type="event.supplies_returned",
            entity_type="event",
            entity_id=event.id,
            actor_user_id=actor_user_id,
            payload={"line_ids": [line.id for line in lines]},
        )
        db.session.commit()
        return event

    return run_with_retry(_op)


def mark_supplies_delivered(tenant_id: int, event_id: int, actor_user_id: int | None = None) -> Event:
    def _op():
        event = require_event(tenant_id, event_id, lock=True)
        lines = mark_delivered(event, actor_user_id)
        _finalize(event)

        append_activity(
            tenant_id=tenant_id,
            event_type="event.supplies_delivered",
            entity_type="event",
            entity_id=event.id,
            actor_user_id=actor_user_id,
            payload={"line_ids": [line.id for line in lines]},
        )
        db.session.commit()
        return event

    return run_with_retry(_op)


# =============================================================================
# PAYMENTS AND QUERIES
# =============================================================================

def on_payment_changed(tenant_id: int, event_id: int) -> Event:
    """Recompute the payment summary after payments were written elsewhere."""
    def _op():
        event = require_event(tenant_id, event_id, lock=True)
        refresh_payment_summary(event)
        db.session.commit()
        return event

    return run_with_retry(_op)


def get_event(tenant_id: int, event_id: int, include_archived: bool = True) -> Event:
    event = require_event(tenant_id, event_id)
    if event.is_archived and not include_archived:
        raise NotFoundError("Event not found", details={"event_id": event_id})
    return event


def list_events(
    tenant_id: int,
    *,
    status: str | None = None,
    client_id: int | None = None,
    include_archived: bool = False,
    from_date=None,
    to_date=None,
) -> list[Event]:
    """
    Events of a tenant ordered by start, optionally limited to one client
    and a date range. A client of another tenant raises NotFoundError.
    """
    query = db.session.query(Event).filter(Event.tenant_id == tenant_id)
    if not include_archived:
        query = query.filter(Event.record_state == RECORD_ACTIVE)
    if status:
        query = query.filter(Event.status == status)
    if client_id is not None:
        require_client(tenant_id, client_id)
        query = query.filter(Event.client_id == client_id)
    if from_date is not None:
        query = query.filter(Event.end_date >= from_date)
    if to_date is not None:
        query = query.filter(Event.start_date <= to_date)
    return query.order_by(Event.start_date, Event.start_time, Event.id).all()


def get_event_stats(tenant_id: int, today=None) -> dict:
    """
    Booking counts and revenue over the tenant's non-archived events.

    revenue_cents per status = SUM(total_cents)
    upcoming = starts today or later and is still pending or confirmed
    """
    if today is None:
        today = utcnow().date()

    active = db.session.query(Event).filter(
        Event.tenant_id == tenant_id,
        Event.record_state == RECORD_ACTIVE,
    )

    status_rows = (
        active.with_entities(
            Event.status,
            func.count(Event.id),
            func.coalesce(func.sum(Event.total_cents), 0),
        )
        .group_by(Event.status)
        .order_by(Event.status)
        .all()
    )
    type_rows = (
        active.with_entities(Event.event_type, func.count(Event.id))
        .group_by(Event.event_type)
        .order_by(Event.event_type)
        .all()
    )
    upcoming = active.filter(
        Event.start_date >= today,
        Event.status.in_((EVENT_STATUS_PENDING, EVENT_STATUS_CONFIRMED)),
    ).count()

    return {
        "tenant_id": tenant_id,
        "total_events": active.count(),
        "upcoming_events": upcoming,
        "by_status": [
            {"status": status, "count": int(count), "revenue_cents": int(revenue or 0)}
            for status, count, revenue in status_rows
        ],
        "by_type": [
            {"event_type": event_type, "count": int(count)}
            for event_type, count in type_rows
        ],
    }


def find_stranded_allocations(tenant_id: int) -> list[Event]:
    """Archived events whose supply lines still hold stock."""
    return (
        db.session.query(Event)
        .join(EventSupplyLine, EventSupplyLine.event_id == Event.id)
        .filter(
            Event.tenant_id == tenant_id,
            Event.record_state == RECORD_ARCHIVED,
            EventSupplyLine.status.in_(LINE_HOLDING_STATUSES),
        )
        .distinct()
        .order_by(Event.id)
        .all()
    )
