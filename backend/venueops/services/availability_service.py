# Overview: Service-layer operations for booking availability; encapsulates collision detection.

from __future__ import annotations

from datetime import date, time
from typing import Optional

from flask import current_app

from ..errors import InvalidTimeRangeError, SlotConflictError
from ..extensions import db
from ..models import Event, ResourceCalendar, RECORD_ACTIVE
from ..models.events import EVENT_STATUS_CANCELLED
from ..resource_ref import NoResource, ResourceRef
from ..time_utils import booking_window, to_iso_date, to_hhmm, to_utc_z, utcnow
from .concurrency import lock_for_update
"""
Availability Invariants (authoritative)

Collision scope:
- Only events of the same tenant and the same resource can collide.
- Cancelled events and archived events never block a slot.
- Solo bookings (NoResource) share one calendar per tenant while
  SOLO_BOOKINGS_EXCLUSIVE is on; with it off they never collide.

Overlap:
- Windows are half-open [start, end). Two windows overlap when
  startA < endB and endA > startB, so back-to-back bookings are allowed.
- A missing start time means 00:00; a missing end time means the end of the
  end date.

Check-then-act:
- Callers claim the resource calendar (claim_resource_calendar) before
  checking, inside the same transaction that writes the event.
"""


def _is_scoped(resource: ResourceRef) -> bool:
    if isinstance(resource, NoResource):
        return bool(current_app.config.get("SOLO_BOOKINGS_EXCLUSIVE", True))
    return True


def claim_resource_calendar(tenant_id: int, resource: ResourceRef) -> Optional[ResourceCalendar]:
    """
    Lock and version-bump the calendar row for a resource.

    Two writers booking the same resource serialize on this row: one waits on
    the row lock, or loses the version race (StaleDataError) or the insert race
    (IntegrityError), and is re-run by run_with_retry. Does not commit.
    """
    if not _is_scoped(resource):
        return None

    calendar = lock_for_update(
        db.session.query(ResourceCalendar).filter_by(
            tenant_id=tenant_id,
            resource_kind=resource.kind,
            resource_key=resource.calendar_key,
        )
    ).first()

    if calendar is None:
        calendar = ResourceCalendar(
            tenant_id=tenant_id,
            resource_kind=resource.kind,
            resource_key=resource.calendar_key,
        )
        db.session.add(calendar)

    calendar.last_claimed_at = utcnow()
    db.session.flush()
    return calendar


def check_availability(
    tenant_id: int,
    resource: ResourceRef,
    start_date: date,
    start_time: Optional[time],
    end_date: date,
    end_time: Optional[time],
    exclude_event_id: Optional[int] = None,
) -> None:
    """
    Ensure the window is valid and free for the resource.

    Raises:
        InvalidTimeRangeError: end is not after start
        SlotConflictError: an active, non-cancelled event overlaps the window
    """
    start, end = booking_window(start_date, start_time, end_date, end_time)
    if end <= start:
        raise InvalidTimeRangeError(
            "End must be after start",
            details={"start": to_utc_z(start), "end": to_utc_z(end)},
        )

    if not _is_scoped(resource):
        return

    # Coarse pass on calendar dates; the precise comparison below handles times.
    query = db.session.query(Event).filter(
        Event.tenant_id == tenant_id,
        Event.resource_kind == resource.kind,
        Event.status != EVENT_STATUS_CANCELLED,
        Event.record_state == RECORD_ACTIVE,
        Event.start_date <= end_date,
        Event.end_date >= start_date,
    )
    if isinstance(resource, NoResource):
        query = query.filter(Event.resource_id.is_(None))
    else:
        query = query.filter(Event.resource_id == resource.resource_id)
    if exclude_event_id is not None:
        query = query.filter(Event.id != exclude_event_id)

    for other in query.order_by(Event.start_date, Event.id).all():
        other_start, other_end = booking_window(
            other.start_date, other.start_time, other.end_date, other.end_time
        )
        if start < other_end and end > other_start:
            raise SlotConflictError(
                "Resource is already booked for this time",
                details={
                    "conflicting_event_id": other.id,
                    "resource_kind": resource.kind,
                    "resource_id": resource.resource_id,
                    "start_date": to_iso_date(other.start_date),
                    "start_time": to_hhmm(other.start_time),
                    "end_date": to_iso_date(other.end_date),
                    "end_time": to_hhmm(other.end_time),
                },
            )
