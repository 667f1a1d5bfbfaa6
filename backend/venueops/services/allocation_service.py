# Overview: Service-layer operations for event supply allocation; moves stock between the shelf and events.

from __future__ import annotations

from flask import current_app

from ..errors import StateError
from ..models import Event
from ..models.events import (
    EVENT_STATUS_CANCELLED,
    LINE_HOLDING_STATUSES,
    LINE_STATUS_ALLOCATED,
    LINE_STATUS_CANCELLED,
    LINE_STATUS_DELIVERED,
    LINE_STATUS_PENDING,
)
from ..models.supplies import MOVEMENT_RETURN, MOVEMENT_USAGE
from ..time_utils import utcnow
from .stock_service import consume_stock, restock
from .tenant_service import find_supply, require_supply
"""
Allocation Invariants (authoritative)

Line lifecycle:
    pending -> allocated -> delivered
    allocated/delivered -> cancelled (stock returned)
    pending -> cancelled (no stock change)

- allocate is all-or-nothing: every pending line is decremented through the
  stock ledger or the caller's transaction is rolled back.
- A line holds stock exactly while it is allocated or delivered, and the held
  quantity is quantity_allocated.
- Nothing here commits; event_service owns the transaction.
"""


def _event_ref(event: Event) -> str:
    return f"event:{event.id}"


def allocate_lines(event: Event, actor_user_id: int | None = None) -> list:
    """
    Decrement stock for every pending line of the event.

    Raises:
        StateError: event cancelled or archived, lines already allocated, nothing pending
        NotFoundError: a line's supply no longer exists in the tenant
        InsufficientStockError: a supply lacks stock (earlier lines are undone by rollback)
    """
    if event.status == EVENT_STATUS_CANCELLED:
        raise StateError("Cannot allocate supplies for a cancelled event", details={"event_id": event.id})
    if event.is_archived:
        raise StateError("Cannot allocate supplies for an archived event", details={"event_id": event.id})

    held = [line for line in event.supply_lines if line.status in LINE_HOLDING_STATUSES]
    if held:
        raise StateError(
            "Supplies already allocated for this event",
            details={"event_id": event.id, "line_ids": [line.id for line in held]},
        )

    pending = [line for line in event.supply_lines if line.status == LINE_STATUS_PENDING]
    if not pending:
        raise StateError("No pending supplies to allocate", details={"event_id": event.id})

    now = utcnow()
    for line in pending:
        supply = require_supply(event.tenant_id, line.supply_id)
        if supply.is_archived:
            raise StateError(
                f"Supply {supply.name} is archived",
                details={"supply_id": supply.id, "event_id": event.id},
            )

        consume_stock(
            supply,
            line.quantity_requested,
            movement_type=MOVEMENT_USAGE,
            reference=_event_ref(event),
            note=f"Allocated to {event.title}",
            actor_user_id=actor_user_id,
        )

        line.status = LINE_STATUS_ALLOCATED
        line.quantity_allocated = line.quantity_requested
        line.allocated_at = now
        line.allocated_by_user_id = actor_user_id

    current_app.logger.info(
        "Allocated %s supply lines for event %s (tenant %s)", len(pending), event.id, event.tenant_id,
    )
    return pending


def return_lines(event: Event, actor_user_id: int | None = None, *, strict: bool = False) -> list:
    """
    Put every held line's stock back and cancel the line.

    Tolerant of supplies that were deleted or archived after allocation: the
    restock is skipped with a warning, the line is still cancelled.

    strict=True raises StateError when the event holds nothing.
    """
    held = [line for line in event.supply_lines if line.status in LINE_HOLDING_STATUSES]
    if not held:
        if strict:
            raise StateError("No allocated supplies to return", details={"event_id": event.id})
        return []

    now = utcnow()
    for line in held:
        supply = find_supply(event.tenant_id, line.supply_id)
        if supply is None or supply.is_archived:
            current_app.logger.warning(
                "Skipping stock return of %s x supply %s for event %s: supply %s",
                line.quantity_allocated, line.supply_id, event.id,
                "missing" if supply is None else "archived",
            )
        elif line.quantity_allocated > 0:
            restock(
                supply,
                line.quantity_allocated,
                movement_type=MOVEMENT_RETURN,
                reference=_event_ref(event),
                note=f"Returned from {event.title}",
                actor_user_id=actor_user_id,
            )

        line.status = LINE_STATUS_CANCELLED
        line.quantity_allocated = 0
        line.returned_at = now
        line.returned_by_user_id = actor_user_id

    current_app.logger.info(
        "Returned %s supply lines for event %s (tenant %s)", len(held), event.id, event.tenant_id,
    )
    return held


def mark_delivered(event: Event, actor_user_id: int | None = None) -> list:
    """allocated -> delivered for every allocated line. No stock change."""
    allocated = [line for line in event.supply_lines if line.status == LINE_STATUS_ALLOCATED]
    if not allocated:
        raise StateError("No allocated supplies to deliver", details={"event_id": event.id})

    now = utcnow()
    for line in allocated:
        line.status = LINE_STATUS_DELIVERED
        line.delivered_at = now
        line.delivered_by_user_id = actor_user_id
    return allocated


def cancel_pending_lines(event: Event) -> list:
    """pending -> cancelled, no stock change."""
    pending = [line for line in event.supply_lines if line.status == LINE_STATUS_PENDING]
    for line in pending:
        line.status = LINE_STATUS_CANCELLED
    return pending
