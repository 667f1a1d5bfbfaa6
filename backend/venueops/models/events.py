from __future__ import annotations

from ..extensions import db
from ..resource_ref import KIND_NONE, ResourceRef, resource_ref
from ..time_utils import to_utc_z, to_iso_date, to_hhmm
from .records import RECORD_ACTIVE, RECORD_ARCHIVED

EVENT_STATUS_PENDING = "pending"
EVENT_STATUS_CONFIRMED = "confirmed"
EVENT_STATUS_IN_PROGRESS = "in-progress"
EVENT_STATUS_COMPLETED = "completed"
EVENT_STATUS_CANCELLED = "cancelled"

EVENT_STATUSES = (
    EVENT_STATUS_PENDING,
    EVENT_STATUS_CONFIRMED,
    EVENT_STATUS_IN_PROGRESS,
    EVENT_STATUS_COMPLETED,
    EVENT_STATUS_CANCELLED,
)

# Forward transitions. Cancellation is reachable from every non-terminal state
# and goes through event_service.cancel_event.
EVENT_TRANSITIONS = {
    EVENT_STATUS_PENDING: {EVENT_STATUS_CONFIRMED, EVENT_STATUS_CANCELLED},
    EVENT_STATUS_CONFIRMED: {EVENT_STATUS_IN_PROGRESS, EVENT_STATUS_CANCELLED},
    EVENT_STATUS_IN_PROGRESS: {EVENT_STATUS_COMPLETED, EVENT_STATUS_CANCELLED},
    EVENT_STATUS_COMPLETED: set(),
    EVENT_STATUS_CANCELLED: set(),
}

EVENT_TYPES = (
    "wedding",
    "birthday",
    "corporate",
    "conference",
    "party",
    "concert",
    "shoot",
    "delivery",
    "other",
)

DISCOUNT_FIXED = "fixed"
DISCOUNT_PERCENTAGE = "percentage"
DISCOUNT_TYPES = (DISCOUNT_FIXED, DISCOUNT_PERCENTAGE)

LINE_STATUS_PENDING = "pending"
LINE_STATUS_ALLOCATED = "allocated"
LINE_STATUS_DELIVERED = "delivered"
LINE_STATUS_CANCELLED = "cancelled"

# Lines in these states hold stock taken from the ledger
LINE_HOLDING_STATUSES = (LINE_STATUS_ALLOCATED, LINE_STATUS_DELIVERED)

SERVICE_KIND_MANUAL = "manual"
SERVICE_KIND_PARTNER = "partner_service"


class Event(db.Model):
    """
    A booking: one client, an optional resource, a time window, priced lines.

    TIME MODEL:
    start/end are stored as separate date and time-of-day columns. A missing
    start_time means 00:00, a missing end_time means the end of end_date.
    Collision checks combine them into instants (time_utils.booking_window).

    PRICING SNAPSHOT / PAYMENT SUMMARY:
    The *_cents totals and payment_* columns are derived values written by
    event_service on every mutation. They are never edited directly.

    ARCHIVAL:
    record_state is orthogonal to status. Archived events are excluded from
    collision checks but keep their supply lines (and any stock they hold).
    """
    __tablename__ = "events"
    __table_args__ = (
        db.Index("ix_events_tenant_resource_dates", "tenant_id", "resource_kind", "resource_id", "start_date", "end_date"),
        db.Index("ix_events_tenant_status", "tenant_id", "status"),
        db.Index("ix_events_tenant_record_state", "tenant_id", "record_state"),
        db.Index("ix_events_client", "client_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=False)

    title = db.Column(db.String(200), nullable=False)
    event_type = db.Column(db.String(32), nullable=False, default="other")
    description = db.Column(db.String(1000), nullable=True)
    guest_count = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.String(1000), nullable=True)

    # ResourceRef: ("none", NULL) | ("space", id) | ("vehicle", id)
    resource_kind = db.Column(db.String(16), nullable=False, default=KIND_NONE)
    resource_id = db.Column(db.Integer, db.ForeignKey("resources.id"), nullable=True)

    start_date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.Time, nullable=True)
    end_date = db.Column(db.Date, nullable=False)
    end_time = db.Column(db.Time, nullable=True)

    status = db.Column(db.String(16), nullable=False, default=EVENT_STATUS_PENDING)

    record_state = db.Column(db.String(16), nullable=False, default=RECORD_ACTIVE)
    archived_at = db.Column(db.DateTime(timezone=True), nullable=True)
    archived_by_user_id = db.Column(db.Integer, nullable=True)

    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_by_user_id = db.Column(db.Integer, nullable=True)
    cancellation_reason = db.Column(db.String(500), nullable=True)

    # Pricing inputs
    base_price_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_value = db.Column(db.Integer, nullable=False, default=0)  # cents (fixed) or bps (percentage)
    discount_type = db.Column(db.String(16), nullable=False, default=DISCOUNT_FIXED)
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)  # 1900 = 19%

    # Pricing snapshot (derived)
    services_total_cents = db.Column(db.Integer, nullable=False, default=0)
    supplies_charge_cents = db.Column(db.Integer, nullable=False, default=0)
    supplies_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    taxable_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    # Payment summary (derived)
    paid_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    payment_status = db.Column(db.String(16), nullable=False, default="pending")
    amount_due_cents = db.Column(db.Integer, nullable=False, default=0)

    created_by_user_id = db.Column(db.Integer, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    client = db.relationship("Client")
    resource_record = db.relationship("Resource")
    services = db.relationship(
        "EventServiceItem",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventServiceItem.id",
    )
    supply_lines = db.relationship(
        "EventSupplyLine",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventSupplyLine.id",
    )

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def resource(self) -> ResourceRef:
        return resource_ref(self.resource_kind, self.resource_id)

    @property
    def is_archived(self) -> bool:
        return self.record_state == RECORD_ARCHIVED

    @property
    def holds_stock(self) -> bool:
        return any(line.status in LINE_HOLDING_STATUSES for line in self.supply_lines)

    def __repr__(self) -> str:
        return f"<Event id={self.id} title={self.title!r} status={self.status} tenant_id={self.tenant_id}>"

    def pricing_dict(self) -> dict:
        return {
            "base_price_cents": self.base_price_cents,
            "discount_value": self.discount_value,
            "discount_type": self.discount_type,
            "tax_rate_bps": self.tax_rate_bps,
            "services_total_cents": self.services_total_cents,
            "supplies_charge_cents": self.supplies_charge_cents,
            "supplies_cost_cents": self.supplies_cost_cents,
            "subtotal_cents": self.subtotal_cents,
            "discount_amount_cents": self.discount_amount_cents,
            "taxable_amount_cents": self.taxable_amount_cents,
            "tax_amount_cents": self.tax_amount_cents,
            "total_cents": self.total_cents,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "client_id": self.client_id,
            "title": self.title,
            "event_type": self.event_type,
            "description": self.description,
            "guest_count": self.guest_count,
            "notes": self.notes,
            "resource_kind": self.resource_kind,
            "resource_id": self.resource_id,
            "start_date": to_iso_date(self.start_date),
            "start_time": to_hhmm(self.start_time),
            "end_date": to_iso_date(self.end_date),
            "end_time": to_hhmm(self.end_time),
            "status": self.status,
            "record_state": self.record_state,
            "archived_at": to_utc_z(self.archived_at) if self.archived_at else None,
            "archived_by_user_id": self.archived_by_user_id,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "cancelled_by_user_id": self.cancelled_by_user_id,
            "cancellation_reason": self.cancellation_reason,
            "pricing": self.pricing_dict(),
            "payment_summary": {
                "total_cents": self.total_cents,
                "paid_amount_cents": self.paid_amount_cents,
                "amount_due_cents": self.amount_due_cents,
                "status": self.payment_status,
            },
            "services": [s.to_dict() for s in self.services],
            "supplies": [line.to_dict() for line in self.supply_lines],
            "created_by_user_id": self.created_by_user_id,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class EventServiceItem(db.Model):
    """Additional priced service on an event (manual extra or partner service)."""
    __tablename__ = "event_services"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey("events.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    kind = db.Column(db.String(32), nullable=False, default=SERVICE_KIND_MANUAL)

    partner_id = db.Column(db.Integer, db.ForeignKey("partners.id"), nullable=True)
    hours = db.Column(db.Integer, nullable=True)

    event = db.relationship("Event", back_populates="services")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price_cents": self.price_cents,
            "kind": self.kind,
            "partner_id": self.partner_id,
            "hours": self.hours,
        }


class EventSupplyLine(db.Model):
    """
    Supply requested for (and later allocated to) an event.

    SNAPSHOT: name, category, unit, pricing type and per-unit cost/charge are
    copied from the Supply when the line is created, so editing the Supply
    later never rewrites historical events.

    LIFECYCLE: pending -> allocated -> delivered, or allocated/delivered ->
    cancelled when stock is returned.
    """
    __tablename__ = "event_supply_lines"
    __table_args__ = (
        db.CheckConstraint("quantity_requested > 0", name="ck_supply_lines_requested_positive"),
        db.CheckConstraint("quantity_allocated >= 0", name="ck_supply_lines_allocated_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey("events.id"), nullable=False, index=True)
    supply_id = db.Column(db.Integer, db.ForeignKey("supplies.id"), nullable=False, index=True)

    supply_name = db.Column(db.String(100), nullable=False)
    supply_category = db.Column(db.String(64), nullable=False, default="Uncategorized")
    unit = db.Column(db.String(20), nullable=False)
    pricing_type = db.Column(db.String(16), nullable=False)
    cost_per_unit_cents = db.Column(db.Integer, nullable=False, default=0)
    charge_per_unit_cents = db.Column(db.Integer, nullable=False, default=0)

    quantity_requested = db.Column(db.Integer, nullable=False)
    quantity_allocated = db.Column(db.Integer, nullable=False, default=0)

    total_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    total_charge_cents = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default=LINE_STATUS_PENDING)

    allocated_at = db.Column(db.DateTime(timezone=True), nullable=True)
    allocated_by_user_id = db.Column(db.Integer, nullable=True)
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)
    delivered_by_user_id = db.Column(db.Integer, nullable=True)
    returned_at = db.Column(db.DateTime(timezone=True), nullable=True)
    returned_by_user_id = db.Column(db.Integer, nullable=True)

    event = db.relationship("Event", back_populates="supply_lines")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supply_id": self.supply_id,
            "supply_name": self.supply_name,
            "supply_category": self.supply_category,
            "unit": self.unit,
            "pricing_type": self.pricing_type,
            "cost_per_unit_cents": self.cost_per_unit_cents,
            "charge_per_unit_cents": self.charge_per_unit_cents,
            "quantity_requested": self.quantity_requested,
            "quantity_allocated": self.quantity_allocated,
            "total_cost_cents": self.total_cost_cents,
            "total_charge_cents": self.total_charge_cents,
            "status": self.status,
            "allocated_at": to_utc_z(self.allocated_at) if self.allocated_at else None,
            "allocated_by_user_id": self.allocated_by_user_id,
            "delivered_at": to_utc_z(self.delivered_at) if self.delivered_at else None,
            "delivered_by_user_id": self.delivered_by_user_id,
            "returned_at": to_utc_z(self.returned_at) if self.returned_at else None,
            "returned_by_user_id": self.returned_by_user_id,
        }


class ResourceCalendar(db.Model):
    """
    Write lock on one resource's booking set.

    WHY: the availability check and the event insert/update must behave as
    one unit. Every booking write first locks this row (SELECT ... FOR UPDATE)
    and bumps its version, so a concurrent writer for the same resource either
    waits for the lock or fails with StaleDataError and is retried against
    the committed bookings.

    resource_key is the resource id as text, or "solo" for NoResource.
    """
    __tablename__ = "resource_calendars"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "resource_kind", "resource_key", name="uq_resource_calendars_scope"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    resource_kind = db.Column(db.String(16), nullable=False)
    resource_key = db.Column(db.String(32), nullable=False)

    last_claimed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<ResourceCalendar tenant_id={self.tenant_id} {self.resource_kind}:{self.resource_key}>"
