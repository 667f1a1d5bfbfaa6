from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .records import RECORD_ACTIVE, RECORD_ARCHIVED

SUPPLY_STATUS_ACTIVE = "active"
SUPPLY_STATUS_INACTIVE = "inactive"
SUPPLY_STATUS_DISCONTINUED = "discontinued"
SUPPLY_STATUS_OUT_OF_STOCK = "out_of_stock"

SUPPLY_STATUSES = (
    SUPPLY_STATUS_ACTIVE,
    SUPPLY_STATUS_INACTIVE,
    SUPPLY_STATUS_DISCONTINUED,
    SUPPLY_STATUS_OUT_OF_STOCK,
)

PRICING_INCLUDED = "included"
PRICING_CHARGEABLE = "chargeable"
PRICING_OPTIONAL = "optional"

PRICING_TYPES = (PRICING_INCLUDED, PRICING_CHARGEABLE, PRICING_OPTIONAL)

MOVEMENT_PURCHASE = "purchase"
MOVEMENT_USAGE = "usage"
MOVEMENT_ADJUSTMENT = "adjustment"
MOVEMENT_RETURN = "return"
MOVEMENT_WASTE = "waste"

MOVEMENT_TYPES = (
    MOVEMENT_PURCHASE,
    MOVEMENT_USAGE,
    MOVEMENT_ADJUSTMENT,
    MOVEMENT_RETURN,
    MOVEMENT_WASTE,
)


class Supply(db.Model):
    """
    Inventory item consumed by events (chairs, linen, bottles, flowers).

    STOCK INVARIANT:
    current_stock is never negative. It is only written by the stock ledger
    (services/stock_service.py) through a single conditional UPDATE, and every
    change appends a StockMovement row in the same transaction.

    PRICING:
    - included: cost is tracked for margin, nothing is charged to the client
    - chargeable: client pays charge_per_unit_cents per allocated unit
    - optional: offered, not charged unless re-flagged as chargeable
    """
    __tablename__ = "supplies"
    __table_args__ = (
        db.CheckConstraint("current_stock >= 0", name="ck_supplies_stock_non_negative"),
        db.Index("ix_supplies_tenant_category_status", "tenant_id", "category", "status"),
        db.Index("ix_supplies_tenant_stock", "tenant_id", "current_stock"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    name = db.Column(db.String(100), nullable=False)
    category = db.Column(db.String(64), nullable=True)
    unit = db.Column(db.String(20), nullable=False)

    current_stock = db.Column(db.Integer, nullable=False, default=0)
    minimum_stock = db.Column(db.Integer, nullable=False, default=10)
    maximum_stock = db.Column(db.Integer, nullable=False, default=1000)

    cost_per_unit_cents = db.Column(db.Integer, nullable=False, default=0)
    charge_per_unit_cents = db.Column(db.Integer, nullable=False, default=0)
    pricing_type = db.Column(db.String(16), nullable=False, default=PRICING_INCLUDED)

    status = db.Column(db.String(16), nullable=False, default=SUPPLY_STATUS_ACTIVE, index=True)

    record_state = db.Column(db.String(16), nullable=False, default=RECORD_ACTIVE, index=True)
    archived_at = db.Column(db.DateTime(timezone=True), nullable=True)
    archived_by_user_id = db.Column(db.Integer, nullable=True)

    notes = db.Column(db.String(500), nullable=True)
    created_by_user_id = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @property
    def is_archived(self) -> bool:
        return self.record_state == RECORD_ARCHIVED

    @property
    def stock_level(self) -> str:
        if self.current_stock == 0:
            return "out_of_stock"
        if self.current_stock <= self.minimum_stock:
            return "low_stock"
        if self.current_stock >= self.maximum_stock:
            return "overstocked"
        return "adequate"

    @property
    def total_value_cents(self) -> int:
        return self.current_stock * self.cost_per_unit_cents

    def __repr__(self) -> str:
        return f"<Supply id={self.id} name={self.name!r} stock={self.current_stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "category": self.category,
            "unit": self.unit,
            "current_stock": self.current_stock,
            "minimum_stock": self.minimum_stock,
            "maximum_stock": self.maximum_stock,
            "cost_per_unit_cents": self.cost_per_unit_cents,
            "charge_per_unit_cents": self.charge_per_unit_cents,
            "pricing_type": self.pricing_type,
            "status": self.status,
            "stock_level": self.stock_level,
            "total_value_cents": self.total_value_cents,
            "record_state": self.record_state,
            "archived_at": to_utc_z(self.archived_at) if self.archived_at else None,
            "archived_by_user_id": self.archived_by_user_id,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Append-only stock history.

    quantity_delta is signed (usage/waste negative, purchase/return positive,
    adjustment either way). resulting_stock is the supply's stock right after
    the movement was applied.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_supply_occurred", "supply_id", "occurred_at"),
        db.Index("ix_stock_movements_tenant_reference", "tenant_id", "reference"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    supply_id = db.Column(db.Integer, db.ForeignKey("supplies.id"), nullable=False, index=True)

    movement_type = db.Column(db.String(16), nullable=False, index=True)
    quantity_delta = db.Column(db.Integer, nullable=False)
    resulting_stock = db.Column(db.Integer, nullable=False)

    reference = db.Column(db.String(64), nullable=True)
    note = db.Column(db.String(255), nullable=True)
    recorded_by_user_id = db.Column(db.Integer, nullable=True)

    occurred_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        index=True,
    )

    supply = db.relationship("Supply", backref=db.backref("movements", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "supply_id": self.supply_id,
            "movement_type": self.movement_type,
            "quantity_delta": self.quantity_delta,
            "resulting_stock": self.resulting_stock,
            "reference": self.reference,
            "note": self.note,
            "recorded_by_user_id": self.recorded_by_user_id,
            "occurred_at": to_utc_z(self.occurred_at),
        }
