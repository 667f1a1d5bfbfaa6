# Overview: Service-layer operations for the stock ledger; the single writer of supply stock.

# backend/venueops/services/stock_service.py

from sqlalchemy import func, update

from ..errors import InsufficientStockError, StateError, ValidationError
from ..extensions import db
from ..models import Supply, StockMovement, RECORD_ACTIVE
from ..models.supplies import (
    MOVEMENT_TYPES,
    MOVEMENT_PURCHASE,
    MOVEMENT_RETURN,
    MOVEMENT_ADJUSTMENT,
    MOVEMENT_USAGE,
    MOVEMENT_WASTE,
    SUPPLY_STATUS_ACTIVE,
    SUPPLY_STATUS_OUT_OF_STOCK,
)
from ..time_utils import utcnow
from .activity_service import append_activity
from .concurrency import run_with_retry
from .tenant_service import require_supply
"""
Stock Ledger Invariants (authoritative)

Stock model:
- Supply.current_stock is the authoritative on-hand quantity.
- Every change to it appends exactly one StockMovement in the same transaction.
- StockMovement rows are append-only (no updates/deletes).

Atomicity:
- Stock is changed by ONE conditional UPDATE statement:
      UPDATE supplies SET current_stock = current_stock + :delta
      WHERE id = :id [AND current_stock >= :needed]
  Zero affected rows means the decrement would go negative. There is no
  read-then-write window, so concurrent allocations of the same supply can
  never oversell.
- No other module writes current_stock.

Direction by movement type:
- purchase, return: add
- usage, waste: subtract
- adjustment: signed (either way)
"""

INCREASING_MOVEMENTS = (MOVEMENT_PURCHASE, MOVEMENT_RETURN)
DECREASING_MOVEMENTS = (MOVEMENT_USAGE, MOVEMENT_WASTE)


def signed_delta(movement_type: str, quantity: int) -> int:
    """Translate a (type, quantity) request into a signed stock delta."""
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError(f"Invalid movement type. Must be one of: {', '.join(MOVEMENT_TYPES)}")
    if not isinstance(quantity, int) or isinstance(quantity, bool):
        raise ValidationError("quantity must be an integer")
    if quantity == 0:
        raise ValidationError("quantity must be non-zero")
    if movement_type == MOVEMENT_ADJUSTMENT:
        return quantity
    if quantity < 0:
        raise ValidationError(f"quantity must be positive for {movement_type}")
    if movement_type in DECREASING_MOVEMENTS:
        return -quantity
    return quantity


def apply_stock_delta(
    supply: Supply,
    quantity_delta: int,
    *,
    movement_type: str,
    reference: str | None = None,
    note: str | None = None,
    actor_user_id: int | None = None,
) -> StockMovement:
    """
    Apply a signed delta through the conditional UPDATE and append the movement.

    Does not commit: callers own the transaction so a multi-line allocation is
    all-or-nothing.

    Raises:
        InsufficientStockError: the decrement would take stock below zero
    """
    stmt = update(Supply).where(Supply.id == supply.id)
    if quantity_delta < 0:
        stmt = stmt.where(Supply.current_stock >= -quantity_delta)
    stmt = stmt.values(current_stock=Supply.current_stock + quantity_delta)

    result = db.session.execute(stmt.execution_options(synchronize_session=False))

    # Reload the authoritative value the UPDATE produced (or left untouched)
    db.session.refresh(supply)

    if result.rowcount == 0:
        raise InsufficientStockError(
            f"Insufficient stock for {supply.name}",
            details={
                "supply_id": supply.id,
                "supply_name": supply.name,
                "requested": -quantity_delta,
                "available": supply.current_stock,
            },
        )

    _sync_stock_status(supply)

    movement = StockMovement(
        tenant_id=supply.tenant_id,
        supply_id=supply.id,
        movement_type=movement_type,
        quantity_delta=quantity_delta,
        resulting_stock=supply.current_stock,
        reference=reference,
        note=note,
        recorded_by_user_id=actor_user_id,
        occurred_at=utcnow(),
    )
    db.session.add(movement)
    db.session.flush()
    return movement


def consume_stock(supply: Supply, quantity: int, **kwargs) -> StockMovement:
    """Take quantity out of stock (allocation, waste). Never goes below zero."""
    kwargs.setdefault("movement_type", MOVEMENT_USAGE)
    return apply_stock_delta(supply, -quantity, **kwargs)


def restock(supply: Supply, quantity: int, **kwargs) -> StockMovement:
    """Put quantity back into stock (purchase, return). Always safe."""
    kwargs.setdefault("movement_type", MOVEMENT_RETURN)
    return apply_stock_delta(supply, quantity, **kwargs)


def _sync_stock_status(supply: Supply) -> None:
    # Only the stock-driven statuses follow the level; inactive/discontinued are manual.
    if supply.current_stock == 0 and supply.status == SUPPLY_STATUS_ACTIVE:
        supply.status = SUPPLY_STATUS_OUT_OF_STOCK
    elif supply.current_stock > 0 and supply.status == SUPPLY_STATUS_OUT_OF_STOCK:
        supply.status = SUPPLY_STATUS_ACTIVE


def record_stock_movement(
    *,
    tenant_id: int,
    supply_id: int,
    quantity: int,
    movement_type: str,
    reference: str | None = None,
    note: str | None = None,
    actor_user_id: int | None = None,
) -> Supply:
    """
    Record a manual stock movement (purchase received, waste, count adjustment).

    Event allocations do not go through here; they use consume_stock/restock
    inside the event transaction.
    """
    delta = signed_delta(movement_type, quantity)

    def _op():
        supply = require_supply(tenant_id, supply_id)
        if supply.is_archived:
            raise StateError("Cannot move stock of an archived supply", details={"supply_id": supply.id})

        movement = apply_stock_delta(
            supply,
            delta,
            movement_type=movement_type,
            reference=reference,
            note=note,
            actor_user_id=actor_user_id,
        )
        append_activity(
            tenant_id=tenant_id,
            event_type=f"stock.{movement_type}",
            entity_type="supply",
            entity_id=supply.id,
            actor_user_id=actor_user_id,
            note=note,
            payload={"quantity_delta": delta, "resulting_stock": movement.resulting_stock},
        )
        db.session.commit()
        return supply

    return run_with_retry(_op)


def get_stock_history(tenant_id: int, supply_id: int) -> list[StockMovement]:
    """Movements for a supply, most recent first."""
    require_supply(tenant_id, supply_id)
    return (
        db.session.query(StockMovement)
        .filter_by(tenant_id=tenant_id, supply_id=supply_id)
        .order_by(StockMovement.occurred_at.desc(), StockMovement.id.desc())
        .all()
    )


def list_low_stock(tenant_id: int) -> list[Supply]:
    """Active supplies at or below their minimum stock, lowest first."""
    return (
        db.session.query(Supply)
        .filter(
            Supply.tenant_id == tenant_id,
            Supply.record_state == RECORD_ACTIVE,
            Supply.status.in_([SUPPLY_STATUS_ACTIVE, SUPPLY_STATUS_OUT_OF_STOCK]),
            Supply.current_stock <= Supply.minimum_stock,
        )
        .order_by(Supply.current_stock.asc(), Supply.name.asc())
        .all()
    )


def get_inventory_summary(tenant_id: int) -> dict:
    """
    Valuation and stock-health counts over the tenant's non-archived supplies.

    total_value_cents = SUM(current_stock * cost_per_unit_cents)
    """
    base = db.session.query(Supply).filter(
        Supply.tenant_id == tenant_id,
        Supply.record_state == RECORD_ACTIVE,
    )

    active = base.filter(Supply.status == SUPPLY_STATUS_ACTIVE)
    total_value = active.with_entities(
        func.coalesce(func.sum(Supply.current_stock * Supply.cost_per_unit_cents), 0)
    ).scalar()

    low_stock_count = active.filter(Supply.current_stock <= Supply.minimum_stock).count()
    out_of_stock_count = base.filter(Supply.status == SUPPLY_STATUS_OUT_OF_STOCK).count()

    rows = (
        active.with_entities(
            Supply.category,
            func.count(Supply.id),
            func.coalesce(func.sum(Supply.current_stock * Supply.cost_per_unit_cents), 0),
        )
        .group_by(Supply.category)
        .order_by(Supply.category)
        .all()
    )

    return {
        "tenant_id": tenant_id,
        "total_supplies": active.count(),
        "total_value_cents": int(total_value or 0),
        "low_stock_count": low_stock_count,
        "out_of_stock_count": out_of_stock_count,
        "category_breakdown": [
            {
                "category": category or "Uncategorized",
                "count": int(count),
                "total_value_cents": int(value or 0),
            }
            for category, count, value in rows
        ],
    }
