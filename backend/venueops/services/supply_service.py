# backend/venueops/services/supply_service.py
"""
Supply Catalog Service

MULTI-TENANT: All supply operations are tenant-scoped.
- create_supply stamps the caller's tenant
- update/archive/restore look the supply up together with the tenant

STOCK: current_stock is not writable here. Initial stock on create is booked
through the stock ledger as a purchase movement so the history starts at the
first unit.
"""
from __future__ import annotations

from ..errors import StateError, ValidationError
from ..extensions import db
from ..models import Supply, RECORD_ACTIVE, RECORD_ARCHIVED
from ..models.supplies import (
    MOVEMENT_PURCHASE,
    SUPPLY_STATUS_ACTIVE,
    SUPPLY_STATUS_INACTIVE,
    SUPPLY_STATUS_OUT_OF_STOCK,
)
from ..time_utils import utcnow
from ..validation import (
    SUPPLY_CREATE_POLICY,
    SUPPLY_UPDATE_POLICY,
    enforce_rules_supply,
    validate_payload,
    _coerce_int,
)
from .activity_service import append_activity
from .concurrency import run_with_retry
from .stock_service import apply_stock_delta
from .tenant_service import require_supply


def _check_stock_bounds(supply: Supply) -> None:
    if supply.maximum_stock < supply.minimum_stock:
        raise ValidationError(
            "maximum_stock must be >= minimum_stock",
            details={"minimum_stock": supply.minimum_stock, "maximum_stock": supply.maximum_stock},
        )


def list_supplies(
    tenant_id: int,
    *,
    category: str | None = None,
    include_archived: bool = False,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Tenant-scoped supply listing with optional pagination.

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    query = db.session.query(Supply).filter(Supply.tenant_id == tenant_id)
    if not include_archived:
        query = query.filter(Supply.record_state == RECORD_ACTIVE)
    if category:
        query = query.filter(Supply.category == category)
    query = query.order_by(Supply.category.asc(), Supply.name.asc())

    if page is None:
        items = query.all()
        return {"items": [s.to_dict() for s in items], "count": len(items)}

    per_page = min(max(per_page or 20, 1), 100)
    page = max(page, 1)
    total = query.count()
    items = query.offset((page - 1) * per_page).limit(per_page).all()
    return {
        "items": [s.to_dict() for s in items],
        "count": len(items),
        "page": page,
        "per_page": per_page,
        "total": total,
    }


def create_supply(tenant_id: int, data: dict, actor_user_id: int | None = None) -> Supply:
    """
    Create a supply. An optional initial_stock is recorded as a purchase.
    """
    data = dict(data or {})
    initial_stock = data.pop("initial_stock", data.pop("current_stock", 0))
    initial_stock = _coerce_int("initial_stock", initial_stock or 0)
    if initial_stock < 0:
        raise ValidationError("initial_stock must be >= 0")

    patch = validate_payload(model=Supply, payload=data, policy=SUPPLY_CREATE_POLICY, partial=False)
    enforce_rules_supply(patch)

    def _op():
        supply = Supply(tenant_id=tenant_id, current_stock=0, created_by_user_id=actor_user_id)
        for key, value in patch.items():
            setattr(supply, key, value)
        if supply.minimum_stock is None:
            supply.minimum_stock = 10
        if supply.maximum_stock is None:
            supply.maximum_stock = 1000
        _check_stock_bounds(supply)
        if supply.status is None or supply.status == SUPPLY_STATUS_OUT_OF_STOCK:
            supply.status = SUPPLY_STATUS_ACTIVE

        db.session.add(supply)
        db.session.flush()

        if initial_stock > 0:
            apply_stock_delta(
                supply,
                initial_stock,
                movement_type=MOVEMENT_PURCHASE,
                note="Initial stock",
                actor_user_id=actor_user_id,
            )
        elif supply.status == SUPPLY_STATUS_ACTIVE:
            supply.status = SUPPLY_STATUS_OUT_OF_STOCK

        append_activity(
            tenant_id=tenant_id,
            event_type="supply.created",
            entity_type="supply",
            entity_id=supply.id,
            actor_user_id=actor_user_id,
            payload={"name": supply.name, "initial_stock": initial_stock},
        )
        db.session.commit()
        return supply

    return run_with_retry(_op)


def update_supply(tenant_id: int, supply_id: int, data: dict, actor_user_id: int | None = None) -> Supply:
    """Patch catalog fields. Event lines keep the name/price snapshot they were created with."""
    if data and ("current_stock" in data or "initial_stock" in data):
        raise ValidationError("current_stock can only be changed through stock movements")

    patch = validate_payload(model=Supply, payload=data, policy=SUPPLY_UPDATE_POLICY, partial=True)
    enforce_rules_supply(patch)

    def _op():
        supply = require_supply(tenant_id, supply_id, lock=True)
        if supply.is_archived:
            raise StateError("Cannot modify an archived supply", details={"supply_id": supply.id})

        for key, value in patch.items():
            setattr(supply, key, value)
        _check_stock_bounds(supply)

        # Stock-driven statuses follow the level, not the caller
        if supply.status == SUPPLY_STATUS_ACTIVE and supply.current_stock == 0:
            supply.status = SUPPLY_STATUS_OUT_OF_STOCK
        elif supply.status == SUPPLY_STATUS_OUT_OF_STOCK and supply.current_stock > 0:
            supply.status = SUPPLY_STATUS_ACTIVE

        append_activity(
            tenant_id=tenant_id,
            event_type="supply.updated",
            entity_type="supply",
            entity_id=supply.id,
            actor_user_id=actor_user_id,
            payload={"fields": sorted(patch.keys())},
        )
        db.session.commit()
        return supply

    return run_with_retry(_op)


def archive_supply(tenant_id: int, supply_id: int, actor_user_id: int | None = None) -> Supply:
    """
    Archive a supply: hidden from listings, cannot be allocated or moved.

    Lines already allocated from it are left alone; returning them later is
    logged and skipped.
    """
    def _op():
        supply = require_supply(tenant_id, supply_id, lock=True)
        if supply.is_archived:
            raise StateError("Supply is already archived", details={"supply_id": supply.id})

        supply.record_state = RECORD_ARCHIVED
        supply.status = SUPPLY_STATUS_INACTIVE
        supply.archived_at = utcnow()
        supply.archived_by_user_id = actor_user_id

        append_activity(
            tenant_id=tenant_id,
            event_type="supply.archived",
            entity_type="supply",
            entity_id=supply.id,
            actor_user_id=actor_user_id,
        )
        db.session.commit()
        return supply

    return run_with_retry(_op)


def restore_supply(tenant_id: int, supply_id: int, actor_user_id: int | None = None) -> Supply:
    def _op():
        supply = require_supply(tenant_id, supply_id, lock=True)
        if not supply.is_archived:
            raise StateError("Supply is not archived", details={"supply_id": supply.id})

        supply.record_state = RECORD_ACTIVE
        supply.status = SUPPLY_STATUS_ACTIVE if supply.current_stock > 0 else SUPPLY_STATUS_OUT_OF_STOCK
        supply.archived_at = None
        supply.archived_by_user_id = None

        append_activity(
            tenant_id=tenant_id,
            event_type="supply.restored",
            entity_type="supply",
            entity_id=supply.id,
            actor_user_id=actor_user_id,
        )
        db.session.commit()
        return supply

    return run_with_retry(_op)
