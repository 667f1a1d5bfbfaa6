from __future__ import annotations
from datetime import datetime, date, time

from dataclasses import dataclass
from typing import Any

from flask import current_app
from sqlalchemy import Boolean, Integer, String, Text, DateTime, Date, Time
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .time_utils import parse_iso_datetime, parse_iso_date, parse_time_of_day
from .models.events import EVENT_TYPES, EVENT_STATUSES, DISCOUNT_TYPES, DISCOUNT_PERCENTAGE
from .models.supplies import PRICING_TYPES, SUPPLY_STATUSES
from .models.payments import PAYMENT_TYPES, PAYMENT_STATUSES, PAYMENT_METHODS
from .resource_ref import RESOURCE_KINDS


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# 100% expressed in basis points
MAX_BPS = 10_000


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - nested_fields: non-column keys (lists of sub-records) passed through untouched
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    nested_fields: set[str] | None = None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        return _coerce_int(col.key, value)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        # fallback: truthiness
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Calendar dates ("YYYY-MM-DD")
    if isinstance(coltype, Date):
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                d = parse_iso_date(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 date")
            if d is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 date")
            return d
        raise ValidationError(f"{col.key} must be a date")

    # Time of day ("HH:MM")
    if isinstance(coltype, Time):
        if isinstance(value, time):
            if value.tzinfo is not None:
                raise ValidationError(f"{col.key} must be a time of day (HH:MM)")
            return value
        if isinstance(value, str):
            try:
                t = parse_time_of_day(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be a time of day (HH:MM)")
            return t
        raise ValidationError(f"{col.key} must be a time of day (HH:MM)")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields. Nested fields
    named by the policy are copied through for the caller to validate.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)
    nested = policy.nested_fields or set()

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k in nested:
            continue
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        if k in nested:
            patch[k] = raw
            continue

        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _check_money(patch: dict, key: str) -> None:
    if key in patch and patch[key] is not None:
        amount = patch[key]
        limit = current_app.config.get("MAX_PRICE_CENTS", MAX_PRICE_CENTS)
        if amount < 0:
            raise ValidationError(f"{key} must be >= 0")
        if amount > limit:
            raise ValidationError(f"{key} cannot exceed {limit} ({limit / 100:,.2f})")


def _check_choice(patch: dict, key: str, choices) -> None:
    if key in patch and patch[key] is not None and patch[key] not in choices:
        raise ValidationError(f"{key} must be one of {list(choices)}")


# =============================================================================
# EVENTS
# =============================================================================

EVENT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "title", "event_type", "description", "client_id", "guest_count", "notes",
        "resource_kind", "resource_id",
        "start_date", "start_time", "end_date", "end_time",
        "base_price_cents", "discount_value", "discount_type", "tax_rate_bps",
    },
    required_on_create={"title", "client_id", "start_date", "end_date"},
    nested_fields={"services", "supplies", "partners"},
)

EVENT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=EVENT_CREATE_POLICY.writable_fields | {"status"},
    nested_fields={"services", "supplies", "partners"},
)


def enforce_rules_event(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    _check_choice(patch, "event_type", EVENT_TYPES)
    _check_choice(patch, "status", EVENT_STATUSES)
    _check_choice(patch, "discount_type", DISCOUNT_TYPES)
    _check_choice(patch, "resource_kind", RESOURCE_KINDS)
    _check_money(patch, "base_price_cents")

    if "guest_count" in patch and patch["guest_count"] is not None and patch["guest_count"] < 1:
        raise ValidationError("guest_count must be at least 1")

    if "discount_value" in patch and patch["discount_value"] is not None:
        if patch["discount_value"] < 0:
            raise ValidationError("discount_value must be >= 0")
        if patch.get("discount_type") == DISCOUNT_PERCENTAGE and patch["discount_value"] > MAX_BPS:
            raise ValidationError("percentage discount cannot exceed 10000 bps (100%)")

    if "tax_rate_bps" in patch and patch["tax_rate_bps"] is not None:
        if not 0 <= patch["tax_rate_bps"] <= MAX_BPS:
            raise ValidationError("tax_rate_bps must be between 0 and 10000")

    if "services" in patch:
        patch["services"] = parse_service_items(patch["services"])
    if "supplies" in patch:
        patch["supplies"] = parse_supply_requests(patch["supplies"])
    if "partners" in patch:
        patch["partners"] = parse_partner_requests(patch["partners"])


def _require_list(value, key: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError(f"{key} must be a list")
    for item in value:
        if not isinstance(item, dict):
            raise ValidationError(f"each entry in {key} must be an object")
    return value


def parse_service_items(value) -> list[dict]:
    """[{"name": str, "price_cents": int}] -> normalized list."""
    items = []
    for raw in _require_list(value, "services"):
        name = str(raw.get("name") or "").strip()
        if not name:
            raise ValidationError("service name is required")
        price = _coerce_int("price_cents", raw.get("price_cents", 0))
        if price < 0:
            raise ValidationError("service price_cents must be >= 0")
        items.append({"name": name[:255], "price_cents": price})
    return items


def parse_supply_requests(value) -> list[dict]:
    """
    [{"supply_id": int, "quantity": int, "charge_per_unit_cents": int?}]

    quantity must be positive. charge_per_unit_cents optionally overrides the
    supply's charge for chargeable supplies.
    """
    items = []
    for raw in _require_list(value, "supplies"):
        if raw.get("supply_id") is None:
            raise ValidationError("supply_id is required for each supply line")
        supply_id = _coerce_int("supply_id", raw["supply_id"])
        quantity = _coerce_int("quantity", raw.get("quantity", raw.get("quantity_requested", 1)))
        if quantity <= 0:
            raise ValidationError("supply quantity must be > 0", details={"supply_id": supply_id})
        item = {"supply_id": supply_id, "quantity": quantity}
        if raw.get("charge_per_unit_cents") is not None:
            charge = _coerce_int("charge_per_unit_cents", raw["charge_per_unit_cents"])
            if charge < 0:
                raise ValidationError("charge_per_unit_cents must be >= 0")
            item["charge_per_unit_cents"] = charge
        items.append(item)
    return items


def parse_partner_requests(value) -> list[dict]:
    """[{"partner_id": int, "service": str?, "hours": int?, "cost_cents": int?}]"""
    items = []
    for raw in _require_list(value, "partners"):
        if raw.get("partner_id") is None:
            raise ValidationError("partner_id is required for each partner")
        item = {
            "partner_id": _coerce_int("partner_id", raw["partner_id"]),
            "service": (str(raw["service"]).strip() if raw.get("service") else None),
        }
        if raw.get("hours") is not None:
            hours = _coerce_int("hours", raw["hours"])
            if hours <= 0:
                raise ValidationError("partner hours must be > 0")
            item["hours"] = hours
        if raw.get("cost_cents") is not None:
            cost = _coerce_int("cost_cents", raw["cost_cents"])
            if cost < 0:
                raise ValidationError("partner cost_cents must be >= 0")
            item["cost_cents"] = cost
        items.append(item)
    return items


# =============================================================================
# SUPPLIES
# =============================================================================

SUPPLY_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "category", "unit", "minimum_stock", "maximum_stock",
        "cost_per_unit_cents", "charge_per_unit_cents", "pricing_type", "status", "notes",
    },
    required_on_create={"name", "unit"},
)

# current_stock is never writable: stock only moves through the ledger
SUPPLY_UPDATE_POLICY = SUPPLY_CREATE_POLICY


def enforce_rules_supply(patch: dict) -> None:
    _check_choice(patch, "pricing_type", PRICING_TYPES)
    _check_choice(patch, "status", SUPPLY_STATUSES)
    _check_money(patch, "cost_per_unit_cents")
    _check_money(patch, "charge_per_unit_cents")
    for key in ("minimum_stock", "maximum_stock"):
        if key in patch and patch[key] is not None and patch[key] < 0:
            raise ValidationError(f"{key} must be >= 0")


# =============================================================================
# PAYMENTS
# =============================================================================

PAYMENT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "event_id", "client_id", "payment_type", "amount_cents", "method", "status",
        "reference", "description",
        "processing_fee_cents", "platform_fee_cents", "other_fees_cents",
    },
    required_on_create={"amount_cents", "method"},
)

PAYMENT_UPDATE_POLICY = PAYMENT_CREATE_POLICY


def enforce_rules_payment(patch: dict) -> None:
    _check_choice(patch, "payment_type", PAYMENT_TYPES)
    _check_choice(patch, "status", PAYMENT_STATUSES)
    _check_choice(patch, "method", PAYMENT_METHODS)
    for key in ("amount_cents", "processing_fee_cents", "platform_fee_cents", "other_fees_cents"):
        _check_money(patch, key)
