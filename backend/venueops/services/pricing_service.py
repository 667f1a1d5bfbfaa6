# Overview: Pure pricing calculator for events; no database access.

"""
Event Pricing

All money is integer cents, all rates are basis points (1900 = 19%).
Percentages are rounded half-up to the cent, so the same inputs always give
the same outputs and re-running the calculation changes nothing.

ORDER OF OPERATIONS:
1. services_total  = sum of service prices
2. supplies_charge = sum(billable_qty * charge_per_unit) over chargeable lines
   supplies_cost   = sum(billable_qty * cost_per_unit) over all lines
3. subtotal        = base + services_total + supplies_charge
4. discount_amount = fixed cents, or subtotal * discount_bps / 10000
5. taxable         = max(0, subtotal - discount_amount)
6. tax             = taxable * tax_rate_bps / 10000
7. total           = taxable + tax
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Iterable

from ..models.events import (
    DISCOUNT_FIXED,
    DISCOUNT_PERCENTAGE,
    LINE_STATUS_PENDING,
    LINE_STATUS_CANCELLED,
)
from ..models.supplies import PRICING_CHARGEABLE
from ..errors import ValidationError


@dataclass(frozen=True)
class PricingResult:
    services_total_cents: int
    supplies_charge_cents: int
    supplies_cost_cents: int
    subtotal_cents: int
    discount_amount_cents: int
    taxable_amount_cents: int
    tax_amount_cents: int
    total_cents: int

    def to_dict(self) -> dict:
        return asdict(self)


def apply_bps(amount_cents: int, bps: int) -> int:
    """amount * bps / 10000 rounded half-up, integer arithmetic only."""
    if amount_cents <= 0 or bps <= 0:
        return 0
    return (amount_cents * bps + 5_000) // 10_000


def billable_quantity(line) -> int:
    """
    Quantity a supply line is priced at.

    Pending lines are estimated at the requested quantity; once allocated the
    allocated quantity is authoritative. Cancelled lines price at zero.
    """
    if line.status == LINE_STATUS_CANCELLED:
        return 0
    if line.status == LINE_STATUS_PENDING:
        return line.quantity_requested
    return line.quantity_allocated


def line_totals(line) -> tuple[int, int]:
    """(total_cost_cents, total_charge_cents) for one supply line."""
    qty = billable_quantity(line)
    cost = qty * (line.cost_per_unit_cents or 0)
    charge = qty * (line.charge_per_unit_cents or 0) if line.pricing_type == PRICING_CHARGEABLE else 0
    return cost, charge


def calculate_pricing(
    *,
    base_price_cents: int,
    services: Iterable,
    supply_lines: Iterable,
    discount_value: int,
    discount_type: str,
    tax_rate_bps: int,
) -> PricingResult:
    """
    Compute the pricing snapshot of an event.

    services: objects with price_cents
    supply_lines: objects with status, pricing_type, quantity_requested,
        quantity_allocated, cost_per_unit_cents, charge_per_unit_cents
    """
    if discount_type not in (DISCOUNT_FIXED, DISCOUNT_PERCENTAGE):
        raise ValidationError(f"discount_type must be '{DISCOUNT_FIXED}' or '{DISCOUNT_PERCENTAGE}'")

    base = base_price_cents or 0
    services_total = sum(s.price_cents or 0 for s in services)

    supplies_charge = 0
    supplies_cost = 0
    for line in supply_lines:
        cost, charge = line_totals(line)
        supplies_cost += cost
        supplies_charge += charge

    subtotal = base + services_total + supplies_charge

    if discount_type == DISCOUNT_FIXED:
        discount_amount = discount_value or 0
    else:
        discount_amount = apply_bps(subtotal, discount_value or 0)

    taxable = max(0, subtotal - discount_amount)
    tax = apply_bps(taxable, tax_rate_bps or 0)

    return PricingResult(
        services_total_cents=services_total,
        supplies_charge_cents=supplies_charge,
        supplies_cost_cents=supplies_cost,
        subtotal_cents=subtotal,
        discount_amount_cents=discount_amount,
        taxable_amount_cents=taxable,
        tax_amount_cents=tax,
        total_cents=taxable + tax,
    )


def reprice_event(event) -> PricingResult:
    """Refresh line totals and the event's pricing snapshot from its current rows."""
    for line in event.supply_lines:
        line.total_cost_cents, line.total_charge_cents = line_totals(line)

    result = calculate_pricing(
        base_price_cents=event.base_price_cents,
        services=event.services,
        supply_lines=event.supply_lines,
        discount_value=event.discount_value,
        discount_type=event.discount_type,
        tax_rate_bps=event.tax_rate_bps,
    )
    for key, value in result.to_dict().items():
        setattr(event, key, value)
    return result
