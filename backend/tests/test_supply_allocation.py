# Overview: Pytest coverage for event supply allocation and returns.

"""
Supply Allocation Tests

Allocation is all-or-nothing across an event's lines; returns are the exact
inverse and leave a ledger entry per line.
"""

import pytest

from venueops.errors import InsufficientStockError, StateError
from venueops.models import StockMovement, Supply
from venueops.models.events import LINE_STATUS_ALLOCATED, LINE_STATUS_CANCELLED, LINE_STATUS_DELIVERED
from venueops.models.supplies import MOVEMENT_RETURN, MOVEMENT_USAGE
from venueops.services import event_service, supply_service

from conftest import event_payload


def stock_of(db_session, supply):
    db_session.expire_all()
    return db_session.get(Supply, supply.id).current_stock


@pytest.fixture
def booked(db_session, tenant_a, client_a, hall_a, chairs_a, linen_a):
    """Event requesting 40 chairs and 2 tablecloths."""
    return event_service.create_event(
        tenant_a.id,
        event_payload(
            client_a,
            hall_a,
            supplies=[
                {"supply_id": chairs_a.id, "quantity": 40},
                {"supply_id": linen_a.id, "quantity": 2},
            ],
        ),
    )


class TestAllocate:
    def test_allocation_decrements_every_line(self, db_session, tenant_a, booked, chairs_a, linen_a):
        event = event_service.allocate_supplies(tenant_a.id, booked.id, actor_user_id=7)

        assert [line.status for line in event.supply_lines] == [LINE_STATUS_ALLOCATED] * 2
        assert [line.quantity_allocated for line in event.supply_lines] == [40, 2]
        assert stock_of(db_session, chairs_a) == 60
        assert stock_of(db_session, linen_a) == 1

        usage = db_session.query(StockMovement).filter_by(movement_type=MOVEMENT_USAGE).all()
        assert {m.reference for m in usage} == {f"event:{booked.id}"}

    def test_insufficient_stock_leaves_everything_untouched(
        self, db_session, tenant_a, client_a, hall_a, chairs_a, linen_a
    ):
        """Tablecloths: stock 3, request 5. Chairs were fine but must not move either."""
        event = event_service.create_event(
            tenant_a.id,
            event_payload(
                client_a,
                hall_a,
                supplies=[
                    {"supply_id": chairs_a.id, "quantity": 10},
                    {"supply_id": linen_a.id, "quantity": 5},
                ],
            ),
        )

        with pytest.raises(InsufficientStockError) as exc:
            event_service.allocate_supplies(tenant_a.id, event.id)

        assert exc.value.details["supply_id"] == linen_a.id
        assert exc.value.details["requested"] == 5
        assert exc.value.details["available"] == 3
        assert stock_of(db_session, linen_a) == 3
        assert stock_of(db_session, chairs_a) == 100
        assert db_session.query(StockMovement).filter_by(movement_type=MOVEMENT_USAGE).count() == 0

    def test_allocating_twice_rejected(self, db_session, tenant_a, booked, chairs_a):
        event_service.allocate_supplies(tenant_a.id, booked.id)
        with pytest.raises(StateError):
            event_service.allocate_supplies(tenant_a.id, booked.id)
        assert stock_of(db_session, chairs_a) == 60

    def test_nothing_pending_rejected(self, db_session, tenant_a, client_a, hall_a):
        event = event_service.create_event(tenant_a.id, event_payload(client_a, hall_a))
        with pytest.raises(StateError):
            event_service.allocate_supplies(tenant_a.id, event.id)

    def test_cancelled_event_cannot_allocate(self, db_session, tenant_a, booked):
        event_service.cancel_event(tenant_a.id, booked.id)
        with pytest.raises(StateError):
            event_service.allocate_supplies(tenant_a.id, booked.id)

    def test_allocation_reprices_from_allocated_quantity(self, db_session, tenant_a, booked):
        event = event_service.allocate_supplies(tenant_a.id, booked.id)
        # Chairs are chargeable, tablecloths included
        assert event.supplies_charge_cents == 40 * 1500
        assert event.supplies_cost_cents == 40 * 800 + 2 * 500


class TestReturn:
    def test_allocate_then_return_restores_stock(self, db_session, tenant_a, booked, chairs_a, linen_a):
        event_service.allocate_supplies(tenant_a.id, booked.id)
        event = event_service.return_supplies(tenant_a.id, booked.id)

        assert stock_of(db_session, chairs_a) == 100
        assert stock_of(db_session, linen_a) == 3
        assert all(line.status == LINE_STATUS_CANCELLED for line in event.supply_lines)
        assert all(line.quantity_allocated == 0 for line in event.supply_lines)
        assert db_session.query(StockMovement).filter_by(movement_type=MOVEMENT_RETURN).count() == 2

    def test_return_without_allocation_rejected(self, db_session, tenant_a, booked):
        with pytest.raises(StateError):
            event_service.return_supplies(tenant_a.id, booked.id)

    def test_return_skips_archived_supply(self, db_session, tenant_a, booked, chairs_a, linen_a):
        event_service.allocate_supplies(tenant_a.id, booked.id)
        supply_service.archive_supply(tenant_a.id, linen_a.id)

        event = event_service.return_supplies(tenant_a.id, booked.id)

        assert stock_of(db_session, chairs_a) == 100
        # Archived supply is not restocked, but its line is still closed
        assert stock_of(db_session, linen_a) == 1
        assert all(line.status == LINE_STATUS_CANCELLED for line in event.supply_lines)

    def test_cancel_returns_held_stock(self, db_session, tenant_a, booked, chairs_a):
        event_service.allocate_supplies(tenant_a.id, booked.id)
        event_service.cancel_event(tenant_a.id, booked.id, reason="Client withdrew")
        assert stock_of(db_session, chairs_a) == 100


class TestDelivery:
    def test_delivered_lines_keep_stock(self, db_session, tenant_a, booked, chairs_a):
        event_service.allocate_supplies(tenant_a.id, booked.id)
        event = event_service.mark_supplies_delivered(tenant_a.id, booked.id)

        assert all(line.status == LINE_STATUS_DELIVERED for line in event.supply_lines)
        assert stock_of(db_session, chairs_a) == 60

    def test_delivered_lines_can_be_returned(self, db_session, tenant_a, booked, chairs_a):
        event_service.allocate_supplies(tenant_a.id, booked.id)
        event_service.mark_supplies_delivered(tenant_a.id, booked.id)
        event_service.return_supplies(tenant_a.id, booked.id)
        assert stock_of(db_session, chairs_a) == 100

    def test_deliver_without_allocation_rejected(self, db_session, tenant_a, booked):
        with pytest.raises(StateError):
            event_service.mark_supplies_delivered(tenant_a.id, booked.id)


class TestStranded:
    def test_archived_event_holding_stock_is_reported(self, db_session, tenant_a, booked, chairs_a):
        event_service.allocate_supplies(tenant_a.id, booked.id)
        event_service.archive_event(tenant_a.id, booked.id)

        stranded = event_service.find_stranded_allocations(tenant_a.id)
        assert [e.id for e in stranded] == [booked.id]
        assert stock_of(db_session, chairs_a) == 60

        event_service.return_supplies(tenant_a.id, booked.id)
        assert event_service.find_stranded_allocations(tenant_a.id) == []
        assert stock_of(db_session, chairs_a) == 100
