# Overview: Pytest coverage for the event aggregate and its save pipeline.

import json
from datetime import date

import pytest

from venueops.errors import NotFoundError, SlotConflictError, StateError, ValidationError
from venueops.models import Client, Supply
from venueops.models.events import (
    EVENT_STATUS_CANCELLED,
    EVENT_STATUS_COMPLETED,
    EVENT_STATUS_CONFIRMED,
    EVENT_STATUS_IN_PROGRESS,
    LINE_STATUS_ALLOCATED,
    LINE_STATUS_CANCELLED,
    LINE_STATUS_PENDING,
    SERVICE_KIND_MANUAL,
    SERVICE_KIND_PARTNER,
)
from venueops.services import event_service, supply_service
from venueops.services.activity_service import list_activity

from conftest import event_payload, pay


class TestCreate:
    def test_create_prices_the_event(self, db_session, tenant_a, client_a, hall_a):
        event = event_service.create_event(
            tenant_a.id,
            event_payload(
                client_a,
                hall_a,
                event_type="wedding",
                base_price_cents=100000,
                services=[{"name": "Photo booth", "price_cents": 20000}],
                discount_type="percentage",
                discount_value=1000,
                tax_rate_bps=1900,
            ),
            actor_user_id=7,
        )

        assert event.status == "pending"
        assert event.total_cents == 128520
        assert event.payment_status == "pending"
        assert event.amount_due_cents == 128520
        assert event.created_by_user_id == 7

    def test_create_keeps_supply_lines_pending(self, db_session, tenant_a, client_a, chairs_a):
        event = event_service.create_event(
            tenant_a.id, event_payload(client_a, supplies=[{"supply_id": chairs_a.id, "quantity": 20}]),
        )

        line = event.supply_lines[0]
        assert line.status == LINE_STATUS_PENDING
        assert line.quantity_allocated == 0
        assert line.supply_name == "Folding chair"
        assert line.charge_per_unit_cents == 1500
        # Pending lines are priced on the requested quantity
        assert event.supplies_charge_cents == 20 * 1500
        db_session.expire_all()
        assert db_session.get(Supply, chairs_a.id).current_stock == 100

    def test_line_keeps_snapshot_after_supply_edit(self, db_session, tenant_a, client_a, chairs_a):
        event = event_service.create_event(
            tenant_a.id, event_payload(client_a, supplies=[{"supply_id": chairs_a.id, "quantity": 20}]),
        )
        supply_service.update_supply(tenant_a.id, chairs_a.id, {"name": "Chair", "charge_per_unit_cents": 9900})

        reloaded = event_service.get_event(tenant_a.id, event.id)
        assert reloaded.supply_lines[0].supply_name == "Folding chair"
        assert reloaded.supply_lines[0].charge_per_unit_cents == 1500

    def test_partner_services_priced_from_rate_card(self, db_session, tenant_a, client_a, dj_a, florist_a):
        event = event_service.create_event(
            tenant_a.id,
            event_payload(
                client_a,
                partners=[
                    {"partner_id": dj_a.id, "hours": 4},
                    {"partner_id": florist_a.id, "service": "Table arrangements"},
                ],
            ),
        )

        by_partner = {s.partner_id: s for s in event.services}
        assert by_partner[dj_a.id].price_cents == 4 * 9000
        assert by_partner[dj_a.id].kind == SERVICE_KIND_PARTNER
        assert by_partner[florist_a.id].price_cents == 35000
        assert by_partner[florist_a.id].name == "Table arrangements"
        assert event.services_total_cents == 36000 + 35000

    def test_hourly_partner_defaults_to_one_hour(self, db_session, tenant_a, client_a, dj_a):
        event = event_service.create_event(
            tenant_a.id, event_payload(client_a, partners=[{"partner_id": dj_a.id}]),
        )
        assert event.services[0].price_cents == 9000
        assert event.services[0].hours == 1

    def test_missing_required_field_rejected(self, db_session, tenant_a, client_a):
        payload = event_payload(client_a)
        del payload["title"]
        with pytest.raises(ValidationError):
            event_service.create_event(tenant_a.id, payload)

    def test_non_positive_supply_quantity_rejected(self, db_session, tenant_a, client_a, chairs_a):
        with pytest.raises(ValidationError):
            event_service.create_event(
                tenant_a.id, event_payload(client_a, supplies=[{"supply_id": chairs_a.id, "quantity": 0}]),
            )

    def test_percentage_discount_over_100_rejected(self, db_session, tenant_a, client_a):
        with pytest.raises(ValidationError):
            event_service.create_event(
                tenant_a.id, event_payload(client_a, discount_type="percentage", discount_value=10001),
            )

    def test_price_ceiling_read_from_config(self, app, db_session, tenant_a, client_a, monkeypatch):
        monkeypatch.setitem(app.config, "MAX_PRICE_CENTS", 50000)
        with pytest.raises(ValidationError) as exc:
            event_service.create_event(tenant_a.id, event_payload(client_a, base_price_cents=50001))
        assert "500.00" in exc.value.message

        event = event_service.create_event(tenant_a.id, event_payload(client_a, base_price_cents=50000))
        assert event.base_price_cents == 50000

    def test_resource_kind_must_match_record(self, db_session, tenant_a, client_a, van_a):
        with pytest.raises(ValidationError):
            event_service.create_event(
                tenant_a.id, event_payload(client_a, resource_kind="space", resource_id=van_a.id),
            )

    def test_vehicle_booking(self, db_session, tenant_a, client_a, van_a):
        event = event_service.create_event(tenant_a.id, event_payload(client_a, van_a, event_type="delivery"))
        assert event.resource_kind == "vehicle"
        assert event.resource_id == van_a.id

    def test_archived_supply_cannot_be_requested(self, db_session, tenant_a, client_a, chairs_a):
        supply_service.archive_supply(tenant_a.id, chairs_a.id)
        with pytest.raises(StateError):
            event_service.create_event(
                tenant_a.id, event_payload(client_a, supplies=[{"supply_id": chairs_a.id, "quantity": 1}]),
            )

    def test_failed_create_writes_nothing(self, db_session, tenant_a, client_a, hall_a):
        event_service.create_event(tenant_a.id, event_payload(client_a, hall_a))
        with pytest.raises(SlotConflictError):
            event_service.create_event(tenant_a.id, event_payload(client_a, hall_a, title="Clash"))

        titles = [e.title for e in event_service.list_events(tenant_a.id)]
        assert titles == ["Smith wedding"]

    @pytest.mark.parametrize("start_time", ["10:00+02:00", "10:00Z", "10:00:00-05:00"])
    def test_time_with_utc_offset_rejected(self, db_session, tenant_a, client_a, hall_a, start_time):
        # A naive booking already holds the slot
        event_service.create_event(tenant_a.id, event_payload(client_a, hall_a))

        with pytest.raises(ValidationError) as exc:
            event_service.create_event(
                tenant_a.id, event_payload(client_a, hall_a, start_time=start_time, end_time="11:00"),
            )
        assert "start_time" in exc.value.message

    def test_update_time_with_utc_offset_rejected(self, db_session, tenant_a, client_a):
        event = event_service.create_event(tenant_a.id, event_payload(client_a))
        with pytest.raises(ValidationError):
            event_service.update_event(tenant_a.id, event.id, {"end_time": "13:00+01:00"})


class TestUpdate:
    def test_update_reprices(self, db_session, tenant_a, client_a):
        event = event_service.create_event(tenant_a.id, event_payload(client_a, base_price_cents=50000))
        updated = event_service.update_event(tenant_a.id, event.id, {"tax_rate_bps": 1000})
        assert updated.total_cents == 55000

    def test_services_replace_only_manual_lines(self, db_session, tenant_a, client_a, dj_a):
        event = event_service.create_event(
            tenant_a.id,
            event_payload(
                client_a,
                services=[{"name": "Cake", "price_cents": 8000}],
                partners=[{"partner_id": dj_a.id, "hours": 2}],
            ),
        )
        updated = event_service.update_event(
            tenant_a.id, event.id, {"services": [{"name": "Late bar", "price_cents": 15000}]},
        )

        manual = [s.name for s in updated.services if s.kind == SERVICE_KIND_MANUAL]
        partner = [s for s in updated.services if s.kind == SERVICE_KIND_PARTNER]
        assert manual == ["Late bar"]
        assert len(partner) == 1
        assert updated.services_total_cents == 15000 + 18000

    def test_replacing_held_supplies_reallocates(self, db_session, tenant_a, client_a, chairs_a, linen_a):
        event = event_service.create_event(
            tenant_a.id, event_payload(client_a, supplies=[{"supply_id": chairs_a.id, "quantity": 40}]),
        )
        event_service.allocate_supplies(tenant_a.id, event.id)

        updated = event_service.update_event(
            tenant_a.id, event.id, {"supplies": [{"supply_id": chairs_a.id, "quantity": 10}]},
        )

        statuses = [(line.status, line.quantity_requested) for line in updated.supply_lines]
        assert statuses == [(LINE_STATUS_CANCELLED, 40), (LINE_STATUS_ALLOCATED, 10)]
        db_session.expire_all()
        assert db_session.get(Supply, chairs_a.id).current_stock == 90

    def test_replacing_pending_supplies_drops_them(self, db_session, tenant_a, client_a, chairs_a, linen_a):
        event = event_service.create_event(
            tenant_a.id, event_payload(client_a, supplies=[{"supply_id": chairs_a.id, "quantity": 40}]),
        )
        updated = event_service.update_event(
            tenant_a.id, event.id, {"supplies": [{"supply_id": linen_a.id, "quantity": 2}]},
        )
        assert [line.supply_id for line in updated.supply_lines] == [linen_a.id]
        assert updated.supply_lines[0].status == LINE_STATUS_PENDING

    def test_cancelled_event_is_read_only(self, db_session, tenant_a, client_a):
        event = event_service.create_event(tenant_a.id, event_payload(client_a))
        event_service.cancel_event(tenant_a.id, event.id)
        with pytest.raises(StateError):
            event_service.update_event(tenant_a.id, event.id, {"title": "Renamed"})

    def test_status_cancelled_through_update_runs_cancel_flow(self, db_session, tenant_a, client_a, chairs_a):
        event = event_service.create_event(
            tenant_a.id, event_payload(client_a, supplies=[{"supply_id": chairs_a.id, "quantity": 5}]),
        )
        event_service.allocate_supplies(tenant_a.id, event.id)

        updated = event_service.update_event(tenant_a.id, event.id, {"status": "cancelled"})

        assert updated.status == EVENT_STATUS_CANCELLED
        assert updated.cancelled_at is not None
        db_session.expire_all()
        assert db_session.get(Supply, chairs_a.id).current_stock == 100


class TestStatus:
    def test_forward_lifecycle(self, db_session, tenant_a, client_a):
        event = event_service.create_event(tenant_a.id, event_payload(client_a))
        for status in (EVENT_STATUS_CONFIRMED, EVENT_STATUS_IN_PROGRESS, EVENT_STATUS_COMPLETED):
            event = event_service.change_event_status(tenant_a.id, event.id, status)
        assert event.status == EVENT_STATUS_COMPLETED

    def test_skipping_a_step_rejected(self, db_session, tenant_a, client_a):
        event = event_service.create_event(tenant_a.id, event_payload(client_a))
        with pytest.raises(StateError):
            event_service.change_event_status(tenant_a.id, event.id, EVENT_STATUS_COMPLETED)

    def test_same_status_is_a_no_op(self, db_session, tenant_a, client_a):
        event = event_service.create_event(tenant_a.id, event_payload(client_a))
        again = event_service.change_event_status(tenant_a.id, event.id, "pending")
        assert again.status == "pending"

    def test_unknown_status_rejected(self, db_session, tenant_a, client_a):
        event = event_service.create_event(tenant_a.id, event_payload(client_a))
        with pytest.raises(ValidationError):
            event_service.change_event_status(tenant_a.id, event.id, "postponed")

    def test_completed_event_cannot_be_cancelled(self, db_session, tenant_a, client_a):
        event = event_service.create_event(tenant_a.id, event_payload(client_a))
        for status in (EVENT_STATUS_CONFIRMED, EVENT_STATUS_IN_PROGRESS, EVENT_STATUS_COMPLETED):
            event_service.change_event_status(tenant_a.id, event.id, status)
        with pytest.raises(StateError):
            event_service.cancel_event(tenant_a.id, event.id)

    def test_cancel_twice_rejected(self, db_session, tenant_a, client_a):
        event = event_service.create_event(tenant_a.id, event_payload(client_a))
        event_service.cancel_event(tenant_a.id, event.id)
        with pytest.raises(StateError):
            event_service.cancel_event(tenant_a.id, event.id)

    def test_cancel_keeps_payments(self, db_session, tenant_a, client_a):
        event = event_service.create_event(tenant_a.id, event_payload(client_a, base_price_cents=100000))
        pay(tenant_a, event, 30000)

        cancelled = event_service.cancel_event(tenant_a.id, event.id, reason="Weather")
        assert cancelled.paid_amount_cents == 30000
        assert cancelled.cancellation_reason == "Weather"


class TestArchive:
    def test_archive_hides_from_default_listing(self, db_session, tenant_a, client_a):
        event = event_service.create_event(tenant_a.id, event_payload(client_a))
        event_service.archive_event(tenant_a.id, event.id, actor_user_id=3)

        assert event_service.list_events(tenant_a.id) == []
        archived = event_service.list_events(tenant_a.id, include_archived=True)
        assert [e.id for e in archived] == [event.id]
        assert archived[0].archived_by_user_id == 3

    def test_archived_event_is_read_only(self, db_session, tenant_a, client_a):
        event = event_service.create_event(tenant_a.id, event_payload(client_a))
        event_service.archive_event(tenant_a.id, event.id)
        with pytest.raises(StateError):
            event_service.update_event(tenant_a.id, event.id, {"title": "Renamed"})

    def test_get_event_can_hide_archived(self, db_session, tenant_a, client_a):
        event = event_service.create_event(tenant_a.id, event_payload(client_a))
        event_service.archive_event(tenant_a.id, event.id)
        with pytest.raises(NotFoundError):
            event_service.get_event(tenant_a.id, event.id, include_archived=False)

    def test_restore_rechecks_the_slot(self, db_session, tenant_a, client_a, hall_a):
        first = event_service.create_event(tenant_a.id, event_payload(client_a, hall_a))
        event_service.archive_event(tenant_a.id, first.id)
        event_service.create_event(tenant_a.id, event_payload(client_a, hall_a, title="Taken meanwhile"))

        with pytest.raises(SlotConflictError):
            event_service.restore_event(tenant_a.id, first.id)

    def test_restore_free_slot(self, db_session, tenant_a, client_a, hall_a):
        event = event_service.create_event(tenant_a.id, event_payload(client_a, hall_a))
        event_service.archive_event(tenant_a.id, event.id)
        restored = event_service.restore_event(tenant_a.id, event.id)
        assert not restored.is_archived

    def test_restore_active_event_rejected(self, db_session, tenant_a, client_a):
        event = event_service.create_event(tenant_a.id, event_payload(client_a))
        with pytest.raises(StateError):
            event_service.restore_event(tenant_a.id, event.id)


class TestQueries:
    def test_list_filters_by_status_and_range(self, db_session, tenant_a, client_a):
        june = event_service.create_event(tenant_a.id, event_payload(client_a))
        july = event_service.create_event(
            tenant_a.id, event_payload(client_a, start_date="2026-07-10", end_date="2026-07-10"),
        )
        event_service.change_event_status(tenant_a.id, july.id, EVENT_STATUS_CONFIRMED)

        confirmed = event_service.list_events(tenant_a.id, status=EVENT_STATUS_CONFIRMED)
        assert [e.id for e in confirmed] == [july.id]

        in_june = event_service.list_events(tenant_a.id, from_date=date(2026, 6, 1), to_date=date(2026, 6, 30))
        assert [e.id for e in in_june] == [june.id]

    def test_activity_trail(self, db_session, tenant_a, client_a):
        event = event_service.create_event(tenant_a.id, event_payload(client_a), actor_user_id=7)
        event_service.update_event(tenant_a.id, event.id, {"title": "Smith & Jones wedding"}, actor_user_id=7)
        event_service.cancel_event(tenant_a.id, event.id, actor_user_id=8, reason="Double booked")

        entries = list_activity(tenant_a.id, entity_type="event", entity_id=event.id)
        assert [a.event_type for a in entries] == ["event.created", "event.updated", "event.cancelled"]
        assert entries[-1].actor_user_id == 8
        assert entries[-1].note == "Double booked"
        assert json.loads(entries[1].payload)["fields"] == ["title"]

    def test_list_filters_by_client(self, db_session, tenant_a, client_a):
        other_client = Client(tenant_id=tenant_a.id, name="Ola Berg", is_active=True)
        db_session.add(other_client)
        db_session.commit()

        mine = event_service.create_event(tenant_a.id, event_payload(client_a))
        event_service.create_event(
            tenant_a.id, event_payload(other_client, start_date="2026-07-10", end_date="2026-07-10"),
        )

        assert [e.id for e in event_service.list_events(tenant_a.id, client_id=client_a.id)] == [mine.id]

    def test_list_by_foreign_client_rejected(self, db_session, tenant_a, client_b):
        with pytest.raises(NotFoundError):
            event_service.list_events(tenant_a.id, client_id=client_b.id)

    def test_event_stats(self, db_session, tenant_a, client_a):
        def book(day, **overrides):
            return event_service.create_event(
                tenant_a.id, event_payload(client_a, start_date=day, end_date=day, **overrides),
            )

        book("2026-06-01", event_type="wedding", base_price_cents=100000)
        confirmed = book("2026-07-10", base_price_cents=20000)
        event_service.change_event_status(tenant_a.id, confirmed.id, EVENT_STATUS_CONFIRMED)
        cancelled = book("2026-07-11", base_price_cents=5000)
        event_service.cancel_event(tenant_a.id, cancelled.id)
        archived = book("2026-07-12", base_price_cents=1000)
        event_service.archive_event(tenant_a.id, archived.id)

        stats = event_service.get_event_stats(tenant_a.id, today=date(2026, 6, 15))

        assert stats["total_events"] == 3
        # The June booking has already started and the cancelled one never will
        assert stats["upcoming_events"] == 1
        by_status = {row["status"]: row for row in stats["by_status"]}
        assert set(by_status) == {"pending", "confirmed", "cancelled"}
        assert by_status["pending"]["revenue_cents"] == 100000
        assert by_status["confirmed"] == {"status": "confirmed", "count": 1, "revenue_cents": 20000}
        assert {row["event_type"]: row["count"] for row in stats["by_type"]} == {"other": 2, "wedding": 1}

    def test_event_stats_are_tenant_scoped(self, db_session, tenant_a, tenant_b, client_b):
        event_service.create_event(tenant_b.id, event_payload(client_b))
        stats = event_service.get_event_stats(tenant_a.id)
        assert stats["total_events"] == 0
        assert stats["by_status"] == []
