# Overview: Pytest coverage for the HTTP surface and its error mapping.

from conftest import event_payload, tenant_headers


class TestTenantContext:
    def test_missing_tenant_header_is_401(self, client, db_session):
        response = client.get("/api/events/")
        assert response.status_code == 401

    def test_malformed_tenant_header_is_401(self, client, db_session):
        response = client.get("/api/events/", headers={"X-Tenant-Id": "rosa"})
        assert response.status_code == 401

    def test_unknown_tenant_is_404(self, client, db_session):
        response = client.get("/api/events/", headers={"X-Tenant-Id": "99999"})
        assert response.status_code == 404

    def test_malformed_user_header_is_400(self, client, db_session, tenant_a):
        headers = tenant_headers(tenant_a)
        headers["X-User-Id"] = "admin"
        response = client.get("/api/events/", headers=headers)
        assert response.status_code == 400


class TestEventRoutes:
    def test_create_and_fetch(self, client, db_session, tenant_a, client_a, hall_a):
        response = client.post(
            "/api/events/",
            json=event_payload(client_a, hall_a, base_price_cents=100000),
            headers=tenant_headers(tenant_a),
        )
        assert response.status_code == 201
        body = response.get_json()
        assert body["pricing"]["total_cents"] == 100000
        assert body["payment_summary"]["status"] == "pending"
        assert body["created_by_user_id"] == 7

        fetched = client.get(f"/api/events/{body['id']}", headers=tenant_headers(tenant_a))
        assert fetched.status_code == 200
        assert fetched.get_json()["start_time"] == "10:00"

    def test_conflict_is_409_with_details(self, client, db_session, tenant_a, client_a, hall_a):
        headers = tenant_headers(tenant_a)
        first = client.post("/api/events/", json=event_payload(client_a, hall_a), headers=headers).get_json()

        response = client.post(
            "/api/events/",
            json=event_payload(client_a, hall_a, start_time="11:00", end_time="13:00"),
            headers=headers,
        )

        assert response.status_code == 409
        assert response.get_json()["details"]["conflicting_event_id"] == first["id"]

    def test_invalid_range_is_400(self, client, db_session, tenant_a, client_a):
        response = client.post(
            "/api/events/",
            json=event_payload(client_a, start_time="14:00", end_time="09:00"),
            headers=tenant_headers(tenant_a),
        )
        assert response.status_code == 400

    def test_unknown_field_is_400(self, client, db_session, tenant_a, client_a):
        response = client.post(
            "/api/events/",
            json=event_payload(client_a, total_cents=1),
            headers=tenant_headers(tenant_a),
        )
        assert response.status_code == 400
        assert "total_cents" in response.get_json()["error"]

    def test_missing_event_is_404(self, client, db_session, tenant_a):
        response = client.get("/api/events/424242", headers=tenant_headers(tenant_a))
        assert response.status_code == 404

    def test_insufficient_stock_is_409(self, client, db_session, tenant_a, client_a, linen_a):
        headers = tenant_headers(tenant_a)
        event = client.post(
            "/api/events/",
            json=event_payload(client_a, supplies=[{"supply_id": linen_a.id, "quantity": 5}]),
            headers=headers,
        ).get_json()

        response = client.post(f"/api/events/{event['id']}/supplies/allocate", headers=headers)

        assert response.status_code == 409
        details = response.get_json()["details"]
        assert details == {"supply_id": linen_a.id, "supply_name": "Tablecloth", "requested": 5, "available": 3}

    def test_status_change_and_cancel(self, client, db_session, tenant_a, client_a):
        headers = tenant_headers(tenant_a)
        event = client.post("/api/events/", json=event_payload(client_a), headers=headers).get_json()

        confirmed = client.post(f"/api/events/{event['id']}/status", json={"status": "confirmed"}, headers=headers)
        assert confirmed.get_json()["status"] == "confirmed"

        cancelled = client.post(f"/api/events/{event['id']}/cancel", json={"reason": "Rain"}, headers=headers)
        assert cancelled.status_code == 200
        assert cancelled.get_json()["cancellation_reason"] == "Rain"

        again = client.post(f"/api/events/{event['id']}/cancel", headers=headers)
        assert again.status_code == 409

    def test_availability_check(self, client, db_session, tenant_a, client_a, hall_a):
        headers = tenant_headers(tenant_a)
        client.post("/api/events/", json=event_payload(client_a, hall_a), headers=headers)

        query = {
            "resource_kind": "space",
            "resource_id": hall_a.id,
            "start_date": "2026-06-01",
            "end_date": "2026-06-01",
        }
        free = client.get(
            "/api/events/availability", query_string={**query, "start_time": "12:00", "end_time": "13:00"},
            headers=headers,
        )
        taken = client.get(
            "/api/events/availability", query_string={**query, "start_time": "11:00", "end_time": "13:00"},
            headers=headers,
        )

        assert free.status_code == 200
        assert free.get_json() == {"available": True}
        assert taken.status_code == 409

    def test_activity_route(self, client, db_session, tenant_a, client_a):
        headers = tenant_headers(tenant_a)
        event = client.post("/api/events/", json=event_payload(client_a), headers=headers).get_json()

        response = client.get(f"/api/events/{event['id']}/activity", headers=headers)
        assert [a["event_type"] for a in response.get_json()["items"]] == ["event.created"]

    def test_availability_check_rejects_utc_offset(self, client, db_session, tenant_a, hall_a):
        response = client.get(
            "/api/events/availability",
            query_string={
                "resource_kind": "space",
                "resource_id": hall_a.id,
                "start_date": "2026-06-01",
                "start_time": "10:00+02:00",
                "end_date": "2026-06-01",
                "end_time": "11:00",
            },
            headers=tenant_headers(tenant_a),
        )
        assert response.status_code == 400

    def test_create_with_utc_offset_is_400(self, client, db_session, tenant_a, client_a, hall_a):
        headers = tenant_headers(tenant_a)
        client.post("/api/events/", json=event_payload(client_a, hall_a), headers=headers)

        response = client.post(
            "/api/events/",
            json=event_payload(client_a, hall_a, start_time="10:00+02:00", end_time="11:00"),
            headers=headers,
        )
        assert response.status_code == 400
        assert "start_time" in response.get_json()["error"]

    def test_list_by_client(self, client, db_session, tenant_a, client_a, client_b):
        headers = tenant_headers(tenant_a)
        client.post("/api/events/", json=event_payload(client_a), headers=headers)

        mine = client.get("/api/events/", query_string={"client_id": client_a.id}, headers=headers)
        assert mine.get_json()["count"] == 1

        foreign = client.get("/api/events/", query_string={"client_id": client_b.id}, headers=headers)
        assert foreign.status_code == 404

        malformed = client.get("/api/events/", query_string={"client_id": "ana"}, headers=headers)
        assert malformed.status_code == 400

    def test_event_stats_route(self, client, db_session, tenant_a, client_a):
        headers = tenant_headers(tenant_a)
        client.post("/api/events/", json=event_payload(client_a, base_price_cents=100000), headers=headers)

        response = client.get("/api/events/stats", headers=headers)

        assert response.status_code == 200
        body = response.get_json()
        assert body["total_events"] == 1
        assert body["by_status"] == [{"status": "pending", "count": 1, "revenue_cents": 100000}]


class TestSupplyRoutes:
    def test_create_supply(self, client, db_session, tenant_a):
        response = client.post(
            "/api/supplies/",
            json={"name": "Candle", "unit": "piece", "initial_stock": 40, "minimum_stock": 5},
            headers=tenant_headers(tenant_a),
        )
        assert response.status_code == 201
        assert response.get_json()["current_stock"] == 40

    def test_record_movement_and_history(self, client, db_session, tenant_a, chairs_a):
        headers = tenant_headers(tenant_a)
        response = client.post(
            f"/api/supplies/{chairs_a.id}/movements",
            json={"movement_type": "waste", "quantity": 3, "note": "Broken"},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.get_json()["current_stock"] == 97

        history = client.get(f"/api/supplies/{chairs_a.id}/movements", headers=headers).get_json()
        assert [m["quantity_delta"] for m in history["items"]] == [-3, 100]

    def test_low_stock_and_summary(self, client, db_session, tenant_a, chairs_a, linen_a):
        headers = tenant_headers(tenant_a)
        low = client.get("/api/supplies/low-stock", headers=headers).get_json()
        assert [s["id"] for s in low["items"]] == [linen_a.id]

        summary = client.get("/api/supplies/summary", headers=headers).get_json()
        assert summary["total_value_cents"] == 81500


class TestPaymentRoutes:
    def test_record_payment_returns_event_summary(self, client, db_session, tenant_a, client_a):
        headers = tenant_headers(tenant_a)
        event = client.post(
            "/api/events/", json=event_payload(client_a, base_price_cents=100000), headers=headers,
        ).get_json()

        response = client.post(
            "/api/payments/",
            json={"event_id": event["id"], "amount_cents": 60000, "method": "card", "status": "completed"},
            headers=headers,
        )

        assert response.status_code == 201
        summary = response.get_json()["event_payment_summary"]
        assert summary == {"total_cents": 100000, "paid_amount_cents": 60000, "amount_due_cents": 40000,
                           "status": "partial"}

        listing = client.get(f"/api/payments/events/{event['id']}", headers=headers).get_json()
        assert listing["status"] == "partial"
        assert len(listing["payments"]) == 1

    def test_refund_route(self, client, db_session, tenant_a, client_a):
        headers = tenant_headers(tenant_a)
        event = client.post(
            "/api/events/", json=event_payload(client_a, base_price_cents=100000), headers=headers,
        ).get_json()
        payment = client.post(
            "/api/payments/",
            json={"event_id": event["id"], "amount_cents": 60000, "method": "cash", "status": "completed"},
            headers=headers,
        ).get_json()["payment"]

        response = client.post(f"/api/payments/{payment['id']}/refund", json={"amount_cents": 70000}, headers=headers)
        assert response.status_code == 400

    def test_payment_stats_route(self, client, db_session, tenant_a, client_a):
        headers = tenant_headers(tenant_a)
        event = client.post(
            "/api/events/", json=event_payload(client_a, base_price_cents=100000), headers=headers,
        ).get_json()
        client.post(
            "/api/payments/",
            json={"event_id": event["id"], "amount_cents": 25000, "method": "cash", "status": "completed"},
            headers=headers,
        )

        response = client.get("/api/payments/stats", headers=headers)
        assert response.status_code == 200
        assert response.get_json()["income_cents"] == 25000

        bad_range = client.get("/api/payments/stats", query_string={"from": "yesterday"}, headers=headers)
        assert bad_range.status_code == 400


class TestHealth:
    def test_health(self, client, db_session):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.get_json()["checks"]["database"]["status"] == "healthy"
