# Overview: Pytest coverage for the Flask CLI commands.

from venueops.models import Client, Partner, Resource, Tenant
from venueops.services import event_service

from conftest import event_payload


def test_create_tenant(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["tenants", "create", "--name", "Lakeside", "--code", "LAKE"])

    assert "PASS Created tenant" in result.output
    assert db_session.query(Tenant).filter_by(code="LAKE").count() == 1


def test_duplicate_tenant_code(app, db_session, tenant_a):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["tenants", "create", "--name", "Other", "--code", "ROSA"])
    assert "FAIL" in result.output


def test_directory_commands(app, db_session, tenant_a):
    runner = app.test_cli_runner()
    tid = str(tenant_a.id)

    runner.invoke(args=["directory", "add-client", "--tenant-id", tid, "--name", "Ana"])
    runner.invoke(args=["directory", "add-resource", "--tenant-id", tid, "--kind", "space", "--name", "Loft"])
    runner.invoke(args=[
        "directory", "add-partner", "--tenant-id", tid, "--name", "DJ Max",
        "--price-type", "hourly", "--rate-cents", "9000",
    ])

    assert db_session.query(Client).filter_by(tenant_id=tenant_a.id).count() == 1
    assert db_session.query(Resource).filter_by(tenant_id=tenant_a.id, kind="space").count() == 1
    partner = db_session.query(Partner).filter_by(tenant_id=tenant_a.id).one()
    assert partner.hourly_rate_cents == 9000


def test_low_stock_report(app, db_session, tenant_a, linen_a):
    result = app.test_cli_runner().invoke(args=["supplies", "low-stock", "--tenant-id", str(tenant_a.id)])
    assert "Tablecloth" in result.output


def test_stranded_report(app, db_session, tenant_a, client_a, chairs_a):
    event = event_service.create_event(
        tenant_a.id, event_payload(client_a, supplies=[{"supply_id": chairs_a.id, "quantity": 12}]),
    )
    event_service.allocate_supplies(tenant_a.id, event.id)
    event_service.archive_event(tenant_a.id, event.id)

    result = app.test_cli_runner().invoke(args=["events", "stranded", "--tenant-id", str(tenant_a.id)])

    assert f"Event {event.id}" in result.output
    assert "Folding chair: 12" in result.output
