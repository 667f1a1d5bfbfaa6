"""
Pytest fixtures for venueops backend tests.

Provides test database setup, two tenants with their own directory records
and supplies for isolation tests, and a test client.
"""

import pytest
from venueops import create_app
from venueops.extensions import db
from venueops.models import Tenant, Client, Partner, Resource
from venueops.models.directory import PARTNER_PRICE_FIXED, PARTNER_PRICE_HOURLY
from venueops.models.payments import PAYMENT_COMPLETED
from venueops.models.supplies import PRICING_CHARGEABLE, PRICING_INCLUDED
from venueops.resource_ref import KIND_SPACE, KIND_VEHICLE
from venueops.services import payment_service, supply_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'RETRY_BACKOFF_BASE': 0,
        'SOLO_BOOKINGS_EXCLUSIVE': True,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def tenant_a(db_session):
    """Create Tenant A (first tenant)."""
    tenant = Tenant(name="Tenant A - Villa Rosa", code="ROSA", is_active=True)
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def tenant_b(db_session):
    """Create Tenant B (second tenant)."""
    tenant = Tenant(name="Tenant B - Harbor Events", code="HARBOR", is_active=True)
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def client_a(db_session, tenant_a):
    record = Client(tenant_id=tenant_a.id, name="Ana Smith", email="ana@example.com", is_active=True)
    db_session.add(record)
    db_session.commit()
    return record


@pytest.fixture(scope='function')
def client_b(db_session, tenant_b):
    record = Client(tenant_id=tenant_b.id, name="Bo Jensen", email="bo@example.com", is_active=True)
    db_session.add(record)
    db_session.commit()
    return record


@pytest.fixture(scope='function')
def hall_a(db_session, tenant_a):
    """Bookable space in Tenant A."""
    resource = Resource(tenant_id=tenant_a.id, kind=KIND_SPACE, name="Garden Hall", capacity=180, is_active=True)
    db_session.add(resource)
    db_session.commit()
    return resource


@pytest.fixture(scope='function')
def terrace_a(db_session, tenant_a):
    """Second bookable space in Tenant A."""
    resource = Resource(tenant_id=tenant_a.id, kind=KIND_SPACE, name="Terrace", capacity=60, is_active=True)
    db_session.add(resource)
    db_session.commit()
    return resource


@pytest.fixture(scope='function')
def van_a(db_session, tenant_a):
    resource = Resource(tenant_id=tenant_a.id, kind=KIND_VEHICLE, name="Van 1", capacity=8, is_active=True)
    db_session.add(resource)
    db_session.commit()
    return resource


@pytest.fixture(scope='function')
def hall_b(db_session, tenant_b):
    resource = Resource(tenant_id=tenant_b.id, kind=KIND_SPACE, name="Garden Hall", capacity=200, is_active=True)
    db_session.add(resource)
    db_session.commit()
    return resource


@pytest.fixture(scope='function')
def dj_a(db_session, tenant_a):
    """Hourly partner in Tenant A (90.00 per hour)."""
    partner = Partner(
        tenant_id=tenant_a.id,
        name="DJ Max",
        category="music",
        price_type=PARTNER_PRICE_HOURLY,
        hourly_rate_cents=9000,
        fixed_rate_cents=0,
        is_active=True,
    )
    db_session.add(partner)
    db_session.commit()
    return partner


@pytest.fixture(scope='function')
def florist_a(db_session, tenant_a):
    """Fixed-price partner in Tenant A (350.00)."""
    partner = Partner(
        tenant_id=tenant_a.id,
        name="Bloom & Co",
        category="flowers",
        price_type=PARTNER_PRICE_FIXED,
        hourly_rate_cents=0,
        fixed_rate_cents=35000,
        is_active=True,
    )
    db_session.add(partner)
    db_session.commit()
    return partner


@pytest.fixture(scope='function')
def chairs_a(db_session, tenant_a):
    """Chargeable supply: 100 chairs at 15.00 each (cost 8.00)."""
    return supply_service.create_supply(tenant_a.id, {
        "name": "Folding chair",
        "unit": "piece",
        "category": "Furniture",
        "pricing_type": PRICING_CHARGEABLE,
        "cost_per_unit_cents": 800,
        "charge_per_unit_cents": 1500,
        "minimum_stock": 10,
        "initial_stock": 100,
    })


@pytest.fixture(scope='function')
def linen_a(db_session, tenant_a):
    """Included supply: 3 tablecloths (cost 5.00, not charged)."""
    return supply_service.create_supply(tenant_a.id, {
        "name": "Tablecloth",
        "unit": "piece",
        "category": "Linen",
        "pricing_type": PRICING_INCLUDED,
        "cost_per_unit_cents": 500,
        "minimum_stock": 5,
        "initial_stock": 3,
    })


@pytest.fixture(scope='function')
def chairs_b(db_session, tenant_b):
    return supply_service.create_supply(tenant_b.id, {
        "name": "Folding chair",
        "unit": "piece",
        "pricing_type": PRICING_CHARGEABLE,
        "charge_per_unit_cents": 1200,
        "initial_stock": 50,
    })


def event_payload(client, resource=None, **overrides) -> dict:
    """Minimal valid create payload for a one-day booking, 10:00-12:00."""
    payload = {
        "title": "Smith wedding",
        "client_id": client.id,
        "start_date": "2026-06-01",
        "start_time": "10:00",
        "end_date": "2026-06-01",
        "end_time": "12:00",
    }
    if resource is not None:
        payload["resource_kind"] = resource.kind
        payload["resource_id"] = resource.id
    payload.update(overrides)
    return payload


def pay(tenant, event, amount_cents: int, **overrides):
    """Record a completed income payment against an event."""
    data = {
        "event_id": event.id,
        "amount_cents": amount_cents,
        "method": "bank_transfer",
        "status": PAYMENT_COMPLETED,
    }
    data.update(overrides)
    return payment_service.record_payment(tenant.id, data)


def tenant_headers(tenant, user_id: int | None = 7) -> dict:
    """Helper to create gateway headers for a tenant."""
    headers = {'X-Tenant-Id': str(tenant.id)}
    if user_id is not None:
        headers['X-User-Id'] = str(user_id)
    return headers
