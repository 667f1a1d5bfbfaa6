"""
Multi-Tenant Service: Tenant Validation and Scoping Helpers

WHY: Centralize tenant-scoped lookups for reuse across services and routes.
Every record an operation touches must belong to the caller's tenant, and
cross-tenant access must be explicitly denied.

SECURITY INVARIANTS:
1. Every request resolves a tenant id (decorators.require_tenant)
2. Ids from client input are looked up together with that tenant id
3. A record in another tenant is reported exactly like a missing record
4. Cross-tenant access attempts are logged

USAGE:
    from venueops.services.tenant_service import require_client

    client = require_client(tenant_id, client_id)
"""

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Tenant, Client, Partner, Resource, Supply, Event, Payment
from ..resource_ref import NoResource, ResourceRef
from .concurrency import lock_for_update


def validate_tenant_active(tenant_id: int) -> Tenant:
    """
    Validate that a tenant exists and is active.

    Raises:
        NotFoundError if tenant doesn't exist or is inactive
    """
    tenant = db.session.get(Tenant, tenant_id)

    if not tenant:
        raise NotFoundError("Tenant not found")

    if not tenant.is_active:
        raise NotFoundError("Tenant is not active")

    return tenant


def _require_owned(model, record_id, tenant_id: int, label: str, *, lock: bool = False):
    """
    Load a tenant-owned record by id.

    SECURITY: Core tenant isolation check. Foreign records raise the same
    NotFoundError as missing ones so their existence is not revealed.
    """
    if record_id is None:
        raise ValidationError(f"{label.lower()}_id is required")

    query = db.session.query(model).filter_by(id=record_id)
    if lock:
        query = lock_for_update(query)
    record = query.first()

    if record is None:
        raise NotFoundError(f"{label} not found", details={f"{label.lower()}_id": record_id})

    if record.tenant_id != tenant_id:
        _log_cross_tenant_attempt(label, record_id, tenant_id)
        raise NotFoundError(f"{label} not found", details={f"{label.lower()}_id": record_id})

    return record


def require_client(tenant_id: int, client_id: int) -> Client:
    return _require_owned(Client, client_id, tenant_id, "Client")


def require_partner(tenant_id: int, partner_id: int) -> Partner:
    return _require_owned(Partner, partner_id, tenant_id, "Partner")


def require_resource(tenant_id: int, resource: ResourceRef) -> Resource | None:
    """
    Validate the resource an event points at.

    NoResource needs no lookup. Physical and vehicle references must name an
    active Resource of the matching kind in the tenant.
    """
    if isinstance(resource, NoResource):
        return None

    record = _require_owned(Resource, resource.resource_id, tenant_id, "Resource")
    if record.kind != resource.kind:
        raise ValidationError(
            f"Resource {record.id} is a {record.kind}, not a {resource.kind}",
            details={"resource_id": record.id},
        )
    if not record.is_active:
        raise ValidationError("Resource is not active", details={"resource_id": record.id})
    return record


def require_supply(tenant_id: int, supply_id: int, *, lock: bool = False) -> Supply:
    return _require_owned(Supply, supply_id, tenant_id, "Supply", lock=lock)


def find_supply(tenant_id: int, supply_id: int) -> Supply | None:
    """Tenant-scoped supply lookup that returns None instead of raising."""
    return db.session.query(Supply).filter_by(id=supply_id, tenant_id=tenant_id).first()


def require_event(tenant_id: int, event_id: int, *, lock: bool = False) -> Event:
    return _require_owned(Event, event_id, tenant_id, "Event", lock=lock)


def require_payment(tenant_id: int, payment_id: int, *, lock: bool = False) -> Payment:
    return _require_owned(Payment, payment_id, tenant_id, "Payment", lock=lock)


def _log_cross_tenant_attempt(label: str, record_id, tenant_id: int) -> None:
    """
    Log a cross-tenant access attempt.

    SECURITY: Audit trail for detecting unauthorized access attempts.
    The owning tenant is deliberately not logged.
    """
    current_app.logger.warning(
        "Cross-tenant access denied: tenant %s requested %s %s",
        tenant_id, label, record_id,
    )
