from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Client(db.Model):
    """
    Customer an event is booked for.

    MULTI-TENANT: Clients are scoped to tenants via tenant_id. Events may
    only reference clients of their own tenant.
    """
    __tablename__ = "clients"
    __table_args__ = (
        db.Index("ix_clients_tenant_name", "tenant_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    tenant = db.relationship("Tenant", backref=db.backref("clients", lazy=True))

    def __repr__(self) -> str:
        return f"<Client id={self.id} name={self.name!r} tenant_id={self.tenant_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


PARTNER_PRICE_HOURLY = "hourly"
PARTNER_PRICE_FIXED = "fixed"


class Partner(db.Model):
    """
    External provider (photographer, DJ, caterer) whose services are billed
    on an event as additional services.

    Pricing:
    - hourly: hours * hourly_rate_cents
    - fixed: negotiated cost from the booking, else fixed_rate_cents
    """
    __tablename__ = "partners"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(64), nullable=True)

    price_type = db.Column(db.String(16), nullable=False, default=PARTNER_PRICE_FIXED)
    hourly_rate_cents = db.Column(db.Integer, nullable=False, default=0)
    fixed_rate_cents = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Partner id={self.id} name={self.name!r} price_type={self.price_type}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "category": self.category,
            "price_type": self.price_type,
            "hourly_rate_cents": self.hourly_rate_cents,
            "fixed_rate_cents": self.fixed_rate_cents,
            "is_active": self.is_active,
        }


class Resource(db.Model):
    """
    Bookable unit: a room/space or a vehicle.

    kind matches the ResourceRef variant an event uses to point at it
    ("space" -> PhysicalResource, "vehicle" -> VehicleResource).
    """
    __tablename__ = "resources"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "kind", "name", name="uq_resources_tenant_kind_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    kind = db.Column(db.String(16), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    capacity = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Resource id={self.id} kind={self.kind} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "kind": self.kind,
            "name": self.name,
            "capacity": self.capacity,
            "is_active": self.is_active,
        }
