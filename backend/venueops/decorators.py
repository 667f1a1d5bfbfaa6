# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .errors import NotFoundError
from .services.tenant_service import validate_tenant_active


def _header_int(name: str):
    raw = request.headers.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return False


def require_tenant(f):
    """
    Establish tenant context from the gateway headers.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.tenant_id: The tenant ID (from X-Tenant-Id) - REQUIRED
    - g.actor_user_id: The acting user ID (from X-User-Id) - optional

    Authentication happens upstream; this only refuses requests without a
    usable tenant. Returns 401 if the tenant header is missing or malformed,
    404 if the tenant does not exist or is inactive.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        tenant_id = _header_int("X-Tenant-Id")
        if tenant_id is None:
            return jsonify({"error": "Tenant context required (X-Tenant-Id)"}), 401
        if tenant_id is False:
            return jsonify({"error": "X-Tenant-Id must be an integer"}), 401

        actor_user_id = _header_int("X-User-Id")
        if actor_user_id is False:
            return jsonify({"error": "X-User-Id must be an integer"}), 400

        try:
            validate_tenant_active(tenant_id)
        except NotFoundError as e:
            return jsonify(e.to_dict()), 404

        g.tenant_id = tenant_id
        g.actor_user_id = actor_user_id

        return f(*args, **kwargs)

    return decorated_function
