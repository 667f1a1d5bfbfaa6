# Overview: Flask API routes for the supply catalog and stock ledger; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_tenant
from ..errors import BookingError, ValidationError
from ..services import stock_service, supply_service
from ..services.tenant_service import require_supply


supplies_bp = Blueprint("supplies", __name__, url_prefix="/api/supplies")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data


@supplies_bp.get("/")
@require_tenant
def list_supplies_route():
    """
    Query params:
    - category: filter by category
    - include_archived: include archived supplies (default: false)
    - page, per_page: optional pagination
    """
    try:
        include_archived = request.args.get("include_archived", "false").lower() == "true"
        result = supply_service.list_supplies(
            g.tenant_id,
            category=request.args.get("category"),
            include_archived=include_archived,
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
        return jsonify(result), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to list supplies")
        return jsonify({"error": "Internal server error"}), 500


@supplies_bp.post("/")
@require_tenant
def create_supply_route():
    """
    Request body:
    {
        "name": "Folding chair",
        "unit": "piece",
        "category": "Furniture",
        "pricing_type": "chargeable",
        "cost_per_unit_cents": 800,
        "charge_per_unit_cents": 1500,
        "minimum_stock": 20,
        "initial_stock": 200
    }
    """
    try:
        supply = supply_service.create_supply(g.tenant_id, _json_body(), actor_user_id=g.actor_user_id)
        return jsonify(supply.to_dict()), 201
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to create supply")
        return jsonify({"error": "Internal server error"}), 500


@supplies_bp.get("/<int:supply_id>")
@require_tenant
def get_supply_route(supply_id: int):
    try:
        supply = require_supply(g.tenant_id, supply_id)
        return jsonify(supply.to_dict()), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to load supply")
        return jsonify({"error": "Internal server error"}), 500


@supplies_bp.route("/<int:supply_id>", methods=["PATCH", "PUT"])
@require_tenant
def update_supply_route(supply_id: int):
    try:
        supply = supply_service.update_supply(g.tenant_id, supply_id, _json_body(), actor_user_id=g.actor_user_id)
        return jsonify(supply.to_dict()), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to update supply")
        return jsonify({"error": "Internal server error"}), 500


@supplies_bp.post("/<int:supply_id>/archive")
@require_tenant
def archive_supply_route(supply_id: int):
    try:
        supply = supply_service.archive_supply(g.tenant_id, supply_id, actor_user_id=g.actor_user_id)
        return jsonify(supply.to_dict()), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to archive supply")
        return jsonify({"error": "Internal server error"}), 500


@supplies_bp.post("/<int:supply_id>/restore")
@require_tenant
def restore_supply_route(supply_id: int):
    try:
        supply = supply_service.restore_supply(g.tenant_id, supply_id, actor_user_id=g.actor_user_id)
        return jsonify(supply.to_dict()), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to restore supply")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# STOCK LEDGER
# =============================================================================

@supplies_bp.post("/<int:supply_id>/movements")
@require_tenant
def record_movement_route(supply_id: int):
    """
    Record a manual stock movement.

    Request body:
    {"movement_type": "purchase", "quantity": 50, "reference": "PO-1182", "note": "..."}

    purchase/return add, usage/waste subtract, adjustment is signed.

    Returns:
        200: Supply with the new stock level
        409: Movement would take stock below zero
    """
    try:
        data = _json_body()
        quantity = data.get("quantity")
        if not isinstance(quantity, int) or isinstance(quantity, bool):
            raise ValidationError("quantity must be an integer")
        supply = stock_service.record_stock_movement(
            tenant_id=g.tenant_id,
            supply_id=supply_id,
            quantity=quantity,
            movement_type=data.get("movement_type") or "",
            reference=data.get("reference"),
            note=data.get("note"),
            actor_user_id=g.actor_user_id,
        )
        return jsonify(supply.to_dict()), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to record stock movement")
        return jsonify({"error": "Internal server error"}), 500


@supplies_bp.get("/<int:supply_id>/movements")
@require_tenant
def stock_history_route(supply_id: int):
    try:
        movements = stock_service.get_stock_history(g.tenant_id, supply_id)
        return jsonify({"items": [m.to_dict() for m in movements], "count": len(movements)}), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to load stock history")
        return jsonify({"error": "Internal server error"}), 500


@supplies_bp.get("/low-stock")
@require_tenant
def low_stock_route():
    try:
        supplies = stock_service.list_low_stock(g.tenant_id)
        return jsonify({"items": [s.to_dict() for s in supplies], "count": len(supplies)}), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to list low stock")
        return jsonify({"error": "Internal server error"}), 500


@supplies_bp.get("/summary")
@require_tenant
def inventory_summary_route():
    try:
        return jsonify(stock_service.get_inventory_summary(g.tenant_id)), 200
    except BookingError:
        raise
    except Exception:
        current_app.logger.exception("Failed to build inventory summary")
        return jsonify({"error": "Internal server error"}), 500
