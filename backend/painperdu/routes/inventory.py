# Overview: Flask API routes for inventory counts; parses input and returns JSON responses.

"""
Inventory count API routes.

SECURITY: All routes require authentication.
- Sellers list, read and write only their own inventories; records of
  other sellers answer 404
- Confirmed inventories are locked for sellers; administrators may still
  edit, record sales and delete (logged)
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth
from ..errors import PainPerduError, ValidationError
from ..extensions import db
from ..services import inventory_service
from ..services.inventory_service import INVENTORY_SORT_FIELDS, serialize_inventory
from ..services.query_filters import (
    parse_bool_arg,
    parse_date_arg,
    parse_int_arg,
    parse_pagination,
    parse_sort,
)
from ..validation import violation
from . import error_response, json_body, unexpected_error


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _optional_int(data: dict, *keys):
    for key in keys:
        if key in data and data[key] is not None:
            value = data[key]
            if isinstance(value, bool) or not isinstance(value, (int, str)):
                raise ValidationError("Invalid data", errors=[violation(key, f"{key} must be an integer")])
            try:
                return int(value)
            except ValueError:
                raise ValidationError("Invalid data", errors=[violation(key, f"{key} must be an integer")])
    return None


@inventory_bp.get("")
@require_auth
def list_inventories_route():
    """
    List inventories with computed totals.

    Query params:
    - seller_id: int (optional, administrators)
    - type: opening | closing (optional)
    - start_date, end_date: YYYY-MM-DD (optional, inclusive)
    - is_confirmed: bool (optional)
    - sort_by: date | created_at | updated_at (default date)
    - sort_order: asc | desc (default desc)
    - page, per_page (alias limit): pagination (optional)
    """
    try:
        page, per_page = parse_pagination(request.args)
        sort_by, sort_order = parse_sort(request.args, INVENTORY_SORT_FIELDS, "date")
        result = inventory_service.list_inventories(
            g.current_user,
            seller_id=parse_int_arg(request.args, "seller_id", minimum=1),
            type=request.args.get("type") or None,
            start_date=parse_date_arg(request.args, "start_date"),
            end_date=parse_date_arg(request.args, "end_date"),
            is_confirmed=parse_bool_arg(request.args, "is_confirmed"),
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            per_page=per_page,
        )
        return jsonify(result), 200
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to list inventories")


@inventory_bp.get("/<int:inventory_id>")
@require_auth
def get_inventory_route(inventory_id: int):
    try:
        inventory = inventory_service.get_inventory(g.current_user, inventory_id)
        return jsonify(serialize_inventory(inventory)), 200
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to load inventory")


@inventory_bp.post("")
@require_auth
def create_inventory_route():
    """
    Record an opening or closing count.

    Request body:
    {
        "date": "YYYY-MM-DD",
        "type": "opening" | "closing",
        "items": [{"product_id": int, "quantity": int, "notes": str?}],
        "notes": str (optional),
        "seller_id": int (optional, administrators only)
    }

    Returns:
        201: Inventory created
        400: Invalid data, duplicate inventory or invalid product
        403: seller_id of someone else given by a seller
    """
    data = json_body()
    try:
        inventory = inventory_service.create_inventory(
            g.current_user,
            date=data.get("date"),
            type=data.get("type"),
            items=data.get("items"),
            notes=data.get("notes"),
            seller_id=_optional_int(data, "seller_id", "seller"),
        )
        db.session.commit()
        return jsonify(serialize_inventory(inventory)), 201
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to create inventory")


@inventory_bp.put("/<int:inventory_id>")
@require_auth
def update_inventory_route(inventory_id: int):
    """
    Request body (all optional): date, type, notes, items.
    Supplied items replace the whole item list.
    """
    data = json_body()
    try:
        inventory = inventory_service.update_inventory(
            g.current_user,
            inventory_id,
            items=data.get("items"),
            notes=data.get("notes"),
            date=data.get("date"),
            type=data.get("type"),
        )
        db.session.commit()
        return jsonify(serialize_inventory(inventory)), 200
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to update inventory")


@inventory_bp.patch("/<int:inventory_id>/sales")
@require_auth
def record_sales_route(inventory_id: int):
    """
    Request body:
    {"sales": [{"product_id": int, "sold_quantity": int}]}
    """
    data = json_body()
    try:
        inventory = inventory_service.record_sales(g.current_user, inventory_id, data.get("sales"))
        db.session.commit()
        return jsonify(serialize_inventory(inventory)), 200
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to record sales")


@inventory_bp.patch("/<int:inventory_id>/confirm")
@require_auth
def confirm_inventory_route(inventory_id: int):
    try:
        inventory = inventory_service.confirm_inventory(g.current_user, inventory_id)
        db.session.commit()
        return jsonify(serialize_inventory(inventory)), 200
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to confirm inventory")


@inventory_bp.delete("/<int:inventory_id>")
@require_auth
def delete_inventory_route(inventory_id: int):
    try:
        inventory_service.delete_inventory(g.current_user, inventory_id)
        db.session.commit()
        return jsonify({"message": "Inventory deleted"}), 200
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to delete inventory")
