# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product management routes.

SECURITY: All routes require authentication.
- Read operations: any active user
- Write operations: administrators (catalog.manage)

PRICES: clients may send "price" as a decimal ("2.50") or "price_cents"
as an integer; both are stored as integer cents.
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_capability
from ..errors import PainPerduError, ValidationError
from ..extensions import db
from ..models import Product
from ..money import parse_price
from ..services import catalog_service
from ..services.catalog_service import PRODUCT_SORT_FIELDS
from ..services.query_filters import parse_bool_arg, parse_int_arg, parse_pagination, parse_sort
from ..validation import (
    PRODUCT_UNITS,
    ModelValidationPolicy,
    enforce_rules_product,
    validate_payload,
    violation,
)
from . import error_response, json_body, unexpected_error

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "name", "description", "price_cents", "unit", "min_stock", "category_id", "is_active",
    }),
    required_on_create=frozenset({"name", "price_cents", "category_id"}),
    choices={"unit": PRODUCT_UNITS},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _price_to_cents(payload: dict) -> dict:
    if "price" not in payload:
        return payload
    payload = dict(payload)
    raw = payload.pop("price")
    try:
        payload["price_cents"] = parse_price(raw) if raw is not None else None
    except ValueError as e:
        raise ValidationError("Invalid data", errors=[violation("price", str(e))])
    return payload


def _price_arg(name: str):
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    try:
        return parse_price(raw)
    except ValueError as e:
        raise ValidationError("Invalid query parameters", errors=[violation(name, str(e))])


@products_bp.get("")
@require_auth
@require_capability("catalog", "list")
def list_products_route():
    """
    List products with optional filters and pagination.

    Query params:
    - category_id: int (optional)
    - is_active: bool (optional)
    - search: str (optional) - name/description contains
    - min_price, max_price: decimal (optional)
    - sort_by: name | price | created_at | updated_at (default name)
    - sort_order: asc | desc (default asc)
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    try:
        page, per_page = parse_pagination(request.args)
        sort_by, sort_order = parse_sort(request.args, PRODUCT_SORT_FIELDS, "name", default_order="asc")
        result = catalog_service.list_products(
            category_id=parse_int_arg(request.args, "category_id", minimum=1),
            is_active=parse_bool_arg(request.args, "is_active"),
            search=request.args.get("search"),
            min_price_cents=_price_arg("min_price"),
            max_price_cents=_price_arg("max_price"),
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            per_page=per_page,
        )
        return jsonify(result), 200
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to list products")


@products_bp.get("/category/<int:category_id>")
@require_auth
@require_capability("catalog", "list")
def products_by_category_route(category_id: int):
    try:
        return jsonify(catalog_service.list_products_by_category(category_id)), 200
    except PainPerduError as e:
        return error_response(e)


@products_bp.get("/<int:product_id>")
@require_auth
@require_capability("catalog", "read")
def get_product_route(product_id: int):
    try:
        return jsonify(catalog_service.get_product(product_id).to_dict()), 200
    except PainPerduError as e:
        return error_response(e)


@products_bp.post("")
@require_auth
@require_capability("catalog", "manage")
def create_product_route():
    """
    Create a new product. Name must be unique across the catalog and the
    category must exist and be active.
    """
    try:
        payload = _price_to_cents(json_body())
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        product = catalog_service.create_product(patch=patch, user_id=g.current_user.id)
        db.session.commit()
        return jsonify(product.to_dict()), 201
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to create product")


@products_bp.put("/<int:product_id>")
@require_auth
@require_capability("catalog", "manage")
def update_product_route(product_id: int):
    try:
        payload = _price_to_cents(json_body())
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        product = catalog_service.update_product(product_id, patch=patch)
        db.session.commit()
        return jsonify(product.to_dict()), 200
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to update product")


@products_bp.delete("/<int:product_id>")
@require_auth
@require_capability("catalog", "manage")
def delete_product_route(product_id: int):
    """Hard delete; refused while any inventory line references the product."""
    try:
        catalog_service.delete_product(product_id)
        db.session.commit()
        return jsonify({"message": "Product deleted"}), 200
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to delete product")
