# Overview: Flask API routes for categories operations; parses input and returns JSON responses.

"""
Category routes.

SECURITY: All routes require authentication.
- Read operations: any active user
- Write operations: administrators (catalog.manage)
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_capability
from ..errors import PainPerduError
from ..extensions import db
from ..models import Category
from ..services import catalog_service
from ..services.query_filters import parse_bool_arg
from ..validation import ModelValidationPolicy, enforce_rules_category, validate_payload
from . import error_response, json_body, unexpected_error

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "description", "color", "is_active"}),
    required_on_create=frozenset({"name"}),
)

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_auth
@require_capability("catalog", "list")
def list_categories_route():
    """
    Query params:
    - is_active: bool (optional)
    - search: str (optional) - name contains
    """
    try:
        result = catalog_service.list_categories(
            is_active=parse_bool_arg(request.args, "is_active"),
            search=request.args.get("search"),
        )
        return jsonify(result), 200
    except PainPerduError as e:
        return error_response(e)


@categories_bp.get("/<int:category_id>")
@require_auth
@require_capability("catalog", "read")
def get_category_route(category_id: int):
    try:
        return jsonify(catalog_service.get_category(category_id).to_dict()), 200
    except PainPerduError as e:
        return error_response(e)


@categories_bp.post("")
@require_auth
@require_capability("catalog", "manage")
def create_category_route():
    try:
        patch = validate_payload(model=Category, payload=json_body(), policy=CATEGORY_POLICY, partial=False)
        enforce_rules_category(patch)
        category = catalog_service.create_category(patch=patch, user_id=g.current_user.id)
        db.session.commit()
        return jsonify(category.to_dict()), 201
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to create category")


@categories_bp.put("/<int:category_id>")
@require_auth
@require_capability("catalog", "manage")
def update_category_route(category_id: int):
    try:
        patch = validate_payload(model=Category, payload=json_body(), policy=CATEGORY_POLICY, partial=True)
        enforce_rules_category(patch)
        category = catalog_service.update_category(category_id, patch=patch)
        db.session.commit()
        return jsonify(category.to_dict()), 200
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to update category")


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_capability("catalog", "manage")
def delete_category_route(category_id: int):
    """Soft delete; refused while the category has active products."""
    try:
        catalog_service.delete_category(category_id)
        db.session.commit()
        return jsonify({"message": "Category deactivated"}), 200
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to delete category")
