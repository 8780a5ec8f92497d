# Overview: Flask API routes for user administration and per-seller statistics.

"""
User management routes.

SECURITY: All routes require authentication.
- Listing, creating and deleting users is administrator only
- A user may read and update their own profile and statistics
- Only administrators change role or is_active
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_capability
from ..errors import AuthorizationError, PainPerduError
from ..extensions import db
from ..models import User
from ..permissions import can_access
from ..services import auth_service, statistics_service, user_service
from ..services.query_filters import parse_bool_arg, parse_date_arg, parse_pagination
from ..validation import (
    USER_ROLES,
    ModelValidationPolicy,
    enforce_rules_user,
    validate_payload,
)
from . import error_response, json_body, unexpected_error

USER_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"username", "email", "first_name", "last_name", "role", "is_active"}),
    required_on_create=frozenset({"username", "email"}),
    choices={"role": USER_ROLES},
)

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_capability("users", "list")
def list_users_route():
    """
    Query params: role, is_active, search, page, per_page
    """
    try:
        page, per_page = parse_pagination(request.args)
        result = user_service.list_users(
            role=request.args.get("role") or None,
            is_active=parse_bool_arg(request.args, "is_active"),
            search=request.args.get("search"),
            page=page,
            per_page=per_page,
        )
        return jsonify(result), 200
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to list users")


@users_bp.get("/sellers/active")
@require_auth
def active_sellers_route():
    """Active sellers, for inventory and schedule pickers."""
    return jsonify(user_service.list_active_sellers()), 200


@users_bp.get("/<int:user_id>")
@require_auth
def get_user_route(user_id: int):
    try:
        user = user_service.get_user(g.current_user, user_id)
        return jsonify(user.to_dict()), 200
    except PainPerduError as e:
        return error_response(e)


@users_bp.post("")
@require_auth
@require_capability("users", "manage")
def create_user_route():
    """
    Create a user account.

    Request body:
    {
        "username": str, "email": str, "password": str,
        "role": "admin" | "seller" (default seller),
        "first_name": str (optional), "last_name": str (optional)
    }
    """
    payload = json_body()
    password = payload.pop("password", None)

    try:
        patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=False)
        enforce_rules_user(patch)
        if not password:
            return jsonify({"message": "Invalid data", "errors": [
                {"field": "password", "message": "password is required"},
            ]}), 400

        user = auth_service.create_user(
            username=patch["username"],
            email=patch["email"],
            password=password,
            role=patch.get("role") or "seller",
            first_name=patch.get("first_name"),
            last_name=patch.get("last_name"),
            is_active=patch.get("is_active", True),
        )
        db.session.commit()
        return jsonify(user.to_dict()), 201
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to create user")


@users_bp.put("/<int:user_id>")
@require_auth
def update_user_route(user_id: int):
    """
    Update a profile. Optional "password" changes the password and signs
    the user out everywhere.
    """
    payload = json_body()
    password = payload.pop("password", None)

    try:
        patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=True)
        enforce_rules_user(patch)
        user = user_service.update_user(g.current_user, user_id, patch=patch, password=password)
        db.session.commit()
        return jsonify(user.to_dict()), 200
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to update user")


@users_bp.delete("/<int:user_id>")
@require_auth
@require_capability("users", "manage")
def delete_user_route(user_id: int):
    """
    Delete a user; users with inventories are deactivated instead.
    """
    try:
        result = user_service.delete_user(g.current_user, user_id)
        db.session.commit()
        message = "User deleted" if result["deleted"] else "User has inventories and was deactivated"
        return jsonify({"message": message, **result}), 200
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to delete user")


@users_bp.get("/<int:user_id>/stats")
@require_auth
def user_stats_route(user_id: int):
    """
    Prepared vs sold figures for one seller.

    Query params: start_date, end_date (YYYY-MM-DD, optional)
    """
    try:
        user = user_service.get_user(g.current_user, user_id)
        if not can_access(g.current_user, user, "read_stats"):
            raise AuthorizationError()
        result = statistics_service.seller_statistics(
            user,
            start=parse_date_arg(request.args, "start_date"),
            end=parse_date_arg(request.args, "end_date"),
        )
        return jsonify(result), 200
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to compute user statistics")
