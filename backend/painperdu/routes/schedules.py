# Overview: Flask API routes for seller schedules; parses input and returns JSON responses.

"""
Schedule routes.

SECURITY: All routes require authentication.
- Administrators manage every seller's schedule
- Sellers read, create and update their own entries; deleting is
  administrator only
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth
from ..errors import PainPerduError, ValidationError
from ..extensions import db
from ..models import Schedule
from ..services import schedule_service
from ..services.query_filters import (
    parse_bool_arg,
    parse_date_arg,
    parse_int_arg,
    parse_pagination,
    parse_sort,
)
from ..services.schedule_service import SCHEDULE_SORT_FIELDS
from ..time_utils import parse_iso_date
from ..validation import SCHEDULE_TYPES, ModelValidationPolicy, validate_payload, violation
from . import error_response, json_body, unexpected_error

SCHEDULE_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"date", "type", "start_time", "end_time", "location", "notes", "is_active"}),
    required_on_create=frozenset({"date"}),
    choices={"type": SCHEDULE_TYPES},
)

schedules_bp = Blueprint("schedules", __name__, url_prefix="/api/schedules")


def _split_seller(payload: dict):
    payload = dict(payload)
    raw = payload.pop("seller_id", None)
    if raw is None:
        return payload, None
    if isinstance(raw, bool) or not str(raw).strip().isdigit():
        raise ValidationError("Invalid data", errors=[violation("seller_id", "seller_id must be an integer")])
    return payload, int(str(raw).strip())


@schedules_bp.get("")
@require_auth
def list_schedules_route():
    """
    Query params: seller_id, start_date, end_date, is_active, type,
    sort_by (date | start_time | created_at), sort_order, page, per_page
    """
    try:
        page, per_page = parse_pagination(request.args)
        sort_by, sort_order = parse_sort(request.args, SCHEDULE_SORT_FIELDS, "date", default_order="asc")
        schedule_type = request.args.get("type") or None
        if schedule_type is not None and schedule_type not in SCHEDULE_TYPES:
            raise ValidationError("Invalid query parameters", errors=[
                violation("type", f"type must be one of: {', '.join(SCHEDULE_TYPES)}"),
            ])
        result = schedule_service.list_schedules(
            g.current_user,
            seller_id=parse_int_arg(request.args, "seller_id", minimum=1),
            start_date=parse_date_arg(request.args, "start_date"),
            end_date=parse_date_arg(request.args, "end_date"),
            is_active=parse_bool_arg(request.args, "is_active"),
            type=schedule_type,
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            per_page=per_page,
        )
        return jsonify(result), 200
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to list schedules")


@schedules_bp.get("/week/<day>")
@require_auth
def week_schedules_route(day: str):
    """Monday-Sunday view of the week containing <day> (YYYY-MM-DD)."""
    try:
        try:
            parsed = parse_iso_date(day)
        except ValueError:
            parsed = None
        if parsed is None:
            raise ValidationError("Invalid date", errors=[violation("date", "date must be a YYYY-MM-DD date")])
        result = schedule_service.week_view(
            g.current_user,
            parsed,
            seller_id=parse_int_arg(request.args, "seller_id", minimum=1),
        )
        return jsonify(result), 200
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to load week schedules")


@schedules_bp.get("/today")
@require_auth
def today_schedules_route():
    try:
        return jsonify(schedule_service.today_view(g.current_user)), 200
    except Exception:
        return unexpected_error("Failed to load today's schedules")


@schedules_bp.get("/<int:schedule_id>")
@require_auth
def get_schedule_route(schedule_id: int):
    try:
        return jsonify(schedule_service.get_schedule(g.current_user, schedule_id).to_dict()), 200
    except PainPerduError as e:
        return error_response(e)


@schedules_bp.post("")
@require_auth
def create_schedule_route():
    """
    Request body:
    {
        "date": "YYYY-MM-DD",
        "type": "work" | "leave" | "sick" (default work),
        "start_time": "HH:MM", "end_time": "HH:MM" (required for work),
        "location": str, "notes": str (optional),
        "seller_id": int (optional, administrators only)
    }
    """
    try:
        payload, seller_id = _split_seller(json_body())
        patch = validate_payload(model=Schedule, payload=payload, policy=SCHEDULE_POLICY, partial=False)
        schedule = schedule_service.create_schedule(g.current_user, patch=patch, seller_id=seller_id)
        db.session.commit()
        return jsonify(schedule.to_dict()), 201
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to create schedule")


@schedules_bp.put("/<int:schedule_id>")
@require_auth
def update_schedule_route(schedule_id: int):
    try:
        patch = validate_payload(model=Schedule, payload=json_body(), policy=SCHEDULE_POLICY, partial=True)
        schedule = schedule_service.update_schedule(g.current_user, schedule_id, patch=patch)
        db.session.commit()
        return jsonify(schedule.to_dict()), 200
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to update schedule")


@schedules_bp.delete("/<int:schedule_id>")
@require_auth
def delete_schedule_route(schedule_id: int):
    try:
        schedule_service.delete_schedule(g.current_user, schedule_id)
        db.session.commit()
        return jsonify({"message": "Schedule deleted"}), 200
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to delete schedule")
