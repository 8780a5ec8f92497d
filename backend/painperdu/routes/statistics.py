# Overview: Flask API routes for statistics; administrator only.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_capability
from ..errors import PainPerduError
from ..services import statistics_service
from ..services.query_filters import parse_date_arg
from . import error_response, unexpected_error


statistics_bp = Blueprint("statistics", __name__, url_prefix="/api/statistics")


@statistics_bp.get("/dashboard")
@require_auth
@require_capability("statistics", "read")
def dashboard_route():
    try:
        return jsonify(statistics_service.dashboard()), 200
    except Exception:
        return unexpected_error("Failed to compute dashboard statistics")


@statistics_bp.get("/period")
@require_auth
@require_capability("statistics", "read")
def period_route():
    """Query params: start_date, end_date (YYYY-MM-DD, both required)."""
    try:
        result = statistics_service.period_statistics(
            parse_date_arg(request.args, "start_date"),
            parse_date_arg(request.args, "end_date"),
        )
        return jsonify(result), 200
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to compute period statistics")


@statistics_bp.get("/products")
@require_auth
@require_capability("statistics", "read")
def products_route():
    """Query params: period = today | week | month (default today)."""
    try:
        result = statistics_service.product_statistics(request.args.get("period") or "today")
        return jsonify(result), 200
    except PainPerduError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("Failed to compute product statistics")
