# Overview: Shared response helpers for the API blueprints.

from flask import current_app, jsonify, request

from ..extensions import db
from ..errors import PainPerduError


def error_response(exc: PainPerduError):
    """Roll back the request's transaction and serialize a domain error."""
    db.session.rollback()
    return jsonify(exc.to_dict()), exc.status_code


def unexpected_error(log_message: str):
    """Roll back, log the active exception with traceback, answer a generic 500."""
    db.session.rollback()
    current_app.logger.exception(log_message)
    return jsonify({"message": "Internal server error"}), 500


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}
