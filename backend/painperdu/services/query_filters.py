# Overview: Shared list-query helpers: filter parsing, date ranges, sorting and pagination.

from __future__ import annotations

from flask import current_app, has_app_context

from ..errors import ValidationError
from ..time_utils import parse_iso_date
from ..validation import violation


def _config(key: str, default: int) -> int:
    if has_app_context():
        return int(current_app.config.get(key, default))
    return default


def parse_bool_arg(args, name: str) -> bool | None:
    """'true'/'false'/'1'/'0' query string flag; None when absent."""
    raw = args.get(name)
    if raw is None or raw == "":
        return None
    value = str(raw).strip().lower()
    if value in ("true", "1"):
        return True
    if value in ("false", "0"):
        return False
    raise ValidationError("Invalid query parameters", errors=[violation(name, f"{name} must be true or false")])


def parse_int_arg(args, name: str, *, minimum: int | None = None) -> int | None:
    raw = args.get(name)
    if raw is None or raw == "":
        return None
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise ValidationError("Invalid query parameters", errors=[violation(name, f"{name} must be an integer")])
    if minimum is not None and value < minimum:
        raise ValidationError("Invalid query parameters", errors=[violation(name, f"{name} must be >= {minimum}")])
    return value


def parse_date_arg(args, name: str):
    raw = args.get(name)
    if raw is None or raw == "":
        return None
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise ValidationError("Invalid query parameters", errors=[violation(name, f"{name} must be a YYYY-MM-DD date")])


def parse_pagination(args) -> tuple[int | None, int | None]:
    """
    page/per_page (alias: limit). page=None means "no pagination requested".
    """
    page = parse_int_arg(args, "page", minimum=1)
    per_page = parse_int_arg(args, "per_page", minimum=1)
    if per_page is None:
        per_page = parse_int_arg(args, "limit", minimum=1)
    return page, per_page


def parse_sort(args, allowed: dict, default: str, *, default_order: str = "desc") -> tuple[str, str]:
    sort_by = args.get("sort_by") or default
    if sort_by not in allowed:
        raise ValidationError(
            "Invalid query parameters",
            errors=[violation("sort_by", f"sort_by must be one of: {', '.join(sorted(allowed))}")],
        )
    sort_order = (args.get("sort_order") or default_order).lower()
    if sort_order not in ("asc", "desc"):
        raise ValidationError(
            "Invalid query parameters",
            errors=[violation("sort_order", "sort_order must be asc or desc")],
        )
    return sort_by, sort_order


def apply_date_range(query, column, start=None, end=None):
    """Inclusive calendar-day range on a Date column."""
    if start is not None and end is not None and start > end:
        raise ValidationError(
            "Invalid query parameters",
            errors=[violation("end_date", "end_date must be on or after start_date")],
        )
    if start is not None:
        query = query.filter(column >= start)
    if end is not None:
        query = query.filter(column <= end)
    return query


def apply_sort(query, allowed: dict, sort_by: str, sort_order: str, tiebreaker=None):
    column = allowed[sort_by]
    ordered = column.asc() if sort_order == "asc" else column.desc()
    query = query.order_by(ordered)
    if tiebreaker is not None:
        query = query.order_by(tiebreaker.asc() if sort_order == "asc" else tiebreaker.desc())
    return query


def paginate(query, page: int | None, per_page: int | None, serialize) -> dict:
    """
    Run `query` and serialize rows.

    If page is None every row is returned; otherwise a page of at most
    MAX_PAGE_SIZE rows plus pagination metadata.
    """
    if page is None:
        rows = query.all()
        return {
            "items": [serialize(r) for r in rows],
            "count": len(rows),
        }

    per_page = min(per_page or _config("DEFAULT_PAGE_SIZE", 20), _config("MAX_PAGE_SIZE", 100))
    page = max(page, 1)

    total = query.order_by(None).count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    rows = query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [serialize(r) for r in rows],
        "count": len(rows),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
