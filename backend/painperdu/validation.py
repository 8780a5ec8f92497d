from __future__ import annotations
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from sqlalchemy import Boolean, Date, DateTime, Integer, String, Text, Time
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .time_utils import parse_iso_date, parse_iso_datetime, parse_hhmm


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# Counted or sold units per inventory line
MAX_QUANTITY = 1_000_000

# Ids and stored inventory totals must fit a 32-bit INTEGER column (PostgreSQL, MySQL)
INT32_MAX = 2_147_483_647
MAX_INVENTORY_VALUE_CENTS = INT32_MAX

INVENTORY_TYPES = ("opening", "closing")
PRODUCT_UNITS = ("piece", "kg", "litre", "package")
SCHEDULE_TYPES = ("work", "leave", "sick")
USER_ROLES = ("admin", "seller")

COLOR_RE = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

ITEM_NOTES_MAX = 200


def violation(field: str, message: str) -> dict:
    return {"field": field, "message": message}


def raise_if_violations(violations: list[dict], message: str = "Invalid data") -> None:
    if violations:
        raise ValidationError(message, errors=violations)


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - choices: closed vocabularies for string columns
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = frozenset()
    choices: dict | None = None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_integer(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValueError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValueError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if "." in stripped:
            raise ValueError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValueError(f"{key} must be an integer")
    if isinstance(value, float):
        raise ValueError(f"{key} must be an integer, not a decimal")
    raise ValueError(f"{key} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false", "1", "0"):
            return value.strip().lower() in ("true", "1")
        raise ValueError(f"{col.key} must be a boolean")

    if isinstance(coltype, Integer):
        return _coerce_integer(col.key, value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValueError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValueError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValueError(f"{col.key} must be a datetime")

    # Calendar days: time-of-day is irrelevant
    if isinstance(coltype, Date):
        try:
            d = parse_iso_date(value)
        except ValueError:
            raise ValueError(f"{col.key} must be an ISO-8601 date")
        if d is None:
            raise ValueError(f"{col.key} must be an ISO-8601 date")
        return d

    if isinstance(coltype, Time):
        try:
            t = parse_hhmm(value)
        except ValueError:
            raise ValueError(f"{col.key} must be a time in HH:MM format")
        return t

    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValueError(f"{col.key} must be a string")
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields) and closed vocabularies (choices)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    All problems are collected and raised together as one ValidationError
    whose `errors` lists {field, message} entries.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    violations: list[dict] = []

    if not partial:
        for f in sorted(policy.required_on_create):
            if f not in payload:
                violations.append(violation(f, f"{f} is required"))

    cols = _columns_by_key(model)
    choices = policy.choices or {}
    patch: dict = {}

    for k, raw in payload.items():
        if k not in policy.writable_fields or k not in cols:
            violations.append(violation(k, f"Field not allowed: {k}"))
            continue

        col = cols[k]

        if raw is None:
            if not col.nullable:
                violations.append(violation(k, f"{k} cannot be null"))
            else:
                patch[k] = None
            continue

        try:
            val = _coerce_value(col, raw)
        except ValueError as e:
            violations.append(violation(k, str(e)))
            continue

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                violations.append(violation(k, f"{k} cannot be blank"))
                continue

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                violations.append(violation(k, f"{k} exceeds max length {col.type.length}"))
                continue

        if k in choices and val not in choices[k]:
            violations.append(violation(k, f"{k} must be one of: {', '.join(choices[k])}"))
            continue

        patch[k] = val

    raise_if_violations(violations)
    return patch


# -- Catalog rules ---------------------------------------------------------------

def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    violations = []
    if "price_cents" in patch and patch["price_cents"] is not None:
        price = patch["price_cents"]
        if price < 0:
            violations.append(violation("price_cents", "price_cents must be >= 0"))
        elif price > MAX_PRICE_CENTS:
            violations.append(violation(
                "price_cents",
                f"price_cents cannot exceed {MAX_PRICE_CENTS} ({MAX_PRICE_CENTS / 100:,.2f})",
            ))
    if "min_stock" in patch and patch["min_stock"] is not None and patch["min_stock"] < 0:
        violations.append(violation("min_stock", "min_stock must be >= 0"))
    raise_if_violations(violations)


def enforce_rules_category(patch: dict) -> None:
    color = patch.get("color")
    if color is not None and not COLOR_RE.match(color):
        raise_if_violations([violation("color", "color must be a hex value (#RGB or #RRGGBB)")])


# -- Users -----------------------------------------------------------------------

def enforce_rules_user(patch: dict) -> None:
    violations = []
    username = patch.get("username")
    if username is not None and len(username) < 3:
        violations.append(violation("username", "username must be between 3 and 50 characters"))
    email = patch.get("email")
    if email is not None and not EMAIL_RE.match(email):
        violations.append(violation("email", "email must be a valid e-mail address"))
    raise_if_violations(violations)


# -- Schedules -------------------------------------------------------------------

def enforce_rules_schedule(values: dict) -> None:
    """
    `values` is the effective state (existing record merged with the patch).
    Work entries need both times; whenever both are present start < end.
    """
    violations = []
    start = values.get("start_time")
    end = values.get("end_time")
    if values.get("type", "work") == "work" and (start is None or end is None):
        violations.append(violation("start_time", "start_time and end_time are required for work entries"))
    if (start is None) != (end is None):
        violations.append(violation("end_time", "start_time and end_time must be provided together"))
    if start is not None and end is not None and start >= end:
        violations.append(violation("end_time", "end_time must be after start_time"))
    raise_if_violations(violations)


# -- Inventory line items ----------------------------------------------------------

def _non_negative_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def validate_inventory_items(items: Any, *, field: str = "items") -> tuple[list[dict], list[dict]]:
    """
    Pure check of an inventory `items` payload.

    Returns (normalized_items, violations). Each normalized item is
    {"product_id", "quantity", "sold_quantity", "notes"}.
    """
    violations: list[dict] = []
    normalized: list[dict] = []

    if not isinstance(items, list) or not items:
        return [], [violation(field, "At least one product is required")]

    seen: set[int] = set()
    for idx, raw in enumerate(items):
        prefix = f"{field}[{idx}]"
        if not isinstance(raw, dict):
            violations.append(violation(prefix, "Each item must be an object"))
            continue

        product_id = _non_negative_int(raw.get("product_id", raw.get("product")))
        if not product_id or product_id > INT32_MAX:
            violations.append(violation(f"{prefix}.product_id", "Invalid product id"))
            product_id = None

        quantity = _non_negative_int(raw.get("quantity"))
        if quantity is None:
            violations.append(violation(f"{prefix}.quantity", "quantity must be a non-negative integer"))
        elif quantity > MAX_QUANTITY:
            violations.append(violation(f"{prefix}.quantity", f"quantity cannot exceed {MAX_QUANTITY}"))
            quantity = None

        sold_quantity = None
        if raw.get("sold_quantity") is not None:
            sold_quantity = _non_negative_int(raw.get("sold_quantity"))
            if sold_quantity is None:
                violations.append(violation(
                    f"{prefix}.sold_quantity", "sold_quantity must be a non-negative integer"
                ))
            elif sold_quantity > MAX_QUANTITY:
                violations.append(violation(f"{prefix}.sold_quantity", f"sold_quantity cannot exceed {MAX_QUANTITY}"))
            elif quantity is not None and sold_quantity > quantity:
                violations.append(violation(
                    f"{prefix}.sold_quantity", "sold_quantity cannot exceed quantity"
                ))

        notes = raw.get("notes")
        if isinstance(notes, (dict, list)):
            violations.append(violation(f"{prefix}.notes", "notes must be a string"))
            notes = None
        elif notes is not None:
            notes = str(notes).strip()
            if len(notes) > ITEM_NOTES_MAX:
                violations.append(violation(
                    f"{prefix}.notes", f"notes cannot exceed {ITEM_NOTES_MAX} characters"
                ))

        if product_id:
            if product_id in seen:
                violations.append(violation(f"{prefix}.product_id", "Product listed more than once"))
            seen.add(product_id)

        normalized.append({
            "product_id": product_id,
            "quantity": quantity,
            "sold_quantity": sold_quantity,
            "notes": notes or None,
        })

    return normalized, violations


def validate_sales_entries(sales: Any) -> tuple[list[dict], list[dict]]:
    """Pure check of a record-sales payload: [{product_id, sold_quantity}]."""
    if not isinstance(sales, list):
        return [], [violation("sales", "Sales data must be a list")]

    violations: list[dict] = []
    normalized: list[dict] = []
    for idx, raw in enumerate(sales):
        prefix = f"sales[{idx}]"
        if not isinstance(raw, dict):
            violations.append(violation(prefix, "Each sale must be an object"))
            continue
        product_id = _non_negative_int(raw.get("product_id", raw.get("productId")))
        if not product_id or product_id > INT32_MAX:
            violations.append(violation(f"{prefix}.product_id", "Invalid product id"))
            product_id = None
        sold = _non_negative_int(raw.get("sold_quantity", raw.get("soldQuantity")))
        if sold is None:
            violations.append(violation(f"{prefix}.sold_quantity", "sold_quantity must be a non-negative integer"))
        elif sold > MAX_QUANTITY:
            violations.append(violation(f"{prefix}.sold_quantity", f"sold_quantity cannot exceed {MAX_QUANTITY}"))
        normalized.append({"product_id": product_id, "sold_quantity": sold})
    return normalized, violations


# -- Pre-commit invariants -----------------------------------------------------------

def check_inventory_invariants(inventory) -> None:
    """Explicit check run before every inventory flush."""
    violations = []
    if inventory.type not in INVENTORY_TYPES:
        violations.append(violation("type", "type must be opening or closing"))
    if not isinstance(inventory.date, date) or isinstance(inventory.date, datetime):
        violations.append(violation("date", "date must be a calendar date"))
    if inventory.total_value_cents is None or inventory.total_value_cents < 0:
        violations.append(violation("total_value_cents", "total value cannot be negative"))
    elif inventory.total_value_cents > MAX_INVENTORY_VALUE_CENTS:
        violations.append(violation(
            "total_value_cents",
            f"total value cannot exceed {MAX_INVENTORY_VALUE_CENTS} cents; reduce quantities",
        ))
    if inventory.notes is not None and len(inventory.notes) > 500:
        violations.append(violation("notes", "notes exceeds max length 500"))

    product_ids = set()
    for item in inventory.items:
        if item.quantity is None or not 0 <= item.quantity <= MAX_QUANTITY:
            violations.append(violation("items", f"Invalid quantity for product {item.product_id}"))
        if item.sold_quantity is not None and item.quantity is not None and item.sold_quantity > item.quantity:
            violations.append(violation("items", f"Sold quantity exceeds quantity for product {item.product_id}"))
        if item.product_id in product_ids:
            violations.append(violation("items", f"Product {item.product_id} appears more than once"))
        product_ids.add(item.product_id)
    raise_if_violations(violations)


def check_schedule_invariants(schedule) -> None:
    violations = []
    if schedule.type not in SCHEDULE_TYPES:
        violations.append(violation("type", f"type must be one of: {', '.join(SCHEDULE_TYPES)}"))
    raise_if_violations(violations)
    enforce_rules_schedule({
        "type": schedule.type,
        "start_time": schedule.start_time,
        "end_time": schedule.end_time,
    })

