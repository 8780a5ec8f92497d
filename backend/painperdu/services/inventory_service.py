# Overview: Service-layer operations for inventories; the record store, uniqueness guard and confirmation lock.

"""
Inventory Record Store

WHY: Opening and closing counts are the source of every sales figure. A
count must be unique per seller, day and type, valued from the current
catalog prices at write time, and frozen once confirmed.

LIFECYCLE:
1. DRAFT: created; items, notes, date and type editable; sales recordable
2. CONFIRMED: locked for sellers. Administrators may still edit, record
   sales or delete through the override_lock capability (logged).

TRANSACTIONS: every operation stages header and items in the current
session and flushes; the calling route commits, or rolls back on any error
so a failed write leaves nothing behind.
"""
from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import (
    AlreadyConfirmed,
    AuthorizationError,
    DuplicateInventory,
    InventoryLocked,
    InvalidOrInactiveProduct,
    NotFoundError,
    OversoldQuantity,
    ValidationError,
)
from ..models import Inventory, InventoryItem, Product, User
from ..money import format_cents
from ..permissions import can_access, can_see
from ..time_utils import parse_iso_date, utcnow
from ..validation import (
    INVENTORY_TYPES,
    check_inventory_invariants,
    raise_if_violations,
    validate_inventory_items,
    validate_sales_entries,
    violation,
)
from .concurrency import flush_or_raise, lock_for_update, run_with_retry
from .query_filters import apply_date_range, apply_sort, paginate
from .valuation_service import compute_inventory_value, summarize_items


INVENTORY_NOTES_MAX = 500

INVENTORY_SORT_FIELDS = {
    "date": Inventory.date,
    "created_at": Inventory.created_at,
    "updated_at": Inventory.updated_at,
}


# -- Guards ----------------------------------------------------------------------

def guard_editable(actor: User, inventory: Inventory, action: str = "update") -> None:
    """
    Refuse changes to a confirmed inventory unless the actor may override the lock.

    Raises:
        InventoryLocked: inventory confirmed and actor lacks override_lock
    """
    if not inventory.is_confirmed:
        return
    if not can_access(actor, inventory, "override_lock"):
        raise InventoryLocked()
    current_app.logger.info(
        "Lock override: user %s performed %s on confirmed inventory %s",
        actor.id, action, inventory.id,
    )


def ensure_inventory_unique(seller_id: int, day, inventory_type: str, exclude_id: int | None = None) -> None:
    """
    Raises DuplicateInventory if the seller already has an inventory of this
    type on this calendar day. The unique constraint backs this up at flush.
    """
    q = db.session.query(Inventory.id).filter(
        Inventory.seller_id == seller_id,
        Inventory.date == day,
        Inventory.type == inventory_type,
    )
    if exclude_id is not None:
        q = q.filter(Inventory.id != exclude_id)
    if q.first() is not None:
        raise DuplicateInventory()


def resolve_active_products(product_ids) -> dict[int, Product]:
    """
    Load every referenced product in one query.

    The set of active products found must equal the set requested;
    anything missing or inactive fails the whole operation.
    """
    wanted = set(product_ids)
    if not wanted:
        return {}
    products = (
        db.session.query(Product)
        .filter(Product.id.in_(wanted), Product.is_active.is_(True))
        .all()
    )
    found = {p.id: p for p in products}
    missing = sorted(wanted - set(found))
    if missing:
        raise InvalidOrInactiveProduct(
            errors=[violation("items", f"Product {pid} does not exist or is inactive") for pid in missing]
        )
    return found


def _load_inventory(actor: User, inventory_id: int, action: str = "read", *, for_update: bool = False) -> Inventory:
    q = db.session.query(Inventory).filter(Inventory.id == inventory_id)
    if for_update:
        q = lock_for_update(q)
    inventory = q.first()
    # Records of other sellers are reported as missing
    if inventory is None or not can_see(actor, inventory):
        raise NotFoundError("Inventory not found")
    if not can_access(actor, inventory, action):
        current_app.logger.warning(
            "Denied %s on inventory %s for user %s", action, inventory.id, actor.id,
        )
        raise AuthorizationError()
    return inventory


def _resolve_seller_id(actor: User, seller_id) -> int:
    if seller_id is None or seller_id == actor.id:
        return actor.id
    if not can_access(actor, "inventories", "act_for_seller"):
        raise AuthorizationError("You can only record inventories for yourself")
    seller = db.session.get(User, seller_id) if isinstance(seller_id, int) else None
    if seller is None or not seller.is_active:
        raise ValidationError("Invalid data", errors=[violation("seller_id", "Seller does not exist or is inactive")])
    return seller.id


def _parse_day(value, violations: list[dict]):
    try:
        day = parse_iso_date(value)
    except ValueError:
        violations.append(violation("date", "date must be a YYYY-MM-DD date"))
        return None
    if day is None:
        violations.append(violation("date", "date is required"))
    return day


def _check_type(value, violations: list[dict]) -> None:
    if value not in INVENTORY_TYPES:
        violations.append(violation("type", "type must be opening or closing"))


def _clean_notes(value, violations: list[dict]):
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        violations.append(violation("notes", "notes must be a string"))
        return None
    notes = str(value).strip()
    if len(notes) > INVENTORY_NOTES_MAX:
        violations.append(violation("notes", f"notes cannot exceed {INVENTORY_NOTES_MAX} characters"))
    return notes or None


def _build_items(normalized: list[dict]) -> list[InventoryItem]:
    return [
        InventoryItem(
            product_id=entry["product_id"],
            quantity=entry["quantity"],
            sold_quantity=entry["sold_quantity"],
            notes=entry["notes"],
        )
        for entry in normalized
    ]


def _value_items(normalized: list[dict], products: dict[int, Product]) -> int:
    prices = {pid: p.price_cents for pid, p in products.items()}
    return compute_inventory_value(normalized, prices)


# -- Serialization -----------------------------------------------------------------

def serialize_inventory(inventory: Inventory, include_items: bool = True) -> dict:
    """Stored fields plus computed totals (quantities, sold, revenue at current prices)."""
    data = inventory.to_dict(include_items=include_items)
    totals = summarize_items(inventory.items)
    totals["total_revenue"] = format_cents(totals["total_revenue_cents"])
    data["totals"] = totals
    return data


# -- Operations --------------------------------------------------------------------

def create_inventory(
    actor: User,
    *,
    date,
    type: str,
    items,
    notes: str | None = None,
    seller_id: int | None = None,
) -> Inventory:
    """
    Record a new opening or closing count.

    Sellers always own what they create; administrators may pass seller_id
    to record on behalf of a seller.

    Raises:
        ValidationError: malformed fields or items
        InvalidOrInactiveProduct: unknown or inactive product referenced
        DuplicateInventory: (seller, day, type) already recorded
    """
    if not can_access(actor, "inventories", "create"):
        raise AuthorizationError()

    violations: list[dict] = []
    day = _parse_day(date, violations)
    _check_type(type, violations)
    clean_notes = _clean_notes(notes, violations)
    normalized, item_violations = validate_inventory_items(items)
    violations.extend(item_violations)
    raise_if_violations(violations)

    owner_id = _resolve_seller_id(actor, seller_id)

    def _op():
        products = resolve_active_products(entry["product_id"] for entry in normalized)
        ensure_inventory_unique(owner_id, day, type)

        inventory = Inventory(
            date=day,
            type=type,
            seller_id=owner_id,
            notes=clean_notes,
            total_value_cents=_value_items(normalized, products),
            is_confirmed=False,
            created_by_user_id=actor.id,
        )
        inventory.items = _build_items(normalized)
        check_inventory_invariants(inventory)

        db.session.add(inventory)
        flush_or_raise(DuplicateInventory())
        return inventory

    return run_with_retry(_op)


def update_inventory(
    actor: User,
    inventory_id: int,
    *,
    items=None,
    notes: str | None = None,
    date=None,
    type: str | None = None,
) -> Inventory:
    """
    Edit a draft inventory (or any inventory, for administrators).

    Arguments left as None are unchanged; notes="" clears the notes.
    Supplied items replace the full item set and the stored total is
    recomputed from current prices.

    Raises:
        NotFoundError: missing or not visible to the actor
        InventoryLocked: confirmed and actor cannot override
        DuplicateInventory: new (day, type) already taken for the seller
    """
    def _op():
        inventory = _load_inventory(actor, inventory_id, "update", for_update=True)
        guard_editable(actor, inventory, "update")

        violations: list[dict] = []
        new_day = _parse_day(date, violations) if date is not None else inventory.date
        new_type = type if type is not None else inventory.type
        _check_type(new_type, violations)
        new_notes = _clean_notes(notes, violations) if notes is not None else inventory.notes
        normalized = None
        if items is not None:
            normalized, item_violations = validate_inventory_items(items)
            violations.extend(item_violations)
        raise_if_violations(violations)

        if new_day != inventory.date or new_type != inventory.type:
            ensure_inventory_unique(inventory.seller_id, new_day, new_type, exclude_id=inventory.id)

        if normalized is not None:
            products = resolve_active_products(entry["product_id"] for entry in normalized)
            # Old lines must be gone before new ones reuse (inventory_id, product_id)
            inventory.items.clear()
            flush_or_raise(DuplicateInventory())
            inventory.items.extend(_build_items(normalized))
            inventory.total_value_cents = _value_items(normalized, products)

        inventory.date = new_day
        inventory.type = new_type
        inventory.notes = new_notes
        check_inventory_invariants(inventory)

        flush_or_raise(DuplicateInventory())
        return inventory

    return run_with_retry(_op)


def delete_inventory(actor: User, inventory_id: int) -> None:
    """Remove an inventory and its lines (lines first, then the header)."""
    inventory = _load_inventory(actor, inventory_id, "delete", for_update=True)
    guard_editable(actor, inventory, "delete")

    for item in list(inventory.items):
        db.session.delete(item)
    db.session.delete(inventory)
    db.session.flush()


def record_sales(actor: User, inventory_id: int, sales) -> Inventory:
    """
    Set sold quantities on the lines of an inventory.

    All entries are checked before any is applied: one oversold line
    rejects the whole batch. Entries for products that are not on the
    inventory are ignored.

    Raises:
        ValidationError: malformed entries
        OversoldQuantity: sold_quantity greater than the counted quantity
        InventoryLocked: confirmed and actor cannot override
    """
    def _op():
        inventory = _load_inventory(actor, inventory_id, "record_sales", for_update=True)
        guard_editable(actor, inventory, "record_sales")

        normalized, violations = validate_sales_entries(sales)
        raise_if_violations(violations)

        lines = {item.product_id: item for item in inventory.items}
        oversold = []
        for idx, entry in enumerate(normalized):
            line = lines.get(entry["product_id"])
            if line is not None and entry["sold_quantity"] > line.quantity:
                oversold.append(violation(
                    f"sales[{idx}].sold_quantity",
                    f"Sold quantity ({entry['sold_quantity']}) exceeds counted quantity "
                    f"({line.quantity}) for product {line.product_id}",
                ))
        if oversold:
            raise OversoldQuantity(errors=oversold)

        for entry in normalized:
            line = lines.get(entry["product_id"])
            if line is not None:
                line.sold_quantity = entry["sold_quantity"]

        check_inventory_invariants(inventory)
        db.session.flush()
        return inventory

    return run_with_retry(_op)


def confirm_inventory(actor: User, inventory_id: int) -> Inventory:
    """
    Draft -> Confirmed. One-way.

    Raises:
        AlreadyConfirmed: inventory is already confirmed
    """
    def _op():
        inventory = _load_inventory(actor, inventory_id, "confirm", for_update=True)
        if inventory.is_confirmed:
            raise AlreadyConfirmed()

        inventory.is_confirmed = True
        inventory.confirmed_at = utcnow()
        inventory.confirmed_by_user_id = actor.id
        db.session.flush()
        return inventory

    return run_with_retry(_op)


def get_inventory(actor: User, inventory_id: int) -> Inventory:
    return _load_inventory(actor, inventory_id, "read")


def list_inventories(
    actor: User,
    *,
    seller_id: int | None = None,
    type: str | None = None,
    start_date=None,
    end_date=None,
    is_confirmed: bool | None = None,
    sort_by: str = "date",
    sort_order: str = "desc",
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Filtered inventory listing. Sellers only ever see their own records.
    """
    if not can_access(actor, "inventories", "list"):
        raise AuthorizationError()
    if type is not None and type not in INVENTORY_TYPES:
        raise ValidationError("Invalid query parameters", errors=[violation("type", "type must be opening or closing")])

    q = db.session.query(Inventory)
    if not can_access(actor, "inventories", "act_for_seller"):
        q = q.filter(Inventory.seller_id == actor.id)
    if seller_id is not None:
        q = q.filter(Inventory.seller_id == seller_id)
    if type is not None:
        q = q.filter(Inventory.type == type)
    if is_confirmed is not None:
        q = q.filter(Inventory.is_confirmed.is_(is_confirmed))
    q = apply_date_range(q, Inventory.date, start_date, end_date)
    q = apply_sort(q, INVENTORY_SORT_FIELDS, sort_by, sort_order, tiebreaker=Inventory.id)

    return paginate(q, page, per_page, serialize_inventory)
