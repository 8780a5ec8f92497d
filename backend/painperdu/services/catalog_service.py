# Overview: Service-layer operations for the catalog (categories and products).

"""
Catalog Store

Categories are soft-deleted (is_active=False) and only once no active
product still uses them. Products are hard-deleted, but never while an
inventory line references them: counts must keep resolving their product.

Names are unique catalog-wide for both categories and products. The
unique indexes are the real guard; the pre-checks give a clean message.

Services flush, routes commit.
"""
from __future__ import annotations

from ..extensions import db
from ..errors import CategoryInUse, ConflictError, NotFoundError, ProductInUse, ValidationError
from ..models import Category, InventoryItem, Product
from ..validation import violation
from .concurrency import flush_or_raise
from .query_filters import apply_sort, paginate


CATEGORY_MUTABLE_FIELDS = {"name", "description", "color", "is_active"}
PRODUCT_MUTABLE_FIELDS = {
    "name", "description", "price_cents", "unit", "min_stock", "category_id", "is_active",
}

PRODUCT_SORT_FIELDS = {
    "name": Product.name,
    "price": Product.price_cents,
    "created_at": Product.created_at,
    "updated_at": Product.updated_at,
}


def _apply_patch(obj, patch: dict, allowed: set) -> None:
    for k, v in patch.items():
        if k in allowed:
            setattr(obj, k, v)


# -- Categories ------------------------------------------------------------------

def list_categories(*, is_active: bool | None = None, search: str | None = None) -> dict:
    q = db.session.query(Category)
    if is_active is not None:
        q = q.filter(Category.is_active.is_(is_active))
    if search:
        q = q.filter(Category.name.ilike(f"%{search.strip()}%"))
    categories = q.order_by(Category.name.asc(), Category.id.asc()).all()
    return {
        "items": [c.to_dict() for c in categories],
        "count": len(categories),
    }


def get_category(category_id: int) -> Category:
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found")
    return category


def _ensure_category_name_free(name: str, exclude_id: int | None = None) -> None:
    q = db.session.query(Category.id).filter(db.func.lower(Category.name) == name.lower())
    if exclude_id is not None:
        q = q.filter(Category.id != exclude_id)
    if q.first() is not None:
        raise ConflictError("A category with this name already exists")


def _ensure_no_active_products(category: Category) -> None:
    active_products = (
        db.session.query(Product.id)
        .filter(Product.category_id == category.id, Product.is_active.is_(True))
        .count()
    )
    if active_products:
        raise CategoryInUse(
            f"Category still has {active_products} active product(s); deactivate or move them first"
        )


def create_category(*, patch: dict, user_id: int | None = None) -> Category:
    _ensure_category_name_free(patch["name"])

    category = Category(created_by_user_id=user_id)
    _apply_patch(category, patch, CATEGORY_MUTABLE_FIELDS)
    db.session.add(category)
    flush_or_raise(ConflictError("A category with this name already exists"))
    return category


def update_category(category_id: int, *, patch: dict) -> Category:
    category = get_category(category_id)
    if "name" in patch and patch["name"] != category.name:
        _ensure_category_name_free(patch["name"], exclude_id=category.id)
    if patch.get("is_active") is False and category.is_active:
        _ensure_no_active_products(category)

    _apply_patch(category, patch, CATEGORY_MUTABLE_FIELDS)
    flush_or_raise(ConflictError("A category with this name already exists"))
    return category


def delete_category(category_id: int) -> Category:
    """
    Soft delete. Raises CategoryInUse while any active product is in the category.
    """
    category = get_category(category_id)
    _ensure_no_active_products(category)

    category.is_active = False
    db.session.flush()
    return category


# -- Products --------------------------------------------------------------------

def list_products(
    *,
    category_id: int | None = None,
    is_active: bool | None = None,
    search: str | None = None,
    min_price_cents: int | None = None,
    max_price_cents: int | None = None,
    sort_by: str = "name",
    sort_order: str = "asc",
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Product listing with filters and optional pagination.

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    q = db.session.query(Product)
    if category_id is not None:
        q = q.filter(Product.category_id == category_id)
    if is_active is not None:
        q = q.filter(Product.is_active.is_(is_active))
    if search:
        term = f"%{search.strip()}%"
        q = q.filter(db.or_(Product.name.ilike(term), Product.description.ilike(term)))
    if min_price_cents is not None:
        q = q.filter(Product.price_cents >= min_price_cents)
    if max_price_cents is not None:
        q = q.filter(Product.price_cents <= max_price_cents)

    q = apply_sort(q, PRODUCT_SORT_FIELDS, sort_by, sort_order, tiebreaker=Product.id)
    return paginate(q, page, per_page, lambda p: p.to_dict())


def list_products_by_category(category_id: int) -> dict:
    """Active products of one category (the category itself must exist)."""
    get_category(category_id)
    return list_products(category_id=category_id, is_active=True)


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def _ensure_product_name_free(name: str, exclude_id: int | None = None) -> None:
    q = db.session.query(Product.id).filter(db.func.lower(Product.name) == name.lower())
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first() is not None:
        raise ConflictError("A product with this name already exists")


def _require_active_category(category_id: int) -> Category:
    # Caller-supplied reference: a bad id is a 400, not a 404
    category = db.session.get(Category, category_id)
    if category is None or not category.is_active:
        raise ValidationError(
            "Invalid data",
            errors=[violation("category_id", "Category does not exist or is inactive")],
        )
    return category


def create_product(*, patch: dict, user_id: int | None = None) -> Product:
    """
    Create product from a validated patch dict.

    Raises:
        ValidationError: category missing or inactive
        ConflictError: name already used by another product
    """
    _require_active_category(patch["category_id"])
    _ensure_product_name_free(patch["name"])

    product = Product(created_by_user_id=user_id)
    _apply_patch(product, patch, PRODUCT_MUTABLE_FIELDS)
    db.session.add(product)
    flush_or_raise(ConflictError("A product with this name already exists"))
    return product


def update_product(product_id: int, *, patch: dict) -> Product:
    product = get_product(product_id)

    if "category_id" in patch:
        _require_active_category(patch["category_id"])
    if "name" in patch and patch["name"] != product.name:
        _ensure_product_name_free(patch["name"], exclude_id=product.id)

    _apply_patch(product, patch, PRODUCT_MUTABLE_FIELDS)
    flush_or_raise(ConflictError("A product with this name already exists"))
    return product


def delete_product(product_id: int) -> None:
    """
    Hard delete. Raises ProductInUse if any inventory line references the product.
    """
    product = get_product(product_id)

    referenced = (
        db.session.query(InventoryItem.id)
        .filter(InventoryItem.product_id == product.id)
        .first()
    )
    if referenced is not None:
        raise ProductInUse()

    db.session.delete(product)
    db.session.flush()
