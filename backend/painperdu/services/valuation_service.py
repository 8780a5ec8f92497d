# Overview: Pure valuation arithmetic for inventories; integer cents only, no database access.

"""
Valuation Engine

WHY: The monetary value of a count and the sales estimate derived from an
opening/closing pair are the numbers the bakery is run on. Everything here
is a pure function over plain values so it can be reused by the inventory
store, the statistics endpoints and the tests without a session.

MONEY: quantities are ints, prices are int cents, results are int cents.
Rounding only happens when averaging, half-up to the cent.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping

from ..money import divide_cents


def _lookup(price_lookup: Mapping[int, int] | Callable[[int], int | None], product_id: int) -> int:
    if callable(price_lookup):
        price = price_lookup(product_id)
    else:
        price = price_lookup.get(product_id)
    if price is None:
        # Products are validated before valuation, so this is a programming error
        raise LookupError(f"No price available for product {product_id}")
    return price


def _field(item, name: str):
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def compute_inventory_value(items: Iterable, price_lookup) -> int:
    """
    Sum of quantity x current unit price, in cents.

    `items` are mappings or objects exposing product_id and quantity.
    `price_lookup` is a {product_id: price_cents} mapping or a callable.

    Raises LookupError if a price cannot be found.
    """
    total = 0
    for item in items:
        quantity = _field(item, "quantity") or 0
        total += quantity * _lookup(price_lookup, _field(item, "product_id"))
    return total


def estimate_daily_sales(opening_value_cents: int, closing_value_cents: int) -> int:
    """Opening minus closing value, clamped at zero (restocks never read as negative sales)."""
    return max(0, (opening_value_cents or 0) - (closing_value_cents or 0))


def average_daily_sales(daily_sales_cents: Iterable[int]) -> int:
    """
    Mean of the strictly positive daily sales, rounded half-up to the cent.

    Days with no sales are excluded from the denominator; 0 when there is
    no selling day at all.
    """
    selling_days = [value for value in daily_sales_cents if value and value > 0]
    return divide_cents(sum(selling_days), len(selling_days))


def summarize_items(items: Iterable, price_lookup=None) -> dict:
    """
    Computed totals for one inventory's items.

    Revenue uses the current product price (sold x price) unlike the stored
    total_value_cents snapshot. With no price_lookup each item's `product`
    relationship supplies the price.
    """
    total_quantity = 0
    total_sold = 0
    revenue = 0
    for item in items:
        quantity = _field(item, "quantity") or 0
        sold = _field(item, "sold_quantity") or 0
        total_quantity += quantity
        total_sold += sold
        if sold:
            if price_lookup is not None:
                price = _lookup(price_lookup, _field(item, "product_id"))
            else:
                product = _field(item, "product")
                price = product.price_cents if product is not None else 0
            revenue += sold * price

    return {
        "total_quantity": total_quantity,
        "total_sold": total_sold,
        "total_revenue_cents": revenue,
        "remaining_quantity": total_quantity - total_sold,
    }
