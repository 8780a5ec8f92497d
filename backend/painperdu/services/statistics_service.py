# Overview: Service-layer read models for statistics; sales are derived from opening/closing values.

"""
Statistics

WHY: Sellers do not ring up individual sales. Daily sales are estimated as
the opening stock value minus the closing stock value of the same day,
clamped at zero. Averages count selling days only.

SOURCE SET: when a window holds confirmed inventories only those are used;
if none is confirmed yet, every inventory of the window is used instead.
The per-product report is stricter and reads confirmed counts only.
"""
from __future__ import annotations

from collections import OrderedDict
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..errors import ValidationError
from ..models import (
    Inventory,
    InventoryItem,
    Product,
    Schedule,
    User,
    INVENTORY_TYPE_CLOSING,
    INVENTORY_TYPE_OPENING,
    ROLE_SELLER,
    SCHEDULE_TYPE_WORK,
)
from ..money import format_cents
from ..time_utils import format_hhmm, month_bounds, to_iso_date, today, week_bounds
from ..validation import violation
from .valuation_service import average_daily_sales, estimate_daily_sales


STATISTICS_PERIODS = ("today", "week", "month")


def _window_inventories(start, end) -> list[Inventory]:
    inventories = (
        db.session.query(Inventory)
        .filter(Inventory.date >= start, Inventory.date <= end)
        .order_by(Inventory.date.asc(), Inventory.id.asc())
        .all()
    )
    confirmed = [inv for inv in inventories if inv.is_confirmed]
    return confirmed or inventories


def _values_by_day(inventories) -> "OrderedDict":
    days: OrderedDict = OrderedDict()
    for inv in inventories:
        bucket = days.setdefault(inv.date, {"opening": 0, "closing": 0})
        if inv.type == INVENTORY_TYPE_OPENING:
            bucket["opening"] += inv.total_value_cents or 0
        elif inv.type == INVENTORY_TYPE_CLOSING:
            bucket["closing"] += inv.total_value_cents or 0
    return days


def dashboard() -> dict:
    """Today's figures plus the rolling average of daily sales."""
    day = today()
    period_days = int(current_app.config.get("STATS_AVERAGE_DAYS", 30))

    total_products = db.session.query(Product).filter(Product.is_active.is_(True)).count()
    total_sellers = (
        db.session.query(User)
        .filter(User.role == ROLE_SELLER, User.is_active.is_(True))
        .count()
    )

    todays = db.session.query(Inventory).filter(Inventory.date == day).all()
    opening = [inv for inv in todays if inv.type == INVENTORY_TYPE_OPENING]
    closing = [inv for inv in todays if inv.type == INVENTORY_TYPE_CLOSING]
    opening_value = sum(inv.total_value_cents or 0 for inv in opening)
    closing_value = sum(inv.total_value_cents or 0 for inv in closing)
    estimated = estimate_daily_sales(opening_value, closing_value)

    window = _values_by_day(_window_inventories(day - timedelta(days=period_days), day))
    daily_sales = [v["opening"] - v["closing"] for v in window.values()]
    selling_days = [s for s in daily_sales if s > 0]
    average = average_daily_sales(daily_sales)

    schedules = (
        db.session.query(Schedule)
        .filter(
            Schedule.date == day,
            Schedule.type == SCHEDULE_TYPE_WORK,
            Schedule.is_active.is_(True),
        )
        .order_by(Schedule.start_time.asc(), Schedule.id.asc())
        .all()
    )

    return {
        "overview": {
            "total_products": total_products,
            "total_sellers": total_sellers,
            "opening_inventories": len(opening),
            "closing_inventories": len(closing),
            "working_today": len(schedules),
        },
        "financial": {
            "opening_value_cents": opening_value,
            "closing_value_cents": closing_value,
            "estimated_sales_cents": estimated,
            "opening_value": format_cents(opening_value),
            "closing_value": format_cents(closing_value),
            "estimated_sales": format_cents(estimated),
        },
        "sales_analytics": {
            "average_daily_sales_cents": average,
            "average_daily_sales": format_cents(average),
            "total_sales_cents": sum(selling_days),
            "total_sales": format_cents(sum(selling_days)),
            "number_of_sales_days": len(selling_days),
            "period_days": period_days,
        },
        "today_schedules": [
            {
                "seller_id": s.seller_id,
                "seller": s.seller.display_name if s.seller else None,
                "start_time": format_hhmm(s.start_time),
                "end_time": format_hhmm(s.end_time),
                "location": s.location,
            }
            for s in schedules
        ],
    }


def period_statistics(start, end) -> dict:
    """Opening/closing totals and per-day sales between two dates (inclusive)."""
    if start is None or end is None:
        raise ValidationError(
            "start_date and end_date are required",
            errors=[violation(f, f"{f} is required") for f, v in (("start_date", start), ("end_date", end)) if v is None],
        )
    if start > end:
        raise ValidationError("Invalid period", errors=[violation("end_date", "end_date must be on or after start_date")])

    inventories = _window_inventories(start, end)
    days = _values_by_day(inventories)

    opening_total = sum(v["opening"] for v in days.values())
    closing_total = sum(v["closing"] for v in days.values())
    estimated = estimate_daily_sales(opening_total, closing_total)

    daily = []
    for d, v in days.items():
        sales = estimate_daily_sales(v["opening"], v["closing"])
        daily.append({
            "date": to_iso_date(d),
            "opening_value_cents": v["opening"],
            "closing_value_cents": v["closing"],
            "sales_cents": sales,
            "opening_value": format_cents(v["opening"]),
            "closing_value": format_cents(v["closing"]),
            "sales": format_cents(sales),
        })

    return {
        "period": {"start_date": to_iso_date(start), "end_date": to_iso_date(end)},
        "summary": {
            "total_opening_value_cents": opening_total,
            "total_closing_value_cents": closing_total,
            "total_estimated_sales_cents": estimated,
            "total_opening_value": format_cents(opening_total),
            "total_closing_value": format_cents(closing_total),
            "total_estimated_sales": format_cents(estimated),
            "total_inventories": len(inventories),
        },
        "daily_data": daily,
    }


def period_bounds(period: str, day=None):
    day = day or today()
    if period == "today":
        return day, day
    if period == "week":
        return week_bounds(day)
    if period == "month":
        return month_bounds(day)
    raise ValidationError(
        "Invalid period",
        errors=[violation("period", f"period must be one of: {', '.join(STATISTICS_PERIODS)}")],
    )


def product_statistics(period: str = "today") -> dict:
    """
    Per-product opening and closing quantities and values over a period,
    confirmed inventories only. Values use the current product price.
    """
    start, end = period_bounds(period)

    value_expr = db.func.sum(InventoryItem.quantity * Product.price_cents)
    rows = (
        db.session.query(
            Product.id,
            Product.name,
            Product.unit,
            Product.price_cents,
            Inventory.type,
            db.func.sum(InventoryItem.quantity),
            value_expr,
        )
        .join(InventoryItem, InventoryItem.product_id == Product.id)
        .join(Inventory, Inventory.id == InventoryItem.inventory_id)
        .filter(
            Inventory.is_confirmed.is_(True),
            Inventory.date >= start,
            Inventory.date <= end,
        )
        .group_by(Product.id, Product.name, Product.unit, Product.price_cents, Inventory.type)
        .all()
    )

    by_product: dict[int, dict] = {}
    for product_id, name, unit, price_cents, inv_type, qty, value in rows:
        entry = by_product.setdefault(product_id, {
            "product_id": product_id,
            "name": name,
            "unit": unit,
            "price_cents": price_cents,
            "opening_quantity": 0,
            "closing_quantity": 0,
            "opening_value_cents": 0,
            "closing_value_cents": 0,
        })
        entry[f"{inv_type}_quantity"] = int(qty or 0)
        entry[f"{inv_type}_value_cents"] = int(value or 0)

    products = []
    for entry in by_product.values():
        entry["sold_quantity"] = max(0, entry["opening_quantity"] - entry["closing_quantity"])
        entry["sold_value_cents"] = estimate_daily_sales(entry["opening_value_cents"], entry["closing_value_cents"])
        entry["sold_value"] = format_cents(entry["sold_value_cents"])
        products.append(entry)
    products.sort(key=lambda e: (-e["sold_value_cents"], e["name"]))

    return {
        "period": period,
        "start_date": to_iso_date(start),
        "end_date": to_iso_date(end),
        "items": products,
        "count": len(products),
    }


def seller_statistics(user: User, start=None, end=None) -> dict:
    """
    Prepared vs sold quantities of one seller, from recorded sales.

    Revenue is sold quantity x current price. Rates are percentages.
    """
    q = db.session.query(Inventory).filter(Inventory.seller_id == user.id)
    if start is not None:
        q = q.filter(Inventory.date >= start)
    if end is not None:
        q = q.filter(Inventory.date <= end)
    inventories = q.all()

    prepared = sold = revenue = 0
    per_product: dict[int, dict] = {}
    for inv in inventories:
        for item in inv.items:
            item_sold = item.sold_quantity or 0
            item_revenue = item_sold * item.product.price_cents
            prepared += item.quantity
            sold += item_sold
            revenue += item_revenue

            stats = per_product.setdefault(item.product_id, {
                "product_id": item.product_id,
                "product_name": item.product.name,
                "total_prepared": 0,
                "total_sold": 0,
                "revenue_cents": 0,
            })
            stats["total_prepared"] += item.quantity
            stats["total_sold"] += item_sold
            stats["revenue_cents"] += item_revenue

    product_stats = []
    for stats in per_product.values():
        stats["revenue"] = format_cents(stats["revenue_cents"])
        stats["sales_rate"] = _rate(stats["total_sold"], stats["total_prepared"])
        product_stats.append(stats)
    product_stats.sort(key=lambda s: s["revenue_cents"], reverse=True)

    return {
        "user": user.to_dict(),
        "period": {"start_date": to_iso_date(start), "end_date": to_iso_date(end)},
        "summary": {
            "total_inventories": len(inventories),
            "total_quantity_prepared": prepared,
            "total_quantity_sold": sold,
            "total_revenue_cents": revenue,
            "total_revenue": format_cents(revenue),
            "average_sales_rate": _rate(sold, prepared),
        },
        "product_stats": product_stats,
    }


def _rate(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    return round(part * 100 / whole, 2)
