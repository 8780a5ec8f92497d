"""
Valuation engine and money helper tests (no database).
"""

import pytest

from painperdu.money import divide_cents, format_cents, parse_price
from painperdu.services.valuation_service import (
    average_daily_sales,
    compute_inventory_value,
    estimate_daily_sales,
    summarize_items,
)


class TestComputeInventoryValue:
    def test_sums_quantity_times_price(self):
        items = [
            {"product_id": 1, "quantity": 20},
            {"product_id": 2, "quantity": 3},
        ]
        assert compute_inventory_value(items, {1: 250, 2: 120}) == 20 * 250 + 3 * 120

    def test_empty_is_zero(self):
        assert compute_inventory_value([], {}) == 0

    def test_accepts_callable_lookup(self):
        items = [{"product_id": 7, "quantity": 4}]
        assert compute_inventory_value(items, lambda pid: 99) == 396

    def test_missing_price_raises_lookup_error(self):
        with pytest.raises(LookupError):
            compute_inventory_value([{"product_id": 1, "quantity": 1}], {})

    def test_zero_quantity_contributes_nothing(self):
        assert compute_inventory_value([{"product_id": 1, "quantity": 0}], {1: 500}) == 0


class TestEstimateDailySales:
    def test_opening_minus_closing(self):
        assert estimate_daily_sales(5000, 1250) == 3750

    @pytest.mark.parametrize("opening,closing", [(1000, 1500), (0, 1), (0, 0)])
    def test_never_negative(self, opening, closing):
        assert estimate_daily_sales(opening, closing) == 0


class TestAverageDailySales:
    def test_excludes_zero_and_negative_days(self):
        assert average_daily_sales([1000, 0, -500, 2000]) == 1500

    def test_no_selling_day_is_zero(self):
        assert average_daily_sales([0, -10]) == 0
        assert average_daily_sales([]) == 0

    def test_rounds_half_up_to_the_cent(self):
        # 1001 / 2 = 500.5 -> 501
        assert average_daily_sales([1, 1000]) == 501


class TestSummarizeItems:
    def test_totals_with_price_lookup(self):
        items = [
            {"product_id": 1, "quantity": 10, "sold_quantity": 4},
            {"product_id": 2, "quantity": 5, "sold_quantity": None},
        ]
        totals = summarize_items(items, {1: 250, 2: 120})
        assert totals == {
            "total_quantity": 15,
            "total_sold": 4,
            "total_revenue_cents": 1000,
            "remaining_quantity": 11,
        }


class TestMoney:
    def test_format_cents(self):
        assert format_cents(1250) == "12.50"
        assert format_cents(0) == "0.00"
        assert format_cents(None) == "0.00"
        assert format_cents(5) == "0.05"

    @pytest.mark.parametrize("raw,cents", [("2.5", 250), (2.50, 250), ("3", 300), ("0.01", 1)])
    def test_parse_price(self, raw, cents):
        assert parse_price(raw) == cents

    @pytest.mark.parametrize("raw", ["abc", "1.234", True, "nan"])
    def test_parse_price_rejects(self, raw):
        with pytest.raises(ValueError):
            parse_price(raw)

    def test_divide_cents(self):
        assert divide_cents(1000, 3) == 333
        assert divide_cents(1000, 0) == 0
