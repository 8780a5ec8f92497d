"""
Declarative validation tests: payload schemas, item lists and schedule rules.
"""

from datetime import date, time

import pytest

from painperdu.errors import ValidationError
from painperdu.models import Product, Schedule
from painperdu.validation import (
    MAX_QUANTITY,
    ModelValidationPolicy,
    enforce_rules_category,
    enforce_rules_product,
    enforce_rules_schedule,
    validate_inventory_items,
    validate_payload,
    validate_sales_entries,
)


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "price_cents", "unit", "category_id"}),
    required_on_create=frozenset({"name", "price_cents", "category_id"}),
    choices={"unit": ("piece", "kg")},
)


class TestValidatePayload:
    def test_create_requires_fields(self):
        with pytest.raises(ValidationError) as exc:
            validate_payload(model=Product, payload={"name": "Baguette"}, policy=PRODUCT_POLICY, partial=False)
        fields = {e["field"] for e in exc.value.errors}
        assert {"price_cents", "category_id"} <= fields

    def test_collects_every_violation(self):
        payload = {"name": "", "price_cents": "1.5", "unit": "box", "secret": 1}
        with pytest.raises(ValidationError) as exc:
            validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        fields = {e["field"] for e in exc.value.errors}
        assert fields == {"name", "price_cents", "unit", "secret"}

    def test_coerces_types(self):
        patch = validate_payload(
            model=Product,
            payload={"name": "  Baguette ", "price_cents": "120", "category_id": 1},
            policy=PRODUCT_POLICY,
            partial=False,
        )
        assert patch == {"name": "Baguette", "price_cents": 120, "category_id": 1}

    def test_parses_dates_and_times(self):
        policy = ModelValidationPolicy(writable_fields=frozenset({"date", "start_time"}))
        patch = validate_payload(
            model=Schedule,
            payload={"date": "2024-01-10T09:30:00Z", "start_time": "08:00"},
            policy=policy,
            partial=True,
        )
        assert patch == {"date": date(2024, 1, 10), "start_time": time(8, 0)}


class TestBusinessRules:
    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            enforce_rules_product({"price_cents": -1})

    def test_color_must_be_hex(self):
        enforce_rules_category({"color": "#abc"})
        with pytest.raises(ValidationError):
            enforce_rules_category({"color": "orange"})

    def test_work_entry_needs_times(self):
        with pytest.raises(ValidationError):
            enforce_rules_schedule({"type": "work", "start_time": None, "end_time": None})

    def test_leave_entry_without_times_ok(self):
        enforce_rules_schedule({"type": "leave", "start_time": None, "end_time": None})

    def test_end_after_start(self):
        with pytest.raises(ValidationError):
            enforce_rules_schedule({"type": "work", "start_time": time(12), "end_time": time(8)})


class TestInventoryItems:
    def test_normalizes_product_alias(self):
        items, violations = validate_inventory_items([{"product": 3, "quantity": "4"}])
        assert violations == []
        assert items == [{"product_id": 3, "quantity": 4, "sold_quantity": None, "notes": None}]

    def test_empty_list_rejected(self):
        _, violations = validate_inventory_items([])
        assert violations and violations[0]["field"] == "items"

    def test_duplicate_product_rejected(self):
        _, violations = validate_inventory_items([
            {"product_id": 1, "quantity": 1},
            {"product_id": 1, "quantity": 2},
        ])
        assert any("more than once" in v["message"] for v in violations)

    def test_negative_quantity_and_oversold_rejected(self):
        _, violations = validate_inventory_items([
            {"product_id": 1, "quantity": -1},
            {"product_id": 2, "quantity": 1, "sold_quantity": 2},
        ])
        fields = {v["field"] for v in violations}
        assert "items[0].quantity" in fields
        assert "items[1].sold_quantity" in fields

    def test_values_beyond_storage_range_rejected(self):
        _, violations = validate_inventory_items([
            {"product_id": 2**40, "quantity": 1},
            {"product_id": 2, "quantity": MAX_QUANTITY + 1},
            {"product_id": 3, "quantity": 1, "notes": ["x"]},
        ])
        fields = {v["field"] for v in violations}
        assert fields == {"items[0].product_id", "items[1].quantity", "items[2].notes"}


class TestSalesEntries:
    def test_accepts_camel_case_keys(self):
        sales, violations = validate_sales_entries([{"productId": 1, "soldQuantity": 3}])
        assert violations == []
        assert sales == [{"product_id": 1, "sold_quantity": 3}]

    def test_not_a_list(self):
        _, violations = validate_sales_entries({"product_id": 1})
        assert violations[0]["field"] == "sales"

    def test_sold_quantity_upper_bound(self):
        _, violations = validate_sales_entries([{"product_id": 1, "sold_quantity": MAX_QUANTITY + 1}])
        assert violations[0]["field"] == "sales[0].sold_quantity"
