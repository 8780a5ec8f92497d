"""
Inventory record store tests (service layer).

Covers uniqueness per (seller, day, type), valuation snapshots, the
all-or-nothing sales batch and the confirmation lock.
"""

from datetime import date

import pytest

from painperdu.errors import (
    AlreadyConfirmed,
    AuthorizationError,
    DuplicateInventory,
    InventoryLocked,
    InvalidOrInactiveProduct,
    NotFoundError,
    OversoldQuantity,
    ValidationError,
)
from painperdu.models import Inventory, InventoryItem, Product
from painperdu.services import inventory_service
from painperdu.validation import MAX_PRICE_CENTS


DAY = date(2024, 1, 10)


@pytest.fixture
def opening(db_session, seller_user, product):
    inventory = inventory_service.create_inventory(
        seller_user,
        date="2024-01-10",
        type="opening",
        items=[{"product_id": product.id, "quantity": 20}],
    )
    db_session.commit()
    return inventory


class TestCreate:
    def test_values_items_at_current_price(self, db_session, opening):
        assert opening.total_value_cents == 5000
        assert opening.date == DAY
        assert opening.is_confirmed is False
        assert len(opening.items) == 1

    def test_duplicate_same_seller_day_type(self, db_session, seller_user, product, opening):
        with pytest.raises(DuplicateInventory):
            inventory_service.create_inventory(
                seller_user, date=DAY, type="opening",
                items=[{"product_id": product.id, "quantity": 1}],
            )

    def test_datetime_input_normalized_to_same_day(self, db_session, seller_user, product, opening):
        with pytest.raises(DuplicateInventory):
            inventory_service.create_inventory(
                seller_user, date="2024-01-10T17:45:00Z", type="opening",
                items=[{"product_id": product.id, "quantity": 1}],
            )

    def test_other_type_same_day_allowed(self, db_session, seller_user, product, opening):
        closing = inventory_service.create_inventory(
            seller_user, date=DAY, type="closing",
            items=[{"product_id": product.id, "quantity": 5}],
        )
        db_session.commit()
        assert closing.total_value_cents == 1250

    def test_other_seller_same_day_allowed(self, db_session, other_seller, product, opening):
        inventory = inventory_service.create_inventory(
            other_seller, date=DAY, type="opening",
            items=[{"product_id": product.id, "quantity": 2}],
        )
        assert inventory.seller_id == other_seller.id

    def test_inactive_product_rejected(self, db_session, seller_user, product, inactive_product):
        with pytest.raises(InvalidOrInactiveProduct):
            inventory_service.create_inventory(
                seller_user, date=DAY, type="opening",
                items=[
                    {"product_id": product.id, "quantity": 1},
                    {"product_id": inactive_product.id, "quantity": 1},
                ],
            )

    def test_unknown_product_rejected(self, db_session, seller_user, product):
        with pytest.raises(InvalidOrInactiveProduct):
            inventory_service.create_inventory(
                seller_user, date=DAY, type="opening",
                items=[{"product_id": 9999, "quantity": 1}],
            )

    def test_invalid_payload(self, db_session, seller_user):
        with pytest.raises(ValidationError) as exc:
            inventory_service.create_inventory(seller_user, date="yesterday", type="lunch", items=[])
        fields = {e["field"] for e in exc.value.errors}
        assert {"date", "type", "items"} <= fields

    def test_seller_cannot_record_for_someone_else(self, db_session, seller_user, other_seller, product):
        with pytest.raises(AuthorizationError):
            inventory_service.create_inventory(
                seller_user, date=DAY, type="opening", seller_id=other_seller.id,
                items=[{"product_id": product.id, "quantity": 1}],
            )

    def test_admin_records_on_behalf_of_seller(self, db_session, admin_user, seller_user, product):
        inventory = inventory_service.create_inventory(
            admin_user, date=DAY, type="opening", seller_id=seller_user.id,
            items=[{"product_id": product.id, "quantity": 1}],
        )
        assert inventory.seller_id == seller_user.id
        assert inventory.created_by_user_id == admin_user.id
    def test_storage_constraint_rejects_duplicate_without_precheck(
        self, db_session, monkeypatch, seller_user, product, product2, opening,
    ):
        monkeypatch.setattr(inventory_service, "ensure_inventory_unique", lambda *args, **kwargs: None)

        with pytest.raises(DuplicateInventory):
            inventory_service.create_inventory(
                seller_user, date=DAY, type="opening",
                items=[
                    {"product_id": product.id, "quantity": 1},
                    {"product_id": product2.id, "quantity": 2},
                ],
            )

        # Nothing of the rejected count is left behind
        assert db_session.query(Inventory).count() == 1
        assert db_session.query(InventoryItem).count() == 1

    def test_total_beyond_column_range_rejected(self, db_session, seller_user, category):
        premium = Product(name="Pièce montée", price_cents=MAX_PRICE_CENTS, category_id=category.id)
        db_session.add(premium)
        db_session.commit()

        with pytest.raises(ValidationError) as exc:
            inventory_service.create_inventory(
                seller_user, date=DAY, type="opening",
                items=[{"product_id": premium.id, "quantity": 3}],
            )
        assert exc.value.errors[0]["field"] == "total_value_cents"
        db_session.rollback()
        assert db_session.query(Inventory).count() == 0


class TestUpdate:
    def test_items_replace_and_total_recomputed(self, db_session, seller_user, product, product2, opening):
        updated = inventory_service.update_inventory(
            seller_user, opening.id,
            items=[
                {"product_id": product.id, "quantity": 10},
                {"product_id": product2.id, "quantity": 5},
            ],
        )
        db_session.commit()
        assert updated.total_value_cents == 10 * 250 + 5 * 120
        assert sorted((i.product_id, i.quantity) for i in updated.items) == [
            (product.id, 10), (product2.id, 5),
        ]
        assert db_session.query(InventoryItem).filter_by(inventory_id=opening.id).count() == 2

    def test_total_is_a_snapshot(self, db_session, seller_user, product, opening):
        product.price_cents = 1000
        db_session.commit()
        inventory_service.update_inventory(seller_user, opening.id, notes="recount tomorrow")
        db_session.commit()
        assert opening.total_value_cents == 5000

    def test_change_to_taken_type_rejected(self, db_session, seller_user, product, opening):
        closing = inventory_service.create_inventory(
            seller_user, date=DAY, type="closing",
            items=[{"product_id": product.id, "quantity": 5}],
        )
        db_session.commit()
        with pytest.raises(DuplicateInventory):
            inventory_service.update_inventory(seller_user, closing.id, type="opening")

    def test_keeping_own_date_and_type_is_not_a_duplicate(self, db_session, seller_user, opening):
        inventory_service.update_inventory(seller_user, opening.id, date="2024-01-10", type="opening")


class TestRecordSales:
    def test_applies_sold_quantities(self, db_session, seller_user, product, opening):
        inventory = inventory_service.record_sales(
            seller_user, opening.id, [{"product_id": product.id, "sold_quantity": 15}],
        )
        db_session.commit()
        assert inventory.items[0].sold_quantity == 15

    def test_batch_is_all_or_nothing(self, db_session, seller_user, product, product2):
        inventory = inventory_service.create_inventory(
            seller_user, date=DAY, type="opening",
            items=[
                {"product_id": product.id, "quantity": 10},
                {"product_id": product2.id, "quantity": 2},
            ],
        )
        db_session.commit()

        with pytest.raises(OversoldQuantity):
            inventory_service.record_sales(seller_user, inventory.id, [
                {"product_id": product.id, "sold_quantity": 5},
                {"product_id": product2.id, "sold_quantity": 3},
            ])
        db_session.rollback()

        sold = {i.product_id: i.sold_quantity for i in db_session.get(Inventory, inventory.id).items}
        assert sold == {product.id: None, product2.id: None}

    def test_unknown_products_ignored(self, db_session, seller_user, product, opening):
        inventory_service.record_sales(seller_user, opening.id, [
            {"product_id": product.id, "sold_quantity": 1},
            {"product_id": 9999, "sold_quantity": 100},
        ])
        assert opening.items[0].sold_quantity == 1


class TestConfirmationLock:
    def test_confirm(self, db_session, seller_user, opening):
        inventory = inventory_service.confirm_inventory(seller_user, opening.id)
        db_session.commit()
        assert inventory.is_confirmed is True
        assert inventory.confirmed_at is not None
        assert inventory.confirmed_by_user_id == seller_user.id

    def test_confirm_twice(self, db_session, seller_user, opening):
        inventory_service.confirm_inventory(seller_user, opening.id)
        db_session.commit()
        with pytest.raises(AlreadyConfirmed):
            inventory_service.confirm_inventory(seller_user, opening.id)

    def test_seller_locked_out_after_confirm(self, db_session, seller_user, product, opening):
        inventory_service.confirm_inventory(seller_user, opening.id)
        db_session.commit()

        with pytest.raises(InventoryLocked):
            inventory_service.update_inventory(seller_user, opening.id, notes="late fix")
        with pytest.raises(InventoryLocked):
            inventory_service.delete_inventory(seller_user, opening.id)
        with pytest.raises(InventoryLocked):
            inventory_service.record_sales(seller_user, opening.id, [
                {"product_id": product.id, "sold_quantity": 1},
            ])

    def test_admin_overrides_lock(self, db_session, admin_user, seller_user, product, opening):
        inventory_service.confirm_inventory(seller_user, opening.id)
        db_session.commit()

        inventory = inventory_service.update_inventory(
            admin_user, opening.id, items=[{"product_id": product.id, "quantity": 30}],
        )
        db_session.commit()
        assert inventory.total_value_cents == 7500
        assert inventory.is_confirmed is True

        inventory_service.delete_inventory(admin_user, opening.id)
        db_session.commit()
        assert db_session.get(Inventory, opening.id) is None
        assert db_session.query(InventoryItem).count() == 0


class TestVisibility:
    def test_other_seller_gets_not_found(self, db_session, other_seller, opening):
        with pytest.raises(NotFoundError):
            inventory_service.get_inventory(other_seller, opening.id)
        with pytest.raises(NotFoundError):
            inventory_service.update_inventory(other_seller, opening.id, notes="x")

    def test_list_is_scoped_to_seller(self, db_session, seller_user, other_seller, admin_user, product, opening):
        inventory_service.create_inventory(
            other_seller, date=DAY, type="opening",
            items=[{"product_id": product.id, "quantity": 1}],
        )
        db_session.commit()

        mine = inventory_service.list_inventories(seller_user)
        assert [i["seller_id"] for i in mine["items"]] == [seller_user.id]

        everyone = inventory_service.list_inventories(admin_user)
        assert everyone["count"] == 2

        filtered = inventory_service.list_inventories(admin_user, seller_id=other_seller.id)
        assert filtered["count"] == 1

    def test_list_includes_totals_and_paginates(self, db_session, seller_user, product, opening):
        inventory_service.record_sales(seller_user, opening.id, [
            {"product_id": product.id, "sold_quantity": 4},
        ])
        db_session.commit()

        result = inventory_service.list_inventories(seller_user, page=1, per_page=10)
        totals = result["items"][0]["totals"]
        assert totals["total_quantity"] == 20
        assert totals["total_sold"] == 4
        assert totals["total_revenue_cents"] == 1000
        assert totals["remaining_quantity"] == 16
        assert result["pagination"]["total"] == 1

    def test_date_range_filter(self, db_session, seller_user, product, opening):
        inventory_service.create_inventory(
            seller_user, date="2024-01-12", type="opening",
            items=[{"product_id": product.id, "quantity": 1}],
        )
        db_session.commit()

        result = inventory_service.list_inventories(
            seller_user, start_date=date(2024, 1, 11), end_date=date(2024, 1, 31),
        )
        assert [i["date"] for i in result["items"]] == ["2024-01-12"]
