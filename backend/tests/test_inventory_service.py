import pytest

from storefront.errors import InsufficientStockError, NotFoundError, ValidationError
from storefront.services import inventory_service


def test_debit_outside_transaction_is_a_programming_error(store, catalog):
    with pytest.raises(RuntimeError):
        inventory_service.debit(store, catalog.headphones_id, 1)
    with pytest.raises(RuntimeError):
        inventory_service.credit(store, catalog.headphones_id, 1)
    assert store.find_product(catalog.headphones_id).stock == 25


def test_debit_and_credit_inside_transaction(store, catalog):
    with store.transaction():
        inventory_service.debit(store, catalog.headphones_id, 5)
        inventory_service.credit(store, catalog.headphones_id, 2)

    assert store.find_product(catalog.headphones_id).stock == 22


def test_debit_cannot_drive_stock_negative(store, catalog):
    with pytest.raises(InsufficientStockError) as exc:
        with store.transaction():
            inventory_service.debit(store, catalog.mousepad_id, 61)

    assert exc.value.details == {
        "product_id": catalog.mousepad_id,
        "requested_quantity": 61,
        "on_hand": 60,
    }
    assert store.find_product(catalog.mousepad_id).stock == 60


def test_debit_of_exact_stock_reaches_zero(store, catalog):
    with store.transaction():
        inventory_service.debit(store, catalog.last_unit_id, 1)
    assert store.find_product(catalog.last_unit_id).stock == 0


def test_credit_has_no_ceiling(store, catalog):
    with store.transaction():
        inventory_service.credit(store, catalog.keyboard_id, 1_000_000)
    assert store.find_product(catalog.keyboard_id).stock == 1_000_000


def test_unknown_product_is_not_found(store, catalog):
    with pytest.raises(NotFoundError):
        with store.transaction():
            inventory_service.credit(store, 98765, 1)


@pytest.mark.parametrize("quantity", [0, -3])
def test_quantities_must_be_positive(store, catalog, quantity):
    with pytest.raises(ValidationError):
        with store.transaction():
            inventory_service.debit(store, catalog.headphones_id, quantity)


def test_failure_rolls_back_earlier_movements(store, catalog):
    with pytest.raises(InsufficientStockError):
        with store.transaction():
            inventory_service.debit(store, catalog.headphones_id, 3)
            inventory_service.debit(store, catalog.keyboard_id, 1)

    assert store.find_product(catalog.headphones_id).stock == 25


# =============================================================================
# Batch stock update
# =============================================================================

def test_batch_sets_absolute_levels(store, catalog):
    updated = inventory_service.update_stock_batch(
        store,
        catalog.category_id,
        {catalog.headphones_id: 30, catalog.keyboard_id: 5},
    )

    assert updated == 2
    assert store.find_product(catalog.headphones_id).stock == 30
    assert store.find_product(catalog.keyboard_id).stock == 5


def test_batch_rejects_negative_before_writing(store, catalog):
    with pytest.raises(ValidationError) as exc:
        inventory_service.update_stock_batch(
            store,
            catalog.category_id,
            [(catalog.headphones_id, 10), (catalog.keyboard_id, -1)],
        )

    assert exc.value.details["items"] == [{"product_id": catalog.keyboard_id, "stock": -1}]
    assert store.find_product(catalog.headphones_id).stock == 25


def test_batch_product_outside_category_aborts_everything(store, catalog):
    with pytest.raises(NotFoundError):
        inventory_service.update_stock_batch(
            store,
            catalog.category_id,
            [
                {"product_id": catalog.headphones_id, "stock": 1},
                {"product_id": catalog.mousepad_id, "stock": 1},
            ],
        )

    assert store.find_product(catalog.headphones_id).stock == 25
    assert store.find_product(catalog.mousepad_id).stock == 60


def test_batch_unknown_category(store, catalog):
    with pytest.raises(NotFoundError):
        inventory_service.update_stock_batch(store, 777, {catalog.headphones_id: 1})


def test_batch_needs_entries(store, catalog):
    with pytest.raises(ValidationError):
        inventory_service.update_stock_batch(store, catalog.category_id, [])
