import logging
from decimal import Decimal

import pytest
from inventory.bulk import apply_batch, first_error_message
from inventory.errors import ValidationError
from inventory.models import InventoryTransaction, StockBalance
from inventory.tests.factories import stocked


def item(product, warehouse, transaction_type="RECEIPT", quantity="1", **extra):
    return {
        "transaction_type": transaction_type,
        "product_id": str(product.id),
        "warehouse_id": str(warehouse.id),
        "quantity": quantity,
        **extra,
    }


@pytest.mark.django_db
def test_invalid_item_is_reported_and_others_applied(caplog):
    product, warehouse = stocked("0")
    batch = [
        item(product, warehouse, quantity="10"),
        item(product, warehouse, quantity="0"),
        item(product, warehouse, quantity="5"),
    ]

    with caplog.at_level(logging.INFO, logger="trackr.inventory"):
        result = apply_batch(batch)

    assert result.created == 2
    assert result.failed == 1
    assert result.errors == [{"index": 1, "error": "quantity must be positive"}]
    assert len(result.transaction_ids) == 2
    assert [r["index"] for r in result.results] == [0, 2]
    assert [r["transaction_id"] for r in result.results] == result.transaction_ids
    assert StockBalance.objects.get(product=product).on_hand == Decimal("15.00")
    assert any(getattr(r, "event", "") == "inventory.bulk_applied" for r in caplog.records)


@pytest.mark.django_db
def test_ledger_rejection_does_not_roll_back_earlier_items():
    product, warehouse = stocked("5")
    batch = [
        item(product, warehouse, "ISSUE", "3"),
        item(product, warehouse, "ISSUE", "3"),
        item(product, warehouse, "RECEIPT", "1"),
    ]

    result = apply_batch(batch)

    assert (result.created, result.failed) == (2, 1)
    assert result.errors[0]["index"] == 1
    assert result.errors[0]["error"].startswith("Insufficient stock")
    assert StockBalance.objects.get(product=product).on_hand == Decimal("3.00")


@pytest.mark.django_db
def test_batch_size_limits_checked_before_processing():
    product, warehouse = stocked("0")
    with pytest.raises(ValidationError):
        apply_batch([item(product, warehouse)] * 101)
    with pytest.raises(ValidationError):
        apply_batch([])
    assert InventoryTransaction.objects.count() == 0


def test_first_error_message_flattens_serializer_errors():
    assert first_error_message({"quantity": ["quantity must be positive"]}) == "quantity must be positive"
    assert first_error_message({"warehouse_id": ["This field is required."]}) == "warehouse_id: This field is required."
    assert first_error_message({"non_field_errors": ["bad"]}) == "bad"
    assert first_error_message([]) == "invalid item"
