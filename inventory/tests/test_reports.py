from datetime import timedelta
from decimal import Decimal

import pytest
from catalog.tests.factories import ProductFactory
from django.utils import timezone
from inventory import selectors, services, transfers
from inventory.models import InventoryTransaction
from inventory.tests.factories import hold, stocked
from warehouses.tests.factories import WarehouseFactory


def backdate(txn, days):
    InventoryTransaction.objects.filter(id=txn.id).update(created_at=timezone.now() - timedelta(days=days))


@pytest.mark.django_db
def test_movement_report_opens_from_last_entry_before_the_window():
    product, warehouse = stocked("0")
    early = services.record_receipt(product_id=product.id, warehouse_id=warehouse.id, quantity="100")
    backdate(early, 10)
    services.record_receipt(product_id=product.id, warehouse_id=warehouse.id, quantity="20")
    services.record_issue(product_id=product.id, warehouse_id=warehouse.id, quantity="35")
    services.record_adjustment(
        product_id=product.id, warehouse_id=warehouse.id, quantity="5", direction="DECREASE", reason="damaged"
    )

    now = timezone.now()
    [line] = selectors.movement_report(start=now - timedelta(days=1), end=now + timedelta(minutes=1))

    assert line.product_sku == product.sku
    assert line.opening == Decimal("100.00")
    assert line.inbound == Decimal("20.00")
    assert line.outbound == Decimal("35.00")
    assert line.adjustment == Decimal("-5.00")
    assert line.closing == Decimal("80.00")
    assert line.transactions == 3
    assert line.opening + line.inbound - line.outbound + line.adjustment == line.closing


@pytest.mark.django_db
def test_movement_report_counts_transfers_as_flows():
    product, source = stocked("50")
    destination = WarehouseFactory()
    transfers.execute_transfer(
        product_id=product.id,
        from_warehouse_id=source.id,
        to_warehouse_id=destination.id,
        quantity=Decimal("15"),
        unit_cost=Decimal("1.00"),
    )

    now = timezone.now()
    lines = {
        line.warehouse_code: line
        for line in selectors.movement_report(
            start=now - timedelta(hours=1), end=now + timedelta(minutes=1), product_id=product.id
        )
    }

    assert lines[source.code].inbound == Decimal("50.00")
    assert lines[source.code].outbound == Decimal("15.00")
    assert lines[source.code].closing == Decimal("35.00")
    assert lines[destination.code].opening == Decimal("0.00")
    assert lines[destination.code].closing == Decimal("15.00")


@pytest.mark.django_db
def test_quiet_window_reports_opening_as_closing():
    product, warehouse = stocked("40")
    backdate(InventoryTransaction.objects.get(product=product), 30)

    now = timezone.now()
    [line] = selectors.movement_report(start=now - timedelta(days=2), end=now, warehouse_id=warehouse.id)

    assert line.transactions == 0
    assert line.opening == line.closing == Decimal("40.00")


@pytest.mark.django_db
def test_location_first_stocked_after_the_window_is_left_out():
    stocked("10")
    now = timezone.now()

    assert selectors.movement_report(start=now - timedelta(days=5), end=now - timedelta(days=4)) == []


@pytest.mark.django_db
def test_recent_activity_is_a_gapless_daily_series():
    product, warehouse = stocked("10", unit_cost="3.00")
    old = services.record_receipt(
        product_id=product.id, warehouse_id=warehouse.id, quantity="2", unit_cost=Decimal("3.00")
    )
    backdate(old, 2)
    stale = services.record_receipt(product_id=product.id, warehouse_id=warehouse.id, quantity="1")
    backdate(stale, 20)

    series = selectors.recent_activity(warehouse_id=warehouse.id)

    assert len(series) == 7
    assert series[0]["date"] == timezone.localdate()
    assert series[0]["count"] == 1
    assert series[0]["value"] == Decimal("30.00")
    assert sum(day["count"] for day in series) == 2
    assert [day["date"] for day in series] == sorted((day["date"] for day in series), reverse=True)


@pytest.mark.django_db
def test_low_stock_sums_lots_and_ignores_products_without_a_reorder_level():
    product = ProductFactory(reorder_level=Decimal("25.00"))
    warehouse = WarehouseFactory()
    stocked("10", product=product, warehouse=warehouse, lot="A")
    stocked("20", product=product, warehouse=warehouse, lot="B")
    stocked("5", product=ProductFactory(reorder_level=None), warehouse=warehouse)

    assert selectors.low_stock(warehouse_id=warehouse.id) == []

    hold(product, warehouse, "8", lot="B")
    [line] = selectors.low_stock(warehouse_id=warehouse.id)

    assert line.product_sku == product.sku
    assert line.on_hand == Decimal("30.00")
    assert line.available == Decimal("22.00")
    assert line.severity == "warning"


@pytest.mark.django_db
def test_empty_location_is_critical():
    product = ProductFactory(reorder_level=Decimal("0.00"))
    _, warehouse = stocked("4", product=product)
    services.record_issue(product_id=product.id, warehouse_id=warehouse.id, quantity="4")

    [line] = selectors.low_stock(product_id=product.id)

    assert line.available == Decimal("0.00")
    assert line.severity == "critical"
