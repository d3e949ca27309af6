from datetime import timedelta
from decimal import Decimal

import pytest
from catalog.tests.factories import ProductFactory
from django.utils import timezone
from inventory.models import StockBalance, StockReservation
from inventory.tests.factories import hold, stocked
from rest_framework.test import APIClient
from warehouses.tests.factories import WarehouseFactory

BASE = "/api/v1/inventory"


@pytest.fixture
def client():
    return APIClient()


@pytest.mark.django_db
def test_inventory_health(client):
    resp = client.get(f"{BASE}/health/")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "app": "inventory"}


@pytest.mark.django_db
def test_service_health_checks_database(client):
    resp = client.get("/health/")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "database": "ok"}


@pytest.mark.django_db
def test_post_transaction_and_list(client):
    product, warehouse = ProductFactory(), WarehouseFactory()
    payload = {
        "transaction_type": "RECEIPT",
        "product_id": str(product.id),
        "warehouse_id": str(warehouse.id),
        "quantity": "100.00",
        "unit_cost": "2.50",
        "reference_type": "PURCHASE",
        "reference_id": "PO-1",
    }
    resp = client.post(f"{BASE}/transactions/", payload, format="json")
    assert resp.status_code == 201
    body = resp.json()
    assert body["balance_after"] == "100.00"
    assert body["total_cost"] == "250.00"
    assert body["warnings"] == []
    assert body["product_sku"] == product.sku

    listing = client.get(f"{BASE}/transactions/", {"product_id": str(product.id)})
    assert listing.status_code == 200
    assert [row["id"] for row in listing.json()["results"]] == [body["id"]]

    detail = client.get(f"{BASE}/transactions/{body['id']}/")
    assert detail.status_code == 200
    assert detail.json()["number"] == body["number"]


@pytest.mark.django_db
def test_validation_errors_are_400(client):
    product, warehouse = ProductFactory(), WarehouseFactory()
    base = {"product_id": str(product.id), "warehouse_id": str(warehouse.id)}

    resp = client.post(f"{BASE}/transactions/", {**base, "transaction_type": "RECEIPT", "quantity": "0"}, format="json")
    assert resp.status_code == 400
    assert resp.json()["quantity"] == ["quantity must be positive"]

    resp = client.post(f"{BASE}/transactions/", {**base, "transaction_type": "ADJUSTMENT", "quantity": "1"}, format="json")
    assert resp.status_code == 400
    assert "adjustment_direction" in resp.json()


@pytest.mark.django_db
def test_inactive_warehouse_is_400_with_code(client):
    product = ProductFactory()
    warehouse = WarehouseFactory(is_active=False)
    resp = client.post(
        f"{BASE}/receipts/",
        {"product_id": str(product.id), "warehouse_id": str(warehouse.id), "quantity": "1"},
        format="json",
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "warehouse_inactive"


@pytest.mark.django_db
def test_unknown_warehouse_is_404(client):
    product = ProductFactory()
    resp = client.post(
        f"{BASE}/receipts/",
        {"product_id": str(product.id), "warehouse_id": "00000000-0000-0000-0000-000000000009", "quantity": "1"},
        format="json",
    )
    assert resp.status_code == 404
    assert resp.json()["code"] == "not_found"


@pytest.mark.django_db
def test_issue_over_on_hand_is_422(client):
    product, warehouse = stocked("5")
    resp = client.post(
        f"{BASE}/issues/",
        {"product_id": str(product.id), "warehouse_id": str(warehouse.id), "quantity": "6"},
        format="json",
    )
    assert resp.status_code == 422
    assert resp.json()["code"] == "insufficient_stock"


@pytest.mark.django_db
def test_issue_response_carries_overcommit_warning(client):
    product, warehouse = stocked("100")
    hold(product, warehouse, "30")
    resp = client.post(
        f"{BASE}/issues/",
        {"product_id": str(product.id), "warehouse_id": str(warehouse.id), "quantity": "80"},
        format="json",
    )
    assert resp.status_code == 201
    assert resp.json()["warnings"] == ["reservation_overcommitted"]

    flagged = client.get(f"{BASE}/stock-levels/overcommitted/")
    assert flagged.status_code == 200
    (row,) = flagged.json()
    assert row["overcommitted"] is True
    assert row["available"] == "0.00"


@pytest.mark.django_db
def test_adjustment_endpoint_keeps_reason(client):
    product, warehouse = stocked("10")
    resp = client.post(
        f"{BASE}/adjustments/",
        {
            "product_id": str(product.id),
            "warehouse_id": str(warehouse.id),
            "adjustment_direction": "DECREASE",
            "adjustment_reason": "DAMAGE",
            "reason_details": "Forklift accident",
            "quantity": "2",
        },
        format="json",
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["adjustment_direction"] == "DECREASE"
    assert body["notes"] == "[DAMAGE] Forklift accident"
    assert body["balance_after"] == "8.00"


@pytest.mark.django_db
def test_stock_levels_report_available(client):
    product, warehouse = stocked("40")
    hold(product, warehouse, "15")
    resp = client.get(f"{BASE}/stock-levels/", {"product_id": str(product.id)})
    assert resp.status_code == 200
    (row,) = resp.json()["results"]
    assert row["on_hand"] == "40.00"
    assert row["reserved"] == "15.00"
    assert row["available"] == "25.00"
    assert row["overcommitted"] is False


@pytest.mark.django_db
def test_reservation_flow_over_http(client):
    product, warehouse = stocked("10")
    payload = {
        "product_id": str(product.id),
        "warehouse_id": str(warehouse.id),
        "quantity": "4",
        "reference_type": "SALES",
        "reference_id": "SO-42",
        "expiry_date": (timezone.now() + timedelta(hours=1)).isoformat(),
    }
    created = client.post(f"{BASE}/reservations/", payload, format="json")
    assert created.status_code == 201
    rid = created.json()["id"]

    too_much = client.post(f"{BASE}/reservations/", {**payload, "quantity": "7"}, format="json")
    assert too_much.status_code == 422
    assert too_much.json()["code"] == "insufficient_available"

    released = client.post(f"{BASE}/reservations/{rid}/release/")
    assert released.status_code == 200
    assert released.json()["status"] == "RELEASED"

    again = client.post(f"{BASE}/reservations/{rid}/consume/", {}, format="json")
    assert again.status_code == 409
    assert again.json()["code"] == "invalid_state"

    missing = client.post(f"{BASE}/reservations/00000000-0000-0000-0000-0000000000ff/release/")
    assert missing.status_code == 404


@pytest.mark.django_db
def test_reservation_consume_over_http(client):
    product, warehouse = stocked("10")
    reservation = hold(product, warehouse, "6")
    resp = client.post(f"{BASE}/reservations/{reservation.id}/consume/", {"quantity": "5"}, format="json")
    assert resp.status_code == 200
    assert resp.json()["status"] == "CONSUMED"
    assert resp.json()["fulfilled_quantity"] == "5.00"
    assert StockBalance.objects.get(product=product).on_hand == Decimal("5.00")


@pytest.mark.django_db
def test_reservation_in_the_past_is_400(client):
    product, warehouse = stocked("10")
    resp = client.post(
        f"{BASE}/reservations/",
        {
            "product_id": str(product.id),
            "warehouse_id": str(warehouse.id),
            "quantity": "1",
            "reference_type": "SALES",
            "reference_id": "SO-1",
            "expiry_date": (timezone.now() - timedelta(hours=1)).isoformat(),
        },
        format="json",
    )
    assert resp.status_code == 400
    assert not StockReservation.objects.exists()


@pytest.mark.django_db
def test_transfer_lifecycle_over_http(client):
    product, source = stocked("100")
    destination = WarehouseFactory()
    created = client.post(
        f"{BASE}/transfers/",
        {
            "product_id": str(product.id),
            "from_warehouse_id": str(source.id),
            "to_warehouse_id": str(destination.id),
            "quantity": "25",
        },
        format="json",
    )
    assert created.status_code == 201
    tid = created.json()["id"]
    assert created.json()["status"] == "PENDING"

    assert client.post(f"{BASE}/transfers/{tid}/ship/").json()["status"] == "IN_TRANSIT"
    cancel = client.post(f"{BASE}/transfers/{tid}/cancel/")
    assert cancel.status_code == 409

    value = client.get(f"{BASE}/value/", {"product_id": str(product.id)})
    assert value.json()["in_transit_quantity"] == "25.00"

    done = client.post(f"{BASE}/transfers/{tid}/complete/")
    assert done.status_code == 200
    assert done.json()["status"] == "COMPLETED"
    assert client.get(f"{BASE}/transfers/{tid}/").json()["in_transaction"] is not None


@pytest.mark.django_db
def test_executed_transfer_to_inactive_destination_fails_with_reversal(client):
    product, source = stocked("100")
    destination = WarehouseFactory(is_active=False)
    resp = client.post(
        f"{BASE}/transfers/?execute=true",
        {
            "product_id": str(product.id),
            "from_warehouse_id": str(source.id),
            "to_warehouse_id": str(destination.id),
            "quantity": "50",
        },
        format="json",
    )
    assert resp.status_code == 201
    assert resp.json()["status"] == "FAILED"
    assert resp.json()["reversal_transaction"] is not None
    assert StockBalance.objects.get(product=product, warehouse=source).on_hand == Decimal("100.00")


@pytest.mark.django_db
def test_same_warehouse_transfer_is_400(client):
    product, source = stocked("1")
    resp = client.post(
        f"{BASE}/transfers/",
        {
            "product_id": str(product.id),
            "from_warehouse_id": str(source.id),
            "to_warehouse_id": str(source.id),
            "quantity": "1",
        },
        format="json",
    )
    assert resp.status_code == 400


@pytest.mark.django_db
def test_bulk_endpoint_reports_per_item(client):
    product, warehouse = ProductFactory(), WarehouseFactory()

    def entry(quantity):
        return {
            "transaction_type": "RECEIPT",
            "product_id": str(product.id),
            "warehouse_id": str(warehouse.id),
            "quantity": quantity,
        }

    resp = client.post(
        f"{BASE}/transactions/bulk/", {"transactions": [entry("3"), entry("0"), entry("4")]}, format="json"
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["created"] == 2
    assert body["failed"] == 1
    assert body["errors"] == [{"index": 1, "error": "quantity must be positive"}]
    assert [r["index"] for r in body["results"]] == [0, 2]

    too_big = client.post(f"{BASE}/transactions/bulk/", {"transactions": [entry("1")] * 101}, format="json")
    assert too_big.status_code == 400
    assert StockBalance.objects.get(product=product).on_hand == Decimal("7.00")


@pytest.mark.django_db
def test_idempotency_key_replays_receipt(client):
    product, warehouse = ProductFactory(), WarehouseFactory()
    payload = {"product_id": str(product.id), "warehouse_id": str(warehouse.id), "quantity": "5"}

    first = client.post(f"{BASE}/receipts/", payload, format="json", HTTP_IDEMPOTENCY_KEY="rcpt-1")
    second = client.post(f"{BASE}/receipts/", payload, format="json", HTTP_IDEMPOTENCY_KEY="rcpt-1")
    assert first.status_code == second.status_code == 201
    assert first.json()["id"] == second.json()["id"]
    assert StockBalance.objects.get(product=product).on_hand == Decimal("5.00")

    changed = client.post(
        f"{BASE}/receipts/", {**payload, "quantity": "6"}, format="json", HTTP_IDEMPOTENCY_KEY="rcpt-1"
    )
    assert changed.status_code == 409


@pytest.mark.django_db
def test_summary_and_value(client):
    product, warehouse = stocked("10", unit_cost="2.00")
    client.post(
        f"{BASE}/issues/",
        {"product_id": str(product.id), "warehouse_id": str(warehouse.id), "quantity": "4", "unit_cost": "2.00"},
        format="json",
    )

    value = client.get(f"{BASE}/value/", {"warehouse_id": str(warehouse.id)})
    assert value.status_code == 200
    assert value.json()["total_value"] == "12.00"

    summary = client.get(f"{BASE}/summary/", {"warehouse_id": str(warehouse.id)})
    assert summary.status_code == 200
    body = summary.json()
    assert body["transaction_count"] == 2
    assert body["by_type"]["RECEIPT"]["count"] == 1
    assert body["by_type"]["ISSUE"]["count"] == 1
    assert body["by_type"]["TRANSFER_IN"]["count"] == 0
    assert body["by_warehouse"][0]["warehouse_code"] == warehouse.code
    assert len(body["recent_transactions"]) == 7
    assert body["recent_transactions"][0]["count"] == 2


@pytest.mark.django_db
def test_movement_report_endpoint(client):
    product, warehouse = stocked("30")
    client.post(
        f"{BASE}/issues/",
        {"product_id": str(product.id), "warehouse_id": str(warehouse.id), "quantity": "12"},
        format="json",
    )
    now = timezone.now()
    window = {"start_date": (now - timedelta(days=1)).isoformat(), "end_date": (now + timedelta(minutes=5)).isoformat()}

    resp = client.get(f"{BASE}/movement-report/", {**window, "product_id": str(product.id)})
    assert resp.status_code == 200
    [line] = resp.json()
    assert line["warehouse_code"] == warehouse.code
    assert (line["opening"], line["inbound"], line["outbound"], line["closing"]) == ("0.00", "30.00", "12.00", "18.00")

    reversed_window = {"start_date": window["end_date"], "end_date": window["start_date"]}
    assert client.get(f"{BASE}/movement-report/", reversed_window).status_code == 400
    assert client.get(f"{BASE}/movement-report/").status_code == 400


@pytest.mark.django_db
def test_low_stock_endpoint(client):
    product = ProductFactory(reorder_level=Decimal("50.00"))
    _, warehouse = stocked("20", product=product)
    stocked("80", product=ProductFactory(reorder_level=Decimal("50.00")), warehouse=warehouse)

    resp = client.get(f"{BASE}/stock-levels/low/", {"warehouse_id": str(warehouse.id)})
    assert resp.status_code == 200
    assert resp.json() == [
        {
            "product_id": str(product.id),
            "product_sku": product.sku,
            "warehouse_id": str(warehouse.id),
            "warehouse_code": warehouse.code,
            "on_hand": "20.00",
            "available": "20.00",
            "reorder_level": "50.00",
            "severity": "warning",
        }
    ]
