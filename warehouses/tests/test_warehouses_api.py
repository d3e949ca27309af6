import pytest
from rest_framework.test import APIClient
from warehouses.tests.factories import WarehouseFactory


@pytest.mark.django_db
def test_warehouse_list_filters_by_active_flag():
    active = WarehouseFactory(code="WH-A")
    inactive = WarehouseFactory(code="WH-B", is_active=False)

    client = APIClient()
    resp = client.get("/api/v1/warehouses/")
    assert resp.status_code == 200
    codes = [row["code"] for row in resp.data["results"]]
    assert codes == ["WH-A", "WH-B"]

    resp_active = client.get("/api/v1/warehouses/?is_active=false")
    assert [row["id"] for row in resp_active.data["results"]] == [str(inactive.id)]

    resp_detail = client.get(f"/api/v1/warehouses/{active.id}/")
    assert resp_detail.status_code == 200
    assert resp_detail.data["is_active"] is True
