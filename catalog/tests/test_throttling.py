import pytest
from catalog.tests.factories import ProductFactory
from django.core.cache import cache
from django.test import override_settings
from rest_framework.test import APIClient
from warehouses.tests.factories import WarehouseFactory

MASTER_DATA_LIMITED = {
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "DEFAULT_AUTHENTICATION_CLASSES": ["rest_framework.authentication.SessionAuthentication"],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "DEFAULT_PAGINATION_CLASS": "rest_framework.pagination.PageNumberPagination",
    "PAGE_SIZE": 20,
    "DEFAULT_FILTER_BACKENDS": ["django_filters.rest_framework.DjangoFilterBackend"],
    "DEFAULT_THROTTLE_RATES": {
        "user": "1000/min",
        "anon": "1000/min",
        "catalog": "2/min",
        "inventory": "1000/min",
        "inventory_write": "1000/min",
    },
}


@pytest.fixture
def fresh_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.mark.django_db
@override_settings(REST_FRAMEWORK=MASTER_DATA_LIMITED)
def test_products_and_warehouses_share_the_master_data_budget(fresh_cache):
    product = ProductFactory()
    warehouse = WarehouseFactory()
    client = APIClient()

    assert client.get(f"/api/v1/catalog/products/{product.id}/").status_code == 200
    assert client.get(f"/api/v1/warehouses/{warehouse.id}/").status_code == 200
    blocked = client.get("/api/v1/catalog/products/")
    assert blocked.status_code == 429
    assert "Retry-After" in blocked


@pytest.mark.django_db
@override_settings(REST_FRAMEWORK=MASTER_DATA_LIMITED)
def test_exhausted_master_data_budget_leaves_ledger_reads_open(fresh_cache):
    client = APIClient()
    for _ in range(2):
        client.get("/api/v1/warehouses/")
    assert client.get("/api/v1/warehouses/").status_code == 429
    assert client.get("/api/v1/inventory/stock-levels/").status_code == 200
