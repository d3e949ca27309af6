"""
URL configuration for the Trackr inventory service.

All API routes are versioned under ``api/v1/``.
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

from .health import health

admin.site.site_header = "Trackr Admin"
admin.site.index_title = "Inventory"

urlpatterns = [
    path("admin/", admin.site.urls),
    # API schema and Swagger UI
    path("api/schema/", SpectacularAPIView.as_view(), name="api-schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="api-schema"), name="api-docs"),
    # Healthcheck
    path("health/", health, name="health"),
    # Versioned v1 routes only
    path("api/v1/catalog/", include("catalog.urls")),
    path("api/v1/warehouses/", include("warehouses.urls")),
    path("api/v1/inventory/", include("inventory.urls")),
]
