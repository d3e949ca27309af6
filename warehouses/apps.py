"""Django app configuration for warehouses."""

from django.apps import AppConfig


class WarehousesConfig(AppConfig):
    """Warehouse master data (sites that hold stock)."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "warehouses"
