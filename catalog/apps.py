from django.apps import AppConfig


class CatalogConfig(AppConfig):
    """Product master data referenced by every ledger entry."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "catalog"
    verbose_name = "Catalog"
