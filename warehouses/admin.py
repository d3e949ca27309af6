"""Admin registrations for warehouses."""

from django.contrib import admin

from .models import Warehouse


@admin.register(Warehouse)
class WarehouseAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "warehouse_type", "is_active", "updated_at")
    list_filter = ("warehouse_type", "is_active")
    search_fields = ("code", "name")
