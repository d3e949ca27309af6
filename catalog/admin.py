"""Admin registration for catalog models."""

from django.contrib import admin

from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("sku", "name", "unit_of_measure", "reorder_level", "is_active")
    search_fields = ("sku", "name", "barcode")
    list_filter = ("is_active", "unit_of_measure")
