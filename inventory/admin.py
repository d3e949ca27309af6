"""Admin registrations for the inventory ledger.

Ledger rows are read-only here; stock only moves through the services.
"""

from django.contrib import admin

from .models import IdempotencyKey, InventoryTransaction, StockBalance, StockReservation, StockTransfer


class ReadOnlyAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(StockBalance)
class StockBalanceAdmin(ReadOnlyAdmin):
    list_display = ("id", "product", "warehouse", "lot", "on_hand", "reserved", "version", "updated_at")
    list_filter = ("warehouse",)
    search_fields = ("product__sku", "warehouse__code", "lot")


@admin.register(InventoryTransaction)
class InventoryTransactionAdmin(ReadOnlyAdmin):
    list_display = (
        "number",
        "transaction_type",
        "product",
        "warehouse",
        "lot",
        "quantity",
        "balance_after",
        "reference_number",
        "created_at",
    )
    list_filter = ("transaction_type", "warehouse")
    search_fields = ("number", "product__sku", "reference_id", "reference_number")


@admin.register(StockReservation)
class StockReservationAdmin(ReadOnlyAdmin):
    list_display = ("number", "product", "warehouse", "reserved_quantity", "status", "reference_id", "expiry_date")
    list_filter = ("status",)
    search_fields = ("number", "product__sku", "reference_id")


@admin.register(StockTransfer)
class StockTransferAdmin(ReadOnlyAdmin):
    list_display = ("number", "product", "from_warehouse", "to_warehouse", "quantity", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("number", "product__sku", "tracking_number")


@admin.register(IdempotencyKey)
class IdempotencyKeyAdmin(admin.ModelAdmin):
    list_display = ("key", "scope", "method", "path", "response_code", "expires_at")
    search_fields = ("key", "path")


# EOF
