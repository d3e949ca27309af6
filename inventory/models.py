"""Inventory ledger models (multi-warehouse, lot-aware).

The transaction log is the source of truth; ``StockBalance`` is its
materialised projection and is only written by the ledger services while the
row is locked.
"""

import uuid
from decimal import Decimal

from common.choices import AdjustmentDirection, ReservationStatus, TransactionType, TransferStatus
from django.db import models

from .projection import ZERO, signed_delta


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class StockBalance(TimeStampedModel):
    """Current quantities for one SKU-location (product, warehouse, lot)."""

    product = models.ForeignKey("catalog.Product", on_delete=models.PROTECT, related_name="balances")
    warehouse = models.ForeignKey("warehouses.Warehouse", on_delete=models.PROTECT, related_name="balances")
    lot = models.CharField(max_length=100, blank=True, default="")
    on_hand = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    reserved = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    version = models.PositiveBigIntegerField(default=0)

    class Meta:
        ordering = ["product_id", "warehouse_id", "lot"]
        constraints = [
            models.UniqueConstraint(fields=["product", "warehouse", "lot"], name="unique_balance_per_sku_location"),
            models.CheckConstraint(name="balance_on_hand_non_negative", condition=models.Q(on_hand__gte=0)),
            models.CheckConstraint(name="balance_reserved_non_negative", condition=models.Q(reserved__gte=0)),
        ]
        indexes = [
            models.Index(fields=["warehouse", "product"], name="bal_wh_product_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"StockBalance<{self.product_id}@{self.warehouse_id}/{self.lot or '-'}> h={self.on_hand} r={self.reserved}"

    @property
    def available(self) -> Decimal:
        return max(self.on_hand - self.reserved, ZERO)

    @property
    def overcommitted(self) -> Decimal:
        """Reserved quantity no longer backed by on-hand stock."""
        return max(self.reserved - self.on_hand, ZERO)


class InventoryTransaction(models.Model):
    """Immutable ledger entry. Quantity is always positive."""

    TYPE_CHOICES = TransactionType.choices
    DIRECTION_CHOICES = AdjustmentDirection.choices

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    number = models.CharField(max_length=50, unique=True)
    balance = models.ForeignKey(StockBalance, on_delete=models.PROTECT, related_name="transactions")
    sequence = models.PositiveBigIntegerField()
    product = models.ForeignKey("catalog.Product", on_delete=models.PROTECT, related_name="transactions")
    warehouse = models.ForeignKey("warehouses.Warehouse", on_delete=models.PROTECT, related_name="transactions")
    lot = models.CharField(max_length=100, blank=True, default="")
    transaction_type = models.CharField(max_length=16, choices=TYPE_CHOICES)
    adjustment_direction = models.CharField(max_length=16, choices=DIRECTION_CHOICES, blank=True, default="")
    quantity = models.DecimalField(max_digits=14, decimal_places=2)
    unit_cost = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    total_cost = models.DecimalField(max_digits=16, decimal_places=2, default=ZERO)
    reference_type = models.CharField(max_length=100, blank=True, default="")
    reference_id = models.CharField(max_length=64, blank=True, default="")
    reference_number = models.CharField(max_length=100, blank=True, default="")
    reverses = models.OneToOneField(
        "self", null=True, blank=True, on_delete=models.PROTECT, related_name="reversed_by"
    )
    notes = models.TextField(blank=True, default="")
    created_by = models.CharField(max_length=150, blank=True, default="")
    balance_after = models.DecimalField(max_digits=14, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at", "-sequence"]
        constraints = [
            models.UniqueConstraint(fields=["balance", "sequence"], name="unique_transaction_sequence_per_balance"),
            models.CheckConstraint(name="transaction_quantity_positive", condition=models.Q(quantity__gt=0)),
            models.CheckConstraint(name="transaction_unit_cost_non_negative", condition=models.Q(unit_cost__gte=0)),
            models.CheckConstraint(name="transaction_balance_after_non_negative", condition=models.Q(balance_after__gte=0)),
        ]
        indexes = [
            models.Index(fields=["product"], name="txn_product_idx"),
            models.Index(fields=["warehouse"], name="txn_warehouse_idx"),
            models.Index(fields=["transaction_type"], name="txn_type_idx"),
            models.Index(fields=["reference_type", "reference_id"], name="txn_reference_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.number} {self.transaction_type} {self.quantity}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Inventory transactions are append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Inventory transactions are append-only")

    @property
    def signed_quantity(self) -> Decimal:
        return signed_delta(self.transaction_type, self.quantity, self.adjustment_direction)


class StockReservation(TimeStampedModel):
    STATUS_ACTIVE = ReservationStatus.ACTIVE
    STATUS_RELEASED = ReservationStatus.RELEASED
    STATUS_CONSUMED = ReservationStatus.CONSUMED
    STATUS_EXPIRED = ReservationStatus.EXPIRED
    STATUS_CHOICES = ReservationStatus.choices

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    number = models.CharField(max_length=50, unique=True)
    balance = models.ForeignKey(StockBalance, on_delete=models.PROTECT, related_name="reservations")
    product = models.ForeignKey("catalog.Product", on_delete=models.PROTECT, related_name="reservations")
    warehouse = models.ForeignKey("warehouses.Warehouse", on_delete=models.PROTECT, related_name="reservations")
    lot = models.CharField(max_length=100, blank=True, default="")
    reserved_quantity = models.DecimalField(max_digits=14, decimal_places=2)
    fulfilled_quantity = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    reference_type = models.CharField(max_length=100)
    reference_id = models.CharField(max_length=64)
    reference_number = models.CharField(max_length=100, blank=True, default="")
    expiry_date = models.DateTimeField()
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    consumed_by = models.OneToOneField(
        InventoryTransaction, null=True, blank=True, on_delete=models.PROTECT, related_name="consumed_reservation"
    )
    closed_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")
    created_by = models.CharField(max_length=150, blank=True, default="")

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(name="reservation_positive_qty", condition=models.Q(reserved_quantity__gt=0)),
            models.CheckConstraint(
                name="reservation_fulfilled_le_reserved",
                condition=models.Q(fulfilled_quantity__lte=models.F("reserved_quantity")),
            ),
        ]
        indexes = [
            models.Index(fields=["balance", "status"], name="rsv_balance_status_idx"),
            models.Index(fields=["status", "expiry_date"], name="rsv_status_expiry_idx"),
            models.Index(fields=["reference_type", "reference_id"], name="rsv_reference_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Reservation<{self.number}> qty={self.reserved_quantity} status={self.status}"

    @property
    def remaining_quantity(self) -> Decimal:
        return self.reserved_quantity - self.fulfilled_quantity


class StockTransfer(TimeStampedModel):
    STATUS_PENDING = TransferStatus.PENDING
    STATUS_IN_TRANSIT = TransferStatus.IN_TRANSIT
    STATUS_COMPLETED = TransferStatus.COMPLETED
    STATUS_FAILED = TransferStatus.FAILED
    STATUS_CANCELLED = TransferStatus.CANCELLED
    STATUS_CHOICES = TransferStatus.choices

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    number = models.CharField(max_length=50, unique=True)
    product = models.ForeignKey("catalog.Product", on_delete=models.PROTECT, related_name="transfers")
    lot = models.CharField(max_length=100, blank=True, default="")
    from_warehouse = models.ForeignKey(
        "warehouses.Warehouse", on_delete=models.PROTECT, related_name="outgoing_transfers"
    )
    to_warehouse = models.ForeignKey("warehouses.Warehouse", on_delete=models.PROTECT, related_name="incoming_transfers")
    quantity = models.DecimalField(max_digits=14, decimal_places=2)
    unit_cost = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    expected_delivery_date = models.DateField(null=True, blank=True)
    carrier_name = models.CharField(max_length=255, blank=True, default="")
    tracking_number = models.CharField(max_length=255, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    failure_reason = models.CharField(max_length=255, blank=True, default="")
    out_transaction = models.OneToOneField(
        InventoryTransaction, null=True, blank=True, on_delete=models.PROTECT, related_name="transfer_out_of"
    )
    in_transaction = models.OneToOneField(
        InventoryTransaction, null=True, blank=True, on_delete=models.PROTECT, related_name="transfer_in_of"
    )
    reversal_transaction = models.OneToOneField(
        InventoryTransaction, null=True, blank=True, on_delete=models.PROTECT, related_name="transfer_reversal_of"
    )
    shipped_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_by = models.CharField(max_length=150, blank=True, default="")

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(name="transfer_positive_qty", condition=models.Q(quantity__gt=0)),
            models.CheckConstraint(
                name="transfer_distinct_warehouses",
                condition=~models.Q(from_warehouse=models.F("to_warehouse")),
            ),
        ]
        indexes = [
            models.Index(fields=["from_warehouse"], name="trf_from_wh_idx"),
            models.Index(fields=["to_warehouse"], name="trf_to_wh_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Transfer<{self.number}> {self.quantity} {self.from_warehouse_id}->{self.to_warehouse_id} {self.status}"


class IdempotencyKey(TimeStampedModel):
    """Stores idempotent request results so retried ledger writes are applied once."""

    key = models.CharField(max_length=128)
    scope = models.CharField(max_length=128)
    path = models.CharField(max_length=255)
    method = models.CharField(max_length=16)
    request_hash = models.CharField(max_length=64, null=True, blank=True)
    response_code = models.IntegerField(null=True, blank=True)
    response_json = models.JSONField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["key", "scope", "path", "method"], name="uniq_idem_scope_path_method"),
        ]


# EOF
