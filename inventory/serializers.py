"""Serializers for the inventory ledger.

Write serializers are the validation boundary: they turn request payloads
into plain values (or a ``TransactionRequest``) before anything reaches the
ledger services. Read serializers render ledger rows.
"""

from common.choices import AdjustmentDirection, AdjustmentReason, ReferenceType, TransactionType
from django.utils import timezone
from rest_framework import serializers

from .models import ZERO, InventoryTransaction, StockBalance, StockReservation, StockTransfer
from .selectors import to_cents
from .services import TransactionRequest

MAX_BATCH_SIZE = 100


def _quantity_field(**kwargs):
    return serializers.DecimalField(max_digits=14, decimal_places=2, **kwargs)


def _unit_cost_field():
    return serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=ZERO)


class QuantityValidationMixin:
    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError("quantity must be positive")
        return value

    def validate_unit_cost(self, value):
        if value is not None and value < 0:
            raise serializers.ValidationError("unit_cost must not be negative")
        return value


class CreateTransactionSerializer(QuantityValidationMixin, serializers.Serializer):
    """Generic ledger entry; direction comes from ``transaction_type``."""

    transaction_type = serializers.ChoiceField(choices=TransactionType.choices)
    product_id = serializers.UUIDField()
    warehouse_id = serializers.UUIDField()
    lot = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    quantity = _quantity_field()
    adjustment_direction = serializers.ChoiceField(
        choices=AdjustmentDirection.choices, required=False, allow_blank=True, default=""
    )
    unit_cost = _unit_cost_field()
    reference_type = serializers.ChoiceField(
        choices=ReferenceType.choices, required=False, allow_blank=True, default=""
    )
    reference_id = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    reference_number = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        is_adjustment = attrs["transaction_type"] == TransactionType.ADJUSTMENT
        if is_adjustment and not attrs.get("adjustment_direction"):
            raise serializers.ValidationError(
                {"adjustment_direction": "adjustment_direction is required for adjustments"}
            )
        if not is_adjustment and attrs.get("adjustment_direction"):
            raise serializers.ValidationError(
                {"adjustment_direction": "adjustment_direction is only allowed for adjustments"}
            )
        if attrs.get("reference_id") and not attrs.get("reference_type"):
            raise serializers.ValidationError({"reference_type": "reference_type is required with reference_id"})
        return attrs

    def to_request(self) -> TransactionRequest:
        return TransactionRequest(**self.validated_data)


class MovementSerializer(QuantityValidationMixin, serializers.Serializer):
    product_id = serializers.UUIDField()
    warehouse_id = serializers.UUIDField()
    lot = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    quantity = _quantity_field()
    unit_cost = _unit_cost_field()
    reference_type = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    reference_id = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    reference_number = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class ReceiptSerializer(MovementSerializer):
    pass


class IssueSerializer(MovementSerializer):
    """An ISSUE citing an active reservation's reference consumes that reservation."""


class AdjustmentSerializer(QuantityValidationMixin, serializers.Serializer):
    product_id = serializers.UUIDField()
    warehouse_id = serializers.UUIDField()
    lot = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    adjustment_direction = serializers.ChoiceField(choices=AdjustmentDirection.choices)
    adjustment_reason = serializers.ChoiceField(choices=AdjustmentReason.choices)
    quantity = _quantity_field()
    unit_cost = _unit_cost_field()
    reason_details = serializers.CharField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class TransferSerializer(QuantityValidationMixin, serializers.Serializer):
    product_id = serializers.UUIDField()
    from_warehouse_id = serializers.UUIDField()
    to_warehouse_id = serializers.UUIDField()
    lot = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    quantity = _quantity_field()
    unit_cost = _unit_cost_field()
    expected_delivery_date = serializers.DateField(required=False, allow_null=True, default=None)
    carrier_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    tracking_number = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if attrs["from_warehouse_id"] == attrs["to_warehouse_id"]:
            raise serializers.ValidationError(
                {"to_warehouse_id": "Source and destination warehouses must differ"}
            )
        return attrs


class ReservationSerializer(QuantityValidationMixin, serializers.Serializer):
    product_id = serializers.UUIDField()
    warehouse_id = serializers.UUIDField()
    lot = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    quantity = _quantity_field()
    reference_type = serializers.CharField(max_length=100)
    reference_id = serializers.CharField(max_length=64)
    reference_number = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    expiry_date = serializers.DateTimeField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_expiry_date(self, value):
        if value <= timezone.now():
            raise serializers.ValidationError("expiry_date must be in the future")
        return value


class ConsumeReservationSerializer(QuantityValidationMixin, serializers.Serializer):
    quantity = _quantity_field(required=False, allow_null=True, default=None)
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_quantity(self, value):
        if value is None:
            return value
        return super().validate_quantity(value)


class BulkTransactionsSerializer(serializers.Serializer):
    """Checks only the batch envelope; items are validated one by one by the runner."""

    transactions = serializers.ListField(child=serializers.DictField(), allow_empty=False)

    def validate_transactions(self, value):
        if len(value) > MAX_BATCH_SIZE:
            raise serializers.ValidationError(f"A batch may contain at most {MAX_BATCH_SIZE} transactions")
        return value


class ValueQuerySerializer(serializers.Serializer):
    product_id = serializers.UUIDField(required=False)
    warehouse_id = serializers.UUIDField(required=False)


class SummaryQuerySerializer(serializers.Serializer):
    warehouse_id = serializers.UUIDField(required=False)
    start_date = serializers.DateTimeField(required=False)
    end_date = serializers.DateTimeField(required=False)

    def validate(self, attrs):
        start, end = attrs.get("start_date"), attrs.get("end_date")
        if start and end and start > end:
            raise serializers.ValidationError({"start_date": "Start date must be before end date"})
        return attrs


class MovementReportQuerySerializer(serializers.Serializer):
    product_id = serializers.UUIDField(required=False)
    warehouse_id = serializers.UUIDField(required=False)
    start_date = serializers.DateTimeField()
    end_date = serializers.DateTimeField()

    def validate(self, attrs):
        if attrs["start_date"] > attrs["end_date"]:
            raise serializers.ValidationError({"start_date": "Start date must be before end date"})
        return attrs


class TransactionSerializer(serializers.ModelSerializer):
    """Read-only ledger entry."""

    product_sku = serializers.CharField(source="product.sku", read_only=True)
    warehouse_code = serializers.CharField(source="warehouse.code", read_only=True)

    class Meta:
        model = InventoryTransaction
        fields = [
            "id",
            "number",
            "transaction_type",
            "adjustment_direction",
            "product",
            "product_sku",
            "warehouse",
            "warehouse_code",
            "lot",
            "quantity",
            "unit_cost",
            "total_cost",
            "reference_type",
            "reference_id",
            "reference_number",
            "reverses",
            "sequence",
            "balance_after",
            "notes",
            "created_by",
            "created_at",
        ]
        read_only_fields = fields


class RecordedTransactionSerializer(TransactionSerializer):
    """Ledger entry as returned from a write, with its integrity warnings."""

    warnings = serializers.SerializerMethodField()
    consumed_reservation = serializers.SerializerMethodField()

    class Meta(TransactionSerializer.Meta):
        fields = TransactionSerializer.Meta.fields + ["warnings", "consumed_reservation"]
        read_only_fields = fields

    def get_warnings(self, obj) -> list:
        return list(getattr(obj, "warnings", []))

    def get_consumed_reservation(self, obj):
        value = getattr(obj, "consumed_reservation_id", None)
        return str(value) if value else None


class StockLevelSerializer(serializers.ModelSerializer):
    """Balance row; ``reserved`` and ``available`` ignore reservations already past expiry."""

    product_sku = serializers.CharField(source="product.sku", read_only=True)
    warehouse_code = serializers.CharField(source="warehouse.code", read_only=True)
    reserved = serializers.SerializerMethodField()
    available = serializers.SerializerMethodField()
    overcommitted = serializers.SerializerMethodField()

    class Meta:
        model = StockBalance
        fields = [
            "id",
            "product",
            "product_sku",
            "warehouse",
            "warehouse_code",
            "lot",
            "on_hand",
            "reserved",
            "available",
            "overcommitted",
            "version",
            "updated_at",
        ]
        read_only_fields = fields

    def _reserved(self, obj):
        effective = getattr(obj, "effective_reserved", None)
        return obj.reserved if effective is None else to_cents(effective)

    def get_reserved(self, obj) -> str:
        return str(self._reserved(obj))

    def get_available(self, obj) -> str:
        return str(to_cents(max(obj.on_hand - self._reserved(obj), ZERO)))

    def get_overcommitted(self, obj) -> bool:
        return self._reserved(obj) > obj.on_hand


class ReservationReadSerializer(serializers.ModelSerializer):
    remaining_quantity = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = StockReservation
        fields = [
            "id",
            "number",
            "product",
            "warehouse",
            "lot",
            "reserved_quantity",
            "fulfilled_quantity",
            "remaining_quantity",
            "reference_type",
            "reference_id",
            "reference_number",
            "expiry_date",
            "status",
            "consumed_by",
            "closed_at",
            "notes",
            "created_by",
            "created_at",
        ]
        read_only_fields = fields


class TransferReadSerializer(serializers.ModelSerializer):
    class Meta:
        model = StockTransfer
        fields = [
            "id",
            "number",
            "product",
            "lot",
            "from_warehouse",
            "to_warehouse",
            "quantity",
            "unit_cost",
            "status",
            "expected_delivery_date",
            "carrier_name",
            "tracking_number",
            "notes",
            "failure_reason",
            "out_transaction",
            "in_transaction",
            "reversal_transaction",
            "shipped_at",
            "completed_at",
            "created_by",
            "created_at",
        ]
        read_only_fields = fields


class MovementLineSerializer(serializers.Serializer):
    product_id = serializers.CharField()
    product_sku = serializers.CharField()
    warehouse_id = serializers.CharField()
    warehouse_code = serializers.CharField()
    lot = serializers.CharField()
    opening = serializers.DecimalField(max_digits=14, decimal_places=2)
    inbound = serializers.DecimalField(max_digits=14, decimal_places=2)
    outbound = serializers.DecimalField(max_digits=14, decimal_places=2)
    adjustment = serializers.DecimalField(max_digits=14, decimal_places=2)
    closing = serializers.DecimalField(max_digits=14, decimal_places=2)
    transactions = serializers.IntegerField()


class LowStockSerializer(serializers.Serializer):
    """Product/warehouse pair at or below its reorder level."""

    product_id = serializers.CharField()
    product_sku = serializers.CharField()
    warehouse_id = serializers.CharField()
    warehouse_code = serializers.CharField()
    on_hand = serializers.DecimalField(max_digits=14, decimal_places=2)
    available = serializers.DecimalField(max_digits=14, decimal_places=2)
    reorder_level = serializers.DecimalField(max_digits=12, decimal_places=2)
    severity = serializers.CharField()


# EOF
