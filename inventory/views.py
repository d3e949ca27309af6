"""DRF views for the inventory ledger.

Write views validate with the boundary serializers, call the ledger services
and map ``LedgerError`` subclasses to responses. A client-supplied
``Idempotency-Key`` header makes any write safe to retry.
"""

from common.choices import ReservationStatus, TransactionType, TransferStatus
from common.throttling import SettingsScopedRateThrottle
from django_filters import rest_framework as filters
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, inline_serializer
from rest_framework import filters as drf_filters
from rest_framework import generics, status
from rest_framework import serializers as rf_serializers
from rest_framework.permissions import SAFE_METHODS
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle, UserRateThrottle
from rest_framework.views import APIView

from . import reservations, selectors, services, transfers
from .bulk import apply_batch
from .errors import LedgerError
from .idempotency import compute_request_hash, with_idempotency
from .models import InventoryTransaction, StockBalance, StockReservation, StockTransfer
from .serializers import (
    AdjustmentSerializer,
    BulkTransactionsSerializer,
    ConsumeReservationSerializer,
    CreateTransactionSerializer,
    IssueSerializer,
    LowStockSerializer,
    MovementLineSerializer,
    MovementReportQuerySerializer,
    ReceiptSerializer,
    RecordedTransactionSerializer,
    ReservationReadSerializer,
    ReservationSerializer,
    StockLevelSerializer,
    SummaryQuerySerializer,
    TransactionSerializer,
    TransferReadSerializer,
    TransferSerializer,
    ValueQuerySerializer,
)

TAG = "Inventory Endpoints"
THROTTLES = [SettingsScopedRateThrottle, UserRateThrottle, AnonRateThrottle]

IDEMPOTENCY_HEADER = OpenApiParameter(
    name="Idempotency-Key",
    location=OpenApiParameter.HEADER,
    required=False,
    description="When provided, the write is applied once and retries replay the stored response",
    type=str,
)
LEDGER_ERROR = inline_serializer(
    name="LedgerErrorResponse",
    fields={"detail": rf_serializers.CharField(), "code": rf_serializers.CharField()},
)


def error_body(exc: LedgerError) -> dict:
    return {"detail": exc.message, "code": exc.code}


def actor(request) -> str:
    user = getattr(request, "user", None)
    if user is not None and getattr(user, "is_authenticated", False):
        return user.get_username()
    return ""


class LedgerViewMixin:
    """Throttle reads under ``inventory`` and writes under ``inventory_write``."""

    throttle_classes = THROTTLES

    @property
    def throttle_scope(self):
        request = getattr(self, "request", None)
        if request is not None and request.method not in SAFE_METHODS:
            return "inventory_write"
        return "inventory"

    def respond(self, request, handler):
        """Run ``handler`` (returning ``(body, status)``) with error mapping and optional idempotency."""

        def guarded():
            try:
                return handler()
            except LedgerError as exc:
                return error_body(exc), exc.status_code

        key = request.headers.get("Idempotency-Key")
        if key:
            body, code = with_idempotency(
                key=key,
                user=request.user,
                path=request.path,
                method=request.method,
                handler=guarded,
                request_hash=compute_request_hash(request.data),
            )
        else:
            body, code = guarded()
        return Response(body, status=code)


class InventoryHealthView(APIView):
    throttle_classes = []

    @extend_schema(
        tags=[TAG],
        summary="Inventory health",
        description="Simple healthcheck endpoint for the inventory app",
        examples=[OpenApiExample("Health OK", value={"status": "ok", "app": "inventory"})],
    )
    def get(self, request):
        return Response({"status": "ok", "app": "inventory"})


class TransactionFilterSet(filters.FilterSet):
    product_id = filters.UUIDFilter(field_name="product_id")
    warehouse_id = filters.UUIDFilter(field_name="warehouse_id")
    lot = filters.CharFilter(field_name="lot")
    transaction_type = filters.ChoiceFilter(choices=TransactionType.choices)
    reference_type = filters.CharFilter(field_name="reference_type")
    reference_id = filters.CharFilter(field_name="reference_id")
    start_date = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    end_date = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = InventoryTransaction
        fields = []


class TransactionListCreateView(LedgerViewMixin, generics.ListAPIView):
    serializer_class = TransactionSerializer
    filterset_class = TransactionFilterSet
    filter_backends = [filters.DjangoFilterBackend, drf_filters.OrderingFilter, drf_filters.SearchFilter]
    search_fields = ["number", "notes", "reference_number"]
    ordering_fields = ["created_at", "number", "quantity", "total_cost"]
    ordering = ["-created_at"]

    def get_queryset(self):
        return InventoryTransaction.objects.select_related("product", "warehouse")

    @extend_schema(
        tags=[TAG],
        summary="List transactions",
        description=(
            "Ledger entries, newest first. Filters: product_id, warehouse_id, lot, transaction_type, "
            "reference_type, reference_id, start_date, end_date (ISO). Search by number or notes."
        ),
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @extend_schema(
        tags=[TAG],
        summary="Record a transaction",
        description="Append one ledger entry. Direction is given by transaction_type, never by sign.",
        parameters=[IDEMPOTENCY_HEADER],
        request=CreateTransactionSerializer,
        responses={201: RecordedTransactionSerializer, 404: LEDGER_ERROR, 409: LEDGER_ERROR, 422: LEDGER_ERROR},
        examples=[
            OpenApiExample(
                "Receipt",
                value={
                    "transaction_type": "RECEIPT",
                    "product_id": "550e8400-e29b-41d4-a716-446655440001",
                    "warehouse_id": "550e8400-e29b-41d4-a716-446655440002",
                    "quantity": "100.00",
                    "unit_cost": "2.50",
                    "reference_type": "PURCHASE",
                    "reference_id": "PO-2024-001",
                },
                request_only=True,
            )
        ],
    )
    def post(self, request):
        serializer = CreateTransactionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        def handler():
            txn = services.append_transaction(serializer.to_request(), created_by=actor(request))
            return RecordedTransactionSerializer(txn).data, status.HTTP_201_CREATED

        return self.respond(request, handler)


class TransactionDetailView(LedgerViewMixin, generics.RetrieveAPIView):
    serializer_class = TransactionSerializer
    queryset = InventoryTransaction.objects.select_related("product", "warehouse")
    lookup_field = "id"

    @extend_schema(tags=[TAG], summary="Get transaction by id")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class BulkTransactionsView(LedgerViewMixin, APIView):
    @extend_schema(
        tags=[TAG],
        summary="Record transactions in bulk",
        description=(
            "Applies 1..100 transactions in order, each on its own. Always 200 with a per-item "
            "breakdown; rejected items do not roll back earlier ones."
        ),
        parameters=[IDEMPOTENCY_HEADER],
        request=BulkTransactionsSerializer,
        responses={
            200: inline_serializer(
                name="BulkTransactionsResult",
                fields={
                    "created": rf_serializers.IntegerField(),
                    "failed": rf_serializers.IntegerField(),
                    "transaction_ids": rf_serializers.ListField(child=rf_serializers.UUIDField()),
                    "errors": rf_serializers.ListField(child=rf_serializers.DictField()),
                    "results": rf_serializers.ListField(child=rf_serializers.DictField()),
                },
            )
        },
        examples=[
            OpenApiExample(
                "Partial failure",
                value={
                    "created": 2,
                    "failed": 1,
                    "transaction_ids": [
                        "0b7c2a44-5f55-4a0f-9d55-1f0a3c1b2f10",
                        "6c1d7f0e-0d6e-4f53-8a35-2b3c4d5e6f70",
                    ],
                    "errors": [{"index": 1, "error": "quantity must be positive"}],
                    "results": [
                        {"index": 0, "transaction_id": "0b7c2a44-5f55-4a0f-9d55-1f0a3c1b2f10"},
                        {"index": 2, "transaction_id": "6c1d7f0e-0d6e-4f53-8a35-2b3c4d5e6f70"},
                    ],
                },
                response_only=True,
            )
        ],
    )
    def post(self, request):
        serializer = BulkTransactionsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        def handler():
            result = apply_batch(serializer.validated_data["transactions"], created_by=actor(request))
            return result.as_dict(), status.HTTP_200_OK

        return self.respond(request, handler)


class ReceiptView(LedgerViewMixin, APIView):
    @extend_schema(
        tags=[TAG],
        summary="Receive stock",
        parameters=[IDEMPOTENCY_HEADER],
        request=ReceiptSerializer,
        responses={201: RecordedTransactionSerializer, 400: LEDGER_ERROR, 404: LEDGER_ERROR},
    )
    def post(self, request):
        serializer = ReceiptSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        def handler():
            txn = services.record_receipt(created_by=actor(request), **serializer.validated_data)
            return RecordedTransactionSerializer(txn).data, status.HTTP_201_CREATED

        return self.respond(request, handler)


class IssueView(LedgerViewMixin, APIView):
    @extend_schema(
        tags=[TAG],
        summary="Issue stock",
        description=(
            "Issues check on-hand only. If the issue leaves active reservations exceeding on-hand, "
            "the response carries a `reservation_overcommitted` warning."
        ),
        parameters=[IDEMPOTENCY_HEADER],
        request=IssueSerializer,
        responses={201: RecordedTransactionSerializer, 404: LEDGER_ERROR, 422: LEDGER_ERROR},
    )
    def post(self, request):
        serializer = IssueSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        def handler():
            txn = services.record_issue(created_by=actor(request), **serializer.validated_data)
            return RecordedTransactionSerializer(txn).data, status.HTTP_201_CREATED

        return self.respond(request, handler)


class AdjustmentView(LedgerViewMixin, APIView):
    @extend_schema(
        tags=[TAG],
        summary="Adjust stock",
        parameters=[IDEMPOTENCY_HEADER],
        request=AdjustmentSerializer,
        responses={201: RecordedTransactionSerializer, 404: LEDGER_ERROR, 422: LEDGER_ERROR},
    )
    def post(self, request):
        serializer = AdjustmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        direction = data.pop("adjustment_direction")
        reason = data.pop("adjustment_reason")
        details = data.pop("reason_details")
        notes = data.pop("notes", "")
        data["notes"] = f"{details}\n{notes}".strip()

        def handler():
            txn = services.record_adjustment(direction=direction, reason=reason, created_by=actor(request), **data)
            return RecordedTransactionSerializer(txn).data, status.HTTP_201_CREATED

        return self.respond(request, handler)


class StockLevelFilterSet(filters.FilterSet):
    product_id = filters.UUIDFilter(field_name="product_id")
    warehouse_id = filters.UUIDFilter(field_name="warehouse_id")
    lot = filters.CharFilter(field_name="lot")

    class Meta:
        model = StockBalance
        fields = []


class StockLevelListView(LedgerViewMixin, generics.ListAPIView):
    serializer_class = StockLevelSerializer
    filterset_class = StockLevelFilterSet
    filter_backends = [filters.DjangoFilterBackend]

    def get_queryset(self):
        return selectors.stock_levels()

    @extend_schema(
        tags=[TAG],
        summary="List stock levels",
        description="On-hand, reserved and available per SKU-location. Filters: product_id, warehouse_id, lot.",
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class OvercommittedStockView(LedgerViewMixin, APIView):
    @extend_schema(
        tags=[TAG],
        summary="Over-reserved stock",
        description="SKU-locations whose active reservations exceed on-hand stock after direct issues.",
        responses={200: StockLevelSerializer(many=True)},
    )
    def get(self, request):
        rows = selectors.find_overcommitted_balances()
        return Response(StockLevelSerializer(rows, many=True).data)


class LowStockView(LedgerViewMixin, APIView):
    @extend_schema(
        tags=[TAG],
        summary="Low stock",
        description=(
            "Product/warehouse pairs whose available stock across lots is at or below the product reorder level. "
            "Filters: product_id, warehouse_id."
        ),
        parameters=[
            OpenApiParameter("product_id", OpenApiTypes.UUID, location="query"),
            OpenApiParameter("warehouse_id", OpenApiTypes.UUID, location="query"),
        ],
        responses={200: LowStockSerializer(many=True)},
    )
    def get(self, request):
        query = ValueQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        rows = selectors.low_stock(**query.validated_data)
        return Response(LowStockSerializer(rows, many=True).data)


class ReservationFilterSet(filters.FilterSet):
    product_id = filters.UUIDFilter(field_name="product_id")
    warehouse_id = filters.UUIDFilter(field_name="warehouse_id")
    status = filters.ChoiceFilter(choices=ReservationStatus.choices)
    reference_type = filters.CharFilter(field_name="reference_type")
    reference_id = filters.CharFilter(field_name="reference_id")
    expires_before = filters.IsoDateTimeFilter(field_name="expiry_date", lookup_expr="lte")

    class Meta:
        model = StockReservation
        fields = []


class ReservationListCreateView(LedgerViewMixin, generics.ListAPIView):
    serializer_class = ReservationReadSerializer
    filterset_class = ReservationFilterSet
    filter_backends = [filters.DjangoFilterBackend]
    queryset = StockReservation.objects.all().order_by("-created_at")

    @extend_schema(
        tags=[TAG],
        summary="List reservations",
        description="Filters: product_id, warehouse_id, status, reference_type, reference_id, expires_before.",
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @extend_schema(
        tags=[TAG],
        summary="Reserve stock",
        description="Claims available stock until expiry_date. 422 when the claim exceeds available.",
        parameters=[IDEMPOTENCY_HEADER],
        request=ReservationSerializer,
        responses={201: ReservationReadSerializer, 404: LEDGER_ERROR, 422: LEDGER_ERROR},
    )
    def post(self, request):
        serializer = ReservationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        def handler():
            reservation = reservations.reserve(created_by=actor(request), **serializer.validated_data)
            return ReservationReadSerializer(reservation).data, status.HTTP_201_CREATED

        return self.respond(request, handler)


class ReservationDetailView(LedgerViewMixin, generics.RetrieveAPIView):
    serializer_class = ReservationReadSerializer
    queryset = StockReservation.objects.all()
    lookup_field = "id"

    @extend_schema(tags=[TAG], summary="Get reservation by id")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class ReservationConsumeView(LedgerViewMixin, APIView):
    @extend_schema(
        tags=[TAG],
        summary="Consume reservation",
        description="Issues the reserved stock (or a smaller quantity) and marks the reservation CONSUMED.",
        parameters=[IDEMPOTENCY_HEADER],
        request=ConsumeReservationSerializer,
        responses={200: ReservationReadSerializer, 404: LEDGER_ERROR, 409: LEDGER_ERROR, 422: LEDGER_ERROR},
    )
    def post(self, request, reservation_id):
        serializer = ConsumeReservationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        def handler():
            reservation = reservations.consume(reservation_id, created_by=actor(request), **serializer.validated_data)
            return ReservationReadSerializer(reservation).data, status.HTTP_200_OK

        return self.respond(request, handler)


class ReservationReleaseView(LedgerViewMixin, APIView):
    @extend_schema(
        tags=[TAG],
        summary="Release reservation",
        parameters=[IDEMPOTENCY_HEADER],
        request=None,
        responses={200: ReservationReadSerializer, 404: LEDGER_ERROR, 409: LEDGER_ERROR},
    )
    def post(self, request, reservation_id):
        def handler():
            return ReservationReadSerializer(reservations.release(reservation_id)).data, status.HTTP_200_OK

        return self.respond(request, handler)


class TransferFilterSet(filters.FilterSet):
    product_id = filters.UUIDFilter(field_name="product_id")
    from_warehouse_id = filters.UUIDFilter(field_name="from_warehouse_id")
    to_warehouse_id = filters.UUIDFilter(field_name="to_warehouse_id")
    status = filters.ChoiceFilter(choices=TransferStatus.choices)

    class Meta:
        model = StockTransfer
        fields = []


class TransferListCreateView(LedgerViewMixin, generics.ListAPIView):
    serializer_class = TransferReadSerializer
    filterset_class = TransferFilterSet
    filter_backends = [filters.DjangoFilterBackend]
    queryset = StockTransfer.objects.all().order_by("-created_at")

    @extend_schema(
        tags=[TAG],
        summary="List transfers",
        description="Filters: product_id, from_warehouse_id, to_warehouse_id, status.",
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @extend_schema(
        tags=[TAG],
        summary="Create transfer",
        description=(
            "Creates a PENDING transfer. With `?execute=true` it is also shipped and completed; a rejected "
            "destination returns the transfer FAILED with its source debit reversed."
        ),
        parameters=[
            IDEMPOTENCY_HEADER,
            OpenApiParameter("execute", OpenApiTypes.BOOL, location="query", description="Ship and complete now"),
        ],
        request=TransferSerializer,
        responses={201: TransferReadSerializer, 404: LEDGER_ERROR, 422: LEDGER_ERROR, 500: LEDGER_ERROR},
    )
    def post(self, request):
        serializer = TransferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        execute = str(request.query_params.get("execute", "")).lower() in ("1", "true", "yes")

        def handler():
            run = transfers.execute_transfer if execute else transfers.create_transfer
            transfer = run(created_by=actor(request), **serializer.validated_data)
            return TransferReadSerializer(transfer).data, status.HTTP_201_CREATED

        return self.respond(request, handler)


class TransferDetailView(LedgerViewMixin, generics.RetrieveAPIView):
    serializer_class = TransferReadSerializer
    queryset = StockTransfer.objects.all()
    lookup_field = "id"

    @extend_schema(tags=[TAG], summary="Get transfer by id")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class TransferStepView(LedgerViewMixin, APIView):
    def run(self, request, transfer_id):
        raise NotImplementedError

    def post(self, request, transfer_id):
        def handler():
            return TransferReadSerializer(self.run(request, transfer_id)).data, status.HTTP_200_OK

        return self.respond(request, handler)


class TransferShipView(TransferStepView):
    @extend_schema(
        tags=[TAG],
        summary="Ship transfer",
        description="Debits the source (TRANSFER_OUT) and moves a PENDING transfer to IN_TRANSIT.",
        parameters=[IDEMPOTENCY_HEADER],
        request=None,
        responses={200: TransferReadSerializer, 409: LEDGER_ERROR, 422: LEDGER_ERROR},
    )
    def post(self, request, transfer_id):
        return super().post(request, transfer_id)

    def run(self, request, transfer_id):
        return transfers.ship_transfer(transfer_id, created_by=actor(request))


class TransferCompleteView(TransferStepView):
    @extend_schema(
        tags=[TAG],
        summary="Complete transfer",
        description=(
            "Credits the destination (TRANSFER_IN). If the destination rejects the stock the transfer "
            "becomes FAILED and the source is re-credited by a reversal entry."
        ),
        parameters=[IDEMPOTENCY_HEADER],
        request=None,
        responses={200: TransferReadSerializer, 409: LEDGER_ERROR, 500: LEDGER_ERROR},
    )
    def post(self, request, transfer_id):
        return super().post(request, transfer_id)

    def run(self, request, transfer_id):
        return transfers.complete_transfer(transfer_id, created_by=actor(request))


class TransferCancelView(TransferStepView):
    @extend_schema(
        tags=[TAG],
        summary="Cancel transfer",
        description="Cancels a PENDING transfer. In-transit transfers cannot be cancelled (409).",
        parameters=[IDEMPOTENCY_HEADER],
        request=None,
        responses={200: TransferReadSerializer, 409: LEDGER_ERROR},
    )
    def post(self, request, transfer_id):
        return super().post(request, transfer_id)

    def run(self, request, transfer_id):
        return transfers.cancel_transfer(transfer_id)


class InventoryValueView(LedgerViewMixin, APIView):
    @extend_schema(
        tags=[TAG],
        summary="Inventory value",
        description="Net cost of stock on the books. Filters: product_id, warehouse_id.",
        parameters=[
            OpenApiParameter("product_id", OpenApiTypes.UUID, location="query"),
            OpenApiParameter("warehouse_id", OpenApiTypes.UUID, location="query"),
        ],
        responses={
            200: inline_serializer(
                name="InventoryValue",
                fields={
                    "total_value": rf_serializers.DecimalField(max_digits=16, decimal_places=2),
                    "in_transit_quantity": rf_serializers.DecimalField(max_digits=14, decimal_places=2),
                },
            )
        },
    )
    def get(self, request):
        query = ValueQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        return Response(
            {
                "total_value": str(selectors.inventory_value(**params)),
                "in_transit_quantity": str(selectors.in_transit_quantity(**params)),
            }
        )


class TransactionSummaryView(LedgerViewMixin, APIView):
    @extend_schema(
        tags=[TAG],
        summary="Transaction summary",
        description="Counts and values by type and warehouse. Filters: warehouse_id, start_date, end_date.",
        parameters=[
            OpenApiParameter("warehouse_id", OpenApiTypes.UUID, location="query"),
            OpenApiParameter("start_date", OpenApiTypes.DATETIME, location="query"),
            OpenApiParameter("end_date", OpenApiTypes.DATETIME, location="query"),
        ],
    )
    def get(self, request):
        query = SummaryQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        summary = selectors.transaction_summary(
            warehouse_id=params.get("warehouse_id"), start=params.get("start_date"), end=params.get("end_date")
        )
        return Response(summary)


class MovementReportView(LedgerViewMixin, APIView):
    @extend_schema(
        tags=[TAG],
        summary="Stock movement report",
        description=(
            "Opening, inbound, outbound, adjustment and closing quantities per SKU-location between "
            "start_date and end_date. Filters: product_id, warehouse_id."
        ),
        parameters=[
            OpenApiParameter("start_date", OpenApiTypes.DATETIME, location="query", required=True),
            OpenApiParameter("end_date", OpenApiTypes.DATETIME, location="query", required=True),
            OpenApiParameter("product_id", OpenApiTypes.UUID, location="query"),
            OpenApiParameter("warehouse_id", OpenApiTypes.UUID, location="query"),
        ],
        responses={200: MovementLineSerializer(many=True)},
    )
    def get(self, request):
        query = MovementReportQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        rows = selectors.movement_report(
            start=params["start_date"],
            end=params["end_date"],
            product_id=params.get("product_id"),
            warehouse_id=params.get("warehouse_id"),
        )
        return Response(MovementLineSerializer(rows, many=True).data)


# EOF
