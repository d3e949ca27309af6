from django.urls import path

from .views import (
    AdjustmentView,
    BulkTransactionsView,
    InventoryHealthView,
    InventoryValueView,
    IssueView,
    LowStockView,
    MovementReportView,
    OvercommittedStockView,
    ReceiptView,
    ReservationConsumeView,
    ReservationDetailView,
    ReservationListCreateView,
    ReservationReleaseView,
    StockLevelListView,
    TransactionDetailView,
    TransactionListCreateView,
    TransactionSummaryView,
    TransferCancelView,
    TransferCompleteView,
    TransferDetailView,
    TransferListCreateView,
    TransferShipView,
)

urlpatterns = [
    path("health/", InventoryHealthView.as_view(), name="inventory-health"),
    # Ledger
    path("transactions/", TransactionListCreateView.as_view(), name="transaction-list"),
    path("transactions/bulk/", BulkTransactionsView.as_view(), name="transaction-bulk"),
    path("transactions/<uuid:id>/", TransactionDetailView.as_view(), name="transaction-detail"),
    path("receipts/", ReceiptView.as_view(), name="receipt-create"),
    path("issues/", IssueView.as_view(), name="issue-create"),
    path("adjustments/", AdjustmentView.as_view(), name="adjustment-create"),
    # Balances
    path("stock-levels/", StockLevelListView.as_view(), name="stock-level-list"),
    path("stock-levels/overcommitted/", OvercommittedStockView.as_view(), name="stock-level-overcommitted"),
    path("stock-levels/low/", LowStockView.as_view(), name="stock-level-low"),
    # Reservations
    path("reservations/", ReservationListCreateView.as_view(), name="reservation-list"),
    path("reservations/<uuid:id>/", ReservationDetailView.as_view(), name="reservation-detail"),
    path(
        "reservations/<uuid:reservation_id>/consume/",
        ReservationConsumeView.as_view(),
        name="reservation-consume",
    ),
    path(
        "reservations/<uuid:reservation_id>/release/",
        ReservationReleaseView.as_view(),
        name="reservation-release",
    ),
    # Transfers
    path("transfers/", TransferListCreateView.as_view(), name="transfer-list"),
    path("transfers/<uuid:id>/", TransferDetailView.as_view(), name="transfer-detail"),
    path("transfers/<uuid:transfer_id>/ship/", TransferShipView.as_view(), name="transfer-ship"),
    path("transfers/<uuid:transfer_id>/complete/", TransferCompleteView.as_view(), name="transfer-complete"),
    path("transfers/<uuid:transfer_id>/cancel/", TransferCancelView.as_view(), name="transfer-cancel"),
    # Reporting
    path("value/", InventoryValueView.as_view(), name="inventory-value"),
    path("summary/", TransactionSummaryView.as_view(), name="transaction-summary"),
    path("movement-report/", MovementReportView.as_view(), name="movement-report"),
]

# EOF
