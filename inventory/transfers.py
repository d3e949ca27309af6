"""Transfer coordination between two warehouses.

A transfer moves through PENDING -> IN_TRANSIT -> COMPLETED. Shipping debits
the source with a TRANSFER_OUT entry; completion credits the destination with
a TRANSFER_IN entry. If the destination rejects the receipt, the transfer is
FAILED and a reversal TRANSFER_IN re-credits the source, so quantity is never
lost from the ledger.
"""

import logging
from decimal import Decimal

from catalog.models import Product
from common.choices import ReferenceType, TransactionType, TransferStatus
from django.db import DatabaseError, transaction
from django.utils import timezone

from .errors import (
    InvalidStateError,
    LedgerError,
    NotFoundError,
    TransferReversalError,
    ValidationError,
    WarehouseInactiveError,
)
from .locking import StockKey, lock_balance, lock_balances
from .models import ZERO, StockTransfer
from .services import TransactionRequest, append_locked, check_warehouse, generate_number

logger = logging.getLogger("trackr.transfers")


def create_transfer(
    *,
    product_id,
    from_warehouse_id,
    to_warehouse_id,
    quantity: Decimal,
    lot: str = "",
    unit_cost: Decimal = ZERO,
    expected_delivery_date=None,
    carrier_name: str = "",
    tracking_number: str = "",
    notes: str = "",
    created_by: str = "",
) -> StockTransfer:
    quantity = Decimal(quantity)
    if quantity <= 0:
        raise ValidationError("quantity must be positive")
    if str(from_warehouse_id) == str(to_warehouse_id):
        raise ValidationError("Source and destination warehouses must differ")
    if unit_cost is not None and unit_cost < 0:
        raise ValidationError("unit_cost must not be negative")
    if not Product.objects.filter(id=product_id).exists():
        raise NotFoundError(f"Product {product_id} not found")
    check_warehouse(from_warehouse_id)
    check_warehouse(to_warehouse_id, allow_inactive=True)

    transfer = StockTransfer.objects.create(
        number=generate_number("TRF"),
        product_id=product_id,
        lot=lot or "",
        from_warehouse_id=from_warehouse_id,
        to_warehouse_id=to_warehouse_id,
        quantity=quantity,
        unit_cost=unit_cost or ZERO,
        expected_delivery_date=expected_delivery_date,
        carrier_name=carrier_name or "",
        tracking_number=tracking_number or "",
        notes=notes or "",
        created_by=created_by or "",
    )
    logger.info(
        "transfers.created",
        extra={"event": "transfers.created", "transfer": transfer.number, "quantity": str(quantity)},
    )
    return transfer


def _lock_transfer(transfer_id) -> StockTransfer:
    try:
        return StockTransfer.objects.select_for_update().get(id=transfer_id)
    except StockTransfer.DoesNotExist:
        raise NotFoundError(f"Transfer {transfer_id} not found")


def _leg(transfer: StockTransfer, warehouse_id, **extra) -> TransactionRequest:
    return TransactionRequest(
        product_id=transfer.product_id,
        warehouse_id=warehouse_id,
        lot=transfer.lot,
        quantity=transfer.quantity,
        unit_cost=transfer.unit_cost,
        reference_type=ReferenceType.TRANSFER,
        reference_id=str(transfer.id),
        reference_number=transfer.number,
        **extra,
    )


def ship_transfer(transfer_id, *, created_by: str = "") -> StockTransfer:
    """Debit the source warehouse and move the transfer to IN_TRANSIT."""

    with transaction.atomic():
        transfer = _lock_transfer(transfer_id)
        if transfer.status != TransferStatus.PENDING:
            raise InvalidStateError(f"Transfer {transfer.number} is {transfer.status}; only PENDING can ship")
        check_warehouse(transfer.from_warehouse_id)
        balance = lock_balance(StockKey.of(transfer.product_id, transfer.from_warehouse_id, transfer.lot))
        out_txn = append_locked(
            balance,
            _leg(transfer, transfer.from_warehouse_id, transaction_type=TransactionType.TRANSFER_OUT),
            created_by=created_by,
        )
        transfer.out_transaction = out_txn
        transfer.status = TransferStatus.IN_TRANSIT
        transfer.shipped_at = timezone.now()
        transfer.save(update_fields=["out_transaction", "status", "shipped_at", "updated_at"])
    logger.info(
        "transfers.shipped",
        extra={"event": "transfers.shipped", "transfer": transfer.number, "transaction": out_txn.number},
    )
    return transfer


def complete_transfer(transfer_id, *, created_by: str = "") -> StockTransfer:
    """Credit the destination; on rejection fail the transfer and reverse the debit.

    Both SKU-locations are locked in key order. Returns the transfer in
    COMPLETED or FAILED state; raises ``TransferReversalError`` when the
    compensation itself could not be recorded.
    """

    try:
        with transaction.atomic():
            transfer = _lock_transfer(transfer_id)
            if transfer.status != TransferStatus.IN_TRANSIT:
                raise InvalidStateError(
                    f"Transfer {transfer.number} is {transfer.status}; only IN_TRANSIT can complete"
                )
            source = StockKey.of(transfer.product_id, transfer.from_warehouse_id, transfer.lot)
            destination = StockKey.of(transfer.product_id, transfer.to_warehouse_id, transfer.lot)
            check_warehouse(transfer.to_warehouse_id)
            balances = lock_balances([source, destination])
            in_txn = append_locked(
                balances[destination],
                _leg(transfer, transfer.to_warehouse_id, transaction_type=TransactionType.TRANSFER_IN),
                created_by=created_by,
            )
            transfer.in_transaction = in_txn
            transfer.status = TransferStatus.COMPLETED
            transfer.completed_at = timezone.now()
            transfer.save(update_fields=["in_transaction", "status", "completed_at", "updated_at"])
    except WarehouseInactiveError as exc:
        logger.warning(
            "transfers.destination_rejected",
            extra={"event": "transfers.destination_rejected", "transfer_id": str(transfer_id), "error": str(exc)},
        )
        return _fail_and_reverse(transfer_id, reason=str(exc), created_by=created_by)

    logger.info(
        "transfers.completed",
        extra={"event": "transfers.completed", "transfer": transfer.number, "transaction": in_txn.number},
    )
    return transfer


def _fail_and_reverse(transfer_id, *, reason: str, created_by: str = "") -> StockTransfer:
    with transaction.atomic():
        transfer = _lock_transfer(transfer_id)
        # A concurrent completion may already have failed and reversed it.
        if transfer.status != TransferStatus.IN_TRANSIT:
            raise InvalidStateError(
                f"Transfer {transfer.number} is {transfer.status}; only IN_TRANSIT can be failed"
            )
        reversal = _reverse_locked(transfer, reason=reason, created_by=created_by)

    logger.warning(
        "transfers.failed",
        extra={
            "event": "transfers.failed",
            "transfer": transfer.number,
            "reason": reason,
            "reversal": reversal.number,
        },
    )
    return transfer


def _reverse_locked(transfer: StockTransfer, *, reason: str, created_by: str = ""):
    try:
        with transaction.atomic():
            source = StockKey.of(transfer.product_id, transfer.from_warehouse_id, transfer.lot)
            destination = StockKey.of(transfer.product_id, transfer.to_warehouse_id, transfer.lot)
            balances = lock_balances([source, destination])
            reversal = append_locked(
                balances[source],
                _leg(
                    transfer,
                    transfer.from_warehouse_id,
                    transaction_type=TransactionType.TRANSFER_IN,
                    reverses_id=transfer.out_transaction_id,
                    notes=f"Reversal of failed transfer {transfer.number}",
                ),
                created_by=created_by,
            )
            transfer.reversal_transaction = reversal
            transfer.status = TransferStatus.FAILED
            transfer.failure_reason = reason[:255]
            transfer.completed_at = timezone.now()
            transfer.save(
                update_fields=["reversal_transaction", "status", "failure_reason", "completed_at", "updated_at"]
            )
    except (LedgerError, DatabaseError) as exc:
        logger.critical(
            "transfers.reversal_failed",
            extra={
                "event": "transfers.reversal_failed",
                "transfer_id": str(transfer.id),
                "reason": reason,
                "error": str(exc),
            },
        )
        raise TransferReversalError(
            f"Transfer {transfer.number} failed and its source debit could not be reversed: {exc}"
        ) from exc
    return reversal


def cancel_transfer(transfer_id) -> StockTransfer:
    """Cancel a PENDING transfer. Nothing has been posted yet, so the ledger is untouched."""

    with transaction.atomic():
        transfer = _lock_transfer(transfer_id)
        if transfer.status == TransferStatus.IN_TRANSIT:
            raise InvalidStateError(
                f"Transfer {transfer.number} is in transit and must complete or fail; it cannot be cancelled"
            )
        if transfer.status != TransferStatus.PENDING:
            raise InvalidStateError(f"Transfer {transfer.number} is {transfer.status}; only PENDING can be cancelled")
        transfer.status = TransferStatus.CANCELLED
        transfer.save(update_fields=["status", "updated_at"])
    logger.info("transfers.cancelled", extra={"event": "transfers.cancelled", "transfer": transfer.number})
    return transfer


def execute_transfer(*, created_by: str = "", **fields) -> StockTransfer:
    """Create, ship and complete a transfer as consecutive steps."""

    transfer = create_transfer(created_by=created_by, **fields)
    try:
        ship_transfer(transfer.id, created_by=created_by)
    except LedgerError:
        cancel_transfer(transfer.id)
        raise
    return complete_transfer(transfer.id, created_by=created_by)


# EOF
