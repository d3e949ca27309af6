"""Inventory ledger services: append-only stock movements.

``append_transaction`` is the only way on-hand stock changes. It validates
the request, locks the SKU-location balance, inserts the immutable ledger row
and projects it onto the balance in the same database transaction.
"""

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
from uuid import UUID

from common.choices import AdjustmentDirection, ReservationStatus, TransactionType
from django.db import transaction
from django.utils import timezone
from warehouses.models import Warehouse

from .errors import NotFoundError, ValidationError, WarehouseInactiveError
from .locking import StockKey, lock_balance
from .models import ZERO, InventoryTransaction, StockBalance, StockReservation
from .projection import apply_transaction, signed_delta
from .signals import emit_balance_changed, emit_transaction_events

logger = logging.getLogger("trackr.inventory")

OVERCOMMITTED_WARNING = "reservation_overcommitted"


@dataclass(frozen=True)
class TransactionRequest:
    """A validated request to append one ledger entry."""

    transaction_type: str
    product_id: UUID
    warehouse_id: UUID
    quantity: Decimal
    lot: str = ""
    adjustment_direction: str = ""
    unit_cost: Decimal = ZERO
    reference_type: str = ""
    reference_id: str = ""
    reference_number: str = ""
    notes: str = ""
    reverses_id: Optional[UUID] = None

    @property
    def key(self) -> StockKey:
        return StockKey.of(self.product_id, self.warehouse_id, self.lot)


def generate_number(prefix: str) -> str:
    return f"{prefix}-{timezone.now().year}-{uuid.uuid4().hex[:10].upper()}"


def check_request(request: TransactionRequest) -> Decimal:
    """Reject malformed requests before any row is touched; returns the signed delta."""

    delta = signed_delta(request.transaction_type, request.quantity, request.adjustment_direction)
    if request.transaction_type != TransactionType.ADJUSTMENT and request.adjustment_direction:
        raise ValidationError("adjustment_direction is only allowed for adjustments")
    if request.unit_cost is not None and request.unit_cost < 0:
        raise ValidationError("unit_cost must not be negative")
    return delta


def check_warehouse(warehouse_id, *, allow_inactive: bool = False) -> Warehouse:
    try:
        warehouse = Warehouse.objects.get(id=warehouse_id)
    except Warehouse.DoesNotExist:
        raise NotFoundError(f"Warehouse {warehouse_id} not found")
    if not warehouse.is_active and not allow_inactive:
        raise WarehouseInactiveError(f"Warehouse {warehouse.code} is inactive")
    return warehouse


def expire_due_on_balance(balance: StockBalance, now=None) -> int:
    """Expire ACTIVE reservations past their expiry on a locked balance and free their claims."""

    now = now or timezone.now()
    due = list(
        StockReservation.objects.select_for_update().filter(
            balance=balance, status=ReservationStatus.ACTIVE, expiry_date__lte=now
        )
    )
    if not due:
        return 0
    freed = sum((r.reserved_quantity for r in due), ZERO)
    StockReservation.objects.filter(id__in=[r.id for r in due]).update(
        status=ReservationStatus.EXPIRED, closed_at=now, updated_at=now
    )
    balance.reserved = max(balance.reserved - freed, ZERO)
    balance.save(update_fields=["reserved", "updated_at"])
    logger.info(
        "inventory.reservations_expired",
        extra={
            "event": "inventory.reservations_expired",
            "balance_id": balance.id,
            "count": len(due),
            "freed": str(freed),
        },
    )
    emit_balance_changed(balance)
    return len(due)


def _consume_matching_reservation(balance: StockBalance, txn: InventoryTransaction) -> Optional[StockReservation]:
    if not (txn.reference_type and txn.reference_id):
        return None
    reservation = (
        StockReservation.objects.select_for_update()
        .filter(
            balance=balance,
            status=ReservationStatus.ACTIVE,
            reference_type=txn.reference_type,
            reference_id=txn.reference_id,
            reserved_quantity__gte=txn.quantity,
        )
        .order_by("created_at")
        .first()
    )
    if reservation is None:
        return None
    reservation.status = ReservationStatus.CONSUMED
    reservation.fulfilled_quantity = txn.quantity
    reservation.consumed_by = txn
    reservation.closed_at = timezone.now()
    reservation.save(update_fields=["status", "fulfilled_quantity", "consumed_by", "closed_at", "updated_at"])
    balance.reserved = max(balance.reserved - reservation.reserved_quantity, ZERO)
    logger.info(
        "inventory.reservation_consumed",
        extra={
            "event": "inventory.reservation_consumed",
            "reservation": reservation.number,
            "transaction": txn.number,
        },
    )
    return reservation


def append_locked(
    balance: StockBalance,
    request: TransactionRequest,
    *,
    created_by: str = "",
    consume_reservations: bool = True,
) -> InventoryTransaction:
    """Append ``request`` to an already locked ``balance``.

    Callers must hold the balance row lock inside ``transaction.atomic()``;
    reservation and transfer services use this to combine the ledger write
    with their own state change.
    """

    delta = check_request(request)
    expire_due_on_balance(balance)
    new_on_hand = apply_transaction(
        balance.on_hand, request.transaction_type, request.quantity, request.adjustment_direction
    )
    unit_cost = request.unit_cost or ZERO

    balance.version += 1
    balance.on_hand = new_on_hand
    txn = InventoryTransaction.objects.create(
        number=generate_number("TXN"),
        balance=balance,
        sequence=balance.version,
        product_id=balance.product_id,
        warehouse_id=balance.warehouse_id,
        lot=balance.lot,
        transaction_type=request.transaction_type,
        adjustment_direction=request.adjustment_direction or "",
        quantity=request.quantity,
        unit_cost=unit_cost,
        total_cost=(request.quantity * unit_cost).quantize(Decimal("0.01")),
        reference_type=request.reference_type or "",
        reference_id=str(request.reference_id or ""),
        reference_number=request.reference_number or "",
        reverses_id=request.reverses_id,
        notes=request.notes or "",
        created_by=created_by or "",
        balance_after=new_on_hand,
    )

    txn.consumed_reservation_id = None
    if consume_reservations and request.transaction_type == TransactionType.ISSUE:
        reservation = _consume_matching_reservation(balance, txn)
        txn.consumed_reservation_id = reservation.id if reservation else None

    balance.save(update_fields=["on_hand", "reserved", "version", "updated_at"])

    txn.warnings = []
    if balance.reserved > balance.on_hand:
        txn.warnings.append(OVERCOMMITTED_WARNING)
        logger.warning(
            "inventory.reservation_overcommitted",
            extra={
                "event": "inventory.reservation_overcommitted",
                "balance_id": balance.id,
                "on_hand": str(balance.on_hand),
                "reserved": str(balance.reserved),
                "transaction": txn.number,
            },
        )

    logger.info(
        "inventory.transaction_recorded",
        extra={
            "event": "inventory.transaction_recorded",
            "transaction": txn.number,
            "type": txn.transaction_type,
            "quantity": str(txn.quantity),
            "balance_id": balance.id,
            "sequence": txn.sequence,
            "on_hand": str(balance.on_hand),
        },
    )
    emit_transaction_events(txn, balance, delta)
    return txn


def append_transaction(
    request: TransactionRequest,
    *,
    created_by: str = "",
    allow_inactive: bool = False,
) -> InventoryTransaction:
    """Validate, lock the SKU-location and append one ledger entry.

    Raises ``ValidationError`` (including ``WarehouseInactiveError``),
    ``NotFoundError``, ``InsufficientStockError`` or ``ConflictError``.
    The returned transaction carries ``warnings`` (list of codes) and
    ``consumed_reservation_id`` as transient attributes.
    """

    check_request(request)
    with transaction.atomic():
        check_warehouse(request.warehouse_id, allow_inactive=allow_inactive)
        balance = lock_balance(request.key)
        return append_locked(balance, request, created_by=created_by)


def record_receipt(*, product_id, warehouse_id, quantity, created_by: str = "", **fields) -> InventoryTransaction:
    request = TransactionRequest(
        transaction_type=TransactionType.RECEIPT,
        product_id=product_id,
        warehouse_id=warehouse_id,
        quantity=Decimal(quantity),
        **fields,
    )
    return append_transaction(request, created_by=created_by)


def record_issue(*, product_id, warehouse_id, quantity, created_by: str = "", **fields) -> InventoryTransaction:
    request = TransactionRequest(
        transaction_type=TransactionType.ISSUE,
        product_id=product_id,
        warehouse_id=warehouse_id,
        quantity=Decimal(quantity),
        **fields,
    )
    return append_transaction(request, created_by=created_by)


def record_adjustment(
    *, product_id, warehouse_id, quantity, direction: str, reason: str = "", created_by: str = "", **fields
) -> InventoryTransaction:
    """Post a stock correction. ``reason`` is kept on the entry as a notes prefix."""

    if direction not in AdjustmentDirection.values:
        raise ValidationError("adjustment_direction must be INCREASE or DECREASE")
    notes = fields.pop("notes", "")
    if reason:
        notes = f"[{reason}] {notes}".strip()
    request = TransactionRequest(
        transaction_type=TransactionType.ADJUSTMENT,
        product_id=product_id,
        warehouse_id=warehouse_id,
        quantity=Decimal(quantity),
        adjustment_direction=direction,
        notes=notes,
        **fields,
    )
    return append_transaction(request, created_by=created_by)


# EOF
