"""Reservation services: temporary claims against available stock."""

import logging
from decimal import Decimal
from typing import Optional

from common.choices import ReservationStatus, TransactionType
from django.db import transaction
from django.utils import timezone

from .errors import InsufficientAvailableError, InvalidStateError, NotFoundError, ValidationError
from .locking import StockKey, lock_balance, lock_balance_by_id
from .models import ZERO, StockBalance, StockReservation
from .services import (
    TransactionRequest,
    append_locked,
    check_warehouse,
    expire_due_on_balance,
    generate_number,
)
from .signals import emit_balance_changed

logger = logging.getLogger("trackr.inventory")


def reserve(
    *,
    product_id,
    warehouse_id,
    quantity: Decimal,
    reference_type: str,
    reference_id: str,
    expiry_date,
    lot: str = "",
    reference_number: str = "",
    notes: str = "",
    created_by: str = "",
) -> StockReservation:
    """Claim ``quantity`` of the SKU-location's available stock until ``expiry_date``.

    Due reservations on the SKU are expired first so stale claims never make
    stock look unavailable. Raises ``InsufficientAvailableError`` when the
    claim exceeds ``on_hand - reserved``.
    """

    quantity = Decimal(quantity)
    if quantity <= 0:
        raise ValidationError("quantity must be positive")
    now = timezone.now()
    if expiry_date <= now:
        raise ValidationError("expiry_date must be in the future")

    with transaction.atomic():
        check_warehouse(warehouse_id)
        balance = lock_balance(StockKey.of(product_id, warehouse_id, lot))
        expire_due_on_balance(balance, now)
        available = balance.on_hand - balance.reserved
        if quantity > available:
            raise InsufficientAvailableError(
                f"Insufficient available stock: {max(available, ZERO)} available, {quantity} requested"
            )
        balance.reserved += quantity
        balance.save(update_fields=["reserved", "updated_at"])
        reservation = StockReservation.objects.create(
            number=generate_number("RSV"),
            balance=balance,
            product_id=balance.product_id,
            warehouse_id=balance.warehouse_id,
            lot=balance.lot,
            reserved_quantity=quantity,
            reference_type=reference_type,
            reference_id=str(reference_id),
            reference_number=reference_number or "",
            expiry_date=expiry_date,
            notes=notes or "",
            created_by=created_by or "",
        )
        logger.info(
            "inventory.reservation_created",
            extra={
                "event": "inventory.reservation_created",
                "reservation": reservation.number,
                "balance_id": balance.id,
                "quantity": str(quantity),
                "reserved": str(balance.reserved),
            },
        )
        emit_balance_changed(balance)
        return reservation


def _balance_id_of(reservation_id) -> int:
    balance_id = StockReservation.objects.filter(id=reservation_id).values_list("balance_id", flat=True).first()
    if balance_id is None:
        raise NotFoundError(f"Reservation {reservation_id} not found")
    # Commit lazy expiry on its own so it survives a rejected follow-up.
    with transaction.atomic():
        expire_due_on_balance(lock_balance_by_id(balance_id))
    return balance_id


def _lock_reservation(balance_id, reservation_id):
    balance = lock_balance_by_id(balance_id)
    reservation = StockReservation.objects.select_for_update().get(id=reservation_id)
    if reservation.status != ReservationStatus.ACTIVE:
        raise InvalidStateError(f"Reservation {reservation.number} is {reservation.status}, not ACTIVE")
    return balance, reservation


def _free_claim(balance: StockBalance, reservation: StockReservation) -> None:
    balance.reserved = max(balance.reserved - reservation.reserved_quantity, ZERO)


def consume(
    reservation_id,
    *,
    quantity: Optional[Decimal] = None,
    notes: str = "",
    created_by: str = "",
) -> StockReservation:
    """Fulfil a reservation: append the paired ISSUE and mark it CONSUMED.

    ``quantity`` defaults to the reserved quantity and may not exceed it. The
    whole claim is freed even when less is issued.
    """

    balance_id = _balance_id_of(reservation_id)
    with transaction.atomic():
        balance, reservation = _lock_reservation(balance_id, reservation_id)
        issued = reservation.reserved_quantity if quantity is None else Decimal(quantity)
        if issued <= 0:
            raise ValidationError("quantity must be positive")
        if issued > reservation.reserved_quantity:
            raise ValidationError(
                f"Issued quantity {issued} exceeds reserved quantity {reservation.reserved_quantity}"
            )
        _free_claim(balance, reservation)
        txn = append_locked(
            balance,
            TransactionRequest(
                transaction_type=TransactionType.ISSUE,
                product_id=balance.product_id,
                warehouse_id=balance.warehouse_id,
                lot=balance.lot,
                quantity=issued,
                reference_type=reservation.reference_type,
                reference_id=reservation.reference_id,
                reference_number=reservation.reference_number,
                notes=notes or f"Consumes reservation {reservation.number}",
            ),
            created_by=created_by,
            consume_reservations=False,
        )
        reservation.status = ReservationStatus.CONSUMED
        reservation.fulfilled_quantity = issued
        reservation.consumed_by = txn
        reservation.closed_at = timezone.now()
        reservation.save(update_fields=["status", "fulfilled_quantity", "consumed_by", "closed_at", "updated_at"])
        logger.info(
            "inventory.reservation_consumed",
            extra={
                "event": "inventory.reservation_consumed",
                "reservation": reservation.number,
                "transaction": txn.number,
                "quantity": str(issued),
            },
        )
        return reservation


def release(reservation_id) -> StockReservation:
    balance_id = _balance_id_of(reservation_id)
    with transaction.atomic():
        balance, reservation = _lock_reservation(balance_id, reservation_id)
        _free_claim(balance, reservation)
        balance.save(update_fields=["reserved", "updated_at"])
        reservation.status = ReservationStatus.RELEASED
        reservation.closed_at = timezone.now()
        reservation.save(update_fields=["status", "closed_at", "updated_at"])
        logger.info(
            "inventory.reservation_released",
            extra={"event": "inventory.reservation_released", "reservation": reservation.number},
        )
        emit_balance_changed(balance)
        return reservation


def expire_due_reservations(now=None) -> int:
    """Sweep every SKU-location with due ACTIVE reservations; returns how many expired.

    Each SKU is expired in its own transaction so one busy balance does not
    hold up the rest of the sweep.
    """

    now = now or timezone.now()
    balance_ids = (
        StockReservation.objects.filter(status=ReservationStatus.ACTIVE, expiry_date__lte=now)
        .values_list("balance_id", flat=True)
        .distinct()
    )
    count = 0
    for balance_id in sorted(set(balance_ids)):
        with transaction.atomic():
            balance = lock_balance_by_id(balance_id)
            count += expire_due_on_balance(balance, now)
    return count


# EOF
