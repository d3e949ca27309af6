from datetime import timedelta
from decimal import Decimal

import pytest
from common.choices import ReservationStatus
from django.utils import timezone
from inventory import selectors
from inventory.errors import InsufficientAvailableError, InvalidStateError, NotFoundError, ValidationError
from inventory.models import InventoryTransaction, StockBalance, StockReservation
from inventory.reservations import consume, expire_due_reservations, release, reserve
from inventory.services import record_issue
from inventory.tests.factories import hold, stocked


def balance_of(product, warehouse):
    return StockBalance.objects.get(product=product, warehouse=warehouse, lot="")


def active_sum(balance):
    return sum(
        (r.reserved_quantity for r in StockReservation.objects.filter(balance=balance, status=ReservationStatus.ACTIVE)),
        Decimal("0"),
    )


@pytest.mark.django_db
def test_reserved_equals_sum_of_active_reservations():
    product, warehouse = stocked("100")
    first = hold(product, warehouse, "30", reference_id="SO-1")
    hold(product, warehouse, "20", reference_id="SO-2")
    release(first.id)

    bal = balance_of(product, warehouse)
    assert bal.reserved == Decimal("20.00")
    assert bal.reserved == active_sum(bal)


@pytest.mark.django_db
def test_reserve_beyond_available_is_rejected():
    product, warehouse = stocked("50")
    hold(product, warehouse, "40")
    with pytest.raises(InsufficientAvailableError) as exc:
        hold(product, warehouse, "11", reference_id="SO-2")
    assert "10.00 available" in exc.value.message
    assert balance_of(product, warehouse).reserved == Decimal("40.00")


@pytest.mark.django_db
def test_reserve_requires_future_expiry_and_positive_quantity():
    product, warehouse = stocked("5")
    with pytest.raises(ValidationError):
        reserve(
            product_id=product.id,
            warehouse_id=warehouse.id,
            quantity=Decimal("1"),
            reference_type="SALES",
            reference_id="SO-9",
            expiry_date=timezone.now() - timedelta(seconds=1),
        )
    with pytest.raises(ValidationError):
        hold(product, warehouse, "0")


@pytest.mark.django_db
def test_consume_issues_stock_and_frees_claim():
    product, warehouse = stocked("100")
    reservation = hold(product, warehouse, "30", reference_id="SO-1")

    consumed = consume(reservation.id)

    bal = balance_of(product, warehouse)
    assert consumed.status == ReservationStatus.CONSUMED
    assert consumed.fulfilled_quantity == Decimal("30.00")
    assert bal.on_hand == Decimal("70.00")
    assert bal.reserved == Decimal("0.00")
    issue = consumed.consumed_by
    assert issue.transaction_type == "ISSUE"
    assert issue.reference_id == "SO-1"


@pytest.mark.django_db
def test_partial_consume_releases_the_remainder():
    product, warehouse = stocked("100")
    reservation = hold(product, warehouse, "30")

    consumed = consume(reservation.id, quantity=Decimal("12"))

    bal = balance_of(product, warehouse)
    assert consumed.fulfilled_quantity == Decimal("12.00")
    assert bal.on_hand == Decimal("88.00")
    assert bal.reserved == Decimal("0.00")
    with pytest.raises(ValidationError):
        consume(hold(product, warehouse, "5", reference_id="SO-2").id, quantity=Decimal("6"))


@pytest.mark.django_db
def test_released_reservation_cannot_be_consumed_or_released_again():
    product, warehouse = stocked("10")
    reservation = hold(product, warehouse, "4")
    release(reservation.id)

    with pytest.raises(InvalidStateError):
        consume(reservation.id)
    with pytest.raises(InvalidStateError):
        release(reservation.id)
    assert balance_of(product, warehouse).on_hand == Decimal("10.00")


@pytest.mark.django_db
def test_unknown_reservation_is_not_found():
    with pytest.raises(NotFoundError):
        release("00000000-0000-0000-0000-0000000000aa")


@pytest.mark.django_db
def test_issue_citing_reservation_reference_consumes_it():
    product, warehouse = stocked("100")
    reservation = hold(product, warehouse, "30", reference_type="SALES", reference_id="SO-7")

    txn = record_issue(
        product_id=product.id,
        warehouse_id=warehouse.id,
        quantity="30",
        reference_type="SALES",
        reference_id="SO-7",
    )

    reservation.refresh_from_db()
    assert txn.consumed_reservation_id == reservation.id
    assert txn.warnings == []
    assert reservation.status == ReservationStatus.CONSUMED
    assert reservation.consumed_by_id == txn.id
    bal = balance_of(product, warehouse)
    assert (bal.on_hand, bal.reserved) == (Decimal("70.00"), Decimal("0.00"))


@pytest.mark.django_db
def test_expired_reservation_stops_counting_before_sweep():
    product, warehouse = stocked("10")
    reservation = hold(product, warehouse, "8")
    StockReservation.objects.filter(id=reservation.id).update(expiry_date=timezone.now() - timedelta(minutes=1))

    # Readers ignore it straight away; the stored counter waits for the next touch.
    assert selectors.available_quantity(product.id, warehouse.id) == Decimal("10.00")
    assert balance_of(product, warehouse).reserved == Decimal("8.00")

    hold(product, warehouse, "10", reference_id="SO-2")
    reservation.refresh_from_db()
    assert reservation.status == ReservationStatus.EXPIRED
    assert balance_of(product, warehouse).reserved == Decimal("10.00")


@pytest.mark.django_db
def test_expired_reservation_cannot_be_consumed():
    product, warehouse = stocked("10")
    reservation = hold(product, warehouse, "3")
    StockReservation.objects.filter(id=reservation.id).update(expiry_date=timezone.now() - timedelta(minutes=1))

    with pytest.raises(InvalidStateError):
        consume(reservation.id)

    reservation.refresh_from_db()
    assert reservation.status == ReservationStatus.EXPIRED
    assert balance_of(product, warehouse).reserved == Decimal("0.00")
    assert InventoryTransaction.objects.filter(transaction_type="ISSUE").count() == 0


@pytest.mark.django_db
def test_sweep_expires_due_reservations_only():
    product, warehouse = stocked("20")
    due = hold(product, warehouse, "5", reference_id="SO-1")
    live = hold(product, warehouse, "6", reference_id="SO-2")
    StockReservation.objects.filter(id=due.id).update(expiry_date=timezone.now() - timedelta(seconds=5))

    assert expire_due_reservations() == 1
    assert expire_due_reservations() == 0

    due.refresh_from_db()
    live.refresh_from_db()
    assert due.status == ReservationStatus.EXPIRED
    assert due.closed_at is not None
    assert live.status == ReservationStatus.ACTIVE
    assert balance_of(product, warehouse).reserved == Decimal("6.00")
