from datetime import timedelta
from decimal import Decimal
from io import StringIO

import pytest
from common.choices import ReservationStatus
from django.core.management import call_command
from django.core.management.base import CommandError
from django.utils import timezone
from inventory.models import IdempotencyKey, StockBalance, StockReservation
from inventory.tests.factories import hold, stocked


@pytest.mark.django_db
def test_expire_reservations_command():
    product, warehouse = stocked("10")
    reservation = hold(product, warehouse, "4")
    StockReservation.objects.filter(id=reservation.id).update(expiry_date=timezone.now() - timedelta(minutes=5))

    out = StringIO()
    call_command("expire_reservations", stdout=out)

    assert "Expired reservations: 1" in out.getvalue()
    reservation.refresh_from_db()
    assert reservation.status == ReservationStatus.EXPIRED
    assert StockBalance.objects.get(product=product).reserved == Decimal("0.00")


@pytest.mark.django_db
def test_verify_ledger_command_passes_and_fails():
    product, warehouse = stocked("10")
    out = StringIO()
    call_command("verify_ledger", stdout=out)
    assert "Verified 1 balances" in out.getvalue()

    StockBalance.objects.filter(product=product).update(on_hand=Decimal("9.00"))
    err = StringIO()
    with pytest.raises(CommandError):
        call_command("verify_ledger", "--product", str(product.id), stdout=StringIO(), stderr=err)
    assert "replayed 10.00" in err.getvalue()


@pytest.mark.django_db
def test_cleanup_idempotency_command():
    IdempotencyKey.objects.create(
        key="old", scope="anon", path="/x/", method="POST", expires_at=timezone.now() - timedelta(hours=1)
    )
    IdempotencyKey.objects.create(
        key="new", scope="anon", path="/x/", method="POST", expires_at=timezone.now() + timedelta(hours=1)
    )
    out = StringIO()
    call_command("cleanup_idempotency", stdout=out)
    assert "Deleted 1 expired idempotency keys." in out.getvalue()
    assert list(IdempotencyKey.objects.values_list("key", flat=True)) == ["new"]
