"""Per-SKU row locking for ledger mutations.

Every balance mutation runs inside ``transaction.atomic()`` holding
``SELECT ... FOR UPDATE`` on the affected ``StockBalance`` rows. Rows are
always locked one by one in (product, warehouse, lot) order, so two
operations touching the same pair of SKUs acquire them in the same order and
cannot deadlock. There is no global lock.
"""

import logging
from typing import Dict, Iterable, NamedTuple, Sequence
from uuid import UUID

from catalog.models import Product
from django.conf import settings
from django.db import IntegrityError, OperationalError, connection, transaction
from warehouses.models import Warehouse

from .errors import ConflictError, NotFoundError
from .models import StockBalance

logger = logging.getLogger("trackr.inventory")


class StockKey(NamedTuple):
    product_id: UUID
    warehouse_id: UUID
    lot: str = ""

    @classmethod
    def of(cls, product_id, warehouse_id, lot: str = "") -> "StockKey":
        return cls(UUID(str(product_id)), UUID(str(warehouse_id)), lot or "")

    def sort_key(self):
        return (str(self.product_id), str(self.warehouse_id), self.lot)


def ordered(keys: Iterable[StockKey]) -> Sequence[StockKey]:
    return sorted(set(keys), key=StockKey.sort_key)


def _lock_timeout_ms() -> int:
    return int(getattr(settings, "INVENTORY_LOCK_TIMEOUT_MS", 5000))


def _apply_lock_timeout() -> None:
    # Only PostgreSQL honours a per-transaction lock wait bound.
    if connection.vendor == "postgresql":
        with connection.cursor() as cursor:
            cursor.execute("SET LOCAL lock_timeout = %s", [f"{_lock_timeout_ms()}ms"])


def _ensure_balance(key: StockKey) -> None:
    if StockBalance.objects.filter(product_id=key.product_id, warehouse_id=key.warehouse_id, lot=key.lot).exists():
        return
    if not Product.objects.filter(id=key.product_id).exists():
        raise NotFoundError(f"Product {key.product_id} not found")
    if not Warehouse.objects.filter(id=key.warehouse_id).exists():
        raise NotFoundError(f"Warehouse {key.warehouse_id} not found")
    try:
        # Savepoint so a concurrent first-touch insert does not poison the outer transaction.
        with transaction.atomic():
            StockBalance.objects.create(product_id=key.product_id, warehouse_id=key.warehouse_id, lot=key.lot)
    except IntegrityError:
        pass


def lock_balances(keys: Iterable[StockKey], *, create: bool = True) -> Dict[StockKey, StockBalance]:
    """Lock (creating if needed) the balances for ``keys`` and return them by key.

    Must be called inside ``transaction.atomic()``. Lock waits are bounded by
    ``INVENTORY_LOCK_TIMEOUT_MS``; a timeout surfaces as ``ConflictError``.
    """

    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError("lock_balances() requires an atomic block")
    wanted = ordered(keys)
    try:
        # The bound also covers a first-touch insert waiting on the unique index.
        _apply_lock_timeout()
        if create:
            for key in wanted:
                _ensure_balance(key)
        rows = []
        for key in wanted:
            rows.extend(
                StockBalance.objects.select_for_update().filter(
                    product_id=key.product_id, warehouse_id=key.warehouse_id, lot=key.lot
                )
            )
    except OperationalError as exc:
        logger.warning(
            "inventory.lock_timeout",
            extra={"event": "inventory.lock_timeout", "keys": [str(k) for k in wanted], "error": str(exc)},
        )
        raise ConflictError("Stock balance is busy; retry the request") from exc

    locked = {StockKey.of(b.product_id, b.warehouse_id, b.lot): b for b in rows}
    missing = [k for k in wanted if k not in locked]
    if missing:
        raise NotFoundError(f"No stock balance for {missing[0].product_id} at {missing[0].warehouse_id}")
    return locked


def lock_balance(key: StockKey, *, create: bool = True) -> StockBalance:
    return lock_balances([key], create=create)[key]


def lock_balance_by_id(balance_id: int) -> StockBalance:
    """Lock an existing balance row by primary key (reservation/transfer follow-ups)."""

    balance = StockBalance.objects.filter(id=balance_id).values("product_id", "warehouse_id", "lot").first()
    if balance is None:
        raise NotFoundError(f"Stock balance {balance_id} not found")
    return lock_balance(StockKey.of(balance["product_id"], balance["warehouse_id"], balance["lot"]), create=False)


# EOF
