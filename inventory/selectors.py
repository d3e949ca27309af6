"""Read-side queries for the inventory ledger.

Selectors never write. Reservations whose expiry has passed but which the
sweep has not closed yet are excluded from the reserved figures they report.
"""

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from common.choices import AdjustmentDirection, ReservationStatus, TransactionType, TransferStatus
from django.db.models import Count, DecimalField, OuterRef, Q, Subquery, Sum, Value
from django.db.models.functions import Coalesce, TruncDate
from django.utils import timezone

from .models import ZERO, InventoryTransaction, StockBalance, StockReservation, StockTransfer
from .projection import INBOUND_TYPES, OUTBOUND_TYPES, apply_transaction, first_divergence, replay_steps

_DECIMAL = DecimalField(max_digits=16, decimal_places=2)
CENT = Decimal("0.01")


def to_cents(value) -> Decimal:
    """Aggregates come back unscaled on some backends; pin them to two places."""
    return Decimal(value or 0).quantize(CENT)


def stock_levels(*, product_id=None, warehouse_id=None, lot=None, now=None):
    """Balances annotated with ``effective_reserved`` (active, unexpired claims only)."""

    now = now or timezone.now()
    live = (
        StockReservation.objects.filter(
            balance=OuterRef("pk"), status=ReservationStatus.ACTIVE, expiry_date__gt=now
        )
        .order_by()
        .values("balance")
        .annotate(total=Sum("reserved_quantity"))
        .values("total")
    )
    qs = StockBalance.objects.select_related("product", "warehouse").annotate(
        effective_reserved=Coalesce(Subquery(live, output_field=_DECIMAL), Value(ZERO, output_field=_DECIMAL))
    )
    if product_id:
        qs = qs.filter(product_id=product_id)
    if warehouse_id:
        qs = qs.filter(warehouse_id=warehouse_id)
    if lot is not None:
        qs = qs.filter(lot=lot)
    return qs.order_by("product__sku", "warehouse__code", "lot")


def available_quantity(product_id, warehouse_id, lot: str = "") -> Decimal:
    balance = stock_levels(product_id=product_id, warehouse_id=warehouse_id, lot=lot or "").first()
    if balance is None:
        return ZERO
    return to_cents(max(balance.on_hand - balance.effective_reserved, ZERO))


def find_overcommitted_balances() -> List[StockBalance]:
    """SKU-locations whose active reservations exceed on-hand stock."""

    return [b for b in stock_levels() if b.effective_reserved > b.on_hand]


def in_transit_quantity(*, product_id=None, warehouse_id=None) -> Decimal:
    """Quantity shipped but not yet received; counted in neither warehouse's balance."""

    qs = StockTransfer.objects.filter(status=TransferStatus.IN_TRANSIT)
    if product_id:
        qs = qs.filter(product_id=product_id)
    if warehouse_id:
        qs = qs.filter(Q(from_warehouse_id=warehouse_id) | Q(to_warehouse_id=warehouse_id))
    return to_cents(qs.aggregate(total=Sum("quantity"))["total"])


@dataclass(frozen=True)
class BalanceCheck:
    balance_id: int
    recorded: Decimal
    replayed: Decimal
    transactions: int
    diverged_at: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.recorded == self.replayed and self.diverged_at is None


def verify_balance(balance: StockBalance) -> BalanceCheck:
    """Replay a SKU-location's log from zero and compare with the materialised balance."""

    steps = replay_steps(InventoryTransaction.objects.filter(balance=balance).order_by("sequence"))
    divergence = first_divergence(steps)
    return BalanceCheck(
        balance_id=balance.id,
        recorded=balance.on_hand,
        replayed=steps[-1].expected if steps else ZERO,
        transactions=len(steps),
        diverged_at=divergence.sequence if divergence else None,
    )


def verify_ledger(*, product_id=None, warehouse_id=None) -> List[BalanceCheck]:
    qs = StockBalance.objects.all()
    if product_id:
        qs = qs.filter(product_id=product_id)
    if warehouse_id:
        qs = qs.filter(warehouse_id=warehouse_id)
    return [verify_balance(b) for b in qs.order_by("id")]


def _transactions(*, product_id=None, warehouse_id=None, start=None, end=None):
    qs = InventoryTransaction.objects.all()
    if product_id:
        qs = qs.filter(product_id=product_id)
    if warehouse_id:
        qs = qs.filter(warehouse_id=warehouse_id)
    if start:
        qs = qs.filter(created_at__gte=start)
    if end:
        qs = qs.filter(created_at__lte=end)
    return qs


def inventory_value(*, product_id=None, warehouse_id=None) -> Decimal:
    """Net cost of stock on the books: inbound ``total_cost`` minus outbound."""

    rows = (
        _transactions(product_id=product_id, warehouse_id=warehouse_id)
        .values("transaction_type", "adjustment_direction")
        .annotate(total=Sum("total_cost"))
    )
    value = ZERO
    for row in rows:
        inbound = row["transaction_type"] in INBOUND_TYPES or (
            row["transaction_type"] == TransactionType.ADJUSTMENT and row["adjustment_direction"] == AdjustmentDirection.INCREASE
        )
        value += row["total"] if inbound else -row["total"]
    return to_cents(value)


def transaction_summary(*, warehouse_id=None, start=None, end=None) -> dict:
    qs = _transactions(warehouse_id=warehouse_id, start=start, end=end)
    totals = qs.aggregate(
        count=Count("id"),
        value=Coalesce(Sum("total_cost"), Value(ZERO, output_field=_DECIMAL)),
    )
    by_type = {t: {"count": 0, "total_quantity": ZERO, "total_value": ZERO} for t in TransactionType.values}
    for row in qs.values("transaction_type").annotate(
        count=Count("id"), total_quantity=Sum("quantity"), total_value=Sum("total_cost")
    ):
        by_type[row["transaction_type"]] = {
            "count": row["count"],
            "total_quantity": to_cents(row["total_quantity"]),
            "total_value": to_cents(row["total_value"]),
        }
    by_warehouse = [
        {
            "warehouse_id": str(row["warehouse_id"]),
            "warehouse_code": row["warehouse__code"],
            "transaction_count": row["count"],
            "total_value": to_cents(row["total_value"]),
        }
        for row in qs.values("warehouse_id", "warehouse__code")
        .annotate(count=Count("id"), total_value=Sum("total_cost"))
        .order_by("warehouse__code")
    ]
    return {
        "transaction_count": totals["count"],
        "total_value": to_cents(totals["value"]),
        "by_type": by_type,
        "by_warehouse": by_warehouse,
        "recent_transactions": recent_activity(warehouse_id=warehouse_id),
    }


def recent_activity(*, days: int = 7, warehouse_id=None, now=None) -> List[dict]:
    """Daily transaction count and value for the last ``days`` days, newest first.

    Days without activity are reported with zeros so the series has no gaps.
    """

    today = timezone.localdate(now or timezone.now())
    first_day = today - timedelta(days=days - 1)
    qs = InventoryTransaction.objects.filter(created_at__date__gte=first_day, created_at__date__lte=today)
    if warehouse_id:
        qs = qs.filter(warehouse_id=warehouse_id)
    rows = {
        row["day"]: row
        for row in qs.annotate(day=TruncDate("created_at"))
        .values("day")
        .annotate(count=Count("id"), value=Sum("total_cost"))
        .order_by()
    }
    series = []
    for offset in range(days):
        day = today - timedelta(days=offset)
        row = rows.get(day)
        series.append(
            {
                "date": day,
                "count": row["count"] if row else 0,
                "value": to_cents(row["value"] if row else None),
            }
        )
    return series


@dataclass(frozen=True)
class MovementLine:
    balance_id: int
    product_id: str
    product_sku: str
    warehouse_id: str
    warehouse_code: str
    lot: str
    opening: Decimal
    inbound: Decimal
    outbound: Decimal
    adjustment: Decimal
    closing: Decimal
    transactions: int


def movement_for_balance(balance: StockBalance, *, start, end) -> MovementLine:
    """Opening, flows and closing for one SKU-location over ``[start, end]``.

    The opening is the ``balance_after`` snapshot of the last entry before
    ``start``; the closing is the projection folded forward from it.
    """

    entries = InventoryTransaction.objects.filter(balance=balance)
    before = entries.filter(created_at__lt=start).order_by("-sequence").values_list("balance_after", flat=True).first()
    opening = before if before is not None else ZERO
    inbound = outbound = adjustment = ZERO
    closing = opening
    count = 0
    for txn in entries.filter(created_at__gte=start, created_at__lte=end).order_by("sequence"):
        if txn.transaction_type in INBOUND_TYPES:
            inbound += txn.quantity
        elif txn.transaction_type in OUTBOUND_TYPES:
            outbound += txn.quantity
        else:
            adjustment += txn.signed_quantity
        closing = apply_transaction(closing, txn.transaction_type, txn.quantity, txn.adjustment_direction)
        count += 1
    return MovementLine(
        balance_id=balance.id,
        product_id=str(balance.product_id),
        product_sku=balance.product.sku,
        warehouse_id=str(balance.warehouse_id),
        warehouse_code=balance.warehouse.code,
        lot=balance.lot,
        opening=to_cents(opening),
        inbound=to_cents(inbound),
        outbound=to_cents(outbound),
        adjustment=to_cents(adjustment),
        closing=to_cents(closing),
        transactions=count,
    )


def movement_report(*, start, end, product_id=None, warehouse_id=None) -> List[MovementLine]:
    """Stock movement per SKU-location; locations first stocked after ``end`` are left out."""

    touched = InventoryTransaction.objects.filter(created_at__lte=end).values("balance_id")
    qs = StockBalance.objects.select_related("product", "warehouse").filter(id__in=touched)
    if product_id:
        qs = qs.filter(product_id=product_id)
    if warehouse_id:
        qs = qs.filter(warehouse_id=warehouse_id)
    balances = qs.order_by("product__sku", "warehouse__code", "lot")
    return [movement_for_balance(b, start=start, end=end) for b in balances]


@dataclass(frozen=True)
class LowStockLine:
    product_id: str
    product_sku: str
    warehouse_id: str
    warehouse_code: str
    on_hand: Decimal
    available: Decimal
    reorder_level: Decimal

    @property
    def severity(self) -> str:
        return "critical" if self.available <= 0 else "warning"


def low_stock(*, product_id=None, warehouse_id=None, now=None) -> List[LowStockLine]:
    """Product/warehouse pairs whose available stock (all lots) is at or below the reorder level."""

    levels = stock_levels(product_id=product_id, warehouse_id=warehouse_id, now=now).filter(
        product__reorder_level__isnull=False
    )
    totals: Dict[Tuple, List] = {}
    for balance in levels:
        key = (balance.product_id, balance.warehouse_id)
        if key not in totals:
            totals[key] = [balance, ZERO, ZERO]
        totals[key][1] += balance.on_hand
        totals[key][2] += max(balance.on_hand - balance.effective_reserved, ZERO)
    lines = []
    for balance, on_hand, available in totals.values():
        reorder_level = balance.product.reorder_level
        if available <= reorder_level:
            lines.append(
                LowStockLine(
                    product_id=str(balance.product_id),
                    product_sku=balance.product.sku,
                    warehouse_id=str(balance.warehouse_id),
                    warehouse_code=balance.warehouse.code,
                    on_hand=to_cents(on_hand),
                    available=to_cents(available),
                    reorder_level=to_cents(reorder_level),
                )
            )
    return lines


# EOF
