"""Balance projection: pure folds over ledger entries.

Nothing here touches the database. ``apply_transaction`` is the single
definition of how a transaction moves on-hand stock; the ledger service uses
it for incremental updates and ``replay`` uses it to rebuild a balance from
the log, so the two cannot drift apart.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional

from common.choices import AdjustmentDirection, TransactionType

from .errors import InsufficientStockError, ValidationError

ZERO = Decimal("0.00")

INBOUND_TYPES = frozenset({TransactionType.RECEIPT.value, TransactionType.TRANSFER_IN.value})
OUTBOUND_TYPES = frozenset({TransactionType.ISSUE.value, TransactionType.TRANSFER_OUT.value})


def signed_delta(transaction_type: str, quantity: Decimal, direction: str = "") -> Decimal:
    """Return the on-hand delta for a transaction; direction is never taken from the sign."""

    if quantity <= 0:
        raise ValidationError("quantity must be positive")
    if transaction_type in INBOUND_TYPES:
        return quantity
    if transaction_type in OUTBOUND_TYPES:
        return -quantity
    if transaction_type == TransactionType.ADJUSTMENT:
        if direction == AdjustmentDirection.INCREASE:
            return quantity
        if direction == AdjustmentDirection.DECREASE:
            return -quantity
        raise ValidationError("adjustment_direction is required for adjustments")
    raise ValidationError(f"Unknown transaction type: {transaction_type}")


def apply_transaction(on_hand: Decimal, transaction_type: str, quantity: Decimal, direction: str = "") -> Decimal:
    new_on_hand = on_hand + signed_delta(transaction_type, quantity, direction)
    if new_on_hand < 0:
        raise InsufficientStockError(f"Insufficient stock: {on_hand} on hand, {quantity} requested")
    return new_on_hand


@dataclass(frozen=True)
class ReplayStep:
    sequence: int
    expected: Decimal
    recorded: Decimal

    @property
    def matches(self) -> bool:
        return self.expected == self.recorded


def replay(transactions: Iterable) -> Decimal:
    """Fold ledger entries (in sequence order) from an empty balance."""

    on_hand = ZERO
    for txn in transactions:
        on_hand = apply_transaction(on_hand, txn.transaction_type, txn.quantity, txn.adjustment_direction)
    return on_hand


def replay_steps(transactions: Iterable) -> List[ReplayStep]:
    """Replay and compare each recorded ``balance_after`` snapshot with the fold."""

    steps = []
    on_hand = ZERO
    for txn in transactions:
        on_hand = apply_transaction(on_hand, txn.transaction_type, txn.quantity, txn.adjustment_direction)
        steps.append(ReplayStep(sequence=txn.sequence, expected=on_hand, recorded=txn.balance_after))
    return steps


def first_divergence(steps: Iterable[ReplayStep]) -> Optional[ReplayStep]:
    return next((s for s in steps if not s.matches), None)
