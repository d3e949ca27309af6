"""Outbound ledger notifications.

Signals are sent only after the surrounding database transaction commits and
with ``send_robust``, so a failing receiver can never undo or block a ledger
write. Receivers get plain values, not model instances.
"""

import logging
from decimal import Decimal

from django.db import transaction
from django.dispatch import Signal

logger = logging.getLogger("trackr.inventory")

# kwargs: transaction_id, number, transaction_type, product_id, warehouse_id, lot, quantity, reference_type, reference_id
transaction_recorded = Signal()

# kwargs: product_id, warehouse_id, lot, delta, on_hand, reserved, available
balance_changed = Signal()


def _send(signal: Signal, payload: dict) -> None:
    for receiver, response in signal.send_robust(sender="inventory", **payload):
        if isinstance(response, Exception):
            logger.error(
                "inventory.receiver_failed",
                extra={"event": "inventory.receiver_failed", "receiver": repr(receiver), "error": str(response)},
            )


def emit_transaction_events(txn, balance, delta: Decimal) -> None:
    txn_payload = {
        "transaction_id": str(txn.id),
        "number": txn.number,
        "transaction_type": txn.transaction_type,
        "product_id": str(txn.product_id),
        "warehouse_id": str(txn.warehouse_id),
        "lot": txn.lot,
        "quantity": txn.quantity,
        "reference_type": txn.reference_type,
        "reference_id": txn.reference_id,
    }
    balance_payload = {
        "product_id": str(balance.product_id),
        "warehouse_id": str(balance.warehouse_id),
        "lot": balance.lot,
        "delta": delta,
        "on_hand": balance.on_hand,
        "reserved": balance.reserved,
        "available": balance.available,
    }
    transaction.on_commit(lambda: _send(transaction_recorded, txn_payload))
    transaction.on_commit(lambda: _send(balance_changed, balance_payload))


def emit_balance_changed(balance, delta: Decimal = Decimal("0.00")) -> None:
    """Notify a reservation-only change (on-hand untouched, available moved)."""

    payload = {
        "product_id": str(balance.product_id),
        "warehouse_id": str(balance.warehouse_id),
        "lot": balance.lot,
        "delta": delta,
        "on_hand": balance.on_hand,
        "reserved": balance.reserved,
        "available": balance.available,
    }
    transaction.on_commit(lambda: _send(balance_changed, payload))
