"""Default receivers for ledger signals: structured audit logging."""

import logging

from django.dispatch import receiver

from .signals import balance_changed, transaction_recorded

logger = logging.getLogger("trackr.inventory.events")


def _fields(payload: dict) -> dict:
    return {k: str(v) for k, v in payload.items() if k != "signal"}


@receiver(transaction_recorded, dispatch_uid="inventory.log_transaction_recorded")
def log_transaction_recorded(sender, **payload):
    logger.info(
        "inventory.event.transaction_recorded",
        extra={"event": "inventory.event.transaction_recorded", **_fields(payload)},
    )


@receiver(balance_changed, dispatch_uid="inventory.log_balance_changed")
def log_balance_changed(sender, **payload):
    logger.info(
        "inventory.event.balance_changed",
        extra={"event": "inventory.event.balance_changed", **_fields(payload)},
    )


# EOF
