"""Bulk transaction runner.

Items are validated and appended one by one, in input order, each in its own
database transaction. A rejected item is recorded and the batch moves on;
earlier successes are never rolled back.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import List, Sequence

from .errors import LedgerError, ValidationError
from .serializers import MAX_BATCH_SIZE, CreateTransactionSerializer
from .services import append_transaction

logger = logging.getLogger("trackr.inventory")


@dataclass
class BatchResult:
    """Outcome of a batch. ``results`` pairs each created id with its input index."""

    created: int = 0
    failed: int = 0
    transaction_ids: List[str] = field(default_factory=list)
    errors: List[dict] = field(default_factory=list)
    results: List[dict] = field(default_factory=list)

    def as_dict(self) -> dict:
        return asdict(self)


def first_error_message(errors) -> str:
    """Flatten DRF serializer errors into one readable message."""

    if isinstance(errors, dict):
        for name, value in errors.items():
            message = first_error_message(value)
            if name == "non_field_errors" or message.startswith(name):
                return message
            return f"{name}: {message}"
        return "invalid item"
    if isinstance(errors, (list, tuple)):
        return first_error_message(errors[0]) if errors else "invalid item"
    return str(errors)


def apply_batch(items: Sequence, *, created_by: str = "") -> BatchResult:
    if not items:
        raise ValidationError("A batch must contain at least one transaction")
    if len(items) > MAX_BATCH_SIZE:
        raise ValidationError(f"A batch may contain at most {MAX_BATCH_SIZE} transactions")

    result = BatchResult()
    for index, item in enumerate(items):
        serializer = CreateTransactionSerializer(data=item)
        if not serializer.is_valid():
            result.failed += 1
            result.errors.append({"index": index, "error": first_error_message(serializer.errors)})
            continue
        try:
            txn = append_transaction(serializer.to_request(), created_by=created_by)
        except LedgerError as exc:
            result.failed += 1
            result.errors.append({"index": index, "error": exc.message})
        else:
            result.created += 1
            result.transaction_ids.append(str(txn.id))
            result.results.append({"index": index, "transaction_id": str(txn.id)})

    logger.info(
        "inventory.bulk_applied",
        extra={
            "event": "inventory.bulk_applied",
            "size": len(items),
            "created": result.created,
            "failed": result.failed,
        },
    )
    return result


# EOF
