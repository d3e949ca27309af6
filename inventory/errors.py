"""Ledger error taxonomy.

Every error raised by the inventory core derives from ``LedgerError`` and
carries an HTTP status and a machine-readable ``code`` so the API layer can
render it without knowing the concrete class.
"""


class LedgerError(Exception):
    status_code = 400
    code = "ledger_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = message or str(self.args[0])

    def __str__(self) -> str:
        return self.message


class ValidationError(LedgerError):
    """Malformed request rejected before touching any balance."""

    code = "validation_error"


class WarehouseInactiveError(ValidationError):
    """Warehouse is deactivated and refuses stock movements."""

    code = "warehouse_inactive"


class InsufficientStockError(LedgerError):
    """Movement would drive on-hand quantity negative."""

    status_code = 422
    code = "insufficient_stock"


class InsufficientAvailableError(LedgerError):
    """Reservation would exceed the available quantity."""

    status_code = 422
    code = "insufficient_available"


class NotFoundError(LedgerError):
    status_code = 404
    code = "not_found"


class ConflictError(LedgerError):
    """Concurrent mutation won the race or the lock wait timed out; retry."""

    status_code = 409
    code = "conflict"


class InvalidStateError(LedgerError):
    """Operation is not allowed in the entity's current lifecycle state."""

    status_code = 409
    code = "invalid_state"


class TransferReversalError(LedgerError):
    """Compensation for a failed transfer could not be recorded."""

    status_code = 500
    code = "transfer_reversal_failed"
