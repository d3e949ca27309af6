import json
import logging
import random
from datetime import datetime, timezone

_RESERVED_ATTRS = frozenset(
    (
        "msg",
        "args",
        "levelname",
        "levelno",
        "name",
        "created",
        "msecs",
        "relativeCreated",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "exc_info",
        "exc_text",
        "stack_info",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
    )
)


class JsonFormatter(logging.Formatter):
    """JSON formatter for production logs.

    - Merges base fields (time, level, name, message) with any attributes
      provided via `extra` on the log record (e.g., event, transaction_id,
      balance_id, transfer_id).
    - If the message is a dict, it is merged into the payload under its keys.
    - Exceptions are rendered under `exc`.
    - Dates are ISO-8601 UTC.
    """

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        base = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "name": record.name,
        }

        msg = record.getMessage()
        try:
            parsed = json.loads(msg) if isinstance(msg, str) else msg
        except ValueError:
            parsed = msg

        if isinstance(parsed, dict):
            payload = {**base, **parsed}
        else:
            payload = {**base, "message": parsed}

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            # Decimals and UUIDs from ledger extras fall back to str
            try:
                json.dumps(value)
                payload.setdefault(key, value)
            except (TypeError, ValueError):
                payload.setdefault(key, str(value))

        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False)


class SamplingFilter(logging.Filter):
    """Probabilistically drop logs to reduce noise while keeping signal.

    - `rate`: float in [0.0, 1.0]; fraction of matching records to allow.
    - `levels`: iterable of level names to which sampling applies (e.g., ["INFO"]).
    - `allow_events`: iterable of event names that should never be sampled.

    Records with level not in `levels` are always allowed, so warnings such as
    `inventory.reservation_overcommitted` and critical reversal failures are
    never dropped. A record whose `event` extra (or `msg`) is in
    `allow_events` is always allowed.
    """

    def __init__(self, rate: float = 1.0, levels: list[str] | None = None, allow_events: list[str] | None = None):
        super().__init__()
        try:
            self.rate = float(rate)
        except (TypeError, ValueError):
            self.rate = 1.0
        self.levels = set(levels or ["INFO"])
        self.allow_events = set(allow_events or [])

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if record.levelname not in self.levels:
            return True
        event = getattr(record, "event", None) or getattr(record, "msg", "")
        if event in self.allow_events:
            return True
        if self.rate >= 1.0:
            return True
        if self.rate <= 0.0:
            return False
        return random.random() < self.rate
