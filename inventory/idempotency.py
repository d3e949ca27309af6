import hashlib
import json
import logging
from datetime import timedelta
from typing import Callable, Optional, Tuple

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import IntegrityError, transaction
from django.utils import timezone

from .models import IdempotencyKey

logger = logging.getLogger("trackr.inventory")


def _ttl() -> timedelta:
    return timedelta(hours=int(getattr(settings, "INVENTORY_IDEMPOTENCY_TTL_HOURS", 24)))


def _json_safe(value):
    return json.loads(json.dumps(value, cls=DjangoJSONEncoder))


def with_idempotency(
    *,
    key: str,
    user,
    path: str,
    method: str,
    handler: Callable[[], Tuple[dict, int]],
    request_hash: Optional[str] = None,
) -> Tuple[dict, int]:
    """Run handler once per (key, scope, path, method) and replay its stored response.

    - Scope is "user:<id>" for authenticated callers, otherwise "anon".
    - Reusing a key with a different payload, or while the first request is
      still running, returns 409.
    - Expired records are discarded and the request runs again.
    - If the handler raises, the record is dropped so the client can retry.
    """

    scope = f"user:{getattr(user, 'id', None)}" if getattr(user, "id", None) else "anon"
    method = str(method).upper()
    path = str(path)
    lookup = {"key": key, "scope": scope, "path": path, "method": method}

    IdempotencyKey.objects.filter(expires_at__lte=timezone.now(), **lookup).delete()
    try:
        with transaction.atomic():
            idem = IdempotencyKey.objects.create(
                request_hash=request_hash, expires_at=timezone.now() + _ttl(), **lookup
            )
    except IntegrityError:
        idem = IdempotencyKey.objects.get(**lookup)
        if idem.request_hash and request_hash and idem.request_hash != request_hash:
            return {"detail": "Idempotency key reused with different request payload", "code": "conflict"}, 409
        if idem.response_json is not None and idem.response_code is not None:
            logger.info("inventory.idempotent_replay", extra={"event": "inventory.idempotent_replay", "path": path})
            return idem.response_json, int(idem.response_code)
        return {"detail": "Request in progress", "code": "conflict"}, 409

    try:
        body, code = handler()
    except Exception:
        IdempotencyKey.objects.filter(id=idem.id).delete()
        raise

    IdempotencyKey.objects.filter(id=idem.id).update(response_json=_json_safe(body), response_code=code)
    return body, code


def compute_request_hash(data: Optional[dict]) -> Optional[str]:
    """Canonical SHA256 of the request body (sorted-key JSON); None for empty bodies."""

    if not data:
        return None
    try:
        payload = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    except (TypeError, ValueError):
        return None
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def cleanup_expired_keys(now=None) -> int:
    now = now or timezone.now()
    deleted, _ = IdempotencyKey.objects.filter(expires_at__lt=now).delete()
    return deleted


# EOF
