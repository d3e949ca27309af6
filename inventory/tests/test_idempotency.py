from datetime import timedelta

import pytest
from django.utils import timezone
from inventory.idempotency import cleanup_expired_keys, compute_request_hash, with_idempotency
from inventory.models import IdempotencyKey


class Anon:
    id = None


def run(key, handler, request_hash="h1"):
    return with_idempotency(
        key=key, user=Anon(), path="/api/v1/inventory/receipts/", method="post", handler=handler, request_hash=request_hash
    )


@pytest.mark.django_db
def test_second_call_replays_stored_response():
    calls = []

    def handler():
        calls.append(1)
        return {"ok": True, "n": len(calls)}, 201

    assert run("k-1", handler) == ({"ok": True, "n": 1}, 201)
    assert run("k-1", handler) == ({"ok": True, "n": 1}, 201)
    assert len(calls) == 1


@pytest.mark.django_db
def test_payload_mismatch_is_a_conflict():
    run("k-2", lambda: ({"ok": True}, 201), request_hash="aaa")
    body, code = run("k-2", lambda: ({"ok": True}, 201), request_hash="bbb")
    assert code == 409
    assert body["code"] == "conflict"


@pytest.mark.django_db
def test_handler_error_drops_the_key():
    def boom():
        raise RuntimeError("nope")

    with pytest.raises(RuntimeError):
        run("k-3", boom)
    assert not IdempotencyKey.objects.filter(key="k-3").exists()
    assert run("k-3", lambda: ({"ok": True}, 200)) == ({"ok": True}, 200)


@pytest.mark.django_db
def test_expired_keys_are_reused_and_cleaned():
    run("k-4", lambda: ({"n": 1}, 201))
    IdempotencyKey.objects.filter(key="k-4").update(expires_at=timezone.now() - timedelta(seconds=1))
    assert run("k-4", lambda: ({"n": 2}, 201)) == ({"n": 2}, 201)

    IdempotencyKey.objects.update(expires_at=timezone.now() - timedelta(seconds=1))
    assert cleanup_expired_keys() == 1
    assert IdempotencyKey.objects.count() == 0


def test_request_hash_is_order_independent():
    assert compute_request_hash({"a": 1, "b": 2}) == compute_request_hash({"b": 2, "a": 1})
    assert compute_request_hash({}) is None
