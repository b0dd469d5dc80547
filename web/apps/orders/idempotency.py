"""Idempotency keys for order creation.

A client that times out can send the same request again with the same
``Idempotency-Key``. The first request claims the key; once it finishes, its
status and body are stored on the key so retries get the exact same answer
without reserving stock twice. A retryable failure (``STOCK_CONFLICT``,
``UPSTREAM_UNAVAILABLE``) wrote nothing, so its key is released instead and
the next attempt runs the request again.
"""

import hashlib
import json

from django.db import IntegrityError, transaction

from .models import IdempotencyKey


def request_hash(payload) -> str:
    """SHA-256 of the payload serialized with sorted keys and compact separators."""
    body = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


class IdempotencyConflict(Exception):
    """The key was already used with a different payload."""


@transaction.atomic
def claim_key(key: str, payload) -> tuple[bool, IdempotencyKey]:
    """Claim ``key`` for this payload, or find the earlier claim.

    The insert runs in a nested savepoint so a duplicate key only rolls back
    that block. An existing record is locked (``SELECT ... FOR UPDATE``)
    before its hash is compared.

    Args:
        key: Client-provided idempotency key.
        payload: Request payload used to compute the request hash.

    Returns:
        tuple[bool, IdempotencyKey]: ``(existing, rec)``. ``existing`` is
        False when this call created the record; the caller must then
        ``store_response`` or ``release_key`` once the request completes.

    Raises:
        IdempotencyConflict: The key exists with a different payload hash.
    """
    h = request_hash(payload)
    try:
        with transaction.atomic():
            rec = IdempotencyKey.objects.create(key=key, request_hash=h, response_status=0, response_body={})
            return False, rec
    except IntegrityError:
        rec = IdempotencyKey.objects.select_for_update().get(key=key)
        if rec.request_hash != h:
            raise IdempotencyConflict(key)
        return True, rec


def is_pending(rec: IdempotencyKey) -> bool:
    """True while the first request holding the key has not finished."""
    return rec.response_status == 0


def store_response(rec: IdempotencyKey, status_code: int, body: dict, order_id=None) -> None:
    """Persist the final response so retries can replay it.

    Args:
        rec: Record returned by ``claim_key``.
        status_code: HTTP status of the response.
        body: JSON-serializable response body.
        order_id: Created order, when the request succeeded.
    """
    rec.response_status = status_code
    rec.response_body = body
    if order_id is not None:
        rec.order_id = order_id
    rec.save(update_fields=["response_status", "response_body", "order"])


def release_key(rec: IdempotencyKey) -> None:
    """Drop the claim so the next request with the same key runs again."""
    IdempotencyKey.objects.filter(pk=rec.pk).delete()
