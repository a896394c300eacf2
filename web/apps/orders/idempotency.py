"""Idempotency utilities for safely handling duplicate order submissions.

This module stores and retrieves idempotency keys to de-duplicate client
retries of ``POST /api/orders/``. It supports creating an idempotent record,
detecting conflicts when the same key is used with a different payload, and
finalizing a stored response so subsequent retries can short-circuit.

Keys are scoped to the calling user so two buyers can never collide.
"""

import hashlib
import json
import logging
from datetime import timedelta
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.common.errors import IdempotencyConflict

from .models import IdempotencyKey

logger = logging.getLogger(__name__)


def _hash(payload) -> str:
    """Compute a stable SHA-256 hash for a JSON-serializable payload.

    The payload is serialized with sorted keys and compact separators to
    ensure a deterministic representation before hashing.
    """
    body = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


def scoped_key(user_id, key: str) -> str:
    return f"{user_id}:{key}"


@transaction.atomic
def get_or_create_idempotent(key: str, payload) -> tuple[bool, IdempotencyKey]:
    """Get-or-create an idempotency record for the given key and payload.

    Behavior:
        - First request with a new key: create a record and return (False, rec).
        - Retry with the same key and payload whose response is stored:
          return (True, rec) so the caller can replay it.
        - Same key with a different payload, or while the first request
          is still running: raise ``IdempotencyConflict``.
        - Same key and payload whose first request has been in progress for
          longer than ``IDEMPOTENCY_STALE_SECS``: the worker that owned it
          is presumed dead, so the record is reclaimed and (False, rec) is
          returned.

    The create path runs in a nested savepoint so an ``IntegrityError``
    only rolls back that block; the existing record is then locked with
    ``SELECT ... FOR UPDATE`` before it is inspected.

    Raises:
        IdempotencyConflict: Key reused with another payload or still in flight.
    """
    h = _hash(payload)

    try:
        with transaction.atomic():
            rec = IdempotencyKey.objects.create(key=key, request_hash=h, response_status=0, response_body={})
            return False, rec
    except IntegrityError:
        rec = IdempotencyKey.objects.select_for_update().get(key=key)
        if rec.request_hash != h:
            raise IdempotencyConflict()
        if rec.response_status:
            return True, rec
        if not _is_stale(rec):
            raise IdempotencyConflict(title="A request with this idempotency key is still in progress")

        logger.warning(
            "reclaiming stale idempotency key",
            extra={"idempotency_key": key, "created_at": str(rec.created_at)},
        )
        rec.created_at = timezone.now()
        rec.response_body = {}
        rec.order = None
        rec.save(update_fields=["created_at", "response_body", "order"])
        return False, rec


def _is_stale(rec: IdempotencyKey) -> bool:
    cutoff = timezone.now() - timedelta(seconds=getattr(settings, "IDEMPOTENCY_STALE_SECS", 60))
    return rec.created_at < cutoff


def finalize(rec: IdempotencyKey, status_code: int, body: dict, order_id: Optional[object] = None) -> None:
    """Persist the final response for an idempotent request.

    Server-side failures (5xx) are not stored: the record is dropped so the
    client can retry with the same key.
    """
    if status_code >= 500:
        IdempotencyKey.objects.filter(key=rec.key).delete()
        return
    rec.response_status = status_code
    rec.response_body = body
    if order_id is not None:
        rec.order_id = order_id
    rec.save(update_fields=["response_status", "response_body", "order"])
