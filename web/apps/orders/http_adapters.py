"""HTTP client for the notifications task queue.

Submits the "send order details email" task to the notifications service
(``services/notifications``) with an ETA a few seconds in the future.
Submissions are idempotent on the service side thanks to the
``Idempotency-Key`` header derived from the order id and subject, so they
are retried with exponential backoff on transport errors and 5xx, behind a
circuit breaker.
"""

import hashlib
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from django.conf import settings

from apps.common.resilience import CircuitBreaker, post_json

from .domain import NotificationPort

SEND_ORDER_DETAILS_EMAIL_TASK = "send_order_details_email"

_notifications_cb = CircuitBreaker.from_settings("notifications")


class HttpNotificationClient(NotificationPort):
    """Notification dispatcher client.

    Args:
        base_url: Notifications service root (defaults to settings).
        timeout: Per-request timeout in seconds (defaults to settings).
        delay_seconds: Delay before the task becomes due.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None, delay_seconds: Optional[int] = None):
        self.base_url = base_url or settings.NOTIFICATIONS_BASE_URL
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECS
        self.delay_seconds = delay_seconds if delay_seconds is not None else settings.ORDER_EMAIL_DELAY_SECS

    def send_order_details_email(self, order_id: uuid.UUID, subject: str) -> None:
        """Queue the order details email.

        Raises:
            httpx.HTTPError: When the task could not be submitted after retries.
            CircuitOpenError: When the notifications circuit is open.
        """
        eta = datetime.now(timezone.utc) + timedelta(seconds=self.delay_seconds)
        payload = {
            "name": SEND_ORDER_DETAILS_EMAIL_TASK,
            "args": {"orderID": str(order_id), "subject": subject},
            "eta": eta.isoformat(),
        }
        post_json(
            _notifications_cb,
            f"{self.base_url}/tasks",
            payload,
            timeout=self.timeout,
            headers={"Idempotency-Key": _task_key(order_id, subject)},
        )


def _task_key(order_id: uuid.UUID, subject: str) -> str:
    digest = hashlib.sha256(subject.encode("utf-8")).hexdigest()[:16]
    return f"order-email:{order_id}:{digest}"
