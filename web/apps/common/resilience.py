"""Resilience helpers for outbound HTTP calls.

Shared by the outbound adapters (notification queue over ``httpx``, the
Braintree SDK for the breaker):

- ``CircuitBreaker``: per-downstream CLOSED/OPEN/HALF_OPEN breaker so an
  unhealthy dependency is not hammered.
- ``RetryPolicy``: attempts and exponential backoff read from settings.
- ``outbound_headers``: propagates ``X-Request-ID`` from the ContextVar set
  by ``gateway.middleware.RequestIdMiddleware``.
- ``post_json``: one POST guarded by a breaker, retried on transport errors
  and 5xx when the caller allows it.
"""

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx
from django.conf import settings

from gateway.middleware import REQUEST_ID_CTX

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


class CircuitOpenError(RuntimeError):
    """Raised when a call is refused because the breaker is open."""


class CircuitBreaker:
    """Minimal thread-safe circuit breaker.

    Transitions:
    - CLOSED -> OPEN when consecutive failures reach ``fail_threshold``.
    - OPEN -> HALF_OPEN after ``reset_timeout`` seconds.
    - HALF_OPEN -> CLOSED on a successful trial call, back to OPEN on failure.
      Only one trial call may be in flight while HALF_OPEN.
    """

    def __init__(self, name: str, fail_threshold: int, reset_timeout: float):
        self.name = name
        self.fail_threshold = fail_threshold
        self.reset_timeout = reset_timeout
        self._lock = threading.RLock()
        self._failures = 0
        self._state = CircuitState.CLOSED
        self._opened_at = 0.0
        self._trial_in_flight = False

    @classmethod
    def from_settings(cls, name: str) -> "CircuitBreaker":
        return cls(
            name,
            getattr(settings, "HTTP_CIRCUIT_FAIL_THRESHOLD", 5),
            getattr(settings, "HTTP_CIRCUIT_RESET_TIMEOUT", 30.0),
        )

    @property
    def state(self) -> CircuitState:
        with self._lock:
            if self._state == CircuitState.OPEN and (time.monotonic() - self._opened_at) >= self.reset_timeout:
                self._state = CircuitState.HALF_OPEN
                self._trial_in_flight = False
            return self._state

    def before_call(self) -> CircuitState:
        """Admit a call or raise ``CircuitOpenError``."""
        with self._lock:
            st = self.state
            if st == CircuitState.OPEN:
                raise CircuitOpenError(f"{self.name}: CIRCUIT_OPEN")
            if st == CircuitState.HALF_OPEN:
                if self._trial_in_flight:
                    raise CircuitOpenError(f"{self.name}: CIRCUIT_HALF_OPEN_BUSY")
                self._trial_in_flight = True
            return st

    def on_success(self):
        with self._lock:
            self._failures = 0
            self._state = CircuitState.CLOSED
            self._trial_in_flight = False

    def on_failure(self):
        with self._lock:
            self._failures += 1
            if self._state == CircuitState.HALF_OPEN or (
                self._failures >= self.fail_threshold and self._state != CircuitState.OPEN
            ):
                self._state = CircuitState.OPEN
                self._opened_at = time.monotonic()
                self._trial_in_flight = False
                logger.warning("circuit opened", extra={"circuit": self.name, "failures": self._failures})

    def on_finish(self):
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._trial_in_flight = False

    def reset(self):
        self.on_success()


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int
    backoff_base: float
    max_sleep: float

    @classmethod
    def from_settings(cls, retry: bool = True) -> "RetryPolicy":
        if not retry:
            return cls(max_attempts=1, backoff_base=0.0, max_sleep=0.0)
        return cls(
            max_attempts=max(1, getattr(settings, "HTTP_RETRY_MAX", 3)),
            backoff_base=getattr(settings, "HTTP_RETRY_BACKOFF_BASE", 0.15),
            max_sleep=getattr(settings, "HTTP_RETRY_MAX_SLEEP", 0.5),
        )

    def sleep_for(self, attempt: int) -> float:
        return min(self.backoff_base * (2 ** (attempt - 1)), self.max_sleep)


def outbound_headers(extra: Optional[dict] = None) -> dict:
    """Base headers for outgoing requests, including ``X-Request-ID``."""
    headers: dict[str, str] = {}
    rid = REQUEST_ID_CTX.get()
    if rid and rid != "-":
        headers["X-Request-ID"] = rid
    if extra:
        headers.update(extra)
    return headers


def should_retry(resp: Optional[httpx.Response], exc: Optional[Exception]) -> bool:
    """Retry only on transport errors or HTTP 5xx."""
    if exc is not None:
        return True
    return resp is not None and 500 <= resp.status_code < 600


def post_json(
    breaker: CircuitBreaker,
    url: str,
    payload: dict,
    *,
    timeout: float,
    headers: Optional[dict] = None,
    retry: bool = True,
) -> httpx.Response:
    """POST ``payload`` as JSON behind ``breaker`` and return the response.

    2xx responses are returned as is and count as breaker successes.
    Transport errors and 5xx are retried according to ``RetryPolicy``; once
    attempts are exhausted the breaker records a failure and the last error
    is raised.

    Raises:
        CircuitOpenError: When the breaker refuses the call.
        httpx.RequestError: For transport errors (including timeouts) after retries.
        httpx.HTTPStatusError: For non-retriable or exhausted non-2xx responses.
    """
    policy = RetryPolicy.from_settings(retry)
    state = breaker.before_call()
    hdrs = outbound_headers({**(headers or {}), "X-Circuit-State": state.value, "X-Retry-Count": "0"})
    attempt = 0
    try:
        with httpx.Client(timeout=timeout) as client:
            while True:
                resp = None
                exc = None
                try:
                    resp = client.post(url, json=payload, headers=hdrs)
                    if 200 <= resp.status_code < 300:
                        breaker.on_success()
                        return resp
                except httpx.RequestError as e:
                    exc = e

                attempt += 1
                hdrs["X-Retry-Count"] = str(attempt)
                if attempt >= policy.max_attempts or not should_retry(resp, exc):
                    breaker.on_failure()
                    if exc is not None:
                        raise exc
                    resp.raise_for_status()
                    return resp
                time.sleep(policy.sleep_for(attempt))
    finally:
        breaker.on_finish()
