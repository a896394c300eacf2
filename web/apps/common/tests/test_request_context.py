"""Tests for caller context parsing, the exception handler and middleware."""

import uuid

import pytest
from django.db import DatabaseError, IntegrityError
from rest_framework import exceptions as drf_exceptions

from apps.common.context import CallerContext, Role
from apps.common.errors import CouponAlreadyExists, ProductUnavailable
from apps.common.responses import api_exception_handler


def test_caller_context_from_headers():
    uid, sid = uuid.uuid4(), uuid.uuid4()
    caller = CallerContext.from_meta(
        {"HTTP_X_USER_ID": str(uid), "HTTP_X_STORE_ID": str(sid), "HTTP_X_USER_ROLE": "Staff"}
    )
    assert caller == CallerContext(user_id=uid, store_id=sid, role=Role.STAFF)
    assert caller.is_staff and caller.is_buyer


def test_buyer_never_carries_a_store():
    caller = CallerContext.from_meta({"HTTP_X_USER_ID": str(uuid.uuid4()), "HTTP_X_STORE_ID": str(uuid.uuid4())})
    assert caller.role == Role.BUYER
    assert caller.store_id is None
    assert not caller.is_staff


def test_malformed_user_id_is_anonymous():
    caller = CallerContext.from_meta({"HTTP_X_USER_ID": "not-a-uuid", "HTTP_X_USER_ROLE": "staff"})
    assert caller.role == Role.ANONYMOUS
    assert caller.user_id is None and not caller.is_buyer


def test_api_errors_render_the_envelope():
    resp = api_exception_handler(ProductUnavailable(errors={"product_id": "x"}), {})
    assert resp.status_code == 404
    assert resp.data == {
        "title": "Product unavailable",
        "status": 404,
        "code": "ProductUnavailable",
        "errors": {"product_id": "x"},
    }
    assert api_exception_handler(CouponAlreadyExists(), {}).status_code == 409


def test_database_errors_render_the_envelope():
    assert api_exception_handler(IntegrityError("dup"), {}).data["code"] == "InvalidRequest"
    resp = api_exception_handler(DatabaseError("down"), {})
    assert resp.status_code == 500
    assert resp.data["code"] == "DatabaseQueryFailed"


def test_throttled_sets_retry_after():
    resp = api_exception_handler(drf_exceptions.Throttled(wait=12), {})
    assert resp.status_code == 429
    assert resp.data["code"] == "Throttled"
    assert resp["Retry-After"] == "12"


def test_unknown_errors_are_left_to_django():
    assert api_exception_handler(RuntimeError("bug"), {}) is None


@pytest.mark.django_db
def test_request_id_is_echoed(client):
    r = client.get("/health/", HTTP_X_REQUEST_ID="abc-123")
    assert r["X-Request-ID"] == "abc-123"


@pytest.mark.django_db
def test_oversized_api_payload_is_rejected(client, settings, monkeypatch):
    monkeypatch.setattr("gateway.middleware.MAX_API_BYTES", 10)
    r = client.post("/api/orders/", data={"x": "y" * 50}, content_type="application/json")
    assert r.status_code == 413
    assert r.json()["code"] == "PayloadTooLarge"


@pytest.mark.django_db
def test_health_reports_gateway_registry(client):
    r = client.get("/health/")
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["components"]["payment_gateways"]["active"] == "fake"
    assert set(body["components"]["payment_gateways"]["registered"]) == {"brainTree", "fake"}
