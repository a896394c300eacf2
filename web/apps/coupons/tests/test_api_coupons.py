import uuid

import pytest

from apps.coupons.models import Coupon

URL = "/api/coupons/"


def _payload(**overrides):
    body = {
        "code": "summer10",
        "discount_type": "PERCENTAGE",
        "discount_amount": 10,
        "max_discount": 0,
        "max_usage": 100,
        "start_at": "2026-01-01T00:00:00Z",
        "end_at": "2027-01-01T00:00:00Z",
    }
    body.update(overrides)
    return body


def _create(client, headers, **overrides):
    r = client.post(URL, data=_payload(**overrides), content_type="application/json", **headers)
    assert r.status_code == 201, r.json()
    return r.json()["data"]


@pytest.mark.django_db
def test_staff_creates_coupon_for_own_store(client, staff_headers, store_id):
    r = client.post(URL, data=_payload(), content_type="application/json", **staff_headers)

    assert r.status_code == 201
    body = r.json()
    assert body["title"] == "Coupon created"
    assert body["code"] is None
    data = body["data"]
    assert data["code"] == "SUMMER10"
    assert data["store_id"] == str(store_id)
    assert data["times_used"] == 0
    assert Coupon.objects.filter(store_id=store_id).count() == 1


@pytest.mark.django_db
def test_duplicate_code_conflicts_and_keeps_existing(client, staff_headers):
    first = _create(client, staff_headers)

    r = client.post(URL, data=_payload(code="SUMMER10", discount_amount=50), content_type="application/json", **staff_headers)

    assert r.status_code == 409
    assert r.json()["code"] == "CouponAlreadyExists"
    assert Coupon.objects.get(id=first["id"]).discount_amount == 10


@pytest.mark.django_db
def test_same_code_is_allowed_in_another_store(client, staff_headers):
    _create(client, staff_headers)
    other_store = {**staff_headers, "HTTP_X_STORE_ID": str(uuid.uuid4())}
    _create(client, other_store)
    assert Coupon.objects.filter(code="SUMMER10").count() == 2


@pytest.mark.django_db
@pytest.mark.parametrize(
    "overrides",
    [
        {"discount_amount": 150},
        {"end_at": "2025-01-01T00:00:00Z"},
        {"code": "   "},
        {"discount_type": "BOGO"},
        {"unexpected": True},
    ],
)
def test_invalid_coupon_is_rejected(client, staff_headers, overrides):
    r = client.post(URL, data=_payload(**overrides), content_type="application/json", **staff_headers)
    assert r.status_code == 422
    assert r.json()["code"] == "CouponDataInvalid"
    assert not Coupon.objects.exists()


@pytest.mark.django_db
def test_buyer_cannot_manage_coupons(client, buyer_headers):
    r = client.post(URL, data=_payload(), content_type="application/json", **buyer_headers)
    assert r.status_code == 403
    assert r.json()["code"] == "Forbidden"


@pytest.mark.django_db
def test_anonymous_caller_is_unauthorized(client):
    r = client.get(URL)
    assert r.status_code == 401
    assert r.json()["code"] == "Unauthorized"


@pytest.mark.django_db
def test_get_coupon_is_scoped_to_store(client, staff_headers):
    created = _create(client, staff_headers)
    other_store = {**staff_headers, "HTTP_X_STORE_ID": str(uuid.uuid4())}

    assert client.get(f"{URL}{created['id']}/", **staff_headers).json()["data"]["id"] == created["id"]
    r = client.get(f"{URL}{created['id']}/", **other_store)
    assert r.status_code == 404
    assert r.json()["code"] == "CouponNotFound"


@pytest.mark.django_db
def test_list_pages_and_filters_by_code(client, staff_headers):
    for code in ("SPRING", "SUMMER", "SUMMIT"):
        _create(client, staff_headers, code=code)
    _create(client, {**staff_headers, "HTTP_X_STORE_ID": str(uuid.uuid4())}, code="SUMMER")

    r = client.get(f"{URL}?page=1&limit=2", **staff_headers)
    data = r.json()["data"]
    assert data["count"] == 3
    assert len(data["results"]) == 2
    assert len(client.get(f"{URL}?page=2&limit=2", **staff_headers).json()["data"]["results"]) == 1

    r = client.get(f"{URL}?query=sum", **staff_headers)
    assert sorted(c["code"] for c in r.json()["data"]["results"]) == ["SUMMER", "SUMMIT"]


@pytest.mark.django_db
def test_list_rejects_bad_paging(client, staff_headers):
    r = client.get(f"{URL}?limit=500", **staff_headers)
    assert r.status_code == 422


@pytest.mark.django_db
def test_patch_applies_only_sent_fields(client, staff_headers):
    created = _create(client, staff_headers)

    r = client.patch(f"{URL}{created['id']}/", data={"max_usage": 5}, content_type="application/json", **staff_headers)

    assert r.status_code == 200
    data = r.json()["data"]
    assert data["max_usage"] == 5
    assert data["discount_amount"] == 10
    assert data["code"] == "SUMMER10"


@pytest.mark.django_db
def test_patch_revalidates_the_merged_coupon(client, staff_headers):
    created = _create(client, staff_headers)

    r = client.patch(
        f"{URL}{created['id']}/", data={"discount_amount": 120}, content_type="application/json", **staff_headers
    )

    assert r.status_code == 422
    assert r.json()["code"] == "CouponDataInvalid"
    assert Coupon.objects.get(id=created["id"]).discount_amount == 10


@pytest.mark.django_db
def test_patch_to_taken_code_conflicts(client, staff_headers):
    _create(client, staff_headers, code="TAKEN")
    created = _create(client, staff_headers, code="FREE")

    r = client.patch(f"{URL}{created['id']}/", data={"code": "taken"}, content_type="application/json", **staff_headers)

    assert r.status_code == 409
    assert Coupon.objects.get(id=created["id"]).code == "FREE"


@pytest.mark.django_db
def test_delete_then_not_found(client, staff_headers):
    created = _create(client, staff_headers)

    r = client.delete(f"{URL}{created['id']}/", **staff_headers)
    assert r.status_code == 204
    assert not r.content

    assert client.delete(f"{URL}{created['id']}/", **staff_headers).status_code == 404
    assert client.get(f"{URL}{created['id']}/", **staff_headers).status_code == 404
