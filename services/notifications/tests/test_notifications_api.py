import uuid
from datetime import datetime, timedelta, timezone

TASK = "send_order_details_email"


def _body(**overrides):
    body = {"name": TASK, "args": {"orderID": str(uuid.uuid4()), "subject": "Order placed"}, "delay_seconds": 0}
    body.update(overrides)
    return body


def test_health(tasks_client):
    r = tasks_client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_submit_schedules_task(tasks_client):
    body = _body(delay_seconds=60)
    before = datetime.now(timezone.utc)

    r = tasks_client.post("/tasks", json=body)

    assert r.status_code == 202
    data = r.json()
    assert data["name"] == TASK
    assert data["args"] == body["args"]
    assert data["status"] == "SCHEDULED"
    assert data["attempts"] == 0
    eta = datetime.fromisoformat(data["eta"].replace("Z", "+00:00"))
    assert eta >= before + timedelta(seconds=60)

    fetched = tasks_client.get(f"/tasks/{data['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["id"] == data["id"]


def test_unknown_task_is_rejected(tasks_client):
    r = tasks_client.post("/tasks", json=_body(name="drop_tables"))
    assert r.status_code == 422


def test_missing_or_non_string_args_are_rejected(tasks_client):
    assert tasks_client.post("/tasks", json=_body(args={"orderID": "x"})).status_code == 422
    assert tasks_client.post("/tasks", json=_body(args={"orderID": 12, "subject": "s"})).status_code == 422


def test_eta_and_delay_are_exclusive(tasks_client):
    r = tasks_client.post("/tasks", json=_body(eta="2030-01-01T00:00:00Z"))
    assert r.status_code == 422


def test_idempotent_replay_returns_first_task(tasks_client):
    body = _body()
    headers = {"Idempotency-Key": "order-email:1:abc"}

    first = tasks_client.post("/tasks", json=body, headers=headers)
    second = tasks_client.post("/tasks", json=body, headers=headers)

    assert first.status_code == second.status_code == 202
    assert first.json()["id"] == second.json()["id"]


def test_idempotency_key_reuse_with_other_payload_conflicts(tasks_client):
    headers = {"Idempotency-Key": "order-email:2:abc"}
    tasks_client.post("/tasks", json=_body(), headers=headers)

    r = tasks_client.post("/tasks", json=_body(delay_seconds=5), headers=headers)

    assert r.status_code == 409
    assert r.json()["detail"] == "IDEMPOTENCY_CONFLICT"


def test_get_unknown_task(tasks_client):
    r = tasks_client.get(f"/tasks/{uuid.uuid4()}")
    assert r.status_code == 404
    assert r.json()["detail"] == "TASK_NOT_FOUND"


def test_claim_hands_out_due_tasks_once(tasks_client):
    due = tasks_client.post("/tasks", json=_body(delay_seconds=None, eta="2020-01-01T00:00:00Z")).json()
    later = tasks_client.post("/tasks", json=_body(delay_seconds=3600)).json()

    claimed = tasks_client.post("/tasks/claim").json()

    assert [t["id"] for t in claimed] == [due["id"]]
    assert claimed[0]["status"] == "CLAIMED"
    assert claimed[0]["attempts"] == 1
    assert tasks_client.post("/tasks/claim").json() == []
    assert tasks_client.get(f"/tasks/{later['id']}").json()["status"] == "SCHEDULED"


def test_claim_limit_is_bounded(tasks_client):
    assert tasks_client.post("/tasks/claim?limit=0").status_code == 422
    assert tasks_client.post("/tasks/claim?limit=101").status_code == 422


def test_request_id_is_echoed(tasks_client):
    r = tasks_client.get("/health", headers={"X-Request-ID": "rid-42"})
    assert r.headers["X-Request-ID"] == "rid-42"
    assert tasks_client.get("/health").headers["X-Request-ID"]
