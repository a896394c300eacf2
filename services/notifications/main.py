"""Notifications task-queue service built with FastAPI.

The checkout API submits delayed tasks here (today only
``send_order_details_email``); workers poll ``/tasks/claim`` to receive the
tasks that are due. Validation is performed with Pydantic models, while
persistence is delegated to the SQLAlchemy-backed repository in
``repo.TasksRepo``.
"""

import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Annotated, Any, Optional

from fastapi import FastAPI, Header, HTTPException, Query, Request
from pydantic import BaseModel, Field, model_validator
from pythonjsonlogger import jsonlogger
from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError, OperationalError

from repo import IdempotencyKey, ScheduledTask, TasksRepo, as_utc, canonical_hash, engine, get_session

# Registered task names and the string arguments each one requires
KNOWN_TASKS = {
    "send_order_details_email": ("orderID", "subject"),
}
MAX_DELAY_SECONDS = 7 * 24 * 3600

logger = logging.getLogger("notifications")
if not logger.handlers:
    h = logging.StreamHandler()
    h.setFormatter(jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s"))
    logger.addHandler(h)
    logger.setLevel(logging.INFO)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Brief active wait until the DB accepts connections
    deadline = time.time() + 30
    while True:
        try:
            with engine.connect() as conn:
                conn.execute(text("select 1"))
            break
        except OperationalError:
            if time.time() > deadline:
                raise
            time.sleep(1)
    yield


app = FastAPI(title="Notifications Service", lifespan=lifespan)


class TaskRequest(BaseModel):
    """Request body for task submission.

    Attributes:
        name: Registered task name.
        args: Task arguments; every required argument must be a string.
        delay_seconds: Delay from now before the task is due.
        eta: Explicit due time; mutually exclusive with ``delay_seconds``.
    """

    name: str
    args: dict[str, Any] = Field(default_factory=dict)
    delay_seconds: Optional[int] = Field(default=None, ge=0, le=MAX_DELAY_SECONDS)
    eta: Optional[datetime] = None

    @model_validator(mode="after")
    def check_task(self):
        required = KNOWN_TASKS.get(self.name)
        if required is None:
            raise ValueError(f"unknown task {self.name!r}")
        missing = [arg for arg in required if not isinstance(self.args.get(arg), str) or not self.args.get(arg)]
        if missing:
            raise ValueError(f"missing or invalid string args: {', '.join(missing)}")
        if self.delay_seconds is not None and self.eta is not None:
            raise ValueError("send either delay_seconds or eta, not both")
        return self

    def due_at(self, now: datetime) -> datetime:
        if self.eta is not None:
            return as_utc(self.eta)
        return now + timedelta(seconds=self.delay_seconds or 0)


class TaskResponse(BaseModel):
    id: uuid.UUID
    name: str
    args: dict[str, Any]
    eta: datetime
    status: str
    attempts: int = 0

    @classmethod
    def of(cls, task: ScheduledTask) -> "TaskResponse":
        return cls(
            id=task.id,
            name=task.name,
            args=task.args,
            eta=as_utc(task.eta),
            status=task.status,
            attempts=task.attempts,
        )


@app.get("/health")
def health():
    """Liveness/health endpoint."""
    return {"ok": True}


@app.post("/tasks", response_model=TaskResponse, status_code=202)
def submit_task(
    req: TaskRequest,
    idempotency_key: Annotated[Optional[str], Header(alias="Idempotency-Key")] = None,
):
    """Accept and schedule a task with optional idempotency.

    When an ``Idempotency-Key`` header is provided, retries with the same
    payload return the task created by the first request. Reusing the key
    with a different payload responds with HTTP 409.
    """
    repo = TasksRepo()
    eta = req.due_at(datetime.now(timezone.utc))

    if not idempotency_key:
        with get_session() as s:
            task = repo.create_task(s, req.name, req.args, eta)
            s.commit()
        logger.info("task scheduled", extra={"task_id": str(task.id), "task": task.name})
        return TaskResponse.of(task)

    payload_hash = canonical_hash(req.model_dump(mode="json"))
    with get_session() as s:
        try:
            s.add(IdempotencyKey(key=idempotency_key, request_hash=payload_hash))
            s.commit()
        except IntegrityError:
            s.rollback()
            rec = (
                s.execute(select(IdempotencyKey).where(IdempotencyKey.key == idempotency_key).with_for_update())
                .scalars()
                .first()
            )
            if not rec:
                raise HTTPException(status_code=500, detail="IDEMPOTENCY_LOOKUP_ERROR")
            if rec.request_hash != payload_hash:
                raise HTTPException(status_code=409, detail="IDEMPOTENCY_CONFLICT")
            if rec.task_id:
                existing = s.get(ScheduledTask, rec.task_id)
                if existing is not None:
                    return TaskResponse.of(existing)

        task = repo.create_task(s, req.name, req.args, eta)
        rec = s.get(IdempotencyKey, idempotency_key)
        rec.task_id = task.id
        s.commit()

    logger.info("task scheduled", extra={"task_id": str(task.id), "task": task.name})
    return TaskResponse.of(task)


@app.get("/tasks/{task_id}", response_model=TaskResponse)
def get_task(task_id: uuid.UUID):
    task = TasksRepo().get(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="TASK_NOT_FOUND")
    return TaskResponse.of(task)


@app.post("/tasks/claim", response_model=list[TaskResponse])
def claim_tasks(limit: Annotated[int, Query(ge=1, le=100)] = 10):
    """Hand the due tasks to a worker; each task is claimed at most once."""
    tasks = TasksRepo().claim_due(limit)
    if tasks:
        logger.info("tasks claimed", extra={"count": len(tasks)})
    return [TaskResponse.of(t) for t in tasks]


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = rid
    try:
        response = await call_next(request)
    finally:
        logger.info("request handled", extra={"request_id": rid, "path": request.url.path, "method": request.method})
    response.headers["X-Request-ID"] = rid
    return response
