import os

# Must be set before ``repo`` builds its engine
os.environ.setdefault("TASKS_DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402


@pytest.fixture
def tasks_client():
    from main import app
    from repo import Base, engine

    with TestClient(app) as c:
        yield c

    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
