import asyncio

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from portfolio_api.core import metrics
from portfolio_api.db.session import get_session
from portfolio_api.main import app
from portfolio_api.models import Base


@pytest.fixture
def client() -> TestClient:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    SessionLocal = async_sessionmaker(engine, expire_on_commit=False)

    async def init_models() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(init_models())

    async def override_get_session():
        async with SessionLocal() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    test_client = TestClient(app)
    yield test_client
    test_client.close()
    app.dependency_overrides.clear()


def test_healthcheck(client: TestClient) -> None:
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_readiness(client: TestClient) -> None:
    response = client.get("/api/v1/health/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready"}


def test_request_id_header(client: TestClient) -> None:
    response = client.get("/api/v1/health")
    assert response.headers.get("X-Request-ID")

    echoed = client.get("/api/v1/health", headers={"X-Request-ID": "req-123"})
    assert echoed.headers["X-Request-ID"] == "req-123"


def test_metrics_snapshot_tracks_renames(client: TestClient) -> None:
    created = client.post("/api/v1/admin/projects", json={"title": "Metrics Demo"})
    assert created.status_code == 201, created.text
    project_id = created.json()["id"]
    client.post(f"/api/v1/admin/projects/{project_id}/regenerate-slug", json={"manual_slug": "metrics-demo-v2"})

    response = client.get("/api/v1/metrics")
    assert response.status_code == 200
    assert response.json() == metrics.snapshot()
    assert response.json()["slug_renames"] == 1
