from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from liftlog.config.settings import AuthMode
from liftlog.main import create_app
from liftlog.v1.core.exceptions import StoreError
from liftlog.v1.infra.jobs.routes import get_job_store

from tests.fakes import FakeJobStore


@pytest.fixture
def app(settings, fake_store):
    """App wired to the in-memory store; lifespan is not started."""
    app = create_app(settings)
    app.dependency_overrides[get_job_store] = lambda: fake_store
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


class TestEnqueue:
    def test_enqueue_returns_202(self, client: TestClient, fake_store: FakeJobStore):
        response = client.post("/v1/jobs", json={"data": {"message": "3x10 squat"}})

        assert response.status_code == 202
        body = response.json()
        assert body["ok"] is True
        data = body["data"]
        assert data["status"] == "pending"
        assert data["status_endpoint"] == f"/v1/jobs/{data['job_id']}"

        [job] = fake_store.jobs.values()
        assert str(job.id) == data["job_id"]
        assert job.owner == "DEV_USER"
        assert job.data == {"message": "3x10 squat"}

    def test_enqueue_accepts_payload_without_message(self, client: TestClient):
        """Payload shape is checked at processing time, not on submit."""
        response = client.post("/v1/jobs", json={"data": {"text": "squat"}})
        assert response.status_code == 202

    def test_enqueue_rejects_empty_data(self, client: TestClient):
        response = client.post("/v1/jobs", json={"data": {}})

        assert response.status_code == 422
        assert response.json()["ok"] is False

    def test_enqueue_rejects_missing_data(self, client: TestClient):
        response = client.post("/v1/jobs", json={"message": "squat"})
        assert response.status_code == 422

    def test_dev_auth_uses_header(self, settings, fake_store):
        settings = settings.model_copy(update={"auth_mode": AuthMode.DEV})
        app = create_app(settings)
        app.dependency_overrides[get_job_store] = lambda: fake_store
        client = TestClient(app)

        response = client.post(
            "/v1/jobs",
            json={"data": {"message": "squat"}},
            headers={"X-User-ID": "athlete-7"},
        )
        assert response.status_code == 202
        [job] = fake_store.jobs.values()
        assert job.owner == "athlete-7"

        response = client.post("/v1/jobs", json={"data": {"message": "squat"}})
        assert response.status_code == 400


class TestStatus:
    def test_pending_job_returns_202(self, client: TestClient, fake_store: FakeJobStore):
        job = fake_store.add({"message": "squat"})

        response = client.get(f"/v1/jobs/{job.id}")

        assert response.status_code == 202
        data = response.json()["data"]
        assert data["id"] == str(job.id)
        assert data["status"] == "pending"
        assert data["result"] is None
        assert "retry_count" not in data

    def test_completed_job_returns_200(self, client: TestClient, fake_store: FakeJobStore):
        result = [{"exercise_name": "squat", "sets": 3.0}]
        job = fake_store.add({"message": "squat"}, status="completed", result=result)

        response = client.get(f"/v1/jobs/{job.id}")

        assert response.status_code == 200
        assert response.json()["data"]["result"] == result

    def test_failed_job_returns_error(self, client: TestClient, fake_store: FakeJobStore):
        job = fake_store.add(
            {"text": "squat"},
            status="failed",
            retry_count=3,
            error="request {'text': 'squat'} did not contain key 'message'",
        )

        response = client.get(f"/v1/jobs/{job.id}")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "failed"
        assert "did not contain key 'message'" in data["error"]

    def test_unknown_job_returns_404(self, client: TestClient):
        response = client.get(f"/v1/jobs/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Job not found"

    def test_invalid_job_id(self, client: TestClient):
        response = client.get("/v1/jobs/not-a-uuid")
        assert response.status_code == 422


def test_queue_stats(client: TestClient, fake_store: FakeJobStore):
    fake_store.add({"message": "a"})
    fake_store.add({"message": "b"}, status="failed", retry_count=1)
    fake_store.add({"message": "c"}, status="failed", retry_count=3)
    fake_store.add({"message": "d"}, status="completed")

    response = client.get("/v1/jobs/stats")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["pending_count"] == 2
    assert data["by_status"] == {"pending": 1, "failed": 2, "completed": 1}


def test_store_outage_returns_503(client: TestClient, fake_store: FakeJobStore):
    async def failing_create(data, owner):
        raise StoreError("create timed out after 5.0s")

    fake_store.create = failing_create

    response = client.post("/v1/jobs", json={"data": {"message": "squat"}})

    assert response.status_code == 503
    assert response.json()["error"]["message"] == "create timed out after 5.0s"
    assert response.headers["Retry-After"] == "5"
