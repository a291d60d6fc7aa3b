from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from liftlog.config.settings import AuthMode
from liftlog.main import create_app
from liftlog.v1.core.exceptions import StoreError
from liftlog.v1.workouts.routes import get_upload_sink
from liftlog.v1.workouts.schemas import WorkoutEntry

from tests.fakes import FakeSink


def stored_row(sink: FakeSink, entry: WorkoutEntry, owner: str = "athlete-1") -> dict:
    row = {"id": str(uuid4()), "owner": owner, **entry.model_dump(mode="json")}
    sink.stored.append(row)
    return row


@pytest.fixture
def sink() -> FakeSink:
    return FakeSink(fail_on={"bench press"})


@pytest.fixture
def app(settings, sink):
    """App wired to the in-memory sink; lifespan is not started."""
    settings = settings.model_copy(update={"auth_mode": AuthMode.DEV})
    app = create_app(settings)
    app.dependency_overrides[get_upload_sink] = lambda: sink
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app, headers={"X-User-ID": "athlete-1"})


class TestCreateExercises:
    def test_all_stored_returns_200(self, client: TestClient, sink: FakeSink):
        response = client.post(
            "/v1/exercises",
            json={
                "entries": [
                    {"exercise_name": "squat", "sets": 3, "work": 10},
                    {"exercise_name": "run", "work": 5, "work_type": "distance"},
                ],
                "summary": "3x10 squat, ran 5 km",
            },
        )

        assert response.status_code == 200
        assert "X-Error-Details" not in response.headers
        data = response.json()["data"]
        assert [row["exercise_name"] for row in data] == ["squat", "run"]
        assert all(row["owner"] == "athlete-1" for row in data)
        assert all(row["summary"] == "3x10 squat, ran 5 km" for row in data)
        assert len(sink.stored) == 2

    def test_partial_failure_returns_206(self, client: TestClient, sink: FakeSink):
        response = client.post(
            "/v1/exercises",
            json={
                "entries": [
                    {"exercise_name": "squat"},
                    {"exercise_name": "bench press"},
                ]
            },
        )

        assert response.status_code == 206
        assert (
            response.headers["X-Error-Details"]
            == "failed to insert exercise bench press"
        )
        body = response.json()
        assert [row["exercise_name"] for row in body["data"]] == ["squat"]
        assert body["message"] == "1 of 2 entries failed"

    def test_every_entry_failing_returns_206_and_empty_data(self, client: TestClient):
        response = client.post(
            "/v1/exercises", json={"entries": [{"exercise_name": "bench press"}]}
        )

        assert response.status_code == 206
        assert response.json()["data"] == []

    def test_rejects_empty_entries(self, client: TestClient):
        response = client.post("/v1/exercises", json={"entries": []})
        assert response.status_code == 422

    def test_rejects_entry_without_name(self, client: TestClient):
        response = client.post("/v1/exercises", json={"entries": [{"sets": 3}]})
        assert response.status_code == 422

    def test_requires_user_in_dev_auth(self, app):
        response = TestClient(app).post(
            "/v1/exercises", json={"entries": [{"exercise_name": "squat"}]}
        )
        assert response.status_code == 400


class TestGetExercise:
    def test_returns_owned_exercise(self, client: TestClient, sink: FakeSink):
        row = stored_row(sink, WorkoutEntry(exercise_name="deadlift", sets=5, work=5))

        response = client.get(f"/v1/exercises/{row['id']}")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["id"] == row["id"]
        assert data["exercise_name"] == "deadlift"

    def test_other_owner_is_not_found(self, client: TestClient, sink: FakeSink):
        row = stored_row(sink, WorkoutEntry(exercise_name="squat"), owner="athlete-2")

        response = client.get(f"/v1/exercises/{row['id']}")

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Exercise not found"

    def test_unknown_exercise_is_not_found(self, client: TestClient):
        response = client.get(f"/v1/exercises/{uuid4()}")
        assert response.status_code == 404

    def test_invalid_id(self, client: TestClient):
        response = client.get("/v1/exercises/not-a-uuid")
        assert response.status_code == 422

    def test_store_outage_returns_503(self, client: TestClient, sink: FakeSink):
        async def failing_fetch(exercise_id, owner):
            raise StoreError("fetch exercise timed out after 5.0s")

        sink.fetch = failing_fetch

        response = client.get(f"/v1/exercises/{uuid4()}")

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "5"
