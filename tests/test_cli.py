"""Tests for CLI commands"""

from unittest.mock import patch
from uuid import uuid4

import pytest
from typer.testing import CliRunner

from cli.main import app
from liftlog.v1.core.exceptions import StoreError

from tests.fakes import FakeJobStore


class FakeRuntime:
    """Stands in for QueueRuntime; hands out an in-memory store."""

    def __init__(self, store: FakeJobStore, schema_error: Exception | None = None):
        self.store = store
        self.schema_error = schema_error
        self.schema_initialized = False

    def __call__(self, settings):
        self.settings = settings
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return None

    async def init_schema(self):
        if self.schema_error is not None:
            raise self.schema_error
        self.schema_initialized = True


# Test fixtures
@pytest.fixture
def runner():
    """CLI test runner"""
    return CliRunner()


@pytest.fixture
def store():
    return FakeJobStore()


class TestJobCommands:
    """Test jobs subcommands"""

    def test_enqueue(self, runner, store):
        with patch("cli.commands.jobs.QueueRuntime", FakeRuntime(store)):
            result = runner.invoke(app, ["jobs", "enqueue", "3x10 squat", "--owner", "u1"])

        assert result.exit_code == 0
        [job] = store.jobs.values()
        assert job.data == {"message": "3x10 squat"}
        assert job.owner == "u1"
        assert f"Enqueued job {job.id}" in result.output

    def test_enqueue_store_error(self, runner, store):
        async def failing_create(data, owner):
            raise StoreError("create failed: connection refused")

        store.create = failing_create
        with patch("cli.commands.jobs.QueueRuntime", FakeRuntime(store)):
            result = runner.invoke(app, ["jobs", "enqueue", "squat"])

        assert result.exit_code == 1
        assert "Failed to enqueue job" in result.output

    def test_status(self, runner, store):
        job = store.add(
            {"message": "squat"},
            status="completed",
            result=[{"exercise_name": "squat", "sets": 3.0}],
        )

        with patch("cli.commands.jobs.QueueRuntime", FakeRuntime(store)):
            result = runner.invoke(app, ["jobs", "status", str(job.id)])

        assert result.exit_code == 0
        assert "completed" in result.output
        assert '"exercise_name": "squat"' in result.output

    def test_status_warns_when_retries_exhausted(self, runner, store):
        job = store.add(
            {"message": "squat"}, status="failed", retry_count=3, error="Wit.ai 503"
        )

        with patch("cli.commands.jobs.QueueRuntime", FakeRuntime(store)):
            result = runner.invoke(app, ["jobs", "status", str(job.id)])

        assert result.exit_code == 0
        assert "Retries exhausted" in result.output

    def test_status_retryable_failure_has_no_warning(self, runner, store):
        job = store.add({"message": "squat"}, status="failed", retry_count=1)

        with patch("cli.commands.jobs.QueueRuntime", FakeRuntime(store)):
            result = runner.invoke(app, ["jobs", "status", str(job.id)])

        assert result.exit_code == 0
        assert "Retries exhausted" not in result.output

    def test_status_not_found(self, runner, store):
        job_id = uuid4()
        with patch("cli.commands.jobs.QueueRuntime", FakeRuntime(store)):
            result = runner.invoke(app, ["jobs", "status", str(job_id)])

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_status_invalid_id(self, runner, store):
        with patch("cli.commands.jobs.QueueRuntime", FakeRuntime(store)):
            result = runner.invoke(app, ["jobs", "status", "not-a-uuid"])

        assert result.exit_code != 0

    def test_stats(self, runner, store):
        store.add({"message": "a"})
        store.add({"message": "b"}, status="failed", retry_count=3)

        with patch("cli.commands.jobs.QueueRuntime", FakeRuntime(store)):
            result = runner.invoke(app, ["jobs", "stats"])

        assert result.exit_code == 0
        assert "pending" in result.output
        assert "failed" in result.output
        assert "eligible for claim" in result.output


class TestInitDb:
    def test_init_db(self, runner, store):
        runtime = FakeRuntime(store)
        with patch("cli.main.QueueRuntime", runtime):
            result = runner.invoke(app, ["init-db"])

        assert result.exit_code == 0
        assert runtime.schema_initialized
        assert "Database schema ready" in result.output

    def test_init_db_failure(self, runner, store):
        runtime = FakeRuntime(store, schema_error=OSError("connection refused"))
        with patch("cli.main.QueueRuntime", runtime):
            result = runner.invoke(app, ["init-db"])

        assert result.exit_code == 1
        assert "Failed to initialize database" in result.output
