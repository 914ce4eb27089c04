"""
API Contract Tests
==================

HTTP behaviour of the FastAPI application: status codes, response bodies
and the job polling flow.
"""

import asyncio
from unittest.mock import patch

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from seedmap.api.main import create_app, status_code_for
from seedmap.core.errors import (
    AdmissionRejected,
    DuplicateJobError,
    InvalidSize,
    JobNotFound,
    RenderFailure,
)
from seedmap.core.queue.orchestrator import GenerationOrchestrator
from seedmap.core.rendering.image_processor import MapImageProcessor
from seedmap.core.storage.manager import FileStorageManager

from tests.utils.mocks import FakeSessionFactory

pytestmark = pytest.mark.integration


@pytest.fixture
def app(test_settings, orchestrator):
    return create_app(settings=test_settings, orchestrator=orchestrator)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest_asyncio.fixture
async def async_client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client


class TestErrorMapping:
    def test_status_codes(self):
        assert status_code_for(InvalidSize("bad size")) == 400
        assert status_code_for(AdmissionRejected("full")) == 429
        assert status_code_for(JobNotFound("missing")) == 404
        assert status_code_for(DuplicateJobError("taken")) == 409
        assert status_code_for(RenderFailure("boom")) == 500


class TestGenerate:
    @pytest.mark.asyncio
    async def test_generate_and_poll(self, async_client, orchestrator):
        response = await async_client.post(
            "/api/generate", json={"seed": "12345", "dimension": "overworld", "size": 8}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["status"] == "processing"
        assert body["estimated_time"] == "30-60 seconds"
        job_id = body["job_id"]

        await orchestrator.wait_for_idle()

        status = await async_client.get(f"/api/status/{job_id}")
        assert status.status_code == 200
        data = status.json()
        assert data["status"] == "ready"
        assert data["metadata"]["dimensions"] == "1000x1000"
        assert "error" not in data

        image_path = data["image_url"].replace("http://testserver", "")
        image = await async_client.get(image_path)
        assert image.status_code == 200
        assert image.headers["content-type"] == "image/png"

    @pytest.mark.asyncio
    async def test_invalid_size(self, async_client, orchestrator):
        response = await async_client.post("/api/generate", json={"seed": "12345", "size": 1})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "INVALID_SIZE"
        assert body["retryable"] is False
        assert len(orchestrator.tracker) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload, error",
        [
            ({}, "INVALID_SEED"),
            ({"seed": ""}, "INVALID_SEED"),
            ({"seed": "1", "dimension": "moon"}, "INVALID_DIMENSION"),
        ],
    )
    async def test_invalid_input(self, async_client, payload, error):
        response = await async_client.post("/api/generate", json=payload)

        assert response.status_code == 400
        assert response.json()["error"] == error

    @pytest.mark.asyncio
    async def test_malformed_body(self, async_client):
        response = await async_client.post("/api/generate", json=[1, 2, 3])

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_REQUEST"

    @pytest.mark.asyncio
    async def test_too_many_jobs(self, test_settings, tracker, storage):
        gate = asyncio.Event()
        orchestrator = GenerationOrchestrator(
            tracker, storage, MapImageProcessor(), FakeSessionFactory(gate=gate), settings=test_settings
        )
        app = create_app(settings=test_settings, orchestrator=orchestrator)
        transport = httpx.ASGITransport(app=app)

        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
            for seed in ("1", "2"):
                assert (await http_client.post("/api/generate", json={"seed": seed})).status_code == 200

            response = await http_client.post("/api/generate", json={"seed": "3"})
            assert response.status_code == 429
            assert response.json()["error"] == "TOO_MANY_JOBS"
            assert response.json()["retryable"] is True

            health = (await http_client.get("/api/health")).json()
            assert health["status"] == "degraded"
            assert health["active_jobs"] == 2

            gate.set()
            await orchestrator.wait_for_idle()

            health = (await http_client.get("/api/health")).json()
            assert health["status"] == "healthy"
            assert health["active_jobs"] == 0

    @pytest.mark.asyncio
    async def test_duplicate_job_id(self, async_client, orchestrator):
        with patch("seedmap.core.queue.orchestrator.generate_job_id", return_value="seed-fixed"):
            first = await async_client.post("/api/generate", json={"seed": "1"})
            second = await async_client.post("/api/generate", json={"seed": "1"})

        assert first.status_code == 200
        assert second.status_code == 409
        body = second.json()
        assert body["error"] == "DUPLICATE_JOB"
        assert body["retryable"] is True
        assert body["job_id"] == "seed-fixed"

        await orchestrator.wait_for_idle()
        assert orchestrator.tracker.in_flight == 0

    @pytest.mark.asyncio
    async def test_failed_job_status(self, test_settings, tracker, storage):
        orchestrator = GenerationOrchestrator(
            tracker,
            storage,
            MapImageProcessor(),
            FakeSessionFactory(error=RenderFailure("Browser launch failed: no chromium")),
            settings=test_settings,
        )
        app = create_app(settings=test_settings, orchestrator=orchestrator)
        transport = httpx.ASGITransport(app=app)

        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
            job_id = (await http_client.post("/api/generate", json={"seed": 42})).json()["job_id"]
            await orchestrator.wait_for_idle()

            data = (await http_client.get(f"/api/status/{job_id}")).json()

        assert data["status"] == "failed"
        assert data["error"] == "RENDER_FAILED"
        assert data["retryable"] is True
        assert "image_url" not in data


class TestReadEndpoints:
    def test_unknown_job(self, client):
        response = client.get("/api/status/does-not-exist")

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "JOB_NOT_FOUND"
        assert body["job_id"] == "does-not-exist"
        assert body["request_id"] == response.headers["X-Request-ID"]

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["max_concurrent_jobs"] == 2
        assert body["memory_mb"] > 0

    def test_stats(self, client):
        response = client.get("/api/stats")

        assert response.status_code == 200
        body = response.json()
        assert body["total_jobs"] == 0
        assert body["max_concurrent_jobs"] == 2
        assert body["storage"]["total_files"] == 0

    def test_cleanup(self, client):
        response = client.post("/api/cleanup")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Cleanup completed",
            "cleaned_count": 0,
            "remaining_jobs": 0,
        }

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["endpoints"]["generate"] == "POST /api/generate"
        assert "X-Request-ID" in response.headers


class TestLifespan:
    def test_startup_creates_storage_and_shutdown_is_clean(self, test_settings, tracker, tmp_path):
        storage = FileStorageManager(tmp_path / "fresh-maps", test_settings.public_base_url)
        orchestrator = GenerationOrchestrator(
            tracker, storage, MapImageProcessor(), FakeSessionFactory(), settings=test_settings
        )
        app = create_app(settings=test_settings, orchestrator=orchestrator)

        assert not storage.base_path.exists()
        with TestClient(app) as test_client:
            assert storage.base_path.is_dir()
            assert test_client.get("/api/health").status_code == 200

        assert tracker.in_flight == 0
