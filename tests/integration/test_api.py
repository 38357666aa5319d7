"""
Integration tests for API endpoints.
"""

from datetime import timedelta

from httpx import AsyncClient

from jobqueue.db.repository import JobRepository
from jobqueue.utils import utcnow
from jobqueue.worker.handlers import build_handler


class TestJobAPI:
    """Tests for job endpoints."""

    async def test_enqueue_job_success(self, client: AsyncClient, repo: JobRepository):
        """Test successful job enqueue."""
        response = await client.post(
            "/v1/jobs",
            json={"job_type": "echo", "data": {"message": "hello"}, "queue": "mail"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["queue"] == "mail"
        assert data["job_type"] == "echo"
        assert (await repo.status("mail")).total == 1

    async def test_enqueue_scheduled_job(self, client: AsyncClient, repo: JobRepository):
        """Test a job with a future run_at is not yet a candidate."""
        run_at = (utcnow() + timedelta(hours=1)).isoformat()

        response = await client.post(
            "/v1/jobs",
            json={"job_type": "echo", "run_at": run_at},
        )

        assert response.status_code == 201
        assert await repo.find_candidates("default", "worker-1") == []

    async def test_enqueue_unknown_job_type(self, client: AsyncClient):
        """Test enqueueing an unregistered job type is rejected."""
        response = await client.post("/v1/jobs", json={"job_type": "nonexistent"})

        assert response.status_code == 422
        assert response.json()["error"] == "bad_handler"

    async def test_enqueue_invalid_arguments(self, client: AsyncClient):
        """Test handler argument validation."""
        response = await client.post(
            "/v1/jobs",
            json={"job_type": "sleep", "data": {"duration_seconds": "long"}},
        )

        assert response.status_code == 422

    async def test_bulk_enqueue(self, client: AsyncClient, repo: JobRepository):
        """Test enqueueing many jobs at once."""
        response = await client.post(
            "/v1/jobs/bulk",
            json={"jobs": [{"job_type": "echo"}, {"job_type": "sleep", "data": {"duration_seconds": 0}}]},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["requested"] == 2
        assert data["inserted"] == 2
        assert data["partial"] is False
        assert (await repo.status()).total == 2

    async def test_bulk_enqueue_empty(self, client: AsyncClient):
        """Test an empty bulk request is rejected."""
        response = await client.post("/v1/jobs/bulk", json={"jobs": []})

        assert response.status_code == 422

    async def test_get_job_success(self, client: AsyncClient, repo: JobRepository):
        """Test getting a job by id."""
        await repo.enqueue(build_handler("echo", {"message": "hi"}))
        job_id = (await repo.find_candidates("default", "worker-1"))[0]

        response = await client.get(f"/v1/jobs/{job_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == job_id
        assert data["queue"] == "default"
        assert data["locked_at"] is None
        assert data["failed_at"] is None

    async def test_get_job_not_found(self, client: AsyncClient):
        """Test getting a non-existent job."""
        response = await client.get("/v1/jobs/999999")

        assert response.status_code == 404

    async def test_retry_failed_job(self, client: AsyncClient, repo: JobRepository):
        """Test re-queueing a failed job."""
        await repo.enqueue(build_handler("echo"))
        job_id = (await repo.find_candidates("default", "worker-1"))[0]
        await repo.finish_with_error(job_id, "broken")

        response = await client.post(f"/v1/jobs/{job_id}/retry")

        assert response.status_code == 200
        assert response.json()["id"] == job_id
        assert not (await repo.get_job(job_id)).is_failed

    async def test_retry_job_not_failed(self, client: AsyncClient, repo: JobRepository):
        """Test retrying a job that has not failed."""
        await repo.enqueue(build_handler("echo"))
        job_id = (await repo.find_candidates("default", "worker-1"))[0]

        response = await client.post(f"/v1/jobs/{job_id}/retry")

        assert response.status_code == 400

    async def test_retry_job_not_found(self, client: AsyncClient):
        """Test retrying a non-existent job."""
        response = await client.post("/v1/jobs/999999/retry")

        assert response.status_code == 404


class TestQueueAPI:
    """Tests for queue endpoints."""

    async def test_queue_status(self, client: AsyncClient, repo: JobRepository):
        """Test queue counts."""
        await repo.bulk_enqueue([build_handler("echo") for _ in range(3)])
        candidates = await repo.find_candidates("default", "worker-1")
        await repo.acquire_lock(candidates[0], "worker-1")
        await repo.finish_with_error(candidates[1], "broken")

        response = await client.get("/v1/queues/default/status")

        assert response.status_code == 200
        data = response.json()
        assert data["queue"] == "default"
        assert data["total"] == 3
        assert data["locked"] == 1
        assert data["failed"] == 1
        assert data["outstanding"] == 1

    async def test_failed_jobs(self, client: AsyncClient, repo: JobRepository):
        """Test listing failed jobs."""
        await repo.enqueue(build_handler("echo"))
        job_id = (await repo.find_candidates("default", "worker-1"))[0]
        await repo.finish_with_error(job_id, "broken")

        response = await client.get("/v1/queues/default/failed")

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["id"] == job_id
        assert data[0]["error"] == "broken"


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    async def test_health_check(self, client: AsyncClient):
        """Test health check endpoint."""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"

    async def test_liveness(self, client: AsyncClient):
        """Test liveness probe."""
        response = await client.get("/live")

        assert response.status_code == 200
        assert response.json()["alive"] is True

    async def test_readiness(self, client: AsyncClient):
        """Test readiness probe."""
        response = await client.get("/ready")

        assert response.status_code == 200
        assert response.json()["ready"] is True

    async def test_metrics(self, client: AsyncClient):
        """Test metrics endpoint."""
        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "jobs_enqueued" in response.text
