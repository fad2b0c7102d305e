"""
Tests for the status API endpoints.

The scheduler is replaced with a mock so no job actually runs.
"""

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from app.core.job_state import JobRunState
from app.main import app


@pytest.fixture
def client() -> TestClient:
    """Create a test client for the API (lifespan not started)."""
    return TestClient(app)


@pytest.fixture
def mock_scheduler():
    with patch("app.api.routes.scheduler_manager") as mock_manager:
        mock_manager.job_state = JobRunState()
        mock_manager.scheduler.running = True
        mock_manager.get_next_run_time.return_value = None
        mock_manager.is_order_check_running.side_effect = (
            lambda: mock_manager.job_state.is_working
        )
        yield mock_manager


class TestLiveness:
    def test_root_returns_banner(self, client: TestClient):
        response = client.get("/")

        assert response.status_code == 200
        assert response.text == "Discoshare Shipment Micro Service"


class TestJobStatus:
    def test_before_first_run(self, client: TestClient, mock_scheduler):
        response = client.get("/jobStatus")

        assert response.status_code == 200
        assert response.json() == {
            "isWorking": False,
            "lastStartDate": None,
            "lastFinishDate": None,
            "lastNumberOfProcessedOrders": 0,
        }

    def test_during_first_run(self, client: TestClient, mock_scheduler):
        mock_scheduler.job_state.on_job_start()

        data = client.get("/jobStatus").json()

        assert data["isWorking"] is True
        assert data["lastNumberOfProcessedOrders"] == 0
        assert data["lastStartDate"] is not None
        assert data["lastFinishDate"] is None

    def test_after_run_with_errors(self, client: TestClient, mock_scheduler):
        state = mock_scheduler.job_state
        state.on_job_start()
        state.processed_count = 3
        state.on_job_end(RuntimeError("boom"))

        data = client.get("/jobStatus").json()

        assert data["isWorking"] is False
        assert data["lastNumberOfProcessedOrders"] == 3
        assert data["lastFinishDate"] == state.finish.isoformat()
        assert "errors" not in data


class TestHealth:
    def test_health_reports_scheduler(self, client: TestClient, mock_scheduler):
        data = client.get("/api/health").json()

        assert data["status"] == "healthy"
        assert data["scheduler_running"] is True
        assert data["next_runs"] == {"check_orders": None, "stale_sweep": None}


class TestTrigger:
    def test_trigger_starts_check(self, client: TestClient, mock_scheduler):
        mock_scheduler.trigger_order_check = MagicMock()

        response = client.post("/jobs/check-orders/trigger")

        assert response.status_code == 202
        mock_scheduler.trigger_order_check.assert_called_once()

    def test_trigger_refused_while_running(self, client: TestClient, mock_scheduler):
        mock_scheduler.job_state.on_job_start()

        response = client.post("/jobs/check-orders/trigger")

        assert response.status_code == 409
        mock_scheduler.trigger_order_check.assert_not_called()
