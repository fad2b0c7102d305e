"""Tests for the in-memory job run state."""

from app.core.exceptions import NotifyError, StoreQueryError
from app.core.job_state import JobRunState


class TestRunLifecycle:
    def test_initial_snapshot(self):
        assert JobRunState().snapshot() == {
            "isWorking": False,
            "lastStartDate": None,
            "lastFinishDate": None,
            "lastNumberOfProcessedOrders": 0,
        }

    def test_start_resets_processed_count(self):
        state = JobRunState(processed_count=7)
        state.on_job_start()

        assert state.is_working is True
        assert state.start is not None
        assert state.processed_count == 0

    def test_end_without_error(self):
        state = JobRunState()
        state.on_job_start()
        state.on_job_end()

        assert state.is_working is False
        assert state.finish >= state.start
        assert len(state.errors) == 0

    def test_end_with_error_records_it(self):
        state = JobRunState()
        state.on_job_start()
        state.on_job_end(NotifyError("X1", "HTTP 500"))

        assert state.is_working is False
        assert len(state.errors) == 1
        error = state.errors[0]
        assert error.job == "check_orders"
        assert error.error_type == "NotifyError"
        assert "X1" in error.message

    def test_errors_kept_across_runs(self):
        state = JobRunState()
        for _ in range(3):
            state.on_job_start()
            state.on_job_end(StoreQueryError("down"))
        assert len(state.errors) == 3


class TestRunLock:
    def test_try_start_refuses_while_running(self):
        state = JobRunState()
        assert state.try_start() is True
        assert state.try_start() is False

        state.on_job_end()
        assert state.try_start() is True


class TestErrorHistory:
    def test_history_is_bounded(self):
        state = JobRunState.with_history(2)
        for i in range(5):
            state.record_error("stale_sweep", NotifyError(f"O{i}", "HTTP 502"))

        assert [e.message for e in state.errors] == [
            "Failed to notify email service for order O3: HTTP 502",
            "Failed to notify email service for order O4: HTTP 502",
        ]

    def test_snapshot_does_not_expose_errors(self):
        state = JobRunState()
        state.record_error("check_orders", StoreQueryError("down"))
        assert "errors" not in state.snapshot()
