"""Unit tests for CleanupScheduler."""

from unittest.mock import MagicMock

import pytest
from freezegun import freeze_time

from fxconv.services.scheduler import CLEANUP_JOB_ID, CleanupScheduler


@pytest.fixture
def mock_service():
    """Provide a service whose cleanup reports evictions."""
    service = MagicMock()
    service.cleanup.return_value = {"cache": 1, "store": 4}
    return service


@pytest.fixture
def scheduler(mock_service):
    """Provide CleanupScheduler instance."""
    return CleanupScheduler(mock_service, interval_minutes=15)


@pytest.mark.unit
class TestCleanupScheduler:
    """Test suite for CleanupScheduler."""

    def test_init(self, scheduler):
        """Scheduler initializes stopped."""
        assert scheduler.scheduler is not None
        assert scheduler.is_running is False
        assert scheduler.last_run is None

    def test_start_registers_interval_job(self, scheduler):
        """Starting adds the sweep job."""
        try:
            scheduler.start()

            assert scheduler.is_running is True
            jobs = scheduler.scheduler.get_jobs()
            assert len(jobs) == 1
            assert jobs[0].id == CLEANUP_JOB_ID
            assert jobs[0].name == "Expired Record Cleanup"
            assert jobs[0].trigger.interval.total_seconds() == 15 * 60

        finally:
            scheduler.stop()

    def test_start_twice(self, scheduler):
        """A second start is ignored."""
        try:
            scheduler.start()
            scheduler.start()

            assert len(scheduler.scheduler.get_jobs()) == 1

        finally:
            scheduler.stop()

    def test_stop(self, scheduler):
        """Stopping marks the scheduler as not running."""
        scheduler.start()
        scheduler.stop()

        assert scheduler.is_running is False

    def test_stop_when_not_running(self, scheduler):
        """Stopping an idle scheduler is a no-op."""
        scheduler.stop()

        assert scheduler.is_running is False

    @freeze_time("2024-01-15 12:00:00")
    def test_run_cleanup(self, scheduler, mock_service):
        """A sweep delegates to the service and records the run time."""
        removed = scheduler.run_cleanup()

        assert removed == {"cache": 1, "store": 4}
        mock_service.cleanup.assert_called_once()
        assert scheduler.last_run.isoformat() == "2024-01-15T12:00:00"

    def test_run_cleanup_failure_is_contained(self, scheduler, mock_service):
        """A failing sweep is logged and reported as empty."""
        mock_service.cleanup.side_effect = RuntimeError("boom")

        assert scheduler.run_cleanup() == {}
        assert scheduler.last_run is None

    def test_sweeps_real_service(self, service):
        """The job drives the service's own cleanup."""
        with freeze_time("2024-01-15 12:00:00") as frozen:
            service.log_api_usage("/convert", "GET", 100, 200)
            frozen.tick(25 * 3600)

            removed = CleanupScheduler(service).run_cleanup()

        assert removed == {"cache": 0, "store": 1}
