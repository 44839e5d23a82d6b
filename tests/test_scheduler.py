"""
Tests for mavt.scheduler module.

Tests background checks including:
- Single runs and result callbacks
- Error containment
- Interval job registration
- Cooperative shutdown
"""

from __future__ import annotations

from datetime import timedelta
import threading
from unittest.mock import MagicMock

from mavt.exceptions import StorageError
from mavt.scheduler import JOB_ID, Scheduler


class TestRunOnce:
    """Tests for a single scheduled check."""

    def test_returns_batch_and_reports_it(self, tracker, catalog):
        """Test that a run returns the batch and passes it to on_result."""
        catalog.publish("com.example.app", "1.0")
        tracker.track_app("com.example.app")
        catalog.publish("com.example.app", "1.1")
        seen = []

        scheduler = Scheduler(tracker, timedelta(minutes=1), on_result=seen.append)
        updates = scheduler.run_once()

        assert len(updates) == 1
        assert seen == [updates]

    def test_errors_are_contained(self):
        """Test that a failing check is logged, not raised."""
        tracker = MagicMock()
        tracker.check_for_updates.side_effect = StorageError("disk full")
        logger = MagicMock()

        scheduler = Scheduler(tracker, timedelta(minutes=1), logger=logger)

        assert scheduler.run_once() is None
        logger.warning.assert_called_once()

    def test_stop_ends_batch_after_current_app(self, tracker, catalog):
        """Test that stop() during a check lets only the current app finish."""
        for bundle_id in ("com.a.app", "com.b.app", "com.c.app"):
            catalog.publish(bundle_id, "1.0")
            tracker.track_app(bundle_id)
            catalog.publish(bundle_id, "2.0")
        catalog.lookups.clear()
        scheduler = Scheduler(tracker, timedelta(minutes=1))
        catalog.on_lookup = lambda bundle_id: scheduler.stop()

        updates = scheduler.run_once()

        assert catalog.lookups == ["com.a.app"]
        assert [u.bundle_id for u in updates] == ["com.a.app"]


class TestLifecycle:
    """Tests for starting and stopping the scheduler."""

    def test_stop_before_run_checks_no_apps(self, tracker, catalog):
        """Test that a pending stop request prevents any lookup."""
        catalog.publish("com.example.app", "1.0")
        tracker.track_app("com.example.app")
        catalog.lookups.clear()

        scheduler = Scheduler(tracker, timedelta(minutes=1))
        scheduler.stop()
        scheduler.run()

        assert catalog.lookups == []
        assert scheduler.stopped
        assert not scheduler.running

    def test_background_job_checks_immediately_and_stops(self, tracker, catalog):
        """Test that start() checks right away and shutdown() stops the job."""
        catalog.publish("com.example.app", "1.0")
        tracker.track_app("com.example.app")
        checked = threading.Event()

        scheduler = Scheduler(
            tracker, timedelta(hours=1), on_result=lambda updates: checked.set()
        )
        scheduler.start()
        try:
            assert scheduler.running
            assert checked.wait(timeout=5)
        finally:
            scheduler.shutdown()

        assert scheduler.stopped
        assert not scheduler.running

    def test_job_uses_configured_interval(self, tracker):
        """Test that one interval job is registered with the configured period."""
        scheduler = Scheduler(tracker, timedelta(minutes=30))
        scheduler.start()
        try:
            job = scheduler._scheduler.get_job(JOB_ID)
            assert job is not None
            assert job.trigger.interval == timedelta(minutes=30)
            assert job.max_instances == 1
        finally:
            scheduler.shutdown()

    def test_run_blocks_until_stopped(self, tracker, catalog):
        """Test that run() returns once stop() is called from another thread."""
        catalog.publish("com.example.app", "1.0")
        tracker.track_app("com.example.app")
        scheduler = Scheduler(
            tracker, timedelta(hours=1), on_result=lambda updates: scheduler.stop()
        )

        runner = threading.Thread(target=scheduler.run)
        runner.start()
        runner.join(timeout=10)

        assert not runner.is_alive()
        assert not scheduler.running
