# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Periodic update checks for MAVT.

The Scheduler registers Tracker.check_for_updates() as an APScheduler
interval job that fires once immediately and then on a fixed interval.
Only one check runs at a time; a run that would overlap the previous one
is skipped.

Shutdown is cooperative: stop() sets an event that the tracker polls
between apps, so the app being checked when the signal arrives is finished
(no half-written record pair) and the next one is never started.
shutdown() then waits for that check before stopping the job scheduler.

Example:
    ```python
    scheduler = Scheduler(tracker, timedelta(hours=1))
    scheduler.start()
    ...
    scheduler.shutdown()
    ```
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
import threading

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from mavt.exceptions import MAVTError
from mavt.logging import Logger, get_global_logger
from mavt.models import VersionUpdate
from mavt.tracker import Tracker

JOB_ID = "check_for_updates"


class Scheduler:
    """Runs update checks on an interval in a background thread.

    Attributes:
        tracker: Tracker whose check_for_updates() is called.
        interval: Time between the starts of two checks.
    """

    def __init__(
        self,
        tracker: Tracker,
        interval: timedelta,
        logger: Logger | None = None,
        on_result: Callable[[list[VersionUpdate]], None] | None = None,
    ):
        """Initialize the scheduler. Nothing runs until start().

        Args:
            tracker: Tracker to drive.
            interval: Time between checks.
            logger: Logger instance. Defaults to the global logger.
            on_result: Called with each batch after a successful check.
        """
        self.tracker = tracker
        self.interval = interval
        self._logger = logger
        self._on_result = on_result
        self._stop = threading.Event()
        self._scheduler = BackgroundScheduler(timezone=UTC)

    @property
    def logger(self) -> Logger:
        return self._logger or get_global_logger()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def run_once(self) -> list[VersionUpdate] | None:
        """Run one check, logging (not raising) MAVT errors.

        Returns:
            The batch, or None if the check failed.

        """
        try:
            updates = self.tracker.check_for_updates(stop_event=self._stop)
        except MAVTError as err:
            self.logger.warning("DAEMON", f"Update check failed: {err}")
            return None
        if self._on_result is not None:
            self._on_result(updates)
        return updates

    def start(self) -> None:
        """Schedule the interval job, first run immediately, and start."""
        self._scheduler.add_job(
            self.run_once,
            trigger=IntervalTrigger(
                seconds=self.interval.total_seconds(), timezone=UTC
            ),
            id=JOB_ID,
            name="Check tracked apps for updates",
            next_run_time=datetime.now(UTC),
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        self._scheduler.start()
        self.logger.verbose("DAEMON", f"Scheduled checks every {self.interval}")

    def stop(self) -> None:
        """Request shutdown. Safe to call from a signal handler.

        The current app's check is allowed to finish.
        """
        self._stop.set()

    def wait(self) -> None:
        """Block until stop() is called."""
        while not self._stop.wait(1.0):
            pass

    def shutdown(self) -> None:
        """Stop and wait for a running check to finish."""
        self.stop()
        if self._scheduler.running:
            self._scheduler.shutdown(wait=True)
        self.logger.info("DAEMON", "Scheduler stopped")

    def run(self) -> None:
        """Check now, then every interval until stop() is called."""
        if self.stopped:
            self.shutdown()
            return
        self.start()
        try:
            self.wait()
        finally:
            self.shutdown()
