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

"""Version tracking orchestration for MAVT.

This module decides, for each tracked app, whether a freshly fetched
catalog snapshot is a version change, and keeps the current-state records
and the append-only history in the record store consistent.

Workflows:

TRACK (track_app):
  1. Look up the snapshot (errors propagate, nothing is written)
  2. Load the stored record, if any
  3. First time: first_discovered = now; otherwise carry the stored value
  4. Set last_checked = now and save
  Tracking never compares versions and never writes history.

CHECK (check_for_updates / check_app):
  1. List the bundle IDs of all tracked apps (file names only)
  2. For each app, one at a time:
     a. Load the record and look up the snapshot (a corrupt record or a
        failed lookup is logged, the app is skipped)
     b. Carry first_discovered over, set last_checked = now
     c. version differs (exact string inequality) -> append a
        VersionUpdate and replace the current record
     d. version equal -> replace the current record only (metadata such
        as price or size may still have changed)
  3. Notify the batch (best-effort, failures are logged)
  4. Return the batch

Any differing string is a change, including downgrades and re-tags.
Versions are never parsed or ordered.

Error Handling:

- AppNotFoundError / NetworkError: propagate from track_app and check_app;
  logged and skipped inside check_for_updates
- RecordDecodeError: fatal to the one app whose record is corrupt;
  logged and skipped inside check_for_updates
- StorageError: propagates from every operation, including
  check_for_updates (already detected updates are still notified)
- NotificationError: logged, never propagated

Example:
    ```python
    from pathlib import Path
    from mavt.catalog import AppStoreClient
    from mavt.notifier import AppriseNotifier
    from mavt.store import RecordStore
    from mavt.tracker import Tracker

    tracker = Tracker(
        RecordStore(Path("data")),
        AppStoreClient(),
        AppriseNotifier("http://apprise:8000/notify"),
    )
    tracker.track_app("com.spotify.client")
    for update in tracker.check_for_updates():
        print(update.track_name, update.old_version, "->", update.new_version)
    ```

"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime, timedelta
import threading
from typing import Protocol

from mavt.catalog.base import CatalogClient
from mavt.exceptions import (
    InvalidIdentifierError,
    NetworkError,
    RecordDecodeError,
    StorageError,
)
from mavt.logging import Logger, get_global_logger, sanitize_for_log
from mavt.models import AppInfo, VersionUpdate
from mavt.results import SearchResult
from mavt.store import RecordStore, validate_bundle_id


class Notifier(Protocol):
    """What the tracker needs from a notifier."""

    @property
    def enabled(self) -> bool: ...

    def notify_updates(self, updates: list[VersionUpdate]) -> None: ...


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Tracker:
    """Tracks app versions and records changes.

    All operations are safe to call from several threads at once (the CLI,
    the API server and the scheduler share one Tracker). Consistency comes
    from the record store's lock; the tracker itself holds no mutable state.

    Attributes:
        store: Record store for current state and history.
        client: Catalog client used for lookups and searches.
        notifier: Optional notifier for detected batches.
    """

    def __init__(
        self,
        store: RecordStore,
        client: CatalogClient,
        notifier: Notifier | None = None,
        logger: Logger | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize the tracker.

        Args:
            store: Record store instance.
            client: Catalog client.
            notifier: Notifier for update batches. None disables notifications.
            logger: Logger instance. Defaults to the global logger.
            clock: Returns the current time. Defaults to timezone-aware UTC now.
        """
        self.store = store
        self.client = client
        self.notifier = notifier
        self._logger = logger
        self._clock = clock or _utcnow

    @property
    def logger(self) -> Logger:
        return self._logger or get_global_logger()

    # -------------------------------
    # Enrollment
    # -------------------------------

    def track_app(self, bundle_id: str) -> AppInfo:
        """Start tracking an app, or refresh an already tracked one.

        Args:
            bundle_id: Bundle ID to track.

        Returns:
            The record that was saved.

        Raises:
            InvalidIdentifierError: If the bundle ID is unusable.
            AppNotFoundError: If the catalog does not know the app.
            NetworkError: If the lookup fails.
            StorageError: If the record cannot be loaded or saved.

        """
        validate_bundle_id(bundle_id)
        snapshot = self.client.lookup(bundle_id)
        now = self._clock()

        with self.store.locked():
            existing = self.store.load_app(bundle_id)
            if existing is None or existing.first_discovered is None:
                first_discovered = now
            else:
                first_discovered = existing.first_discovered
            app = replace(
                snapshot,
                bundle_id=bundle_id,
                last_checked=now,
                first_discovered=first_discovered,
            )
            self.store.save_app(app)

        if existing is None:
            self.logger.info(
                "TRACKER",
                f"Now tracking {sanitize_for_log(app.track_name)} "
                f"({sanitize_for_log(bundle_id)}) - version "
                f"{sanitize_for_log(app.version)}",
            )
        else:
            self.logger.verbose(
                "TRACKER", f"Refreshed {sanitize_for_log(bundle_id)}"
            )
        return app

    def remove_app(self, bundle_id: str) -> bool:
        """Stop tracking an app and delete its history.

        Returns:
            True if the app was being tracked.

        Raises:
            InvalidIdentifierError: If the bundle ID is unusable.
            StorageError: If a record cannot be deleted.

        """
        removed = self.store.remove_app(bundle_id)
        if removed:
            self.logger.info(
                "TRACKER", f"Stopped tracking {sanitize_for_log(bundle_id)}"
            )
        return removed

    # -------------------------------
    # Change detection
    # -------------------------------

    def check_app(self, app: AppInfo) -> VersionUpdate | None:
        """Check one tracked app for a version change.

        The stored record is re-read under the store lock after the lookup,
        so a concurrent track_app or remove_app is never overwritten with
        stale data. If the app was removed while the lookup was in flight,
        nothing is written.

        Args:
            app: The tracked app, as listed from the store.

        Returns:
            The VersionUpdate that was recorded, or None if the version is
                unchanged.

        Raises:
            AppNotFoundError: If the catalog no longer knows the app.
            NetworkError: If the lookup fails.
            StorageError: If records cannot be read or written.

        """
        fetched = self.client.lookup(app.bundle_id)
        now = self._clock()

        with self.store.locked():
            stored = self.store.load_app(app.bundle_id)
            if stored is None:
                self.logger.verbose(
                    "TRACKER",
                    f"{sanitize_for_log(app.bundle_id)} was removed during the "
                    f"check, skipping",
                )
                return None

            fresh = replace(
                fetched,
                bundle_id=stored.bundle_id,
                first_discovered=stored.first_discovered,
                last_checked=now,
            )

            update = None
            if fresh.version != stored.version:
                update = VersionUpdate(
                    bundle_id=fresh.bundle_id,
                    track_id=fresh.track_id,
                    track_name=fresh.track_name,
                    old_version=stored.version,
                    new_version=fresh.version,
                    updated_at=now,
                    release_notes=fresh.release_notes,
                )
                self.store.append_update(update)
            self.store.save_app(fresh)

        if update is not None:
            self.logger.info(
                "TRACKER",
                f"Version update detected for {sanitize_for_log(fresh.track_name)}: "
                f"{sanitize_for_log(update.old_version)} -> "
                f"{sanitize_for_log(update.new_version)}",
            )
        else:
            self.logger.verbose(
                "TRACKER",
                f"{sanitize_for_log(fresh.bundle_id)} unchanged at "
                f"{sanitize_for_log(fresh.version)}",
            )
        return update

    def check_for_updates(
        self, stop_event: threading.Event | None = None
    ) -> list[VersionUpdate]:
        """Check every tracked app and return the detected updates.

        Apps are checked one at a time to stay gentle with the catalog.
        A lookup failure or a corrupt record for one app is logged and that
        app is skipped; the rest of the batch still runs.

        Args:
            stop_event: When set, the check stops after the app currently
                being processed.

        Returns:
            The batch of updates, in check order. Empty if nothing changed.

        Raises:
            StorageError: If the store cannot be listed, read or written
                (other than a corrupt record). Updates detected before the
                failure are still notified.

        """
        bundle_ids = self.store.list_bundle_ids()
        self.logger.verbose("TRACKER", f"Checking {len(bundle_ids)} tracked app(s)")

        updates: list[VersionUpdate] = []
        try:
            for bundle_id in bundle_ids:
                if stop_event is not None and stop_event.is_set():
                    self.logger.info("TRACKER", "Stop requested, ending check early")
                    break
                try:
                    app = self.store.load_app(bundle_id)
                    if app is None:
                        continue
                    update = self.check_app(app)
                except (NetworkError, RecordDecodeError, InvalidIdentifierError) as err:
                    self.logger.warning(
                        "TRACKER",
                        f"Error checking {sanitize_for_log(bundle_id)}: "
                        f"{sanitize_for_log(str(err))}",
                    )
                    continue
                if update is not None:
                    updates.append(update)
        except StorageError:
            self._notify(updates)
            raise

        self._notify(updates)
        return updates

    def _notify(self, updates: list[VersionUpdate]) -> None:
        if not updates or self.notifier is None or not self.notifier.enabled:
            return
        try:
            self.notifier.notify_updates(updates)
        except NetworkError as err:
            self.logger.warning(
                "NOTIFY", f"Failed to send notifications: {sanitize_for_log(str(err))}"
            )

    # -------------------------------
    # Read side
    # -------------------------------

    def get_tracked_apps(self) -> list[AppInfo]:
        """Return all tracked apps. Corrupt records are logged and left out."""
        return self.store.list_apps(skip_corrupt=True)

    def get_version_history(self, bundle_id: str) -> list[VersionUpdate]:
        """Return the version history of one app, oldest first."""
        return self.store.list_updates(bundle_id)

    def get_recent_updates(self, since: timedelta) -> list[VersionUpdate]:
        """Return updates across all apps detected within the last `since`."""
        return self.store.recent_updates(since, now=self._clock())

    def last_update_time(self) -> datetime | None:
        """Return when the most recent update was detected, or None."""
        latest = None
        for bundle_id in self.store.list_bundle_ids():
            try:
                history = self.store.list_updates(bundle_id)
            except (RecordDecodeError, InvalidIdentifierError) as err:
                self.logger.warning(
                    "TRACKER", f"Skipping history: {sanitize_for_log(str(err))}"
                )
                continue
            for update in history:
                if latest is None or update.updated_at > latest:
                    latest = update.updated_at
        return latest

    def search(self, term: str, limit: int | None = None) -> list[SearchResult]:
        """Search the catalog and flag results that are already tracked.

        Raises:
            NetworkError: If the search fails.

        """
        results = self.client.search(term, limit)
        tracked = set(self.store.list_bundle_ids())
        return [SearchResult(app=app, tracked=app.bundle_id in tracked) for app in results]
