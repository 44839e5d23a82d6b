"""
Pytest configuration and shared fixtures for MAVT tests.

This module provides reusable fixtures and test utilities used across
the test suite: a temporary record store, an in-memory catalog, a
controllable clock and a few sample records.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest
import yaml

from mavt.exceptions import AppNotFoundError, NetworkError
from mavt.models import AppInfo, VersionUpdate
from mavt.store import RecordStore
from mavt.tracker import Tracker

T0 = datetime(2025, 1, 2, 10, 0, tzinfo=UTC)


class FakeCatalog:
    """In-memory catalog client.

    Usage:
        catalog.publish("com.example.app", "1.0")
        catalog.fail("com.example.app")         # lookup raises NetworkError
        catalog.unpublish("com.example.app")    # lookup raises AppNotFoundError
    """

    def __init__(self):
        self.apps: dict[str, AppInfo] = {}
        self.failing: set[str] = set()
        self.lookups: list[str] = []
        self.on_lookup = None

    def publish(self, bundle_id: str, version: str, **fields: Any) -> AppInfo:
        fields.setdefault("track_name", bundle_id.rsplit(".", 1)[-1].title())
        app = AppInfo(bundle_id=bundle_id, version=version, **fields)
        self.apps[bundle_id] = app
        return app

    def unpublish(self, bundle_id: str) -> None:
        self.apps.pop(bundle_id, None)

    def fail(self, bundle_id: str) -> None:
        self.failing.add(bundle_id)

    def lookup(self, bundle_id: str) -> AppInfo:
        self.lookups.append(bundle_id)
        if self.on_lookup is not None:
            self.on_lookup(bundle_id)
        if bundle_id in self.failing:
            raise NetworkError(f"Failed to reach catalog for {bundle_id}")
        if bundle_id not in self.apps:
            raise AppNotFoundError(bundle_id)
        return self.apps[bundle_id]

    def search(self, term: str, limit: int | None = None) -> list[AppInfo]:
        hits = [a for a in self.apps.values() if term.lower() in a.track_name.lower()]
        return hits[: limit or 10]


class FakeNotifier:
    """Records notified batches instead of sending them."""

    def __init__(self, enabled: bool = True, error: Exception | None = None):
        self.enabled = enabled
        self.error = error
        self.batches: list[list[VersionUpdate]] = []

    def notify_updates(self, updates: list[VersionUpdate]) -> None:
        self.batches.append(list(updates))
        if self.error is not None:
            raise self.error


class Clock:
    """Controllable clock. Each call returns the current value."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def tmp_test_dir(tmp_path: Path) -> Path:
    """
    Provide a temporary directory for test artifacts.

    Automatically cleaned up after test completion.
    """
    return tmp_path


@pytest.fixture
def store(tmp_test_dir: Path) -> RecordStore:
    """Provide an empty record store in a temporary directory."""
    return RecordStore(tmp_test_dir / "data")


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def tracker(store, catalog, notifier, clock) -> Tracker:
    """Provide a tracker wired to the fake catalog, notifier and clock."""
    return Tracker(store, catalog, notifier, clock=clock)


@pytest.fixture
def sample_app() -> AppInfo:
    """Provide a fully populated, tracked AppInfo record."""
    return AppInfo(
        bundle_id="com.example.app",
        track_id=123456789,
        track_name="Example",
        version="1.2.3",
        release_date=datetime(2024, 12, 20, 8, 30, tzinfo=UTC),
        release_notes="Bug fixes and performance improvements.",
        artist_name="Example Inc.",
        min_os_version="15.0",
        file_size_bytes=52428800,
        price=0.0,
        currency="USD",
        last_checked=T0,
        first_discovered=T0 - timedelta(days=30),
    )


@pytest.fixture
def make_update():
    """
    Factory fixture for VersionUpdate records.

    Usage:
        update = make_update("com.example.app", "1.0", "1.1", T0)
    """

    def _make(
        bundle_id: str = "com.example.app",
        old: str = "1.0",
        new: str = "1.1",
        at: datetime = T0,
        **fields: Any,
    ) -> VersionUpdate:
        fields.setdefault("track_name", "Example")
        return VersionUpdate(
            bundle_id=bundle_id, old_version=old, new_version=new, updated_at=at, **fields
        )

    return _make


@pytest.fixture
def create_yaml_file(tmp_test_dir: Path):
    """
    Factory fixture for creating temporary YAML files.

    Usage:
        yaml_path = create_yaml_file("mavt.yaml", {"check_interval": "30m"})
    """

    def _create(filename: str, data: Any) -> Path:
        path = tmp_test_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f)
        return path

    return _create


@pytest.fixture
def sample_itunes_result() -> dict[str, Any]:
    """Provide one raw iTunes lookup result."""
    return {
        "bundleId": "com.spotify.client",
        "trackId": 324684580,
        "trackName": "Spotify - Music and Podcasts",
        "version": "8.9.10",
        "currentVersionReleaseDate": "2025-01-02T18:20:05Z",
        "releaseNotes": "We're always making changes and improvements.",
        "artistName": "Spotify",
        "minimumOsVersion": "15.0",
        "fileSizeBytes": "157286400",
        "price": 0.0,
        "currency": "USD",
    }
