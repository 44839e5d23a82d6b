"""
Tests for mavt.models module.

Tests record conversion including:
- JSON-ready dicts with ISO timestamps
- Decoding with defaults for optional fields
- Rejection of malformed records
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from mavt.models import AppInfo, VersionUpdate
from mavt.results import SearchResult


class TestAppInfo:
    """Tests for AppInfo conversion."""

    def test_to_dict_formats_timestamps(self, sample_app):
        """Test that timestamps are written as ISO-8601 strings."""
        data = sample_app.to_dict()

        assert data["bundle_id"] == "com.example.app"
        assert data["last_checked"] == "2025-01-02T10:00:00+00:00"
        assert data["release_date"] == "2024-12-20T08:30:00+00:00"
        assert data["file_size_bytes"] == 52428800

    def test_from_dict_restores_record(self, sample_app):
        """Test that a dict produced by to_dict decodes to an equal record."""
        assert AppInfo.from_dict(sample_app.to_dict()) == sample_app

    def test_from_dict_defaults_optional_fields(self):
        """Test that only bundle_id, track_name and version are required."""
        app = AppInfo.from_dict(
            {"bundle_id": "com.example.app", "track_name": "Example", "version": "1.0"}
        )

        assert app.track_id == 0
        assert app.release_notes == ""
        assert app.last_checked is None
        assert app.first_discovered is None

    def test_from_dict_ignores_unknown_keys(self):
        """Test that extra keys written by other versions are ignored."""
        app = AppInfo.from_dict(
            {
                "bundle_id": "com.example.app",
                "track_name": "Example",
                "version": "1.0",
                "rating": 4.5,
            }
        )

        assert app.version == "1.0"

    def test_from_dict_missing_version_raises(self):
        """Test that a record without a version is rejected."""
        with pytest.raises(KeyError):
            AppInfo.from_dict({"bundle_id": "com.example.app", "track_name": "X"})

    def test_from_dict_bad_timestamp_raises(self):
        """Test that an unparsable timestamp is rejected."""
        with pytest.raises(ValueError):
            AppInfo.from_dict(
                {
                    "bundle_id": "com.example.app",
                    "track_name": "Example",
                    "version": "1.0",
                    "last_checked": "yesterday",
                }
            )

    def test_from_dict_non_mapping_raises(self):
        """Test that a JSON array is not accepted as an app record."""
        with pytest.raises(TypeError):
            AppInfo.from_dict(["com.example.app"])


class TestVersionUpdate:
    """Tests for VersionUpdate conversion."""

    def test_to_dict(self, make_update):
        """Test the on-disk shape of an update."""
        data = make_update(old="1.0", new="2.0", release_notes="New look").to_dict()

        assert data["old_version"] == "1.0"
        assert data["new_version"] == "2.0"
        assert data["updated_at"] == "2025-01-02T10:00:00+00:00"
        assert data["release_notes"] == "New look"

    def test_from_dict_requires_updated_at(self):
        """Test that an update without a detection time is rejected."""
        with pytest.raises(ValueError):
            VersionUpdate.from_dict(
                {
                    "bundle_id": "com.example.app",
                    "track_name": "Example",
                    "old_version": "1.0",
                    "new_version": "1.1",
                    "updated_at": None,
                }
            )

    def test_from_dict_keeps_timezone(self):
        """Test that decoded timestamps stay timezone-aware."""
        update = VersionUpdate.from_dict(
            {
                "bundle_id": "com.example.app",
                "track_name": "Example",
                "old_version": "1.0",
                "new_version": "1.1",
                "updated_at": "2025-01-02T10:00:00+00:00",
            }
        )

        assert update.updated_at == datetime(2025, 1, 2, 10, 0, tzinfo=UTC)

    def test_from_dict_treats_naive_timestamp_as_utc(self):
        """Test that a timestamp without an offset is read as UTC."""
        update = VersionUpdate.from_dict(
            {
                "bundle_id": "com.example.app",
                "track_name": "Example",
                "old_version": "1.0",
                "new_version": "1.1",
                "updated_at": "2025-01-02T10:00:00",
            }
        )

        assert update.updated_at == datetime(2025, 1, 2, 10, 0, tzinfo=UTC)
        assert update.updated_at.tzinfo is not None


class TestSearchResult:
    """Tests for SearchResult flattening."""

    def test_to_dict_adds_tracking_flag(self, sample_app):
        """Test that app fields and is_tracked are merged into one dict."""
        data = SearchResult(app=sample_app, tracked=True).to_dict()

        assert data["bundle_id"] == "com.example.app"
        assert data["is_tracked"] is True
