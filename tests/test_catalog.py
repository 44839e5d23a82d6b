"""
Tests for mavt.catalog module.

Tests the iTunes Search API client including:
- Lookup by bundle ID and track ID
- Not-found and transport failures
- Search limit clamping
- Result conversion
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
import requests
import requests_mock

from mavt.catalog import (
    AppStoreClient,
    clamp_search_limit,
    convert_result,
)
from mavt.catalog.appstore import LOOKUP_URL, SEARCH_URL
from mavt.exceptions import AppNotFoundError, NetworkError


def _search_payload(count: int) -> dict:
    results = [
        {"bundleId": f"com.example.app{i}", "trackName": f"App {i}", "version": "1.0"}
        for i in range(count)
    ]
    return {"resultCount": count, "results": results}


def test_convert_result(sample_itunes_result) -> None:
    """Test field mapping from an iTunes result."""
    app = convert_result(sample_itunes_result)

    assert app.bundle_id == "com.spotify.client"
    assert app.track_id == 324684580
    assert app.version == "8.9.10"
    assert app.release_date == datetime(2025, 1, 2, 18, 20, 5, tzinfo=UTC)
    assert app.file_size_bytes == 157286400
    assert app.last_checked is None
    assert app.first_discovered is None


def test_convert_result_tolerates_bad_size_and_date(sample_itunes_result) -> None:
    """Test fallbacks for unparsable size and release date."""
    sample_itunes_result["fileSizeBytes"] = "unknown"
    sample_itunes_result["currentVersionReleaseDate"] = "soon"

    app = convert_result(sample_itunes_result)

    assert app.file_size_bytes == 0
    assert app.release_date.tzinfo is not None


def test_convert_result_requires_version(sample_itunes_result) -> None:
    """Test that results without a version are rejected."""
    del sample_itunes_result["version"]

    with pytest.raises(ValueError):
        convert_result(sample_itunes_result)


def test_lookup_success(sample_itunes_result) -> None:
    """Test a successful bundle ID lookup and the query it sends."""
    with requests_mock.Mocker() as m:
        m.get(LOOKUP_URL, json={"resultCount": 1, "results": [sample_itunes_result]})
        app = AppStoreClient(country="gb").lookup("com.spotify.client")

        qs = m.last_request.qs

    assert app.track_name == "Spotify - Music and Podcasts"
    assert qs["country"] == ["gb"]
    assert qs["entity"] == ["software"]


def test_lookup_by_track_id(sample_itunes_result) -> None:
    """Test lookup by numeric track ID."""
    with requests_mock.Mocker() as m:
        m.get(LOOKUP_URL, json={"resultCount": 1, "results": [sample_itunes_result]})
        app = AppStoreClient().lookup_by_track_id(324684580)

        assert m.last_request.qs["id"] == ["324684580"]

    assert app.bundle_id == "com.spotify.client"


def test_lookup_not_found() -> None:
    """Test that an empty result set raises AppNotFoundError."""
    with requests_mock.Mocker() as m:
        m.get(LOOKUP_URL, json={"resultCount": 0, "results": []})

        with pytest.raises(AppNotFoundError) as exc_info:
            AppStoreClient().lookup("com.example.missing")

    assert exc_info.value.bundle_id == "com.example.missing"


def test_lookup_server_error() -> None:
    """Test that a non-200 status raises NetworkError."""
    with requests_mock.Mocker() as m:
        m.get(LOOKUP_URL, status_code=503, text="unavailable")

        with pytest.raises(NetworkError, match="503"):
            AppStoreClient().lookup("com.example.app")


def test_lookup_timeout() -> None:
    """Test that timeouts raise NetworkError."""
    with requests_mock.Mocker() as m:
        m.get(LOOKUP_URL, exc=requests.exceptions.ConnectTimeout)

        with pytest.raises(NetworkError, match="timed out"):
            AppStoreClient(timeout=5).lookup("com.example.app")


def test_lookup_connection_error() -> None:
    """Test that connection failures raise NetworkError."""
    with requests_mock.Mocker() as m:
        m.get(LOOKUP_URL, exc=requests.exceptions.ConnectionError)

        with pytest.raises(NetworkError):
            AppStoreClient().lookup("com.example.app")


def test_lookup_invalid_json() -> None:
    """Test that an undecodable body raises NetworkError."""
    with requests_mock.Mocker() as m:
        m.get(LOOKUP_URL, text="<html>maintenance</html>")

        with pytest.raises(NetworkError):
            AppStoreClient().lookup("com.example.app")


def test_not_found_is_a_network_error() -> None:
    """Test the exception hierarchy callers rely on in batch checks."""
    assert issubclass(AppNotFoundError, NetworkError)


@pytest.mark.parametrize(
    "requested, expected", [(None, 10), (0, 10), (-5, 10), (25, 25), (50, 50), (1000, 50)]
)
def test_clamp_search_limit(requested, expected) -> None:
    """Test limit normalization."""
    assert clamp_search_limit(requested) == expected


def test_search_zero_limit_uses_default() -> None:
    """Test that search(term, 0) behaves as search(term, 10)."""
    with requests_mock.Mocker() as m:
        m.get(SEARCH_URL, json=_search_payload(30))
        apps = AppStoreClient().search("notes", 0)

        assert m.last_request.qs["limit"] == ["10"]

    assert len(apps) == 10


def test_search_large_limit_is_capped() -> None:
    """Test that search(term, 1000) returns at most 50 results."""
    with requests_mock.Mocker() as m:
        m.get(SEARCH_URL, json=_search_payload(200))
        apps = AppStoreClient().search("notes", 1000)

        assert m.last_request.qs["limit"] == ["50"]

    assert len(apps) == 50


def test_search_skips_unusable_results() -> None:
    """Test that results without a bundle ID are dropped."""
    payload = _search_payload(2)
    payload["results"].append({"trackName": "Web Clip", "version": "1.0"})

    with requests_mock.Mocker() as m:
        m.get(SEARCH_URL, json=payload)
        apps = AppStoreClient().search("app")

    assert [a.bundle_id for a in apps] == ["com.example.app0", "com.example.app1"]
