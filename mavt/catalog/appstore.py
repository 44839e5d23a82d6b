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

"""Apple App Store (iTunes Search API) catalog client for MAVT.

Queries the public iTunes lookup and search endpoints and converts results
into AppInfo snapshots. No authentication is required.

Endpoints:

- https://itunes.apple.com/lookup?bundleId=<id>&entity=software&country=us
- https://itunes.apple.com/lookup?id=<track_id>&entity=software&country=us
- https://itunes.apple.com/search?term=<t>&entity=software&country=us&limit=<n>

Response Mapping:

    iTunes field                 AppInfo field
    ---------------------------  ----------------
    bundleId                     bundle_id
    trackId                      track_id
    trackName                    track_name
    version                      version
    currentVersionReleaseDate    release_date  (RFC 3339; "now" if unparsable)
    releaseNotes                 release_notes
    artistName                   artist_name
    minimumOsVersion             min_os_version
    fileSizeBytes                file_size_bytes (string in the API; 0 if bad)
    price / currency             price / currency

Error Handling:

- AppNotFoundError: resultCount is 0
- NetworkError: timeouts, connection errors, non-200 status, bad JSON
- Errors are chained with 'from err' for better debugging

Rate Limits:
    Apple does not publish a limit but throttles bursts (HTTP 403/429). The
    tracker therefore checks apps one at a time, and transient 429/5xx
    responses are retried with backoff by the session.

Example:
    ```python
    from mavt.catalog import AppStoreClient

    client = AppStoreClient(country="us", timeout=30)
    app = client.lookup("com.spotify.client")
    print(app.track_name, app.version)
    ```

"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import requests

from mavt.exceptions import AppNotFoundError, NetworkError
from mavt.io import make_session
from mavt.logging import Logger, get_global_logger
from mavt.models import AppInfo

from .base import clamp_search_limit

LOOKUP_URL = "https://itunes.apple.com/lookup"
SEARCH_URL = "https://itunes.apple.com/search"
DEFAULT_TIMEOUT = 30


def _parse_release_date(value: Any) -> datetime:
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            pass
        else:
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return datetime.now(UTC)


def _parse_size(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def convert_result(raw: dict[str, Any]) -> AppInfo:
    """Convert one iTunes result object into an AppInfo snapshot.

    Args:
        raw: One element of the API's "results" array.

    Returns:
        Snapshot with last_checked and first_discovered unset.

    Raises:
        ValueError: If bundleId or version is missing.

    """
    bundle_id = raw.get("bundleId")
    version = raw.get("version")
    if not bundle_id or not isinstance(version, str):
        raise ValueError("result has no bundleId or version")
    return AppInfo(
        bundle_id=bundle_id,
        track_id=_parse_size(raw.get("trackId")),
        track_name=raw.get("trackName") or bundle_id,
        version=version,
        release_date=_parse_release_date(raw.get("currentVersionReleaseDate")),
        release_notes=raw.get("releaseNotes") or "",
        artist_name=raw.get("artistName") or "",
        min_os_version=raw.get("minimumOsVersion") or "",
        file_size_bytes=_parse_size(raw.get("fileSizeBytes")),
        price=float(raw.get("price") or 0.0),
        currency=raw.get("currency") or "",
    )


class AppStoreClient:
    """Catalog client for the iTunes Search API.

    Attributes:
        country: Two-letter storefront code.
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        country: str = "us",
        timeout: float = DEFAULT_TIMEOUT,
        logger: Logger | None = None,
    ):
        self.country = country
        self.timeout = timeout
        self._logger = logger

    @property
    def logger(self) -> Logger:
        return self._logger or get_global_logger()

    def _get(self, url: str, params: dict[str, Any]) -> dict[str, Any]:
        params = {**params, "entity": "software", "country": self.country}
        self.logger.debug("HTTP", f"GET {url} {params}")
        try:
            with make_session() as session:
                response = session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.Timeout as err:
            raise NetworkError(
                f"Catalog request timed out after {self.timeout}s"
            ) from err
        except requests.exceptions.RequestException as err:
            raise NetworkError(f"Failed to reach catalog: {err}") from err

        self.logger.debug("HTTP", f"Response: {response.status_code}")
        if response.status_code != 200:
            raise NetworkError(
                f"Catalog API returned status {response.status_code}: "
                f"{response.text[:200]}"
            )
        try:
            payload = response.json()
        except ValueError as err:
            raise NetworkError("Failed to decode catalog response") from err
        if not isinstance(payload, dict):
            raise NetworkError("Catalog response is not a JSON object")
        return payload

    def _lookup(self, params: dict[str, Any], label: str) -> AppInfo:
        payload = self._get(LOOKUP_URL, params)
        results = payload.get("results") or []
        if not payload.get("resultCount") or not results:
            raise AppNotFoundError(label)
        try:
            return convert_result(results[0])
        except ValueError as err:
            raise NetworkError(f"Malformed catalog result for {label}: {err}") from err

    def lookup(self, bundle_id: str) -> AppInfo:
        """Fetch app metadata by bundle ID.

        Raises:
            AppNotFoundError: If the catalog returns no results.
            NetworkError: On any transport or decoding failure.

        """
        return self._lookup({"bundleId": bundle_id}, bundle_id)

    def lookup_by_track_id(self, track_id: int) -> AppInfo:
        """Fetch app metadata by the catalog's numeric track ID.

        Raises:
            AppNotFoundError: If the catalog returns no results.
            NetworkError: On any transport or decoding failure.

        """
        return self._lookup({"id": str(track_id)}, str(track_id))

    def search(self, term: str, limit: int | None = None) -> list[AppInfo]:
        """Search apps by name or keyword.

        The limit is clamped to 1..50 (default 10). Results that cannot be
        converted (no bundle ID or version) are skipped.

        Raises:
            NetworkError: On any transport or decoding failure.

        """
        limit = clamp_search_limit(limit)
        payload = self._get(SEARCH_URL, {"term": term, "limit": limit})
        apps = []
        for raw in payload.get("results") or []:
            try:
                apps.append(convert_result(raw))
            except ValueError as err:
                self.logger.debug("CATALOG", f"Skipping search result: {err}")
        return apps[:limit]
