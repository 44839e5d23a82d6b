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

"""Record types for MAVT.

This module defines the two record kinds the tracker persists:

- AppInfo: Current-state snapshot of one app. The catalog client returns
  AppInfo snapshots with last_checked and first_discovered unset; the
  tracker fills them in before saving.
- VersionUpdate: One entry in an app's append-only version history.

All dataclasses are frozen (immutable). The tracker derives new snapshots
with dataclasses.replace() instead of mutating stored ones.

Serialization uses the JSON field names of the on-disk format so records
stay human-inspectable:

    {
      "bundle_id": "com.example.app",
      "first_discovered": "2025-01-02T10:00:00+00:00",
      "version": "1.2.3",
      ...
    }

Timestamps are timezone-aware UTC datetimes written as ISO-8601 strings.

Example:
    Round trip through a dict:
        ```python
        from mavt.models import AppInfo

        app = AppInfo(bundle_id="com.example.app", track_name="Example",
                      version="1.0")
        assert AppInfo.from_dict(app.to_dict()) == app
        ```
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any


def _format_time(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_time(value: Any) -> datetime | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"expected ISO-8601 timestamp string, got {value!r}")
    parsed = datetime.fromisoformat(value)
    # Hand-edited records may omit the offset; stored times are UTC.
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _require_str(data: dict[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string, got {value!r}")
    return value


@dataclass(frozen=True)
class AppInfo:
    """An app's metadata as fetched from the catalog or stored on disk.

    Attributes:
        bundle_id: Stable reverse-DNS identifier (e.g., "com.spotify.client").
        track_name: Display name.
        version: Version string. Opaque: compared only for inequality.
        track_id: The catalog's numeric app ID.
        release_date: When the catalog says the current version shipped.
        release_notes: "What's New" text for the current version.
        artist_name: Developer/publisher name.
        min_os_version: Minimum supported OS version.
        file_size_bytes: Download size in bytes.
        price: Price in the catalog's currency.
        currency: ISO currency code.
        last_checked: Updated on every successful fetch. None on raw
            catalog snapshots.
        first_discovered: Set once when tracking starts, then carried
            forward forever. None on raw catalog snapshots.
    """

    bundle_id: str
    track_name: str
    version: str
    track_id: int = 0
    release_date: datetime | None = None
    release_notes: str = ""
    artist_name: str = ""
    min_os_version: str = ""
    file_size_bytes: int = 0
    price: float = 0.0
    currency: str = ""
    last_checked: datetime | None = None
    first_discovered: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready dict using the on-disk field names."""
        data = asdict(self)
        for key in ("release_date", "last_checked", "first_discovered"):
            data[key] = _format_time(data[key])
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppInfo:
        """Build an AppInfo from a decoded JSON object.

        Unknown keys are ignored. Optional fields fall back to defaults.

        Raises:
            KeyError: If bundle_id, track_name or version is missing.
            ValueError: If a field has the wrong type or a timestamp
                cannot be parsed.
            TypeError: If data is not a mapping.

        """
        if not isinstance(data, dict):
            raise TypeError(f"expected JSON object, got {type(data).__name__}")
        return cls(
            bundle_id=_require_str(data, "bundle_id"),
            track_name=_require_str(data, "track_name"),
            version=_require_str(data, "version"),
            track_id=int(data.get("track_id") or 0),
            release_date=_parse_time(data.get("release_date")),
            release_notes=data.get("release_notes") or "",
            artist_name=data.get("artist_name") or "",
            min_os_version=data.get("min_os_version") or "",
            file_size_bytes=int(data.get("file_size_bytes") or 0),
            price=float(data.get("price") or 0.0),
            currency=data.get("currency") or "",
            last_checked=_parse_time(data.get("last_checked")),
            first_discovered=_parse_time(data.get("first_discovered")),
        )


@dataclass(frozen=True)
class VersionUpdate:
    """A detected version change for one app.

    Attributes:
        bundle_id: App the change belongs to.
        track_name: Display name at detection time.
        old_version: Version stored before the check.
        new_version: Version the catalog reported.
        updated_at: When the change was detected.
        track_id: The catalog's numeric app ID.
        release_notes: Release notes of the new version at detection time.
    """

    bundle_id: str
    track_name: str
    old_version: str
    new_version: str
    updated_at: datetime
    track_id: int = 0
    release_notes: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready dict using the on-disk field names."""
        data = asdict(self)
        data["updated_at"] = _format_time(self.updated_at)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VersionUpdate:
        """Build a VersionUpdate from a decoded JSON object.

        Raises:
            KeyError: If a required field is missing.
            ValueError: If a field has the wrong type.
            TypeError: If data is not a mapping.

        """
        if not isinstance(data, dict):
            raise TypeError(f"expected JSON object, got {type(data).__name__}")
        updated_at = _parse_time(data["updated_at"])
        if updated_at is None:
            raise ValueError("field 'updated_at' must not be null")
        return cls(
            bundle_id=_require_str(data, "bundle_id"),
            track_name=_require_str(data, "track_name"),
            old_version=_require_str(data, "old_version"),
            new_version=_require_str(data, "new_version"),
            updated_at=updated_at,
            track_id=int(data.get("track_id") or 0),
            release_notes=data.get("release_notes") or "",
        )
