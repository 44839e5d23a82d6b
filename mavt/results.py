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

"""Public API return types for MAVT.

This module defines dataclasses for return values of tracker operations
that are not plain records. Persisted record types (AppInfo,
VersionUpdate) live in mavt.models.

All dataclasses are frozen (immutable) to prevent accidental mutation of
return values.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from mavt.models import AppInfo


@dataclass(frozen=True)
class SearchResult:
    """A catalog search hit annotated with tracking status.

    Attributes:
        app: Snapshot returned by the catalog.
        tracked: True if the bundle ID is already being tracked.
    """

    app: AppInfo
    tracked: bool

    def to_dict(self) -> dict[str, Any]:
        """Flatten into the JSON shape used by the API (app fields + is_tracked)."""
        data = self.app.to_dict()
        data["is_tracked"] = self.tracked
        return data
