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

"""Catalog client protocol for MAVT.

The tracker only needs two things from a catalog: a snapshot of one app by
bundle ID, and a best-effort text search. Any object with these methods can
be handed to Tracker, which keeps the core testable without network access.

Design Philosophy:
    - CatalogClient is a Protocol (structural subtyping, not inheritance)
    - Snapshots are AppInfo objects with last_checked/first_discovered unset
    - Lookups must be idempotent and side-effect-free on the remote side

Example:
    A fake catalog for tests:
        ```python
        class FakeCatalog:
            def __init__(self, apps):
                self.apps = apps

            def lookup(self, bundle_id):
                try:
                    return self.apps[bundle_id]
                except KeyError:
                    raise AppNotFoundError(bundle_id)

            def search(self, term, limit=None):
                return []

        tracker = Tracker(store, FakeCatalog({...}))
        ```

"""

from __future__ import annotations

from typing import Protocol

from mavt.models import AppInfo

DEFAULT_SEARCH_LIMIT = 10
MAX_SEARCH_LIMIT = 50


class CatalogClient(Protocol):
    """Protocol for app catalog clients."""

    def lookup(self, bundle_id: str) -> AppInfo:
        """Fetch the current metadata of one app.

        Args:
            bundle_id: Reverse-DNS bundle identifier.

        Returns:
            A snapshot with last_checked and first_discovered set to None.

        Raises:
            AppNotFoundError: If the catalog has no app with this bundle ID.
            NetworkError: On timeouts, connection failures, non-2xx
                responses, or undecodable bodies.

        """
        ...

    def search(self, term: str, limit: int | None = None) -> list[AppInfo]:
        """Search the catalog by free text.

        Args:
            term: Search term.
            limit: Requested result count. Clamped with clamp_search_limit().

        Returns:
            Up to the clamped limit of snapshots.

        Raises:
            NetworkError: On transport or decoding failures.

        """
        ...


def clamp_search_limit(limit: int | None) -> int:
    """Normalize a requested search limit.

    Missing or non-positive limits become DEFAULT_SEARCH_LIMIT (10); limits
    above MAX_SEARCH_LIMIT (50) are capped.

    Example:
        ```python
        clamp_search_limit(0)     # 10
        clamp_search_limit(1000)  # 50
        clamp_search_limit(25)    # 25
        ```

    """
    if limit is None or limit <= 0:
        return DEFAULT_SEARCH_LIMIT
    return min(limit, MAX_SEARCH_LIMIT)
