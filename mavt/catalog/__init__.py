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

"""App catalog clients for MAVT.

Public API:

- CatalogClient: Protocol the tracker depends on (lookup + search)
- AppStoreClient: iTunes Search API implementation
- clamp_search_limit: Shared search limit normalization (default 10, max 50)

"""

from .appstore import AppStoreClient, convert_result
from .base import (
    DEFAULT_SEARCH_LIMIT,
    MAX_SEARCH_LIMIT,
    CatalogClient,
    clamp_search_limit,
)

__all__ = [
    "AppStoreClient",
    "CatalogClient",
    "DEFAULT_SEARCH_LIMIT",
    "MAX_SEARCH_LIMIT",
    "clamp_search_limit",
    "convert_result",
]
