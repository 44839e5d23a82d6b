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

"""HTTP session factory for MAVT.

Both outbound collaborators (the catalog client and the Apprise notifier)
talk HTTP through a requests.Session built here, so retry and identification
policy lives in one place.

Key Features:

- **Retry Logic with Exponential Backoff** - Retries idempotent requests on
  transient failures (429, 500, 502, 503, 504). Configurable via
  urllib3.util.Retry.
- **User-Agent** - Identifies MAVT to the remote side.

Timeouts are NOT set on the session; every call site passes its own
``timeout=`` so a single unreachable endpoint cannot stall a check.

Example:
    ```python
    from mavt.io import make_session

    with make_session() as session:
        resp = session.get("https://itunes.apple.com/lookup",
                           params={"bundleId": "com.example.app"}, timeout=30)
    ```
"""

from __future__ import annotations

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

USER_AGENT = "mavt/1.1 (+https://github.com/yourorg/mavt)"


def make_session(total_retries: int = 3) -> requests.Session:
    """Create a requests.Session with sane retry/backoff defaults.

    - Retries GET/HEAD on common transient status codes.
    - Applies exponential backoff.
    - Sets a helpful User-Agent.

    Args:
        total_retries: Maximum retries per request. 0 disables retrying.

    Returns:
        A configured session. Use it as a context manager to release
            pooled connections.

    """
    s = requests.Session()
    retries = Retry(
        total=total_retries,
        backoff_factor=0.5,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=("GET", "HEAD"),
        raise_on_status=False,
    )
    s.headers.update({"User-Agent": USER_AGENT, "Accept": "application/json"})
    s.mount("http://", HTTPAdapter(max_retries=retries))
    s.mount("https://", HTTPAdapter(max_retries=retries))
    return s
