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

"""Apprise notifications for MAVT.

Sends human-readable update summaries to an Apprise API endpoint
(https://github.com/caronc/apprise-api), which fans them out to whatever
services it is configured for.

Payload:
    ```json
    {"title": "Example Updated", "body": "Version 1.0 → 1.1", "type": "info"}
    ```

Delivery is best-effort. Failures raise NotificationError here; the tracker
logs and drops them so a broken notification endpoint never fails a check.

Example:
    ```python
    from mavt.notifier import AppriseNotifier

    notifier = AppriseNotifier("http://apprise:8000/notify/mavt")
    if notifier.enabled:
        notifier.notify_updates(updates)
    ```
"""

from __future__ import annotations

import requests

from mavt.exceptions import NotificationError
from mavt.io import make_session
from mavt.logging import Logger, get_global_logger
from mavt.models import VersionUpdate

DEFAULT_TIMEOUT = 10
MAX_NOTES_LENGTH = 500
MAX_BATCH_LINES = 10


def truncate_notes(notes: str, limit: int = MAX_NOTES_LENGTH) -> str:
    """Shorten release notes for a notification body."""
    if len(notes) <= limit:
        return notes
    return notes[:limit] + "..."


def format_update(update: VersionUpdate) -> tuple[str, str]:
    """Build (title, body) for a single update."""
    title = f"📱 {update.track_name} Updated"
    body = f"Version {update.old_version} → {update.new_version}"
    if update.release_notes:
        body += "\n\n" + truncate_notes(update.release_notes)
    return title, body


def format_batch(updates: list[VersionUpdate]) -> tuple[str, str]:
    """Build (title, body) for several updates.

    Lists at most MAX_BATCH_LINES updates, followed by an "... and N more"
    line when the batch is larger.
    """
    title = f"📱 {len(updates)} App Updates Detected"
    lines = [
        f"• {u.track_name}: {u.old_version} → {u.new_version}"
        for u in updates[:MAX_BATCH_LINES]
    ]
    if len(updates) > MAX_BATCH_LINES:
        lines.append(f"... and {len(updates) - MAX_BATCH_LINES} more")
    return title, "\n".join(lines)


class AppriseNotifier:
    """Posts update notifications to an Apprise API URL.

    Attributes:
        url: Apprise notify endpoint. Empty disables notifications.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        url: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        logger: Logger | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self._logger = logger

    @property
    def logger(self) -> Logger:
        return self._logger or get_global_logger()

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def notify_update(self, update: VersionUpdate) -> None:
        """Send a notification for one update.

        Raises:
            NotificationError: If delivery fails.

        """
        if not self.enabled:
            return
        title, body = format_update(update)
        self._send(title, body, "info")

    def notify_updates(self, updates: list[VersionUpdate]) -> None:
        """Send one notification summarizing a batch of updates.

        A batch of one is sent as a single-update notification.

        Raises:
            NotificationError: If delivery fails.

        """
        if not self.enabled or not updates:
            return
        if len(updates) == 1:
            self.notify_update(updates[0])
            return
        title, body = format_batch(updates)
        self._send(title, body, "success")

    def _send(self, title: str, body: str, notify_type: str) -> None:
        payload = {"title": title, "body": body, "type": notify_type}
        try:
            with make_session(total_retries=0) as session:
                response = session.post(self.url, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as err:
            raise NotificationError(f"Failed to send notification: {err}") from err

        if response.status_code not in (200, 201):
            raise NotificationError(
                f"Notification failed with status: {response.status_code}"
            )
        self.logger.info("NOTIFY", f"Notification sent: {title}")
