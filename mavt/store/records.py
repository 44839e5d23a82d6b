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

"""Record store implementation for MAVT.

This module implements the persistence layer for tracked apps and their
version histories. Each bundle ID owns two JSON files:

    <data_dir>/apps/<bundle_id>.json      current-state AppInfo
    <data_dir>/updates/<bundle_id>.json   ordered list of VersionUpdate

Key Features:

- JSON storage with 2-space indentation and sorted keys (easy to inspect
  and repair by hand)
- Atomic writes (.part file + rename), so a crash never leaves a
  half-written record behind
- Lazy directory creation on first write
- Missing records are None/empty, corrupt records raise RecordDecodeError
- One re-entrant lock per store guards every read and write

Concurrency:
    Every public method takes the store lock, so individual operations are
    atomic with respect to each other. Callers that need several writes to
    appear as one (append history, then replace current state) wrap them in
    ``with store.locked():``. The lock is re-entrant, so the individual
    methods still work inside the block.

Example:
    Basic usage:
        ```python
        from pathlib import Path
        from mavt.store import RecordStore

        store = RecordStore(Path("data"))
        store.save_app(app)
        app = store.load_app("com.example.app")   # None if untracked
        history = store.list_updates("com.example.app")
        ```

"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
import json
from pathlib import Path
import threading
from typing import Any

from mavt.exceptions import InvalidIdentifierError, RecordDecodeError, StorageError
from mavt.logging import Logger, get_global_logger
from mavt.models import AppInfo, VersionUpdate

APPS_DIR = "apps"
UPDATES_DIR = "updates"


def validate_bundle_id(bundle_id: str) -> str:
    """Check that a bundle ID is safe to use as a file name.

    Args:
        bundle_id: Candidate identifier.

    Returns:
        The bundle ID unchanged.

    Raises:
        InvalidIdentifierError: If the ID is empty, has surrounding
            whitespace, starts with a dot, or contains a path separator or
            NUL byte.

    """
    if not isinstance(bundle_id, str) or not bundle_id.strip():
        raise InvalidIdentifierError("bundle ID must be a non-empty string")
    if bundle_id != bundle_id.strip():
        raise InvalidIdentifierError(
            f"bundle ID has surrounding whitespace: {bundle_id!r}"
        )
    if bundle_id.startswith("."):
        raise InvalidIdentifierError(f"bundle ID starts with a dot: {bundle_id!r}")
    if any(ch in bundle_id for ch in ("/", "\\", "\0")):
        raise InvalidIdentifierError(
            f"bundle ID contains a path separator: {bundle_id!r}"
        )
    return bundle_id


def write_json(data: Any, path: Path) -> None:
    """Write JSON to path atomically with pretty-printing.

    Writes <name>.part next to the target and renames it into place.
    Creates parent directories if needed. Uses 2-space indentation, sorted
    keys and a trailing newline.

    Raises:
        OSError: If the file cannot be written.

    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".part")
    try:
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=True)
            f.write("\n")
        tmp.replace(path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise


def read_json(path: Path) -> Any | None:
    """Read a JSON record file.

    Returns:
        Decoded JSON, or None if the file does not exist.

    Raises:
        RecordDecodeError: If the file is not valid UTF-8 JSON.
        StorageError: If the file exists but cannot be read.

    """
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return None
    except (json.JSONDecodeError, UnicodeDecodeError) as err:
        raise RecordDecodeError(path, str(err)) from err
    except OSError as err:
        raise StorageError(f"Failed to read {path}: {err}") from err


class RecordStore:
    """File-backed store for AppInfo and VersionUpdate records.

    Attributes:
        data_dir: Root directory holding the apps/ and updates/ folders.

    Example:
        ```python
        store = RecordStore(Path("data"))
        with store.locked():
            store.append_update(update)
            store.save_app(app)
        ```

    """

    def __init__(self, data_dir: Path, logger: Logger | None = None):
        """Initialize the store. Nothing is created on disk until a write.

        Args:
            data_dir: Root data directory.
            logger: Logger for verbose output. Defaults to the global logger.

        """
        self.data_dir = Path(data_dir)
        self._lock = threading.RLock()
        self._logger = logger

    @property
    def logger(self) -> Logger:
        return self._logger or get_global_logger()

    @property
    def apps_dir(self) -> Path:
        return self.data_dir / APPS_DIR

    @property
    def updates_dir(self) -> Path:
        return self.data_dir / UPDATES_DIR

    @contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the store lock across several operations."""
        with self._lock:
            yield

    def _app_path(self, bundle_id: str) -> Path:
        return self.apps_dir / f"{validate_bundle_id(bundle_id)}.json"

    def _updates_path(self, bundle_id: str) -> Path:
        return self.updates_dir / f"{validate_bundle_id(bundle_id)}.json"

    def _write(self, data: Any, path: Path) -> None:
        try:
            write_json(data, path)
        except OSError as err:
            raise StorageError(f"Failed to write {path}: {err}") from err
        self.logger.debug("STORE", f"Wrote {path}")

    @staticmethod
    def _decode_app(raw: Any, path: Path) -> AppInfo:
        try:
            return AppInfo.from_dict(raw)
        except (KeyError, ValueError, TypeError) as err:
            raise RecordDecodeError(path, f"invalid app record: {err}") from err

    @staticmethod
    def _decode_updates(raw: Any, path: Path) -> list[VersionUpdate]:
        if not isinstance(raw, list):
            raise RecordDecodeError(path, "update history must be a JSON array")
        try:
            return [VersionUpdate.from_dict(item) for item in raw]
        except (KeyError, ValueError, TypeError) as err:
            raise RecordDecodeError(path, f"invalid update record: {err}") from err

    # -------------------------------
    # Current state
    # -------------------------------

    def save_app(self, app: AppInfo) -> None:
        """Create or replace the current-state record for app.bundle_id.

        Raises:
            StorageError: If the record cannot be written.
            InvalidIdentifierError: If the bundle ID is unusable.

        """
        path = self._app_path(app.bundle_id)
        with self._lock:
            self._write(app.to_dict(), path)

    def load_app(self, bundle_id: str) -> AppInfo | None:
        """Load the current-state record for a bundle ID.

        Returns:
            The stored AppInfo, or None if the app is not tracked.

        Raises:
            RecordDecodeError: If the record exists but is corrupt.
            StorageError: If the record cannot be read.

        """
        path = self._app_path(bundle_id)
        with self._lock:
            raw = read_json(path)
        if raw is None:
            return None
        return self._decode_app(raw, path)

    def _app_paths(self) -> list[Path]:
        try:
            return sorted(p for p in self.apps_dir.glob("*.json") if p.is_file())
        except OSError as err:
            raise StorageError(
                f"Failed to read apps directory {self.apps_dir}: {err}"
            ) from err

    def list_bundle_ids(self) -> list[str]:
        """Return the bundle ID of every stored app record, sorted.

        Only file names are read, so a corrupt record still shows up here.

        Raises:
            StorageError: If the directory cannot be read.

        """
        with self._lock:
            return [path.stem for path in self._app_paths()]

    def list_apps(self, skip_corrupt: bool = False) -> list[AppInfo]:
        """Return every tracked app, ordered by bundle ID.

        An absent apps/ directory yields an empty list. Files that do not
        end in .json (including in-flight .part files) are ignored.

        Args:
            skip_corrupt: Log and leave out corrupt records instead of
                raising.

        Raises:
            RecordDecodeError: If an app record is corrupt and skip_corrupt
                is False.
            StorageError: If the directory cannot be read.

        """
        apps = []
        with self._lock:
            for path in self._app_paths():
                try:
                    raw = read_json(path)
                    if raw is not None:
                        apps.append(self._decode_app(raw, path))
                except RecordDecodeError as err:
                    if not skip_corrupt:
                        raise
                    self.logger.warning("STORE", f"Skipping {err}")
        return apps

    # -------------------------------
    # History
    # -------------------------------

    def append_update(self, update: VersionUpdate) -> None:
        """Append a VersionUpdate to its app's history.

        Loads the existing history (empty if none), appends, and writes the
        whole sequence back, all under the store lock.

        Raises:
            RecordDecodeError: If the existing history is corrupt. The file
                is left untouched.
            StorageError: If the history cannot be read or written.

        """
        path = self._updates_path(update.bundle_id)
        with self._lock:
            raw = read_json(path)
            history = [] if raw is None else self._decode_updates(raw, path)
            history.append(update)
            self._write([item.to_dict() for item in history], path)
        self.logger.verbose(
            "STORE", f"History for {update.bundle_id} now has {len(history)} entries"
        )

    def list_updates(self, bundle_id: str) -> list[VersionUpdate]:
        """Return the version history of a bundle ID in insertion order.

        Returns:
            The history, or an empty list if there is none.

        Raises:
            RecordDecodeError: If the history file is corrupt.
            StorageError: If the history file cannot be read.

        """
        path = self._updates_path(bundle_id)
        with self._lock:
            raw = read_json(path)
        if raw is None:
            return []
        return self._decode_updates(raw, path)

    def recent_updates(
        self, since: timedelta, now: datetime | None = None
    ) -> list[VersionUpdate]:
        """Return updates across all apps detected within a time window.

        Args:
            since: Window length, counted back from now.
            now: Reference time. Defaults to the current UTC time.

        Returns:
            Matching updates ordered by updated_at (oldest first).

        Raises:
            RecordDecodeError: If any history file is corrupt.
            StorageError: If the updates directory cannot be read.

        """
        cutoff = (now or datetime.now(UTC)) - since
        recent: list[VersionUpdate] = []
        with self._lock:
            try:
                paths = sorted(
                    p for p in self.updates_dir.glob("*.json") if p.is_file()
                )
            except OSError as err:
                raise StorageError(
                    f"Failed to read updates directory {self.updates_dir}: {err}"
                ) from err
            for path in paths:
                raw = read_json(path)
                if raw is None:
                    continue
                recent.extend(
                    u for u in self._decode_updates(raw, path) if u.updated_at > cutoff
                )
        recent.sort(key=lambda u: u.updated_at)
        return recent

    # -------------------------------
    # Removal
    # -------------------------------

    def remove_app(self, bundle_id: str) -> bool:
        """Delete an app's current-state record and its whole history.

        Both deletions happen under the store lock, so no reader sees one
        without the other. The current-state record goes first.

        Returns:
            True if a current-state record existed.

        Raises:
            StorageError: If a file exists but cannot be deleted.

        """
        app_path = self._app_path(bundle_id)
        updates_path = self._updates_path(bundle_id)
        with self._lock:
            existed = app_path.exists()
            for path in (app_path, updates_path):
                try:
                    path.unlink(missing_ok=True)
                except OSError as err:
                    raise StorageError(f"Failed to delete {path}: {err}") from err
        self.logger.verbose("STORE", f"Removed records for {bundle_id}")
        return existed
