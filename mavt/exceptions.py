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

"""Exception hierarchy for MAVT.

This module defines a custom exception hierarchy that allows library users
to distinguish between different types of errors:

- ConfigError: Configuration-related errors (YAML parse, invalid values)
- NetworkError: Catalog and notification transport failures
    - AppNotFoundError: The catalog does not know the bundle ID
    - NotificationError: An Apprise notification could not be delivered
- StorageError: Filesystem failures in the record store
    - RecordDecodeError: A persisted record exists but cannot be decoded
- InvalidIdentifierError: A bundle ID that cannot be used as a record key

All exceptions inherit from MAVTError, allowing users to catch all MAVT
errors with a single except clause if needed.

Example:
    Catching specific error types:
        ```python
        from mavt.exceptions import AppNotFoundError, NetworkError

        try:
            tracker.track_app("com.example.app")
        except AppNotFoundError as e:
            print(f"Unknown app: {e}")
        except NetworkError as e:
            print(f"Catalog unreachable: {e}")
        ```

Note:
    A missing record is not an error. RecordStore.load_app() returns None
    for an untracked bundle ID and only raises RecordDecodeError when a
    file exists but is unreadable.
"""

from __future__ import annotations

__all__ = [
    "MAVTError",
    "ConfigError",
    "NetworkError",
    "AppNotFoundError",
    "NotificationError",
    "StorageError",
    "RecordDecodeError",
    "InvalidIdentifierError",
]


class MAVTError(Exception):
    """Base exception for all MAVT errors.

    All MAVT-specific exceptions inherit from this class, allowing users
    to catch all MAVT errors with a single except clause if needed.
    """

    pass


class ConfigError(MAVTError):
    """Raised for configuration-related errors.

    This exception is raised when there are problems with:

    - YAML parsing (syntax errors, non-mapping documents)
    - Invalid durations, ports, or log levels
    - A check interval shorter than one minute

    Example:
        Catching configuration errors:
            ```python
            from mavt.config import load_config
            from mavt.exceptions import ConfigError

            try:
                settings = load_config(Path("mavt.yaml"))
            except ConfigError as e:
                print(f"Config error: {e}")
            ```
    """

    pass


class NetworkError(MAVTError):
    """Raised for network-related errors.

    This exception is raised when there are problems with:

    - Catalog API calls (timeouts, connection failures, non-2xx status)
    - Undecodable catalog responses
    - Notification delivery (see NotificationError)
    """

    pass


class AppNotFoundError(NetworkError):
    """Raised when the catalog returns no result for a bundle ID."""

    def __init__(self, bundle_id: str):
        super().__init__(f"App not found: {bundle_id}")
        self.bundle_id = bundle_id


class NotificationError(NetworkError):
    """Raised when a notification could not be delivered.

    The tracker never lets this escape a check; it is logged and dropped.
    """

    pass


class StorageError(MAVTError):
    """Raised for record store I/O failures.

    This exception is raised when there are problems with:

    - Creating the data directories
    - Reading or writing record files (permissions, disk full)
    - Deleting record files

    The original OSError is always chained as __cause__.
    """

    pass


class RecordDecodeError(StorageError):
    """Raised when a record file exists but cannot be decoded.

    Distinct from a missing record, which is reported as None or an
    empty list.
    """

    def __init__(self, path, reason: str):
        super().__init__(f"Corrupt record {path}: {reason}")
        self.path = path


class InvalidIdentifierError(MAVTError):
    """Raised for bundle IDs that cannot be used as record keys.

    Empty identifiers, identifiers containing path separators, and
    identifiers starting with a dot are rejected.
    """

    pass
