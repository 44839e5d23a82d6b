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

"""Durable record storage for MAVT.

This package persists two record kinds, each in its own directory so that
listing one never requires filtering the other:

- Current state: one AppInfo JSON object per tracked bundle ID
- History: one JSON array of VersionUpdate objects per bundle ID

Public API:

- RecordStore: Thread-safe store with save/load/list/append/remove
- validate_bundle_id: Reject IDs that cannot be used as file names
- read_json / write_json: Low-level JSON file helpers

Example:
    Basic usage:

        from pathlib import Path
        from mavt.store import RecordStore

        store = RecordStore(Path("data"))
        for app in store.list_apps():
            print(app.bundle_id, app.version)

"""

from .records import RecordStore, read_json, validate_bundle_id, write_json

__all__ = ["RecordStore", "read_json", "validate_bundle_id", "write_json"]
