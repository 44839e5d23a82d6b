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

"""Configuration loading for MAVT.

This package resolves settings from built-in defaults, an optional YAML
file, and MAVT_* environment variables.

Public API:

- load_config: Resolve and validate settings
- Settings: Frozen dataclass of resolved settings
- parse_duration: Parse "15m"/"1h30m"/"7d" style durations

Example:
    Basic usage:

        from mavt.config import load_config

        settings = load_config()
        print(settings.data_dir, settings.check_interval)

"""

from .loader import Settings, load_config, parse_duration, validate_settings

__all__ = ["Settings", "load_config", "parse_duration", "validate_settings"]
