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

"""
Configuration loading for MAVT.

Settings are resolved from three layers, last one wins:

Configuration Layers
--------------------
1. **Built-in defaults** (DEFAULTS below)
2. **YAML file** (optional; --config or MAVT_CONFIG)
   - A flat mapping whose keys are setting names, e.g.:

         data_dir: /var/lib/mavt
         check_interval: 30m
         apps:
           - com.spotify.client
           - com.burbn.instagram

3. **Environment variables** (MAVT_*; a .env file in the working
   directory is loaded first via python-dotenv)

Settings
--------
    Setting            Env var               Default
    -----------------  --------------------  ---------
    data_dir           MAVT_DATA_DIR         ./data
    apps               MAVT_APPS             (none; comma separated)
    check_interval     MAVT_CHECK_INTERVAL   1h (minimum 1m)
    log_level          MAVT_LOG_LEVEL        info (debug/info/warn/error)
    server_host        MAVT_SERVER_HOST      0.0.0.0
    server_port        MAVT_SERVER_PORT      8080
    apprise_url        MAVT_APPRISE_URL      (empty = notifications off)
    country            MAVT_COUNTRY          us
    request_timeout    MAVT_REQUEST_TIMEOUT  30 (seconds)

Durations
---------
Durations are written as a sequence of number+unit pairs: "90s", "15m",
"1h30m", "7d". Units: ms, s, m, h, d.

Error Handling
--------------
- ConfigError: unreadable or invalid YAML, unknown keys, bad values
- All errors are chained with "from err" for better debugging

Examples
--------
Basic usage:

    >>> from mavt.config import load_config
    >>> settings = load_config(environ={"MAVT_CHECK_INTERVAL": "30m"})
    >>> settings.check_interval
    datetime.timedelta(seconds=1800)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
import os
from pathlib import Path
import re
from typing import Any

from dotenv import load_dotenv
import yaml

from mavt.exceptions import ConfigError

LOG_LEVELS = ("debug", "info", "warn", "error")
MIN_CHECK_INTERVAL = timedelta(minutes=1)

DEFAULTS: dict[str, Any] = {
    "data_dir": "./data",
    "apps": [],
    "check_interval": "1h",
    "log_level": "info",
    "server_host": "0.0.0.0",
    "server_port": 8080,
    "apprise_url": "",
    "country": "us",
    "request_timeout": 30,
}

ENV_VARS: dict[str, str] = {key: f"MAVT_{key.upper()}" for key in DEFAULTS}

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h|d)")
_UNIT_SECONDS = {"ms": 0.001, "s": 1, "m": 60, "h": 3600, "d": 86400}


@dataclass(frozen=True)
class Settings:
    """Resolved MAVT configuration.

    Attributes:
        data_dir: Root directory of the record store.
        apps: Bundle IDs to enroll on `check` and `daemon` startup.
        check_interval: Time between daemon checks.
        log_level: One of debug, info, warn, error.
        server_host: JSON API bind address.
        server_port: JSON API port.
        apprise_url: Apprise notify URL. Empty disables notifications.
        country: App Store storefront code.
        request_timeout: Catalog request timeout in seconds.
    """

    data_dir: Path
    apps: tuple[str, ...]
    check_interval: timedelta
    log_level: str
    server_host: str
    server_port: int
    apprise_url: str
    country: str
    request_timeout: float


# -------------------------------
# Value parsing
# -------------------------------


def parse_duration(text: str) -> timedelta:
    """
    Parse a duration such as "15m", "1h30m" or "7d" into a timedelta.

    Raises:
      ConfigError - when the text is empty or not a sequence of number+unit
    """
    value = text.strip() if isinstance(text, str) else ""
    if not value:
        raise ConfigError(f"invalid duration: {text!r}")
    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(value):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    if pos != len(value):
        raise ConfigError(
            f"invalid duration: {text!r} (expected e.g. '90s', '15m', '1h30m', '7d')"
        )
    return timedelta(seconds=total)


def _parse_apps(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, list):
        items = [str(item) for item in value]
    else:
        raise ConfigError(f"apps must be a list or comma separated string: {value!r}")
    return tuple(item.strip() for item in items if item.strip())


def _parse_data_dir(value: Any) -> Path:
    # Path("") silently becomes ".", so check the raw text.
    if value is None or not str(value).strip():
        raise ConfigError("data directory cannot be empty")
    return Path(str(value))


def _parse_interval(value: Any) -> timedelta:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return timedelta(seconds=value)
    return parse_duration(str(value))


def _parse_number(key: str, value: Any, kind: type) -> Any:
    try:
        return kind(value)
    except (TypeError, ValueError) as err:
        raise ConfigError(f"{key} must be a number: {value!r}") from err


# -------------------------------
# YAML helpers
# -------------------------------


def _load_yaml_file(p: Path) -> dict[str, Any]:
    """
    Load a YAML config file and return its top-level mapping.

    Raises:
      ConfigError - missing file, parse error, or non-mapping document
    """
    if not p.exists():
        raise ConfigError(f"config file not found: {p}")
    try:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as err:
        raise ConfigError(f"Error parsing YAML: {p}: {err}") from err
    except OSError as err:
        raise ConfigError(f"Cannot read config file {p}: {err}") from err
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"top-level YAML must be a mapping (dict): {p}")
    unknown = sorted(set(data) - set(DEFAULTS))
    if unknown:
        raise ConfigError(f"Unknown setting(s) in {p}: {', '.join(unknown)}")
    return data


# -------------------------------
# Public API
# -------------------------------


def validate_settings(settings: Settings) -> None:
    """
    Check cross-field constraints on resolved settings.

    Raises:
      ConfigError - interval below one minute, unknown log level, port
                    out of range, non-positive timeout
    """
    if settings.check_interval < MIN_CHECK_INTERVAL:
        raise ConfigError("check interval must be at least 1 minute")
    if settings.log_level not in LOG_LEVELS:
        raise ConfigError(
            f"invalid log level: {settings.log_level} "
            f"(must be debug, info, warn, or error)"
        )
    if not 0 < settings.server_port < 65536:
        raise ConfigError(f"server port out of range: {settings.server_port}")
    if settings.request_timeout <= 0:
        raise ConfigError("request timeout must be positive")


def load_config(
    config_file: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """
    Resolve MAVT settings from defaults, an optional YAML file and the
    environment.

    Steps
      1) Start from DEFAULTS.
      2) Load the YAML file (argument > MAVT_CONFIG), if any.
      3) Overlay non-empty MAVT_* environment variables.
      4) Convert and validate.

    Args
      config_file: Explicit YAML config path.
      environ: Environment mapping. Defaults to os.environ after loading
               ./.env; tests pass a dict to stay hermetic.

    Raises
      ConfigError on any invalid input.
    """
    if environ is None:
        load_dotenv(Path.cwd() / ".env")
        environ = os.environ

    raw: dict[str, Any] = dict(DEFAULTS)

    if config_file is None and environ.get("MAVT_CONFIG"):
        config_file = Path(environ["MAVT_CONFIG"])
    if config_file is not None:
        raw.update(_load_yaml_file(Path(config_file)))

    for key, env_name in ENV_VARS.items():
        value = environ.get(env_name)
        if value:
            raw[key] = value

    settings = Settings(
        data_dir=_parse_data_dir(raw["data_dir"]),
        apps=_parse_apps(raw["apps"]),
        check_interval=_parse_interval(raw["check_interval"]),
        log_level=str(raw["log_level"]).lower(),
        server_host=str(raw["server_host"]),
        server_port=_parse_number("server_port", raw["server_port"], int),
        apprise_url=str(raw["apprise_url"] or ""),
        country=str(raw["country"]),
        request_timeout=_parse_number("request_timeout", raw["request_timeout"], float),
    )
    validate_settings(settings)
    return settings
