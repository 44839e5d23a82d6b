"""
Tests for mavt.config.loader module.

Tests configuration loading including:
- Built-in defaults
- YAML file loading
- Environment variable overrides
- Duration parsing
- Validation and error handling
"""

from __future__ import annotations

from datetime import timedelta
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from mavt.config import load_config, parse_duration
from mavt.exceptions import ConfigError


class TestDefaults:
    """Tests for settings without any overrides."""

    def test_defaults(self):
        """Test the built-in defaults."""
        settings = load_config(environ={})

        assert settings.data_dir == Path("./data")
        assert settings.apps == ()
        assert settings.check_interval == timedelta(hours=1)
        assert settings.log_level == "info"
        assert settings.server_port == 8080
        assert settings.apprise_url == ""
        assert settings.country == "us"
        assert settings.request_timeout == 30.0


class TestConfigFile:
    """Tests for YAML config files."""

    def test_load_yaml_file(self, create_yaml_file):
        """Test that file values override defaults."""
        path = create_yaml_file(
            "mavt.yaml",
            {
                "data_dir": "/var/lib/mavt",
                "apps": ["com.spotify.client", "com.burbn.instagram"],
                "check_interval": "30m",
                "server_port": 9090,
            },
        )

        settings = load_config(path, environ={})

        assert settings.data_dir == Path("/var/lib/mavt")
        assert settings.apps == ("com.spotify.client", "com.burbn.instagram")
        assert settings.check_interval == timedelta(minutes=30)
        assert settings.server_port == 9090

    def test_config_path_from_environment(self, create_yaml_file):
        """Test that MAVT_CONFIG names the file when no path is given."""
        path = create_yaml_file("mavt.yaml", {"country": "gb"})

        settings = load_config(environ={"MAVT_CONFIG": str(path)})

        assert settings.country == "gb"

    def test_empty_file_uses_defaults(self, tmp_test_dir):
        """Test that an empty YAML file is valid."""
        path = tmp_test_dir / "empty.yaml"
        path.write_text("")

        assert load_config(path, environ={}).log_level == "info"

    def test_missing_file_raises(self, tmp_test_dir):
        """Test that a missing config file raises ConfigError."""
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_test_dir / "nonexistent.yaml", environ={})

    def test_invalid_yaml_raises(self, tmp_test_dir):
        """Test that invalid YAML raises ConfigError."""
        path = tmp_test_dir / "bad.yaml"
        path.write_text("invalid: yaml: syntax: error:")

        with pytest.raises(ConfigError):
            load_config(path, environ={})

    def test_non_dict_yaml_raises(self, tmp_test_dir):
        """Test that a top-level list is rejected."""
        path = tmp_test_dir / "list.yaml"
        path.write_text("- item1\n- item2\n")

        with pytest.raises(ConfigError, match="mapping"):
            load_config(path, environ={})

    def test_unknown_key_raises(self, create_yaml_file):
        """Test that typos in setting names are reported."""
        path = create_yaml_file("mavt.yaml", {"check_intervall": "5m"})

        with pytest.raises(ConfigError, match="check_intervall"):
            load_config(path, environ={})


class TestEnvironment:
    """Tests for MAVT_* environment variables."""

    def test_environment_overrides_file(self, create_yaml_file):
        """Test that environment variables win over the file."""
        path = create_yaml_file("mavt.yaml", {"log_level": "debug", "server_port": 9090})

        settings = load_config(
            path, environ={"MAVT_LOG_LEVEL": "WARN", "MAVT_SERVER_PORT": "7070"}
        )

        assert settings.log_level == "warn"
        assert settings.server_port == 7070

    def test_apps_comma_separated(self):
        """Test that MAVT_APPS is split on commas and trimmed."""
        settings = load_config(
            environ={"MAVT_APPS": "com.spotify.client, com.burbn.instagram,,"}
        )

        assert settings.apps == ("com.spotify.client", "com.burbn.instagram")

    def test_empty_value_is_ignored(self):
        """Test that an empty variable does not override the default."""
        assert load_config(environ={"MAVT_DATA_DIR": ""}).data_dir == Path("./data")

    def test_dotenv_file_is_loaded(self, tmp_test_dir, monkeypatch):
        """Test that a .env file in the working directory is read."""
        monkeypatch.chdir(tmp_test_dir)
        (tmp_test_dir / ".env").write_text("MAVT_COUNTRY=de\n")

        with patch.dict(os.environ, clear=False):
            os.environ.pop("MAVT_COUNTRY", None)
            settings = load_config()

        assert settings.country == "de"


class TestValidation:
    """Tests for value validation."""

    def test_interval_below_one_minute_raises(self):
        """Test the minimum check interval."""
        with pytest.raises(ConfigError, match="at least 1 minute"):
            load_config(environ={"MAVT_CHECK_INTERVAL": "30s"})

    def test_invalid_log_level_raises(self):
        """Test that unknown log levels are rejected."""
        with pytest.raises(ConfigError, match="log level"):
            load_config(environ={"MAVT_LOG_LEVEL": "verbose"})

    def test_port_out_of_range_raises(self):
        """Test that ports outside 1..65535 are rejected."""
        with pytest.raises(ConfigError):
            load_config(environ={"MAVT_SERVER_PORT": "70000"})

    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_empty_data_dir_in_file_raises(self, create_yaml_file, value):
        """Test that a blank data_dir is rejected instead of meaning '.'."""
        path = create_yaml_file("mavt.yaml", {"data_dir": value})

        with pytest.raises(ConfigError, match="data directory cannot be empty"):
            load_config(path, environ={})

    def test_non_numeric_port_raises(self):
        """Test that a non-numeric port is a ConfigError, not ValueError."""
        with pytest.raises(ConfigError, match="server_port"):
            load_config(environ={"MAVT_SERVER_PORT": "http"})


class TestParseDuration:
    """Tests for duration strings."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("90s", timedelta(seconds=90)),
            ("15m", timedelta(minutes=15)),
            ("1h30m", timedelta(hours=1, minutes=30)),
            ("7d", timedelta(days=7)),
            ("500ms", timedelta(milliseconds=500)),
        ],
    )
    def test_valid(self, text, expected):
        """Test supported units and combinations."""
        assert parse_duration(text) == expected

    @pytest.mark.parametrize("text", ["", "h", "10", "10x", "1h 30m", "-5m"])
    def test_invalid(self, text):
        """Test that malformed durations raise ConfigError."""
        with pytest.raises(ConfigError):
            parse_duration(text)
