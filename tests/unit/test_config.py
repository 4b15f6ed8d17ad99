"""
Unit tests for securesender.config module.

Tests defaults, TOML loading, environment overrides and saving.
"""

import pytest

from securesender.config import DEFAULT_CONFIG, Config
from securesender.constants import DEFAULT_SERVER_PORT
from securesender.errors import ConfigError, ErrorCode


def test_defaults_when_file_missing(temp_dir):
    """Test that defaults apply without a config file."""
    config = Config(temp_dir / "missing.toml")

    assert config.get("network", "port") == DEFAULT_SERVER_PORT
    assert config.get("network", "peer") == ""
    assert config.get("logging", "console") is True
    assert config.get("nope", "nothing", "fallback") == "fallback"


def test_file_merged_with_defaults(temp_dir):
    """Test that file values override defaults section by section."""
    path = temp_dir / "config.toml"
    path.write_text('[network]\nport = 6001\npeer = "10.0.0.2:6002"\n', encoding="utf-8")

    config = Config(path)

    assert config.get("network", "port") == 6001
    assert config.get("network", "peer") == "10.0.0.2:6002"
    assert config.get("network", "host") == DEFAULT_CONFIG["network"]["host"]
    assert config.get("logging", "level") == "INFO"


def test_env_overrides(temp_dir, monkeypatch):
    """Test typed environment variable overrides."""
    monkeypatch.setenv("SECURESENDER_NETWORK_PORT", "7001")
    monkeypatch.setenv("SECURESENDER_LOGGING_CONSOLE", "no")
    monkeypatch.setenv("SECURESENDER_UI_POLL_INTERVAL", "0.5")
    monkeypatch.setenv("SECURESENDER_LOGGING_LEVEL", "DEBUG")

    config = Config(temp_dir / "missing.toml")

    assert config.get("network", "port") == 7001
    assert config.get("logging", "console") is False
    assert config.get("ui", "poll_interval") == 0.5
    assert config.get("logging", "level") == "DEBUG"


def test_invalid_env_value_ignored(temp_dir, monkeypatch):
    """Test that unconvertible overrides keep the original value."""
    monkeypatch.setenv("SECURESENDER_NETWORK_PORT", "not-a-number")

    config = Config(temp_dir / "missing.toml")

    assert config.get("network", "port") == DEFAULT_SERVER_PORT


def test_defaults_not_mutated(temp_dir, monkeypatch):
    """Test that overrides never leak into the module defaults."""
    monkeypatch.setenv("SECURESENDER_NETWORK_PORT", "7002")
    Config(temp_dir / "missing.toml")

    assert DEFAULT_CONFIG["network"]["port"] == DEFAULT_SERVER_PORT


def test_parse_error(temp_dir):
    """Test that malformed TOML raises ConfigError."""
    path = temp_dir / "broken.toml"
    path.write_text("[network\nport = ", encoding="utf-8")

    with pytest.raises(ConfigError) as exc_info:
        Config(path)

    assert exc_info.value.code == ErrorCode.E704_CONFIG_PARSE_ERROR


def test_save_and_reload(temp_dir):
    """Test that saved configuration loads back."""
    path = temp_dir / "nested" / "config.toml"
    config = Config(path)
    config.set("network", "peer", 'host "quoted":5000')
    config.set("network", "port", 5123)
    config.save()

    reloaded = Config(path)

    assert reloaded.get("network", "port") == 5123
    assert reloaded.get("network", "peer") == 'host "quoted":5000'


def test_create_example(temp_dir):
    """Test example configuration generation."""
    path = temp_dir / "example.toml"
    Config.create_example(path)

    content = path.read_text(encoding="utf-8")
    assert content.startswith("# Secure Sender Configuration File")
    assert Config(path).to_dict() == DEFAULT_CONFIG
