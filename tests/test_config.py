"""
Tests for configuration management.

Tests cover:
- Defaults matching the original service flags
- YAML file loading and discovery
- Environment variable overrides
- Validation errors and immutability
- Bind address parsing
"""

import os

import pytest
import yaml
from pydantic import ValidationError

from microshop.config.settings import (
    AppSettings,
    StorageSettings,
    parse_bind_address,
)


@pytest.fixture
def no_config_file(tmp_path, monkeypatch):
    """Run from an empty directory so no config.yaml is discovered."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("MICROSHOP_CONFIG_PATH", raising=False)


@pytest.fixture
def write_config(tmp_path):
    def _write(data, name="config.yaml"):
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data))
        return path
    return _write


def test_defaults(no_config_file):
    settings = AppSettings.load()

    assert settings.api.bind_address == ":9091"
    assert settings.catalog.bind_address == ":9090"
    assert settings.catalog.idle_timeout == 120
    assert settings.catalog.shutdown_timeout == 30
    assert settings.log_level == "debug"
    assert settings.storage.base_path == "./imagestore"
    assert settings.storage.max_file_size == 1024 * 1000 * 5
    assert settings.api.cors_allowed_origins == ["http://localhost:3000"]


def test_load_from_yaml(write_config):
    path = write_config({
        "log_level": "info",
        "storage": {"base_path": "/srv/images", "max_file_size": 2048},
        "api": {"bind_address": "127.0.0.1:8000"},
    })

    settings = AppSettings.load(str(path))

    assert settings.log_level == "info"
    assert settings.storage.base_path == "/srv/images"
    assert settings.storage.max_file_size == 2048
    assert settings.storage.chunk_size == 32 * 1024
    assert settings.api.bind_address == "127.0.0.1:8000"


def test_config_path_env_var(write_config, monkeypatch):
    path = write_config({"storage": {"base_path": "/from/env/path"}}, name="custom.yaml")
    monkeypatch.setenv("MICROSHOP_CONFIG_PATH", str(path))

    assert AppSettings.load().storage.base_path == "/from/env/path"


def test_env_overrides_yaml(write_config, monkeypatch):
    path = write_config({"storage": {"base_path": "/srv/images", "max_file_size": 2048}})
    monkeypatch.setenv("MICROSHOP_STORAGE__MAX_FILE_SIZE", "4096")
    monkeypatch.setenv("MICROSHOP_LOG_LEVEL", "trace")

    settings = AppSettings.load(str(path))

    assert settings.storage.max_file_size == 4096
    assert settings.storage.base_path == "/srv/images"
    assert settings.log_level == "trace"


def test_missing_explicit_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        AppSettings.load(str(tmp_path / "nope.yaml"))


def test_invalid_yaml(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("storage: [unclosed")

    with pytest.raises(ValueError, match="Invalid YAML"):
        AppSettings.load(str(path))


def test_invalid_values(write_config):
    path = write_config({"storage": {"max_file_size": 0}})

    with pytest.raises(ValueError, match="validation failed"):
        AppSettings.load(str(path))


def test_settings_are_immutable():
    settings = AppSettings()

    with pytest.raises(ValidationError):
        settings.log_level = "info"
    with pytest.raises(ValidationError):
        settings.storage.max_file_size = 1


def test_init_arguments_win(monkeypatch):
    monkeypatch.setenv("MICROSHOP_STORAGE__BASE_PATH", "/env")

    settings = AppSettings(storage=StorageSettings(base_path="/explicit"))

    assert settings.storage.base_path == "/explicit"


def test_logging_config_from_level():
    config = AppSettings(log_level="trace").logging_config

    assert config["root"]["level"] == "DEBUG"
    assert config["handlers"]["console"]["class"] == "logging.StreamHandler"


def test_unknown_log_level_falls_back_to_info():
    assert AppSettings(log_level="loud").logging_config["root"]["level"] == "INFO"


def test_explicit_logging_section_is_used(write_config):
    logging_section = {
        "version": 1,
        "handlers": {"null": {"class": "logging.NullHandler"}},
        "root": {"level": "WARNING", "handlers": ["null"]},
    }
    path = write_config({"logging": logging_section})

    config = AppSettings.load(str(path)).logging_config

    assert config["handlers"] == logging_section["handlers"]
    assert config["root"]["level"] == "WARNING"


@pytest.mark.parametrize("address,expected", [
    (":9091", ("0.0.0.0", 9091)),
    ("127.0.0.1:8000", ("127.0.0.1", 8000)),
    ("[::1]:80", ("::1", 80)),
    ("localhost:65535", ("localhost", 65535)),
])
def test_parse_bind_address(address, expected):
    assert parse_bind_address(address) == expected


@pytest.mark.parametrize("address", ["9091", ":http", ":0", ":70000", ""])
def test_parse_bind_address_rejects(address):
    with pytest.raises(ValueError):
        parse_bind_address(address)


def test_env_file_isolation():
    assert not any(key.startswith("MICROSHOP_") for key in os.environ)
