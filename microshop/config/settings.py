"""
Configuration for the microshop services using Pydantic Settings.

This module provides an immutable, type-safe configuration object with:
- Optional YAML config file discovery
- Environment variable override support with proper type conversion
- Configuration validation with clear error messages
- No circular dependencies with logging

The settings object is built once at process start (see ``AppSettings.load``)
and handed to the application factories. Request handling code receives it
through ``app.state`` and never reads the environment itself.
"""

import logging
import os
from typing import Any, ClassVar

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict, PydanticBaseSettingsSource


# Use basic logging during config initialization (before custom logger is
# set up)
_basic_logger = logging.getLogger(__name__)

LOG_LEVELS = {
    "trace": "DEBUG",
    "debug": "DEBUG",
    "info": "INFO",
    "warn": "WARNING",
    "warning": "WARNING",
    "error": "ERROR",
}


class StorageSettings(BaseModel):
    """Image storage configuration."""
    model_config = ConfigDict(frozen=True)

    base_path: str = Field(default="./imagestore",
                           description="Base path to save images")
    max_file_size: int = Field(
        default=1024 * 1000 * 5,
        gt=0,
        description="Maximum size in bytes of a single stored file")
    chunk_size: int = Field(
        default=32 * 1024,
        gt=0,
        description="Read size used when streaming uploads to disk")


class APISettings(BaseModel):
    """Images service HTTP configuration."""
    model_config = ConfigDict(frozen=True)

    bind_address: str = Field(default=":9091",
                              description="Bind address for the server")
    cors_allowed_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Origins allowed to call the API from a browser")
    idle_timeout: int = Field(
        default=120,
        ge=1,
        description="Seconds to keep idle keep-alive connections open")
    shutdown_timeout: int = Field(
        default=30,
        ge=0,
        description="Seconds to wait for in-flight requests on shutdown")


class CatalogSettings(BaseModel):
    """Product catalog service HTTP configuration."""
    model_config = ConfigDict(frozen=True)

    bind_address: str = Field(default=":9090",
                              description="Bind address for the catalog")
    idle_timeout: int = Field(
        default=120,
        ge=1,
        description="Seconds to keep idle keep-alive connections open")
    shutdown_timeout: int = Field(
        default=30,
        ge=0,
        description="Seconds to wait for in-flight requests on shutdown")


class LoggingSettings(BaseModel):
    """Logging configuration (raw dict for logging.config.dictConfig)."""
    version: int = Field(default=1)
    disable_existing_loggers: bool = Field(default=False)
    formatters: dict[str, Any] = Field(default_factory=dict)
    handlers: dict[str, Any] = Field(default_factory=dict)
    root: dict[str, Any] = Field(default_factory=dict)
    loggers: dict[str, Any] = Field(default_factory=dict)

    # Allow extra fields for logging config flexibility
    model_config = ConfigDict(extra="allow", frozen=True)


class AppSettings(BaseSettings):
    """
    Main application settings using Pydantic Settings.

    This class automatically:
    - Loads configuration from a YAML file when one is available
    - Overrides values from environment variables
    - Validates all settings
    - Refuses mutation after construction

    Environment variables use the format: MICROSHOP_SECTION__KEY
    Example: MICROSHOP_STORAGE__BASE_PATH=/srv/images
    """

    log_level: str = Field(
        default="debug",
        description="Log output level for the server [debug, info, trace]")
    storage: StorageSettings = Field(default_factory=StorageSettings)
    api: APISettings = Field(default_factory=APISettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_prefix="MICROSHOP_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Holds YAML data while load() builds an instance
    _yaml_data: ClassVar[dict[str, Any] | None] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """
        Customize the sources and their priority for loading settings.

        Priority (highest to lowest):
        1. Explicit init arguments
        2. Environment variables
        3. YAML file data (if loaded via load())
        4. Default values
        """
        class YamlSettingsSource(PydanticBaseSettingsSource):
            def get_field_value(
                    self, field: Any, field_name: str) -> tuple[Any, str, bool]:
                data = cls._yaml_data or {}
                return data.get(field_name), field_name, False

            def __call__(self) -> dict[str, Any]:
                return dict(cls._yaml_data or {})

        return (
            init_settings,
            env_settings,
            YamlSettingsSource(settings_cls),
        )

    @classmethod
    def load(cls, config_path: str | None = None) -> "AppSettings":
        """
        Build settings from an optional YAML file plus the environment.

        Search order when no explicit path is given:
        1. MICROSHOP_CONFIG_PATH environment variable (if set)
        2. ./config.yaml (project root)
        3. microshop/config/config.yaml (package location)

        Finding no file is fine: defaults and environment variables apply.

        Args:
            config_path: Explicit path to config file (skips search if provided)

        Returns:
            AppSettings instance

        Raises:
            FileNotFoundError: If an explicit config_path does not exist
            ValueError: If the file is not valid YAML or values are invalid
        """
        if config_path is None:
            config_path = cls._find_config_file()

        config_data: dict[str, Any] = {}
        if config_path is not None:
            _basic_logger.info(f"Loading configuration from: {config_path}")
            try:
                with open(config_path, "r") as f:
                    config_data = yaml.safe_load(f) or {}
            except FileNotFoundError:
                _basic_logger.error(
                    f"Configuration file not found: {config_path}")
                raise
            except yaml.YAMLError as e:
                _basic_logger.error(f"Invalid YAML in config file: {e}")
                raise ValueError(
                    f"Invalid YAML in configuration file {config_path}: {e}")

            if not isinstance(config_data, dict):
                raise ValueError(
                    f"Configuration file {config_path} must contain a mapping")

        cls._yaml_data = config_data
        try:
            settings = cls()
            _basic_logger.info(
                "Configuration loaded and validated successfully")
            return settings
        except ValidationError as e:
            _basic_logger.error(f"Configuration validation failed: {e}")
            raise ValueError(f"Configuration validation failed:\n{e}")
        finally:
            cls._yaml_data = None

    @staticmethod
    def _get_search_paths() -> list[str]:
        """Get list of paths to search for config file."""
        return [
            os.getenv("MICROSHOP_CONFIG_PATH", ""),
            "./config.yaml",
            os.path.join(os.path.dirname(__file__), "config.yaml"),
        ]

    @classmethod
    def _find_config_file(cls) -> str | None:
        """Return the first existing config file, or None."""
        for path in cls._get_search_paths():
            if path and os.path.isfile(path):
                _basic_logger.debug(f"Found config file at: {path}")
                return path

        _basic_logger.debug(
            "No configuration file found, using defaults and environment")
        return None

    @property
    def logging_config(self) -> dict[str, Any]:
        """
        Get the dictConfig used to set up logging.

        An explicit ``logging`` section with handlers wins; otherwise a
        console configuration is derived from ``log_level``.
        """
        explicit = self.logging.model_dump()
        if explicit.get("handlers"):
            return explicit

        level = LOG_LEVELS.get(self.log_level.lower(), "INFO")
        return {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {
                    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": level,
                    "formatter": "standard",
                }
            },
            "root": {
                "level": level,
                "handlers": ["console"],
            },
        }


def parse_bind_address(bind_address: str) -> tuple[str, int]:
    """
    Split a ``host:port`` bind address into uvicorn's host and port.

    An empty host (``":9091"``) listens on all interfaces.

    Raises:
        ValueError: If the address has no valid port
    """
    host, sep, port = bind_address.rpartition(":")
    if not sep:
        raise ValueError(f"Bind address must be host:port, got {bind_address!r}")

    try:
        port_number = int(port)
    except ValueError:
        raise ValueError(f"Invalid port in bind address {bind_address!r}")

    if not 1 <= port_number <= 65535:
        raise ValueError(f"Port out of range in bind address {bind_address!r}")

    host = host.strip("[]") or "0.0.0.0"
    return host, port_number


__all__ = [
    'AppSettings',
    'StorageSettings',
    'APISettings',
    'CatalogSettings',
    'LoggingSettings',
    'parse_bind_address',
]
