"""
microshop test configuration.

This module provides pytest fixtures for setting up test environments, including:
- A clean environment without MICROSHOP_* overrides
- Temporary storage roots
- Settings objects pointing at them
- API clients for both services
"""

import os

import pytest
from fastapi.testclient import TestClient

from microshop.config.settings import AppSettings, StorageSettings
from microshop.logging.setup import reset_logging


# Session-level fixture to clear environment variables before any tests run
@pytest.fixture(scope="session", autouse=True)
def clear_env_vars():
    """
    Clear MICROSHOP environment variables at session start.

    This ensures that environment variables from .env files don't interfere
    with test isolation.
    """
    original_values = {
        key: value for key, value in os.environ.items()
        if key.upper().startswith("MICROSHOP_")
    }
    for key in original_values:
        del os.environ[key]

    yield

    for key, value in original_values.items():
        os.environ[key] = value


@pytest.fixture(autouse=True)
def clean_logging():
    """Let each test configure logging from scratch."""
    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def storage_root(tmp_path):
    """Storage root inside the test's temporary directory."""
    return tmp_path / "imagestore"


@pytest.fixture
def max_file_size():
    """Small limit so oversized uploads stay cheap."""
    return 1024


@pytest.fixture
def settings(storage_root, max_file_size):
    """Settings for a test images service."""
    return AppSettings(
        storage=StorageSettings(
            base_path=str(storage_root),
            max_file_size=max_file_size,
            chunk_size=256,
        )
    )


@pytest.fixture
def images_client(settings):
    """Client for the images service; startup runs on enter."""
    from microshop.main import create_app

    with TestClient(create_app(settings)) as client:
        yield client


@pytest.fixture
def catalog_client(settings):
    """Client for the product catalog service."""
    from microshop.catalog import create_app

    with TestClient(create_app(settings)) as client:
        yield client
