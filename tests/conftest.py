"""Pytest configuration and shared fixtures."""

import os

import pytest

from secapi.config.settings import get_settings


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Drop SECAPI_* variables from the developer's shell and reset cached settings."""
    for key in list(os.environ):
        if key.startswith("SECAPI_"):
            monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
