"""Shared fixtures for capnpgen tests."""

import pytest

from capnpgen.config import get_settings
from capnpgen.schema.registry import reset_registry


@pytest.fixture(autouse=True)
def clean_registry():
    """Give each test a fresh process-wide registry and settings."""
    reset_registry()
    get_settings.cache_clear()
    yield
    reset_registry()
    get_settings.cache_clear()
