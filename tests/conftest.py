# tests/conftest.py
from __future__ import annotations

from typing import Iterator

import pytest
import structlog

from function_wrapper.utils import settings as settings_mod


@pytest.fixture(autouse=True)
def _reset_logging_and_settings() -> Iterator[None]:
    """Each test starts with default structlog config and an empty settings cache."""
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    settings_mod.get_settings.cache_clear()
    settings_mod._load_yaml_parameters.cache_clear()
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    settings_mod.get_settings.cache_clear()
    settings_mod._load_yaml_parameters.cache_clear()
