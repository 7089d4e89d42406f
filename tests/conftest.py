"""Root conftest — shared test configuration.

Invariants:
    - Every test sees fresh Settings (get_settings cache cleared around each test)
    - Tests never read a developer's METATYPES_* environment
"""

import os

import pytest

from metatypes.config import get_settings

for _key in list(os.environ):
    if _key.startswith("METATYPES_"):
        del os.environ[_key]


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
