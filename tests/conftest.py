"""
Shared fixtures — isolate PLANNER_* environment variables so settings-driven
tests see defaults unless they set values explicitly.
"""

import os

import pytest
import pytest_asyncio

from pomdp_planner.config.settings import get_settings
from pomdp_planner.store.plan_store import SQLitePlanStore


@pytest.fixture(autouse=True)
def _isolate_planner_env(monkeypatch):
    for var in list(os.environ):
        if var.upper().startswith("PLANNER_"):
            monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def store():
    """Fresh in-memory plan store per test."""
    s = SQLitePlanStore(":memory:")
    await s.init()
    yield s
    await s.close()
