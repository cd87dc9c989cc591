"""
Test configuration: repo root on sys.path, deterministic config, service fixtures.

Tests never read the user's SCHEDULE_ENGINE_* environment; the process-wide
config is reset around every test so env-var tests cannot leak.
"""

import sys
from pathlib import Path

import pytest

# Add repo root to sys.path so tests can import schedule_engine without installing
REPO_ROOT = Path(__file__).parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from schedule_engine.collaborators import (  # noqa: E402
    InMemoryCalendarProvider,
    InMemoryScheduleStore,
    StaticPreferenceStore,
)
from schedule_engine.config import SchedulingConfig, reset_config  # noqa: E402
from schedule_engine.models import Preferences  # noqa: E402
from schedule_engine.service import SchedulingService  # noqa: E402


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch):
    for var in (
        "SCHEDULE_ENGINE_CONFIG",
        "SCHEDULE_ENGINE_HOME",
        "SCHEDULE_ENGINE_BUFFER_MINUTES",
        "SCHEDULE_ENGINE_TRAVEL_BUFFER_MINUTES",
        "SCHEDULE_ENGINE_MIN_GAP_MINUTES",
        "SCHEDULE_ENGINE_PLANNER_MODE",
        "SCHEDULE_ENGINE_WORK_START",
        "SCHEDULE_ENGINE_WORK_END",
    ):
        monkeypatch.delenv(var, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def config():
    return SchedulingConfig()


@pytest.fixture
def prefs():
    return Preferences()


@pytest.fixture
def store():
    return InMemoryScheduleStore()


@pytest.fixture
def calendar():
    return InMemoryCalendarProvider()


@pytest.fixture
def service(store, calendar, prefs, config):
    return SchedulingService(store, calendar, StaticPreferenceStore(prefs), config=config)
