"""
Shared pytest fixtures for CI-safe testing.

All fixtures use temporary directories and a fixed clock - no hardcoded
paths, no wall-clock dependence.
"""

import sys
from pathlib import Path

# Add project root to sys.path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import shutil
import tempfile
from datetime import datetime, timedelta
from typing import Generator

import pytest

from agency.roster.types import ActivityEntry, Agent
from agency.quests.types import (
    MissionCategory,
    Quest,
    QuestDifficulty,
    QuestObjective,
    QuestReward,
)


class FakeClock:
    """Manually advanced clock for deterministic timestamps."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """
    Provides a temporary directory for tests.

    Automatically cleaned up after test completes.
    """
    tmpdir = tempfile.mkdtemp()
    yield Path(tmpdir)
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 6, 1, 12, 0, 0))


@pytest.fixture
def agent() -> Agent:
    """A fresh level 1 Code Master."""
    return Agent(id=1, name="Ada", agent_class="Code Master")


@pytest.fixture
def streak_agent() -> Agent:
    """Level 1 agent with 10 recent XP-granting activities."""
    return Agent(
        id=2,
        name="Grace",
        agent_class="Data Sage",
        activity=[ActivityEntry(action=f"task {i}", xp_gained=10) for i in range(10)],
    )


@pytest.fixture
def quest() -> Quest:
    """Medium Creation quest assigned to agents 1 and 2."""
    return Quest(
        id="q1",
        title="Build the API",
        difficulty=QuestDifficulty.MEDIUM,
        category=MissionCategory.CREATION,
        rewards=QuestReward(xp=100),
        objectives=[
            QuestObjective(id="o1", description="Design"),
            QuestObjective(id="o2", description="Docs", optional=True),
            QuestObjective(id="o3", description="Benchmarks", optional=True),
        ],
        bonus_rewards=QuestReward(xp=40),
        assigned_agents=[1, 2],
        time_limit=60,
    )


# Skip markers for conditional test execution
def pytest_configure(config):
    """Add custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
