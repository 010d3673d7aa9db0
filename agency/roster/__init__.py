"""Agent roster - snapshot types for the characters being progressed."""

from agency.roster.types import (
    STAT_NAMES,
    MAX_ACTIVITY_ENTRIES,
    AgentStats,
    SkillLevel,
    ActivityEntry,
    Agent,
)

__all__ = [
    "STAT_NAMES",
    "MAX_ACTIVITY_ENTRIES",
    "AgentStats",
    "SkillLevel",
    "ActivityEntry",
    "Agent",
]
