"""
Agency - RPG-style progression for a roster of AI agents.

The package provides:
- Roster: Agent snapshots (level, XP, stats, skill tree, activity)
- Quests: Quest definitions and completion context
- Progression: XP curve, quest rewards, level-ups, notifications
- Herald: Per-manager event bus for progression events
- Config: YAML configuration with environment variable expansion

Quick Start:
    from agency import Agent, create_progression_manager

    manager = create_progression_manager()
    agent = Agent(id=1, name="Ada", agent_class="Code Master")

    result = manager.process_xp_gain(agent, 250, "Refactor")
    agent = result.updated_agent

Event System:
    manager.on(ProgressionEventKind.LEVEL_UP, my_callback)
    manager.on(None, log_everything)
"""

__version__ = "0.1.0"

from agency.types import Priority

from agency.roster import (
    STAT_NAMES,
    AgentStats,
    SkillLevel,
    ActivityEntry,
    Agent,
)

from agency.quests import (
    QuestDifficulty,
    MissionCategory,
    QuestObjective,
    QuestReward,
    Quest,
    CompletionContext,
)

from agency.herald import (
    Herald,
    ProgressionEvent,
    ProgressionEventKind,
)

from agency.progression import (
    LevelConfig,
    LevelUpEvent,
    Notification,
    ProgressionManager,
    ProgressionRules,
    ProgressionStateView,
    QuestCompletionResult,
    StatIncrease,
    XPCalculator,
    XpAward,
    XpGainResult,
    create_progression_manager,
    process_agent_xp_gain,
    process_quest_completion,
)

__all__ = [
    "__version__",
    "Priority",
    # Roster
    "STAT_NAMES",
    "AgentStats",
    "SkillLevel",
    "ActivityEntry",
    "Agent",
    # Quests
    "QuestDifficulty",
    "MissionCategory",
    "QuestObjective",
    "QuestReward",
    "Quest",
    "CompletionContext",
    # Herald
    "Herald",
    "ProgressionEvent",
    "ProgressionEventKind",
    # Progression
    "LevelConfig",
    "LevelUpEvent",
    "Notification",
    "ProgressionManager",
    "ProgressionRules",
    "ProgressionStateView",
    "QuestCompletionResult",
    "StatIncrease",
    "XPCalculator",
    "XpAward",
    "XpGainResult",
    "create_progression_manager",
    "process_agent_xp_gain",
    "process_quest_completion",
]
