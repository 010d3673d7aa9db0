"""
Progression system - XP, levels, skill unlocks, and notifications.

The progression system tracks:
- XP accumulation and level thresholds
- Quest reward pricing (difficulty, class, speed, team, streak)
- Stat milestones and skill unlocks on level-up
- Notifications and the pending level-up queue

Usage:
    from agency.progression import create_progression_manager

    manager = create_progression_manager()

    # Award XP
    result = manager.process_xp_gain(agent, 150, "Code review")
    if result.leveled_up:
        print(result.level_up_event.new_level)

    # Credit a completed quest
    outcome = manager.process_quest_completion(quest, agents)
"""

# Types
from agency.progression.types import (
    NotificationKind,
    Notification,
    XpAward,
    XpGainResult,
    QuestCompletionResult,
    ProgressionStateView,
    StatIncrease,
    LevelUpEvent,
)

# Cache
from agency.progression.cache import (
    BoundedCache,
    NullCache,
    CacheStats,
    make_cache,
)

# Rules
from agency.progression.rules import ProgressionRules

# XP system
from agency.progression.xp import (
    LevelConfig,
    LevelInfo,
    XPPreview,
    RewardBreakdown,
    XPCalculator,
    sanitize_xp,
)

# Notifications
from agency.progression.notifications import NotificationCenter

# Manager
from agency.progression.manager import (
    ProgressionManager,
    create_progression_manager,
    process_agent_xp_gain,
    process_quest_completion,
)

__all__ = [
    # Types
    "NotificationKind",
    "Notification",
    "XpAward",
    "XpGainResult",
    "QuestCompletionResult",
    "ProgressionStateView",
    "StatIncrease",
    "LevelUpEvent",
    # Cache
    "BoundedCache",
    "NullCache",
    "CacheStats",
    "make_cache",
    # Rules
    "ProgressionRules",
    # XP
    "LevelConfig",
    "LevelInfo",
    "XPPreview",
    "RewardBreakdown",
    "XPCalculator",
    "sanitize_xp",
    # Notifications
    "NotificationCenter",
    # Manager
    "ProgressionManager",
    "create_progression_manager",
    "process_agent_xp_gain",
    "process_quest_completion",
]
