"""
Herald - the progression event bus.

Quick Start:
    from agency.herald import Herald, ProgressionEventKind

    herald = Herald()
    herald.subscribe(ProgressionEventKind.LEVEL_UP, on_level_up)
    herald.subscribe(None, on_any_event)

Event kinds form a closed set; see ProgressionEventKind and PAYLOAD_TYPES.
"""

from agency.herald.types import (
    ProgressionEventKind,
    ProgressionEvent,
    EventHandler,
    EventPayload,
    PAYLOAD_TYPES,
    StatIncrease,
    LevelUpEvent,
    XpGainedPayload,
    SkillUnlockedPayload,
    QuestCompletedPayload,
)
from agency.herald.bus import Herald, DEFAULT_HISTORY_LIMIT

__all__ = [
    # Types
    "ProgressionEventKind",
    "ProgressionEvent",
    "EventHandler",
    "EventPayload",
    "PAYLOAD_TYPES",
    "StatIncrease",
    "LevelUpEvent",
    "XpGainedPayload",
    "SkillUnlockedPayload",
    "QuestCompletedPayload",
    # Bus
    "Herald",
    "DEFAULT_HISTORY_LIMIT",
]
