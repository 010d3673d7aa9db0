"""Quest definitions consumed by the progression engine."""

from agency.quests.types import (
    QuestDifficulty,
    MissionCategory,
    QuestObjective,
    QuestReward,
    Quest,
    CompletionContext,
)

__all__ = [
    "QuestDifficulty",
    "MissionCategory",
    "QuestObjective",
    "QuestReward",
    "Quest",
    "CompletionContext",
]
