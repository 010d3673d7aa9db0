"""
Progression event types.

Every event carries one of a closed set of kinds, and each kind has exactly
one payload type:

    xp_gained       -> XpGainedPayload
    level_up        -> LevelUpEvent
    skill_unlocked  -> SkillUnlockedPayload
    quest_completed -> QuestCompletedPayload

The pairing is checked when the event is built, so subscribers can rely on
``event.payload`` matching ``event.kind``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional, Union

from agency.types import SerializableMixin


class ProgressionEventKind(str, Enum):
    """All progression event kinds."""
    XP_GAINED = "xp_gained"
    LEVEL_UP = "level_up"
    QUEST_COMPLETED = "quest_completed"
    SKILL_UNLOCKED = "skill_unlocked"


@dataclass
class StatIncrease(SerializableMixin):
    """A stat bump granted by a level-up."""
    stat: str
    amount: int
    reason: str


@dataclass
class LevelUpEvent(SerializableMixin):
    """
    Summary of one award that crossed one or more level boundaries.

    ``new_level`` is the final level after all crossings; ``stat_increases``
    and ``unlocked_skills`` accumulate over every crossed level.
    """
    agent_id: int
    old_level: int
    new_level: int
    xp_gained: int
    source: str
    unlocked_skills: list[str] = field(default_factory=list)
    stat_increases: list[StatIncrease] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def levels_gained(self) -> int:
        return self.new_level - self.old_level


@dataclass
class XpGainedPayload(SerializableMixin):
    amount: int
    source: str
    new_xp: int
    new_level: int
    total_xp: int


@dataclass
class SkillUnlockedPayload(SerializableMixin):
    skill: str
    level: int


@dataclass
class QuestCompletedPayload(SerializableMixin):
    quest_id: str
    quest_title: str
    assigned_agents: list[int] = field(default_factory=list)
    xp_awarded: dict[int, int] = field(default_factory=dict)


EventPayload = Union[
    XpGainedPayload, LevelUpEvent, SkillUnlockedPayload, QuestCompletedPayload
]

PAYLOAD_TYPES: dict[ProgressionEventKind, type] = {
    ProgressionEventKind.XP_GAINED: XpGainedPayload,
    ProgressionEventKind.LEVEL_UP: LevelUpEvent,
    ProgressionEventKind.SKILL_UNLOCKED: SkillUnlockedPayload,
    ProgressionEventKind.QUEST_COMPLETED: QuestCompletedPayload,
}


@dataclass
class ProgressionEvent:
    """
    An event broadcast by the Herald.

    Attributes:
        kind: One of ProgressionEventKind
        agent_id: Subject agent (None for team-level events)
        payload: Kind-specific record
        timestamp: When the event occurred
    """
    kind: ProgressionEventKind
    agent_id: Optional[int]
    payload: EventPayload
    timestamp: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        self.kind = ProgressionEventKind(self.kind)
        expected = PAYLOAD_TYPES[self.kind]
        if not isinstance(self.payload, expected):
            raise TypeError(
                f"{self.kind.value} event needs a {expected.__name__} payload, "
                f"got {type(self.payload).__name__}"
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "kind": self.kind.value,
            "agent_id": self.agent_id,
            "payload": self.payload.to_dict(),
            "timestamp": self.timestamp.isoformat(),
        }


EventHandler = Callable[[ProgressionEvent], None]
