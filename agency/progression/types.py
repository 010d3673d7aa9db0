"""Progression result, notification, and state type definitions."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from agency.herald.types import LevelUpEvent, ProgressionEvent, StatIncrease
from agency.roster.types import Agent
from agency.types import Priority, SerializableMixin


class NotificationKind(Enum):
    """Kinds of user-facing notifications."""
    LEVEL_UP = "level_up"
    SKILL_UNLOCK = "skill_unlock"
    XP_GAIN = "xp_gain"


@dataclass
class Notification(SerializableMixin):
    """
    A UI-facing record describing a progression event.

    Only ``dismissed`` ever changes after creation.
    """
    id: str
    kind: NotificationKind
    title: str
    message: str
    icon: str
    priority: Priority
    agent_id: Optional[int] = None
    duration_ms: int = 4000
    timestamp: datetime = field(default_factory=datetime.now)
    dismissed: bool = False


@dataclass
class XpAward:
    """One entry of a batch XP application."""
    agent: Agent
    amount: float
    source: str


@dataclass
class XpGainResult:
    """Outcome of a single XP award."""
    updated_agent: Agent
    leveled_up: bool
    level_up_event: Optional[LevelUpEvent] = None
    notifications: list[Notification] = field(default_factory=list)
    events: list[ProgressionEvent] = field(default_factory=list)
    xp_awarded: int = 0


@dataclass
class QuestCompletionResult:
    """Outcome of crediting a quest to a team."""
    updated_agents: list[Agent] = field(default_factory=list)
    level_up_events: list[LevelUpEvent] = field(default_factory=list)
    notifications: list[Notification] = field(default_factory=list)
    rewards: dict[int, int] = field(default_factory=dict)


@dataclass(frozen=True)
class ProgressionStateView:
    """
    Read-only snapshot of a manager's state.

    Attributes:
        recent_events: Bounded event history, oldest first
        active_notifications: Notifications not yet cleaned up
        level_up_queue: Pending level-ups, next to be consumed first
        is_processing: True while any award is in flight
    """
    recent_events: tuple[ProgressionEvent, ...]
    active_notifications: tuple[Notification, ...]
    level_up_queue: tuple[LevelUpEvent, ...]
    is_processing: bool

    @property
    def undismissed_notifications(self) -> tuple[Notification, ...]:
        return tuple(n for n in self.active_notifications if not n.dismissed)


__all__ = [
    "NotificationKind",
    "Notification",
    "XpAward",
    "XpGainResult",
    "QuestCompletionResult",
    "ProgressionStateView",
    "StatIncrease",
    "LevelUpEvent",
]
