"""Agent snapshot type definitions."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional

from agency.types import datetime_to_iso, iso_to_datetime


STAT_NAMES = ("intelligence", "creativity", "reliability", "speed", "leadership")

# Activity entries kept per agent, newest first
MAX_ACTIVITY_ENTRIES = 50


@dataclass
class AgentStats:
    """The five core stats of an agent."""
    intelligence: int = 0
    creativity: int = 0
    reliability: int = 0
    speed: int = 0
    leadership: int = 0

    def get(self, stat: str) -> int:
        if stat not in STAT_NAMES:
            raise ValueError(f"Unknown stat: {stat}")
        return getattr(self, stat)

    def with_increases(self, increases: dict[str, int]) -> "AgentStats":
        """Return a copy with the given per-stat deltas applied."""
        updated = self.to_dict()
        for stat, amount in increases.items():
            updated[stat] = self.get(stat) + amount
        return AgentStats(**updated)

    def to_dict(self) -> dict:
        return {name: getattr(self, name) for name in STAT_NAMES}

    @classmethod
    def from_dict(cls, data: dict) -> "AgentStats":
        return cls(**{k: int(v) for k, v in data.items() if k in STAT_NAMES})


@dataclass
class SkillLevel:
    """State of one node in an agent's skill tree."""
    level: int = 0
    max_level: int = 10
    unlocked: bool = False
    recent_progress: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "level": self.level,
            "max_level": self.max_level,
            "unlocked": self.unlocked,
            "recent_progress": self.recent_progress,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SkillLevel":
        return cls(
            level=data.get("level", 0),
            max_level=data.get("max_level", 10),
            unlocked=data.get("unlocked", False),
            recent_progress=data.get("recent_progress"),
        )


@dataclass
class ActivityEntry:
    """One line of an agent's recent activity log."""
    action: str
    timestamp: datetime = field(default_factory=datetime.now)
    xp_gained: int = 0

    @property
    def granted_xp(self) -> bool:
        return self.xp_gained > 0

    def to_dict(self) -> dict:
        return {
            "action": self.action,
            "timestamp": datetime_to_iso(self.timestamp),
            "xp_gained": self.xp_gained,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ActivityEntry":
        return cls(
            action=data["action"],
            timestamp=iso_to_datetime(data.get("timestamp")) or datetime.now(),
            xp_gained=data.get("xp_gained") or 0,
        )


@dataclass
class Agent:
    """
    Snapshot of a game character.

    Owned by the caller. The progression engine treats it as a value:
    it reads a snapshot and hands back a new one (see ``evolve``).

    Attributes:
        level: Current level (>= 1)
        xp: XP earned inside the current level
        xp_to_next: XP needed to leave the current level
        activity: Recent activity, newest first
    """
    id: int
    name: str
    agent_class: str

    level: int = 1
    xp: int = 0
    xp_to_next: int = 100

    stats: AgentStats = field(default_factory=AgentStats)
    skill_tree: dict[str, SkillLevel] = field(default_factory=dict)
    activity: list[ActivityEntry] = field(default_factory=list)

    def evolve(self, **changes) -> "Agent":
        """
        Copy this agent, detaching every mutable container.

        The returned snapshot shares no lists, dicts or nested records
        with the original.
        """
        changes.setdefault("stats", replace(self.stats))
        changes.setdefault(
            "skill_tree", {k: replace(v) for k, v in self.skill_tree.items()}
        )
        changes.setdefault("activity", [replace(a) for a in self.activity])
        return replace(self, **changes)

    def with_activity(self, entry: ActivityEntry) -> list[ActivityEntry]:
        """Activity log with ``entry`` prepended, trimmed to the cap."""
        return [entry] + [replace(a) for a in self.activity[:MAX_ACTIVITY_ENTRIES - 1]]

    def unlocked_skills(self) -> list[str]:
        return [name for name, s in self.skill_tree.items() if s.unlocked]

    def to_dict(self) -> dict:
        """Serialize to dict."""
        return {
            "id": self.id,
            "name": self.name,
            "agent_class": self.agent_class,
            "level": self.level,
            "xp": self.xp,
            "xp_to_next": self.xp_to_next,
            "stats": self.stats.to_dict(),
            "skill_tree": {k: v.to_dict() for k, v in self.skill_tree.items()},
            "activity": [a.to_dict() for a in self.activity],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Agent":
        """Deserialize from dict."""
        return cls(
            id=data["id"],
            name=data["name"],
            agent_class=data.get("agent_class", ""),
            level=data.get("level", 1),
            xp=data.get("xp", 0),
            xp_to_next=data.get("xp_to_next", 100),
            stats=AgentStats.from_dict(data.get("stats", {})),
            skill_tree={
                k: SkillLevel.from_dict(v)
                for k, v in data.get("skill_tree", {}).items()
            },
            activity=[ActivityEntry.from_dict(a) for a in data.get("activity", [])],
        )
