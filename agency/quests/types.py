"""Quest type definitions."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class QuestDifficulty(Enum):
    """Difficulty tiers, ordered from easiest to hardest."""
    TUTORIAL = "Tutorial"
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"
    EXPERT = "Expert"
    LEGENDARY = "Legendary"

    @property
    def rank(self) -> int:
        return list(QuestDifficulty).index(self)

    def __lt__(self, other: "QuestDifficulty") -> bool:
        if not isinstance(other, QuestDifficulty):
            return NotImplemented
        return self.rank < other.rank

    @classmethod
    def parse(cls, value: "str | QuestDifficulty") -> "QuestDifficulty":
        """Accept both "Medium" and "MEDIUM" style names."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            try:
                return cls[str(value).upper()]
            except KeyError:
                raise ValueError(f"Unknown quest difficulty: {value!r}") from None


class MissionCategory(Enum):
    """Quest categories (drive class-specific bonuses)."""
    COMBAT = "Combat"
    INVESTIGATION = "Investigation"
    CREATION = "Creation"
    EXPLORATION = "Exploration"
    DIPLOMACY = "Diplomacy"
    TRAINING = "Training"

    @classmethod
    def parse(cls, value: "str | MissionCategory") -> "MissionCategory":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            try:
                return cls[str(value).upper()]
            except KeyError:
                raise ValueError(f"Unknown mission category: {value!r}") from None


@dataclass
class QuestObjective:
    """A single objective within a quest."""
    id: str
    description: str = ""
    optional: bool = False
    completed: bool = False


@dataclass
class QuestReward:
    """Reward bundle. Only XP is consumed by the progression engine."""
    xp: int = 0


@dataclass
class Quest:
    """
    A quest definition, read-only for the progression engine.

    Attributes:
        rewards: Base reward
        bonus_rewards: Extra XP paid out pro rata for optional objectives
        assigned_agents: IDs of agents credited on completion
        time_limit: Optional limit in minutes, used for speed bonuses
    """
    id: str
    title: str
    difficulty: QuestDifficulty
    category: MissionCategory
    rewards: QuestReward = field(default_factory=QuestReward)

    objectives: list[QuestObjective] = field(default_factory=list)
    bonus_rewards: Optional[QuestReward] = None
    assigned_agents: list[int] = field(default_factory=list)
    time_limit: Optional[float] = None

    @property
    def optional_objective_count(self) -> int:
        return sum(1 for obj in self.objectives if obj.optional)

    @property
    def bonus_xp(self) -> int:
        return self.bonus_rewards.xp if self.bonus_rewards else 0

    def is_assigned(self, agent_id: int) -> bool:
        return agent_id in self.assigned_agents

    def to_dict(self) -> dict:
        """Serialize to dict."""
        return {
            "id": self.id,
            "title": self.title,
            "difficulty": self.difficulty.value,
            "category": self.category.value,
            "rewards": {"xp": self.rewards.xp},
            "objectives": [
                {
                    "id": o.id,
                    "description": o.description,
                    "optional": o.optional,
                    "completed": o.completed,
                }
                for o in self.objectives
            ],
            "bonus_rewards": {"xp": self.bonus_rewards.xp} if self.bonus_rewards else None,
            "assigned_agents": list(self.assigned_agents),
            "time_limit": self.time_limit,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Quest":
        """Deserialize from dict."""
        bonus = data.get("bonus_rewards")
        return cls(
            id=data["id"],
            title=data["title"],
            difficulty=QuestDifficulty.parse(data["difficulty"]),
            category=MissionCategory.parse(data["category"]),
            rewards=QuestReward(xp=data.get("rewards", {}).get("xp", 0)),
            objectives=[QuestObjective(**o) for o in data.get("objectives", [])],
            bonus_rewards=QuestReward(xp=bonus.get("xp", 0)) if bonus else None,
            assigned_agents=list(data.get("assigned_agents", [])),
            time_limit=data.get("time_limit"),
        )


@dataclass(frozen=True)
class CompletionContext:
    """
    Caller-supplied details about how a quest was completed.

    Attributes:
        completion_time: Minutes taken, compared against the quest time limit
        optional_objectives_completed: Number of optional objectives done
        team_performance_bonus: External multiplier, 1.0 = neutral
    """
    completion_time: Optional[float] = None
    optional_objectives_completed: int = 0
    team_performance_bonus: float = 1.0

    def cache_key(self) -> tuple:
        return (
            self.completion_time,
            self.optional_objectives_completed,
            self.team_performance_bonus,
        )
