"""Static progression tables: reward modifiers, skill unlocks, stat milestones."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from agency.config.loader import ConfigLoader
from agency.herald.types import StatIncrease
from agency.quests.types import MissionCategory, QuestDifficulty
from agency.roster.types import STAT_NAMES


logger = logging.getLogger(__name__)


DEFAULT_DIFFICULTY_MULTIPLIERS: dict[QuestDifficulty, float] = {
    QuestDifficulty.TUTORIAL: 0.5,
    QuestDifficulty.EASY: 1.0,
    QuestDifficulty.MEDIUM: 1.5,
    QuestDifficulty.HARD: 2.0,
    QuestDifficulty.EXPERT: 3.0,
    QuestDifficulty.LEGENDARY: 5.0,
}

DEFAULT_CLASS_BONUSES: dict[str, dict[MissionCategory, float]] = {
    "Code Master": {
        MissionCategory.INVESTIGATION: 1.2,
        MissionCategory.CREATION: 1.3,
    },
    "Data Sage": {
        MissionCategory.INVESTIGATION: 1.3,
        MissionCategory.EXPLORATION: 1.2,
    },
    "Creative Bard": {
        MissionCategory.CREATION: 1.3,
        MissionCategory.DIPLOMACY: 1.2,
    },
    "Rapid Scout": {
        MissionCategory.EXPLORATION: 1.3,
        MissionCategory.COMBAT: 1.2,
    },
    "System Architect": {
        MissionCategory.CREATION: 1.2,
        MissionCategory.TRAINING: 1.3,
    },
    "Bug Hunter": {
        MissionCategory.INVESTIGATION: 1.3,
        MissionCategory.COMBAT: 1.3,
    },
    "Documentation Wizard": {
        MissionCategory.CREATION: 1.2,
        MissionCategory.DIPLOMACY: 1.3,
    },
}

DEFAULT_CLASS_SKILLS: dict[str, dict[int, str]] = {
    "Code Master": {
        3: "Refactoring Mastery",
        7: "Architecture Vision",
        12: "Performance Tuning",
        18: "System Integration",
    },
    "Data Sage": {
        3: "Pattern Recognition",
        7: "Predictive Analysis",
        12: "Data Synthesis",
        18: "Knowledge Fusion",
    },
    "Creative Bard": {
        3: "Narrative Weaving",
        7: "Design Harmony",
        12: "Innovation Spark",
        18: "Creative Revolution",
    },
    "Rapid Scout": {
        3: "Quick Navigation",
        7: "Parallel Processing",
        12: "Speed Optimization",
        18: "Instant Deployment",
    },
}

# Unlocked by every class
DEFAULT_MILESTONE_SKILLS: dict[int, str] = {
    5: "Advanced Analysis",
    10: "Master Coordination",
    15: "Expert Optimization",
    20: "Legendary Insight",
}


@dataclass
class ProgressionRules:
    """
    Lookup tables consulted by the calculator and the manager.

    Loaded from configs/progression/rules.yaml; any table missing from the
    file keeps its built-in default.

    Attributes:
        stat_overrides: agent class -> milestone level -> stat increases that
            replace the default "+1 to every stat" for that milestone
    """
    difficulty_multipliers: dict[QuestDifficulty, float] = field(
        default_factory=lambda: dict(DEFAULT_DIFFICULTY_MULTIPLIERS)
    )
    class_bonuses: dict[str, dict[MissionCategory, float]] = field(
        default_factory=lambda: {k: dict(v) for k, v in DEFAULT_CLASS_BONUSES.items()}
    )
    class_skills: dict[str, dict[int, str]] = field(
        default_factory=lambda: {k: dict(v) for k, v in DEFAULT_CLASS_SKILLS.items()}
    )
    milestone_skills: dict[int, str] = field(
        default_factory=lambda: dict(DEFAULT_MILESTONE_SKILLS)
    )
    stat_overrides: dict[str, dict[int, list[StatIncrease]]] = field(default_factory=dict)
    milestone_interval: int = 5

    def difficulty_multiplier(self, difficulty: QuestDifficulty) -> float:
        return self.difficulty_multipliers.get(difficulty, 1.0)

    def class_bonus(self, agent_class: str, category: MissionCategory) -> float:
        """Class/category multiplier; 1.0 when the pair has no entry."""
        return self.class_bonuses.get(agent_class, {}).get(category, 1.0)

    def is_milestone(self, level: int) -> bool:
        return level > 0 and level % self.milestone_interval == 0

    def skills_unlocked_at(self, agent_class: str, level: int) -> list[str]:
        """Skills that unlock on reaching ``level`` (universal first)."""
        skills = []
        if level in self.milestone_skills:
            skills.append(self.milestone_skills[level])
        class_skill = self.class_skills.get(agent_class, {}).get(level)
        if class_skill:
            skills.append(class_skill)
        return skills

    def stat_increases_at(self, agent_class: str, level: int) -> list[StatIncrease]:
        """Stat increases for reaching ``level``; empty unless it is a milestone."""
        if not self.is_milestone(level):
            return []

        override = self.stat_overrides.get(agent_class, {}).get(level)
        if override is not None:
            return [StatIncrease(s.stat, s.amount, s.reason) for s in override]

        reason = f"Level {level} milestone"
        return [StatIncrease(stat, 1, reason) for stat in STAT_NAMES]

    @classmethod
    def from_dict(cls, data: dict) -> "ProgressionRules":
        """
        Build rules from a config dict.

        Raises:
            ValueError: on unknown difficulty, category or stat names
        """
        rules = cls()

        if "milestone_interval" in data:
            interval = int(data["milestone_interval"])
            if interval < 1:
                raise ValueError(f"milestone_interval must be >= 1, got {interval}")
            rules.milestone_interval = interval

        if "difficulty_multipliers" in data:
            rules.difficulty_multipliers.update({
                QuestDifficulty.parse(name): float(mult)
                for name, mult in data["difficulty_multipliers"].items()
            })

        if "class_bonuses" in data:
            rules.class_bonuses = {
                agent_class: {
                    MissionCategory.parse(cat): float(mult)
                    for cat, mult in (bonuses or {}).items()
                }
                for agent_class, bonuses in data["class_bonuses"].items()
            }

        if "class_skills" in data:
            rules.class_skills = {
                agent_class: {int(lvl): str(name) for lvl, name in (skills or {}).items()}
                for agent_class, skills in data["class_skills"].items()
            }

        if "milestone_skills" in data:
            rules.milestone_skills = {
                int(lvl): str(name) for lvl, name in data["milestone_skills"].items()
            }

        for agent_class, levels in (data.get("stat_overrides") or {}).items():
            parsed = {}
            for lvl, increases in (levels or {}).items():
                parsed[int(lvl)] = [_load_stat_increase(i) for i in increases]
            rules.stat_overrides[agent_class] = parsed

        return rules

    @classmethod
    def load(
        cls,
        config_dir: Optional[Path] = None,
        loader: Optional[ConfigLoader] = None,
    ) -> "ProgressionRules":
        """Load rules from <config_dir>/progression/rules.yaml, or defaults."""
        loader = loader or ConfigLoader(config_dir)
        if not loader.exists("progression", "rules"):
            logger.warning(f"Progression rules not found in {loader.config_dir}, using defaults")
            return cls()

        rules = cls.from_dict(loader.load("progression", "rules"))
        logger.debug(
            f"Loaded progression rules: {len(rules.class_bonuses)} class bonus tables, "
            f"{len(rules.class_skills)} class skill tables"
        )
        return rules


def _load_stat_increase(data: dict) -> StatIncrease:
    stat = data["stat"]
    if stat not in STAT_NAMES:
        raise ValueError(f"Unknown stat in stat_overrides: {stat!r}")
    return StatIncrease(
        stat=stat,
        amount=int(data.get("amount", 1)),
        reason=data.get("reason", "Class milestone"),
    )
