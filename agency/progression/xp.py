"""XP calculation, level thresholds, and quest reward logic."""

import logging
import math
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from fractions import Fraction
from pathlib import Path
from typing import Optional, Sequence

from agency.config.loader import ConfigLoader
from agency.progression.cache import BoundedCache, CacheStats, NullCache, make_cache
from agency.progression.rules import ProgressionRules
from agency.quests.types import CompletionContext, Quest
from agency.roster.types import Agent


logger = logging.getLogger(__name__)


# Speed bonus bands: (max completion_time / time_limit ratio, multiplier)
TIME_BONUS_BANDS = ((0.5, 1.5), (0.75, 1.25), (1.0, 1.1))

# Streak tiers: (min XP-granting entries in the window, multiplier)
STREAK_TIERS = ((10, 1.3), (5, 1.15), (3, 1.05))

SKILL_COMPLEXITY_MULTIPLIERS = {"simple": 0.5, "moderate": 1.0, "complex": 2.0}
COLLABORATION_BASE_XP = {"low": 20, "medium": 50, "high": 100}

# (max days idle, decay fraction)
DECAY_BANDS = ((7, 0.0), (14, 0.05), (30, 0.1), (60, 0.2))
MAX_DECAY = 0.3


@dataclass
class LevelConfig:
    """Configuration for the leveling curve and reward tuning."""
    base_xp: int = 100
    growth_rate: float = 1.5

    # Team synergy: bonus per agent beyond the first, and its cap
    synergy_per_agent: float = 0.05
    max_synergy: float = 1.25

    streak_window: int = 10
    partial_completion_rate: float = 0.5

    cache_enabled: bool = True
    cache_capacity: int = 1000
    cache_evict_fraction: float = 0.2

    def __post_init__(self):
        # Env-expanded YAML values arrive as strings
        self.base_xp = int(self.base_xp)
        self.growth_rate = float(self.growth_rate)

        # The level search needs every level to cost at least 1 XP
        if self.base_xp < 1:
            raise ValueError(f"base_xp must be >= 1, got {self.base_xp}")
        if self.growth_rate < 1:
            raise ValueError(f"growth_rate must be >= 1, got {self.growth_rate}")

    @classmethod
    def load(
        cls,
        config_dir: Optional[Path] = None,
        loader: Optional[ConfigLoader] = None,
    ) -> "LevelConfig":
        """Load from config_dir/progression/leveling.yaml, or defaults."""
        loader = loader or ConfigLoader(config_dir)
        if not loader.exists("progression", "leveling"):
            logger.warning(f"Leveling config not found in {loader.config_dir}, using defaults")
            return cls()
        return loader.load("progression", "leveling", cls)


@dataclass(frozen=True)
class LevelInfo:
    """Where a total XP amount lands on the curve."""
    level: int
    current_level_xp: int
    xp_to_next: int

    @property
    def progress(self) -> float:
        """Progress through the current level (0.0 to 1.0)."""
        if self.xp_to_next <= 0:
            return 1.0
        return min(1.0, max(0.0, self.current_level_xp / self.xp_to_next))


@dataclass(frozen=True)
class XPPreview:
    """What an agent would look like after an award, without applying it."""
    new_level: int
    level_up: bool
    xp_progress: float
    xp_to_next: int
    current_level_xp: int


@dataclass
class RewardBreakdown:
    """
    Every stage of a quest reward, in application order.

    The optional-objective bonus is added to the running total after the
    speed bonus; every other stage multiplies.
    """
    base_xp: int
    difficulty_multiplier: float = 1.0
    class_multiplier: float = 1.0
    time_multiplier: float = 1.0
    optional_bonus_xp: float = 0.0
    synergy_multiplier: float = 1.0
    team_performance_multiplier: float = 1.0
    streak_multiplier: float = 1.0

    @property
    def total(self) -> int:
        xp = self.base_xp
        xp *= self.difficulty_multiplier
        xp *= self.class_multiplier
        xp *= self.time_multiplier
        xp += self.optional_bonus_xp
        xp *= self.synergy_multiplier
        xp *= self.team_performance_multiplier
        xp *= self.streak_multiplier
        # Huge multipliers can overflow the product to inf
        return sanitize_xp(xp, "quest reward")


def sanitize_xp(value: float, what: str = "XP amount") -> int:
    """
    Clamp an XP quantity to a non-negative integer.

    Negative, NaN and infinite values become 0 (logged); fractions are
    floored. Integers are kept exact.
    """
    if isinstance(value, int):
        if value < 0:
            logger.warning(f"Invalid {what} {value!r}, treating as 0")
            return 0
        return int(value)
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        logger.warning(f"Invalid {what} {value!r}, treating as 0")
        return 0
    if not math.isfinite(number) or number < 0:
        logger.warning(f"Invalid {what} {value!r}, treating as 0")
        return 0
    return math.floor(number)


def _sanitize_multiplier(value: float, what: str) -> float:
    """Non-finite or negative multipliers fall back to neutral 1.0."""
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        number = float("nan")
    if not math.isfinite(number) or number < 0:
        logger.warning(f"Invalid {what} {value!r}, using 1.0")
        return 1.0
    return number


class XPCalculator:
    """
    Translates between XP and levels and prices quest rewards.

    Pure apart from an internal BoundedCache; every result is identical
    with the cache on, off, or freshly cleared.

    Curve:
        xp_required_for_level(L) = floor(base_xp * growth_rate ** (L - 1))
    """

    def __init__(
        self,
        level_config: Optional[LevelConfig] = None,
        rules: Optional[ProgressionRules] = None,
        use_cache: Optional[bool] = None,
    ):
        self.level_config = level_config or LevelConfig()
        self.rules = rules or ProgressionRules()

        enabled = self.level_config.cache_enabled if use_cache is None else use_cache
        self._cache: BoundedCache = make_cache(
            enabled,
            capacity=self.level_config.cache_capacity,
            evict_fraction=self.level_config.cache_evict_fraction,
        )

        self._base = Fraction(self.level_config.base_xp)
        self._growth = Fraction(self.level_config.growth_rate)
        # _totals[L] = cumulative XP needed to reach level L
        self._totals: list[int] = [0, 0]
        self._totals_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Level curve
    # ------------------------------------------------------------------

    def xp_required_for_level(self, level: int) -> int:
        """XP needed to go from ``level`` to ``level + 1``."""
        level = max(1, int(level))
        return self._cache.get_or_compute(
            ("threshold", level),
            lambda: math.floor(self._base * self._growth ** (level - 1)),
        )

    def total_xp_for_level(self, target_level: int) -> int:
        """Cumulative XP needed to reach ``target_level`` from level 1."""
        target_level = max(1, int(target_level))
        with self._totals_lock:
            totals = self._totals
            while len(totals) <= target_level:
                prev_level = len(totals) - 1
                totals.append(totals[-1] + self.xp_required_for_level(prev_level))
            return totals[target_level]

    def level_from_total_xp(self, total_xp: float) -> LevelInfo:
        """
        Find the level reached with ``total_xp`` accumulated XP.

        Brackets the level by doubling, then binary-searches the bracket, so
        the number of curve lookups is logarithmic in the level.
        """
        total = sanitize_xp(total_xp, "total XP")
        return self._cache.get_or_compute(("level", total), lambda: self._search_level(total))

    def _search_level(self, total: int) -> LevelInfo:
        # Invariant: total_xp_for_level(low) <= total < total_xp_for_level(high)
        low, high = 1, 2
        while self.total_xp_for_level(high) <= total:
            low, high = high, high * 2

        while high - low > 1:
            mid = (low + high) // 2
            if self.total_xp_for_level(mid) <= total:
                low = mid
            else:
                high = mid

        return LevelInfo(
            level=low,
            current_level_xp=total - self.total_xp_for_level(low),
            xp_to_next=self.xp_required_for_level(low),
        )

    def agent_total_xp(self, agent: Agent) -> int:
        """Lifetime XP implied by an agent's level and in-level XP."""
        return self.total_xp_for_level(agent.level) + sanitize_xp(agent.xp, "agent XP")

    def xp_to_next_level(self, agent: Agent) -> int:
        """XP still missing before the agent's next level."""
        return max(0, self.xp_required_for_level(agent.level) - agent.xp)

    def level_progress(self, agent: Agent) -> float:
        """Progress through the agent's current level (0.0 to 1.0)."""
        return self.level_from_total_xp(self.agent_total_xp(agent)).progress

    def preview_xp_gain(self, agent: Agent, amount: float) -> XPPreview:
        """Where ``agent`` would land after ``amount`` XP. Nothing is applied."""
        info = self.level_from_total_xp(self.agent_total_xp(agent) + sanitize_xp(amount))
        return XPPreview(
            new_level=info.level,
            level_up=info.level > max(1, agent.level),
            xp_progress=info.progress,
            xp_to_next=info.xp_to_next,
            current_level_xp=info.current_level_xp,
        )

    def warm(self, max_level: int):
        """Precompute thresholds and cumulative totals up to ``max_level``."""
        self.total_xp_for_level(max_level + 1)

    # ------------------------------------------------------------------
    # Quest rewards
    # ------------------------------------------------------------------

    def streak_bonus(self, agent: Agent) -> float:
        """Multiplier from XP-granting entries among the newest activity."""
        window = agent.activity[: self.level_config.streak_window]
        recent_gains = sum(1 for entry in window if entry.granted_xp)
        return self._streak_for_count(recent_gains)

    @staticmethod
    def _streak_for_count(recent_gains: int) -> float:
        for minimum, multiplier in STREAK_TIERS:
            if recent_gains >= minimum:
                return multiplier
        return 1.0

    @staticmethod
    def time_bonus(completion_time: Optional[float], time_limit: Optional[float]) -> float:
        """Speed multiplier; 1.0 unless both values are usable."""
        if not completion_time or not time_limit:
            return 1.0
        if not (math.isfinite(completion_time) and math.isfinite(time_limit)):
            return 1.0
        if completion_time < 0 or time_limit <= 0:
            return 1.0

        ratio = completion_time / time_limit
        for max_ratio, multiplier in TIME_BONUS_BANDS:
            if ratio < max_ratio:
                return multiplier
        return 1.0

    def synergy_bonus(self, assigned_count: int) -> float:
        """Team multiplier for a quest with ``assigned_count`` agents."""
        if assigned_count <= 1:
            return 1.0
        bonus = 1.0 + (assigned_count - 1) * self.level_config.synergy_per_agent
        return min(bonus, self.level_config.max_synergy)

    def quest_xp_breakdown(
        self,
        quest: Quest,
        agent: Agent,
        context: Optional[CompletionContext] = None,
    ) -> RewardBreakdown:
        """Compute every reward stage for ``agent`` completing ``quest``."""
        context = context or CompletionContext()

        optional_total = quest.optional_objective_count
        optional_bonus = 0.0
        if optional_total > 0:
            done = min(
                sanitize_xp(context.optional_objectives_completed, "optional objective count"),
                optional_total,
            )
            optional_bonus = sanitize_xp(quest.bonus_xp, "quest bonus XP") * (done / optional_total)

        return RewardBreakdown(
            base_xp=sanitize_xp(quest.rewards.xp, "quest base XP"),
            difficulty_multiplier=self.rules.difficulty_multiplier(quest.difficulty),
            class_multiplier=self.rules.class_bonus(agent.agent_class, quest.category),
            time_multiplier=self.time_bonus(context.completion_time, quest.time_limit),
            optional_bonus_xp=optional_bonus,
            synergy_multiplier=self.synergy_bonus(len(quest.assigned_agents)),
            team_performance_multiplier=_sanitize_multiplier(
                context.team_performance_bonus, "team performance bonus"
            ),
            streak_multiplier=self.streak_bonus(agent),
        )

    def quest_xp_reward(
        self,
        quest: Quest,
        agent: Agent,
        context: Optional[CompletionContext] = None,
    ) -> int:
        """
        XP earned by ``agent`` for completing ``quest``.

        Args:
            quest: The completed quest
            agent: The agent being credited (class and activity matter)
            context: Completion details; defaults to no time or bonus data

        Returns:
            Floored XP reward (never negative)
        """
        context = context or CompletionContext()
        window = agent.activity[: self.level_config.streak_window]
        key = (
            "reward",
            quest.rewards.xp,
            quest.bonus_xp,
            quest.difficulty,
            quest.category,
            quest.optional_objective_count,
            len(quest.assigned_agents),
            quest.time_limit,
            agent.agent_class,
            sum(1 for entry in window if entry.granted_xp),
            context.cache_key(),
        )
        return self._cache.get_or_compute(
            key, lambda: self.quest_xp_breakdown(quest, agent, context).total
        )

    def partial_quest_xp(
        self,
        quest: Quest,
        completed_objectives: int,
        total_objectives: int,
    ) -> int:
        """Reward for a partially completed quest, at reduced efficiency."""
        total = sanitize_xp(total_objectives, "objective count")
        if total == 0:
            return 0
        done = min(sanitize_xp(completed_objectives, "completed objective count"), total)
        base_xp = sanitize_xp(quest.rewards.xp, "quest base XP")
        return sanitize_xp(
            base_xp * (done / total) * self.level_config.partial_completion_rate, "partial quest XP"
        )

    # ------------------------------------------------------------------
    # Other XP sources
    # ------------------------------------------------------------------

    @staticmethod
    def skill_usage_xp(skill_level: int, complexity: str = "moderate") -> int:
        """XP for using a skill, scaled by complexity and skill level."""
        if complexity not in SKILL_COMPLEXITY_MULTIPLIERS:
            raise ValueError(f"Unknown skill complexity: {complexity!r}")
        base_xp = 10
        level_bonus = sanitize_xp(skill_level, "skill level") * 2.0
        return sanitize_xp(base_xp * SKILL_COMPLEXITY_MULTIPLIERS[complexity] + level_bonus, "skill XP")

    @staticmethod
    def collaboration_xp(participants: int, complexity: str, success_rate: float) -> int:
        """XP for a collaborative task; team size scales logarithmically."""
        if complexity not in COLLABORATION_BASE_XP:
            raise ValueError(f"Unknown task complexity: {complexity!r}")
        if not math.isfinite(success_rate):
            success_rate = 0.0
        success_rate = min(1.0, max(0.0, success_rate))

        team_bonus = math.log2(sanitize_xp(participants, "participant count") + 1) * 10
        success_multiplier = 0.5 + success_rate * 0.5
        return sanitize_xp(
            (COLLABORATION_BASE_XP[complexity] + team_bonus) * success_multiplier, "collaboration XP"
        )

    @staticmethod
    def knowledge_xp(knowledge_items: int, domain_expertise: float, is_new_domain: bool) -> int:
        """XP for acquiring knowledge; expertise 0-100 scales it 1x-2x."""
        if not math.isfinite(domain_expertise):
            domain_expertise = 0.0
        expertise = min(100.0, max(0.0, domain_expertise))
        knowledge_items = sanitize_xp(knowledge_items, "knowledge item count")
        new_domain_bonus = 50 if is_new_domain else 0
        return sanitize_xp(
            knowledge_items * 5.0 * (1 + expertise / 100) + new_domain_bonus, "knowledge XP"
        )

    @staticmethod
    def distribute_team_xp(
        total_xp: int,
        agents: Sequence[Agent],
        weights: Optional[dict[int, float]] = None,
    ) -> dict[int, int]:
        """
        Split ``total_xp`` across agents.

        Equal shares without weights; otherwise proportional to each agent's
        weight (agents without a weight count as 1). Shares are floored.
        """
        total_xp = sanitize_xp(total_xp, "team XP")
        if not agents:
            return {}

        if not weights:
            share = total_xp // len(agents)
            return {agent.id: share for agent in agents}

        agent_weights = {
            agent.id: _sanitize_multiplier(weights.get(agent.id, 1.0), "team XP weight")
            for agent in agents
        }
        total_weight = sum(agent_weights.values())
        if total_weight <= 0:
            return {agent.id: 0 for agent in agents}
        return {
            agent_id: math.floor(total_xp * (weight / total_weight))
            for agent_id, weight in agent_weights.items()
        }

    @staticmethod
    def xp_decay_rate(last_activity: datetime, now: Optional[datetime] = None) -> float:
        """Fraction of XP an idle agent should lose (0.0 to 0.3)."""
        now = now or datetime.now()
        days_idle = (now - last_activity).total_seconds() / 86400
        for max_days, decay in DECAY_BANDS:
            if days_idle <= max_days:
                return decay
        return MAX_DECAY

    # ------------------------------------------------------------------
    # Batch helpers
    # ------------------------------------------------------------------

    def batch_quest_rewards(
        self,
        pairs: Sequence[tuple[Quest, Agent, Optional[CompletionContext]]],
    ) -> list[tuple[int, int]]:
        """Rewards for many (quest, agent, context) triples as (agent_id, xp)."""
        start = time.perf_counter()
        results = [
            (agent.id, self.quest_xp_reward(quest, agent, context))
            for quest, agent, context in pairs
        ]
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.debug(f"Batch reward calculation: {len(pairs)} pairs in {elapsed_ms:.2f}ms")
        return results

    def batch_levels(self, totals: Sequence[float]) -> list[LevelInfo]:
        """level_from_total_xp for each total."""
        return [self.level_from_total_xp(total) for total in totals]

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    @property
    def cache_enabled(self) -> bool:
        return not isinstance(self._cache, NullCache)

    def clear_cache(self):
        """Drop memoized results. Outputs are unaffected."""
        self._cache.clear()

    def cache_stats(self) -> CacheStats:
        return self._cache.stats()
