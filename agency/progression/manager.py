"""Progression orchestration: XP awards, level-ups, events, and notifications."""

import logging
import threading
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Optional, Sequence

from agency.config.loader import ConfigLoader
from agency.herald.bus import DEFAULT_HISTORY_LIMIT, Herald
from agency.herald.types import (
    EventHandler,
    LevelUpEvent,
    ProgressionEvent,
    ProgressionEventKind,
    QuestCompletedPayload,
    SkillUnlockedPayload,
    StatIncrease,
    XpGainedPayload,
)
from agency.progression.notifications import NotificationCenter
from agency.progression.rules import ProgressionRules
from agency.progression.types import (
    Notification,
    ProgressionStateView,
    QuestCompletionResult,
    XpAward,
    XpGainResult,
)
from agency.progression.xp import LevelConfig, XPCalculator, XPPreview, sanitize_xp
from agency.quests.types import CompletionContext, Quest
from agency.roster.types import ActivityEntry, Agent, SkillLevel


logger = logging.getLogger(__name__)

# Called with (old_agent, updated_agent) before an award is recorded
PreCommitHook = Callable[[Agent, Agent], None]


@dataclass
class _PendingAward:
    """A fully computed award that has not touched shared state yet."""
    updated_agent: Agent
    xp: int
    level_up_event: Optional[LevelUpEvent] = None
    notifications: list[Notification] = field(default_factory=list)
    events: list[ProgressionEvent] = field(default_factory=list)


class ProgressionManager:
    """
    Applies XP to agent snapshots and reports what happened.

    Responsibilities:
    - Compute new level/XP through the XPCalculator
    - Derive stat increases and skill unlocks for every crossed level
    - Publish typed events through a per-manager Herald
    - Keep the active notification set and the pending level-up queue

    Agents are values: each call returns new snapshots and never mutates the
    ones passed in. Persisting them is the caller's job.
    """

    def __init__(
        self,
        calculator: Optional[XPCalculator] = None,
        rules: Optional[ProgressionRules] = None,
        clock: Callable[[], datetime] = datetime.now,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        pre_commit: Optional[PreCommitHook] = None,
        notify_xp_gains: bool = False,
    ):
        self.calculator = calculator or XPCalculator(rules=rules)
        self.rules = rules or self.calculator.rules
        self.clock = clock
        self.pre_commit = pre_commit
        self.notify_xp_gains = notify_xp_gains

        self.herald = Herald(history_limit=history_limit)
        self.notifications = NotificationCenter(clock=clock)

        self._level_up_queue: deque[LevelUpEvent] = deque()
        # Guards the queue, notification set and event history as one unit
        self._commit_lock = threading.RLock()
        self._in_flight = 0
        self._flight_lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config_dir: Optional[Path] = None,
        loader: Optional[ConfigLoader] = None,
        **kwargs,
    ) -> "ProgressionManager":
        """Build a manager from configs/progression/{leveling,rules}.yaml."""
        loader = loader or ConfigLoader(config_dir)
        rules = ProgressionRules.load(loader=loader)
        calculator = XPCalculator(level_config=LevelConfig.load(loader=loader), rules=rules)
        return cls(calculator=calculator, rules=rules, **kwargs)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def is_processing(self) -> bool:
        """True while any award is in flight. Status only, not a lock."""
        with self._flight_lock:
            return self._in_flight > 0

    @contextmanager
    def _processing(self):
        with self._flight_lock:
            self._in_flight += 1
        try:
            yield
        finally:
            with self._flight_lock:
                self._in_flight -= 1

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def on(self, kind: Optional[ProgressionEventKind | str], handler: EventHandler) -> None:
        """
        Register a handler for an event kind (None for every kind).

        Handler exceptions are logged and never abort an award.
        """
        self.herald.subscribe(kind, handler)

    def off(self, kind: Optional[ProgressionEventKind | str], handler: EventHandler) -> bool:
        return self.herald.unsubscribe(kind, handler)

    # ------------------------------------------------------------------
    # Awards
    # ------------------------------------------------------------------

    def process_xp_gain(self, agent: Agent, amount: float, source: str) -> XpGainResult:
        """
        Award XP to one agent.

        Args:
            agent: Snapshot to start from (left untouched)
            amount: XP to add; negative or non-finite amounts count as 0
            source: Label recorded in the activity log and events

        Returns:
            XpGainResult with the new snapshot, the level-up summary (if
            any), and the notifications created

        Raises:
            Whatever the pre-commit hook raises; nothing is recorded then.
        """
        with self._processing():
            pending = self._compute_award(agent, amount, source)

            if self.pre_commit is not None:
                self.pre_commit(agent, pending.updated_agent)

            self._commit(pending)

            return XpGainResult(
                updated_agent=pending.updated_agent,
                leveled_up=pending.level_up_event is not None,
                level_up_event=pending.level_up_event,
                notifications=[replace(n) for n in pending.notifications],
                events=list(pending.events),
                xp_awarded=pending.xp,
            )

    def _compute_award(self, agent: Agent, amount: float, source: str) -> _PendingAward:
        xp = sanitize_xp(amount)
        now = self.clock()
        old_level = max(1, agent.level)

        info = self.calculator.level_from_total_xp(self.calculator.agent_total_xp(agent) + xp)
        updated = agent.evolve(
            level=info.level,
            xp=info.current_level_xp,
            xp_to_next=info.xp_to_next,
            activity=agent.with_activity(ActivityEntry(action=source, timestamp=now, xp_gained=xp)),
        )
        pending = _PendingAward(updated_agent=updated, xp=xp)

        if info.level > old_level:
            self._apply_level_up(pending, agent, old_level, info.level, source, now)

        if self.notify_xp_gains and xp > 0:
            pending.notifications.append(self.notifications.xp_gain(updated, xp, source))

        pending.events.append(ProgressionEvent(
            kind=ProgressionEventKind.XP_GAINED,
            agent_id=agent.id,
            payload=XpGainedPayload(
                amount=xp,
                source=source,
                new_xp=updated.xp,
                new_level=updated.level,
                total_xp=self.calculator.agent_total_xp(updated),
            ),
            timestamp=now,
        ))
        return pending

    def _apply_level_up(
        self,
        pending: _PendingAward,
        agent: Agent,
        old_level: int,
        new_level: int,
        source: str,
        now: datetime,
    ):
        updated = pending.updated_agent
        stat_increases: list[StatIncrease] = []
        unlocked: list[tuple[int, str]] = []

        for level in range(old_level + 1, new_level + 1):
            stat_increases.extend(self.rules.stat_increases_at(agent.agent_class, level))
            for skill in self.rules.skills_unlocked_at(agent.agent_class, level):
                existing = updated.skill_tree.get(skill)
                if existing is not None and existing.unlocked:
                    continue
                if skill not in (name for _, name in unlocked):
                    unlocked.append((level, skill))

        deltas: dict[str, int] = {}
        for increase in stat_increases:
            deltas[increase.stat] = deltas.get(increase.stat, 0) + increase.amount
        updated.stats = updated.stats.with_increases(deltas)

        for level, skill in unlocked:
            existing = updated.skill_tree.get(skill) or SkillLevel()
            updated.skill_tree[skill] = SkillLevel(
                level=max(1, existing.level),
                max_level=existing.max_level,
                unlocked=True,
                recent_progress=f"Unlocked at level {level}",
            )

        event = LevelUpEvent(
            agent_id=agent.id,
            old_level=old_level,
            new_level=new_level,
            xp_gained=pending.xp,
            source=source,
            unlocked_skills=[skill for _, skill in unlocked],
            stat_increases=stat_increases,
            timestamp=now,
        )
        pending.level_up_event = event

        pending.notifications.append(self.notifications.level_up(event, updated))
        pending.events.append(ProgressionEvent(
            kind=ProgressionEventKind.LEVEL_UP,
            agent_id=agent.id,
            payload=event,
            timestamp=now,
        ))
        for level, skill in unlocked:
            pending.notifications.append(self.notifications.skill_unlock(updated, skill))
            pending.events.append(ProgressionEvent(
                kind=ProgressionEventKind.SKILL_UNLOCKED,
                agent_id=agent.id,
                payload=SkillUnlockedPayload(skill=skill, level=level),
                timestamp=now,
            ))

        logger.info(f"[{agent.name}] LEVEL UP! {old_level} -> {new_level} (source: {source})")
        for _, skill in unlocked:
            logger.info(f"[{agent.name}] unlocked skill '{skill}'")

    def _commit(self, pending: _PendingAward):
        """Record a computed award in the shared collections."""
        with self._commit_lock:
            self.notifications.add(pending.notifications)
            if pending.level_up_event is not None:
                self._level_up_queue.append(pending.level_up_event)
            for event in pending.events:
                self.herald.publish(event)

    def process_quest_completion(
        self,
        quest: Quest,
        agents: Sequence[Agent],
        context: Optional[CompletionContext] = None,
    ) -> QuestCompletionResult:
        """
        Credit a completed quest to its assigned agents.

        Agents not assigned to the quest come back unchanged. Assigned ids
        with no matching agent in ``agents`` are skipped. Agents are
        processed in input order.
        """
        with self._processing():
            result = QuestCompletionResult()

            present = {agent.id for agent in agents}
            missing = [agent_id for agent_id in quest.assigned_agents if agent_id not in present]
            if missing:
                logger.debug(f"Quest '{quest.title}': assigned agents not supplied, skipping {missing}")

            for agent in agents:
                if not quest.is_assigned(agent.id):
                    result.updated_agents.append(agent)
                    continue

                reward = self.calculator.quest_xp_reward(quest, agent, context)
                gain = self.process_xp_gain(agent, reward, f"Quest: {quest.title}")

                result.updated_agents.append(gain.updated_agent)
                result.rewards[agent.id] = gain.xp_awarded
                if gain.level_up_event is not None:
                    result.level_up_events.append(gain.level_up_event)
                result.notifications.extend(gain.notifications)

            with self._commit_lock:
                self.herald.publish(ProgressionEvent(
                    kind=ProgressionEventKind.QUEST_COMPLETED,
                    agent_id=None,
                    payload=QuestCompletedPayload(
                        quest_id=quest.id,
                        quest_title=quest.title,
                        assigned_agents=list(quest.assigned_agents),
                        xp_awarded=dict(result.rewards),
                    ),
                    timestamp=self.clock(),
                ))

            logger.debug(
                f"Quest '{quest.title}' completed: {len(result.rewards)} agents credited, "
                f"{len(result.level_up_events)} level-ups"
            )
            return result

    def batch_apply_xp(self, awards: Sequence[XpAward]) -> list[XpGainResult]:
        """
        Apply independent awards, one result per award in input order.

        Same as calling process_xp_gain for each award; every award starts
        from the snapshot it carries, so repeated agents do not chain.
        """
        if not awards:
            return []

        highest = max(
            self.calculator.preview_xp_gain(award.agent, award.amount).new_level
            for award in awards
        )
        self.calculator.warm(highest)

        return [
            self.process_xp_gain(award.agent, award.amount, award.source)
            for award in awards
        ]

    def preview_xp_gain(self, agent: Agent, amount: float) -> XPPreview:
        """Where an award would land, without recording anything."""
        return self.calculator.preview_xp_gain(agent, amount)

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    def get_state(self) -> ProgressionStateView:
        with self._commit_lock:
            return ProgressionStateView(
                recent_events=tuple(self.herald.recent_events()),
                active_notifications=tuple(self.notifications.active()),
                level_up_queue=tuple(self._level_up_queue),
                is_processing=self.is_processing,
            )

    def dismiss_notification(self, notification_id: str) -> bool:
        return self.notifications.dismiss(notification_id)

    def clear_dismissed_notifications(self, older_than: Optional[timedelta] = None) -> int:
        return self.notifications.clear_dismissed(older_than)

    def get_next_level_up_event(self) -> Optional[LevelUpEvent]:
        """Pop the oldest pending level-up, or None when the queue is empty."""
        with self._commit_lock:
            if not self._level_up_queue:
                return None
            return self._level_up_queue.popleft()

    @property
    def pending_level_ups(self) -> int:
        with self._commit_lock:
            return len(self._level_up_queue)

    def housekeeping(self, max_age: timedelta = timedelta(hours=24)) -> dict[str, int]:
        """
        Caller-triggered sweep: drop events older than ``max_age`` and
        remove every dismissed notification.
        """
        cutoff = self.clock() - max_age
        with self._commit_lock:
            events_pruned = self.herald.prune_before(cutoff)
            notifications_cleared = self.notifications.clear_dismissed()
        return {
            "events_pruned": events_pruned,
            "notifications_cleared": notifications_cleared,
        }


# Convenience functions. The manager is always supplied by the caller.

def create_progression_manager(
    config_dir: Optional[Path] = None,
    loader: Optional[ConfigLoader] = None,
    **kwargs,
) -> ProgressionManager:
    """Create a manager from config files (defaults when absent)."""
    return ProgressionManager.from_config(config_dir, loader=loader, **kwargs)


def process_agent_xp_gain(
    manager: ProgressionManager,
    agent: Agent,
    amount: float,
    source: str,
) -> XpGainResult:
    """Award XP through ``manager``."""
    return manager.process_xp_gain(agent, amount, source)


def process_quest_completion(
    manager: ProgressionManager,
    quest: Quest,
    agents: Sequence[Agent],
    context: Optional[CompletionContext] = None,
) -> QuestCompletionResult:
    """Credit a quest through ``manager``."""
    return manager.process_quest_completion(quest, agents, context)
