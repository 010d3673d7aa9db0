"""Notification building and lifecycle."""

import logging
import threading
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from agency.herald.types import LevelUpEvent
from agency.progression.types import Notification, NotificationKind
from agency.roster.types import Agent
from agency.types import Priority, SequentialIds


logger = logging.getLogger(__name__)


class NotificationCenter:
    """
    Holds the active notification set.

    Lifecycle:
        created -> active -> dismissed -> removed by clear_dismissed()

    Nothing expires on its own; removal only happens through
    clear_dismissed(). Dismissal is one-way.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self.clock = clock
        self._ids = SequentialIds()
        self._active: list[Notification] = []
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Builders (do not register anything)
    # ------------------------------------------------------------------

    def level_up(self, event: LevelUpEvent, agent: Agent) -> Notification:
        return Notification(
            id=self._ids.next(f"levelup_{event.agent_id}"),
            kind=NotificationKind.LEVEL_UP,
            title="Level Up! 🎉",
            message=f"{agent.name} reached Level {event.new_level}!",
            icon="⬆️",
            priority=Priority.HIGH,
            agent_id=event.agent_id,
            duration_ms=5000,
            timestamp=self.clock(),
        )

    def skill_unlock(self, agent: Agent, skill: str) -> Notification:
        return Notification(
            id=self._ids.next(f"skill_{agent.id}"),
            kind=NotificationKind.SKILL_UNLOCK,
            title="New Skill Unlocked! ✨",
            message=f'{agent.name} learned "{skill}"',
            icon="🔓",
            priority=Priority.MEDIUM,
            agent_id=agent.id,
            duration_ms=4000,
            timestamp=self.clock(),
        )

    def xp_gain(self, agent: Agent, amount: int, source: str) -> Notification:
        return Notification(
            id=self._ids.next(f"xp_{agent.id}"),
            kind=NotificationKind.XP_GAIN,
            title=f"+{amount} XP",
            message=f"{agent.name} earned {amount} XP ({source})",
            icon="⭐",
            priority=Priority.LOW,
            agent_id=agent.id,
            duration_ms=2000,
            timestamp=self.clock(),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def add(self, notifications: Iterable[Notification]):
        with self._lock:
            self._active.extend(notifications)

    def dismiss(self, notification_id: str) -> bool:
        """Mark a notification dismissed. Unknown ids are a no-op (False)."""
        with self._lock:
            for notification in self._active:
                if notification.id == notification_id:
                    notification.dismissed = True
                    return True
        logger.debug(f"Dismiss ignored, unknown notification: {notification_id}")
        return False

    def clear_dismissed(self, older_than: Optional[timedelta] = None) -> int:
        """
        Remove dismissed notifications.

        Args:
            older_than: If given, only dismissed notifications created more
                        than this long ago are removed.

        Returns:
            Number of notifications removed
        """
        cutoff = self.clock() - older_than if older_than is not None else None

        def removable(n: Notification) -> bool:
            if not n.dismissed:
                return False
            return cutoff is None or n.timestamp < cutoff

        with self._lock:
            before = len(self._active)
            self._active = [n for n in self._active if not removable(n)]
            removed = before - len(self._active)

        if removed:
            logger.debug(f"Cleared {removed} dismissed notifications")
        return removed

    def active(self) -> list[Notification]:
        """Copies of all notifications still held, oldest first."""
        with self._lock:
            return [replace(n) for n in self._active]

    def get(self, notification_id: str) -> Optional[Notification]:
        with self._lock:
            for notification in self._active:
                if notification.id == notification_id:
                    return replace(notification)
        return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._active)
