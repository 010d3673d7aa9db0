"""
Herald - the progression event bus.

Each ProgressionManager owns one Herald. Subscribers register for a single
event kind or for every kind, and events are kept in a bounded history for
diagnostics and UI.

Usage:
    herald = Herald()

    def on_level_up(event):
        print(f"Level up! New level: {event.payload.new_level}")

    herald.subscribe(ProgressionEventKind.LEVEL_UP, on_level_up)
    herald.publish(event)

Thread Safety:
    Herald is thread-safe. Events can be published from any thread,
    and callbacks will be invoked synchronously in the publishing thread.
"""

import logging
import threading
from collections import deque
from datetime import datetime
from typing import Dict, List, Optional

from agency.herald.types import EventHandler, ProgressionEvent, ProgressionEventKind

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 100


class Herald:
    """
    Event bus for progression events.

    Features:
        - Subscriptions per event kind, or to all kinds (kind=None)
        - Bounded history, oldest evicted first
        - Thread-safe
        - Callback error isolation (one bad callback doesn't break others)
    """

    def __init__(self, history_limit: int = DEFAULT_HISTORY_LIMIT):
        # None key holds the catch-all subscribers
        self._subscribers: Dict[Optional[ProgressionEventKind], List[EventHandler]] = {}
        self._sub_lock = threading.RLock()
        self._history: deque[ProgressionEvent] = deque(maxlen=history_limit)
        self._history_lock = threading.Lock()

    @property
    def history_limit(self) -> int:
        return self._history.maxlen

    def subscribe(
        self,
        kind: Optional[ProgressionEventKind | str],
        callback: EventHandler,
    ) -> None:
        """
        Subscribe to an event kind.

        Args:
            kind: ProgressionEventKind (or its value). None subscribes to
                  every kind. Unknown kinds raise ValueError.
            callback: Function to call when a matching event is published.
        """
        key = ProgressionEventKind(kind) if kind is not None else None

        with self._sub_lock:
            callbacks = self._subscribers.setdefault(key, [])
            if callback not in callbacks:
                callbacks.append(callback)
                logger.debug(f"Herald: subscribed to '{key.value if key else '*'}'")

    def unsubscribe(
        self,
        kind: Optional[ProgressionEventKind | str],
        callback: EventHandler,
    ) -> bool:
        """
        Unsubscribe from an event kind.

        Returns:
            True if callback was found and removed, False otherwise
        """
        key = ProgressionEventKind(kind) if kind is not None else None

        with self._sub_lock:
            callbacks = self._subscribers.get(key, [])
            if callback in callbacks:
                callbacks.remove(callback)
                logger.debug(f"Herald: unsubscribed from '{key.value if key else '*'}'")
                return True
        return False

    def publish(self, event: ProgressionEvent) -> ProgressionEvent:
        """
        Record an event and deliver it to all matching subscribers.

        Callback exceptions are logged and swallowed so they can never abort
        the caller's state transition.
        """
        with self._history_lock:
            self._history.append(event)

        callbacks = self._get_matching_callbacks(event.kind)

        for callback in callbacks:
            try:
                callback(event)
            except Exception as e:
                logger.warning(
                    f"Herald: callback error for '{event.kind.value}': {e}",
                    exc_info=True
                )

        logger.debug(f"Herald: published '{event.kind.value}' to {len(callbacks)} subscribers")
        return event

    def _get_matching_callbacks(self, kind: ProgressionEventKind) -> List[EventHandler]:
        """Direct subscribers first, then catch-all subscribers."""
        with self._sub_lock:
            return list(self._subscribers.get(kind, [])) + list(self._subscribers.get(None, []))

    def recent_events(self, limit: Optional[int] = None) -> List[ProgressionEvent]:
        """Get recent events from history, oldest first."""
        with self._history_lock:
            events = list(self._history)
        return events[-limit:] if limit else events

    def prune_before(self, cutoff: datetime) -> int:
        """Drop events older than ``cutoff``. Returns how many were removed."""
        with self._history_lock:
            kept = [e for e in self._history if e.timestamp >= cutoff]
            removed = len(self._history) - len(kept)
            self._history.clear()
            self._history.extend(kept)
        if removed:
            logger.debug(f"Herald: pruned {removed} events older than {cutoff.isoformat()}")
        return removed

    def clear_subscribers(self):
        """Remove all subscribers."""
        with self._sub_lock:
            self._subscribers.clear()
        logger.debug("Herald: cleared all subscribers")

    @property
    def subscriber_count(self) -> int:
        """Total number of subscriptions."""
        with self._sub_lock:
            return sum(len(cbs) for cbs in self._subscribers.values())
