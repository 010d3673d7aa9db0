"""Common types used across the agency package."""

import itertools
import threading
from dataclasses import asdict
from datetime import datetime
from enum import Enum
from typing import Any


class Priority(Enum):
    """Display priority for user-facing records."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SequentialIds:
    """
    Thread-safe monotonically increasing ID source.

    IDs are unique per instance, so two sources never need to coordinate.
    """

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next(self, prefix: str = "") -> str:
        with self._lock:
            n = next(self._counter)
        return f"{prefix}_{n}" if prefix else str(n)


def datetime_to_iso(dt: datetime) -> str:
    """Convert datetime to ISO string for JSON serialization."""
    return dt.isoformat() if dt else None


def iso_to_datetime(s: str) -> datetime:
    """Convert ISO string to datetime."""
    if not s:
        return None
    try:
        return datetime.fromisoformat(s)
    except (ValueError, TypeError):
        return None


class SerializableMixin:
    """
    Mixin providing to_dict for dataclasses.

    Handles:
    - datetime -> ISO string conversion
    - Enum -> value conversion
    - Lists, tuples and dicts with nested values
    """

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        result = {}
        for k, v in asdict(self).items():
            result[k] = self._serialize_value(v)
        return result

    def _serialize_value(self, v: Any) -> Any:
        """Recursively serialize a value."""
        if isinstance(v, datetime):
            return datetime_to_iso(v)
        elif isinstance(v, Enum):
            return v.value
        elif isinstance(v, (list, tuple)):
            return [self._serialize_value(item) for item in v]
        elif isinstance(v, dict):
            return {dk: self._serialize_value(dv) for dk, dv in v.items()}
        return v
