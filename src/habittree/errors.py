"""Exception types raised by the habit tree core."""

from __future__ import annotations


class HabitTreeError(Exception):
    """Base class for all habit tree errors."""


class NotFoundError(HabitTreeError):
    """A habit, tree node or progress entry id is not present in the loaded set."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class PersistenceError(HabitTreeError):
    """The durable store or the local cache failed to read or write."""


class VersionConflictError(PersistenceError):
    """A habit was written from a stale copy; another writer got there first."""

    def __init__(self, habit_id: str, expected: int, actual: int):
        self.habit_id = habit_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Habit {habit_id} changed concurrently (expected version {expected}, found {actual})"
        )


class ValidationError(HabitTreeError):
    """Input rejected before it reaches the habit model."""


__all__ = [
    "HabitTreeError",
    "NotFoundError",
    "PersistenceError",
    "ValidationError",
    "VersionConflictError",
]
