"""Repository protocol definitions for domain layer."""

from .habit import HabitCache, HabitStore

__all__ = [
    "HabitCache",
    "HabitStore",
]
