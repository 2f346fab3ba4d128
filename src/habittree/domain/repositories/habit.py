"""Habit persistence protocols."""

from __future__ import annotations

from typing import Iterable, Optional, Protocol

from ...models.habit import Habit


class HabitStore(Protocol):
    """Durable store holding one habit document per (user, habit id)."""

    def list(self, user_id: str) -> list[Habit]:
        """List a user's habits, newest created first."""
        ...

    def get(self, user_id: str, habit_id: str) -> Optional[Habit]:
        """Retrieve one habit document."""
        ...

    def put(self, user_id: str, habit: Habit) -> Habit:
        """Upsert a full habit document, bumping its version."""
        ...

    def put_many(self, user_id: str, habits: Iterable[Habit]) -> list[Habit]:
        """Upsert several habit documents in one transaction."""
        ...

    def delete(self, user_id: str, habit_id: str) -> None:
        """Delete a habit document; absent ids are ignored."""
        ...


class HabitCache(Protocol):
    """Local mirror of habit documents; ``user_id=None`` addresses the anonymous slot."""

    def list(self, user_id: Optional[str] = None) -> list[Habit]:
        """List cached habits, newest created first."""
        ...

    def get(self, habit_id: str, user_id: Optional[str] = None) -> Optional[Habit]:
        """Retrieve one cached habit."""
        ...

    def put(self, habit: Habit, user_id: Optional[str] = None) -> None:
        """Insert or replace one cached habit."""
        ...

    def put_many(self, habits: Iterable[Habit], user_id: Optional[str] = None) -> None:
        """Insert or replace several cached habits."""
        ...

    def replace_all(self, habits: Iterable[Habit], user_id: Optional[str] = None) -> None:
        """Replace the whole cached set for a slot."""
        ...

    def delete(self, habit_id: str, user_id: Optional[str] = None) -> None:
        """Remove one cached habit; absent ids are ignored."""
        ...
