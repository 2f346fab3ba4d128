"""SQLModel implementation of the durable habit store."""

from __future__ import annotations

from typing import Callable, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ...errors import PersistenceError, VersionConflictError
from ...logging_config import get_logger
from ...models.habit import Habit, HabitRecord, utcnow

logger = get_logger(__name__)


class SQLModelHabitStore:
    """Stores each habit as a JSON document row keyed by (user_id, habit_id).

    Writes use optimistic concurrency: ``habit.version`` must match the stored
    row's version, and a successful write increments both.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def list(self, user_id: str) -> list[Habit]:
        """List a user's habits, newest created first."""
        try:
            with self.session_factory() as session:
                rows = session.exec(
                    select(HabitRecord)
                    .where(HabitRecord.user_id == user_id)
                    .order_by(HabitRecord.created_at.desc())  # type: ignore[attr-defined]
                ).all()
                return [self._to_habit(row) for row in rows]
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to list habits for user {user_id}") from exc

    def get(self, user_id: str, habit_id: str) -> Optional[Habit]:
        """Retrieve one habit document."""
        try:
            with self.session_factory() as session:
                row = session.get(HabitRecord, (user_id, habit_id))
                return self._to_habit(row) if row else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load habit {habit_id}") from exc

    def put(self, user_id: str, habit: Habit) -> Habit:
        """Upsert a full habit document, bumping its version."""
        return self.put_many(user_id, [habit])[0]

    def put_many(self, user_id: str, habits: Iterable[Habit]) -> list[Habit]:
        """Upsert several habit documents in one transaction.

        Either every document is written or none is; a version mismatch on any
        of them aborts the whole batch and leaves the passed habits untouched.
        """
        habits = list(habits)
        if not habits:
            return []
        snapshot = [(h.version, h.created_at, h.updated_at) for h in habits]
        try:
            with self.session_factory() as session:
                for habit in habits:
                    self._write(session, user_id, habit)
                session.commit()
        except (SQLAlchemyError, VersionConflictError) as exc:
            for habit, (version, created_at, updated_at) in zip(habits, snapshot):
                habit.version, habit.created_at, habit.updated_at = version, created_at, updated_at
            if isinstance(exc, VersionConflictError):
                raise
            raise PersistenceError(f"Failed to save habits for user {user_id}") from exc
        return habits

    def delete(self, user_id: str, habit_id: str) -> None:
        """Delete a habit document; absent ids are ignored."""
        try:
            with self.session_factory() as session:
                row = session.get(HabitRecord, (user_id, habit_id))
                if row:
                    session.delete(row)
                    session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to delete habit {habit_id}") from exc

    def _write(self, session: Session, user_id: str, habit: Habit) -> None:
        row = session.get(HabitRecord, (user_id, habit.id))
        stored_version = row.version if row else 0
        if stored_version != habit.version:
            raise VersionConflictError(habit.id, habit.version, stored_version)

        now = utcnow()
        habit.version += 1
        habit.updated_at = now
        if row is None:
            # Offline-created habits keep their creation time when first synced
            habit.created_at = habit.created_at or now
            row = HabitRecord(user_id=user_id, habit_id=habit.id, created_at=habit.created_at)
        row.version = habit.version
        row.updated_at = now
        row.document = habit.to_document()
        session.add(row)
        session.flush()
        logger.debug(f"Habit {habit.id} written at version {habit.version}")

    @staticmethod
    def _to_habit(row: HabitRecord) -> Habit:
        habit = Habit.from_document(row.document)
        # Row columns are authoritative for server-assigned fields
        habit.version = row.version
        return habit
