"""JSON-file local cache mirroring habit documents per user."""

from __future__ import annotations

import hashlib
import json
import os
import re
import tempfile
from pathlib import Path
from typing import Iterable, Optional

from ..errors import PersistenceError
from ..logging_config import get_logger
from ..models.habit import Habit

logger = get_logger(__name__)

ANONYMOUS_SLOT = "habits_offline_data"


class JSONFileHabitCache:
    """Keeps one JSON array of habit documents per user id.

    Habits cached without a user id live in a single anonymous slot, used
    for offline/demo mode. Files are replaced atomically on every write.
    """

    def __init__(self, cache_dir: Path):
        self.cache_dir = Path(cache_dir)

    def slot_path(self, user_id: Optional[str] = None) -> Path:
        """Return the file that backs the slot for ``user_id``."""
        if not user_id:
            return self.cache_dir / f"{ANONYMOUS_SLOT}.json"
        readable = re.sub(r"[^A-Za-z0-9_-]", "_", user_id)[:40]
        digest = hashlib.sha1(user_id.encode("utf-8")).hexdigest()[:10]
        return self.cache_dir / f"habits_{readable}_{digest}.json"

    def list(self, user_id: Optional[str] = None) -> list[Habit]:
        """List cached habits, newest created first."""
        habits = self._read(user_id)
        return sorted(habits, key=lambda h: h.created_at, reverse=True)

    def get(self, habit_id: str, user_id: Optional[str] = None) -> Optional[Habit]:
        for habit in self._read(user_id):
            if habit.id == habit_id:
                return habit
        return None

    def put(self, habit: Habit, user_id: Optional[str] = None) -> None:
        self.put_many([habit], user_id)

    def put_many(self, habits: Iterable[Habit], user_id: Optional[str] = None) -> None:
        by_id = {habit.id: habit for habit in self._read(user_id)}
        for habit in habits:
            by_id[habit.id] = habit
        self._write(by_id.values(), user_id)

    def replace_all(self, habits: Iterable[Habit], user_id: Optional[str] = None) -> None:
        self._write(habits, user_id)

    def delete(self, habit_id: str, user_id: Optional[str] = None) -> None:
        habits = self._read(user_id)
        remaining = [habit for habit in habits if habit.id != habit_id]
        if len(remaining) != len(habits):
            self._write(remaining, user_id)

    def clear(self, user_id: Optional[str] = None) -> None:
        """Drop the slot file entirely."""
        try:
            self.slot_path(user_id).unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Failed to clear cache slot for {user_id or 'anonymous'}") from exc

    def _read(self, user_id: Optional[str]) -> list[Habit]:
        path = self.slot_path(user_id)
        if not path.exists():
            return []
        try:
            documents = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(documents, list):
                raise ValueError(f"expected a JSON array in {path.name}")
            return [Habit.from_document(document) for document in documents]
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Unreadable habit cache at {path}") from exc

    def _write(self, habits: Iterable[Habit], user_id: Optional[str]) -> None:
        path = self.slot_path(user_id)
        documents = [
            habit.to_document()
            for habit in sorted(habits, key=lambda h: h.created_at, reverse=True)
        ]
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=path.stem, suffix=".tmp", dir=path.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(documents, handle, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except OSError as exc:
            raise PersistenceError(f"Failed to write habit cache at {path}") from exc
        logger.debug(f"Cached {len(documents)} habits in {path.name}")
