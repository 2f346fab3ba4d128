"""Tests for the JSON-file local habit cache."""

from __future__ import annotations

import json

import pytest

from habittree.errors import PersistenceError
from habittree.infra.cache import ANONYMOUS_SLOT, JSONFileHabitCache
from habittree.models.habit import Habit, TreeNode

from habit_builders import TODAY, USER_ID


def _habit(habit_id: str, title: str = "Habit") -> Habit:
    return Habit(id=habit_id, title=title, tree_nodes=[TreeNode.fresh(TODAY)])


class TestJSONFileHabitCache:
    """Tests for the per-user JSON cache slots."""

    def test_empty_slot_lists_nothing(self, cache):
        """A missing slot file reads as empty."""
        assert cache.list(USER_ID) == []
        assert cache.get("habit_a", USER_ID) is None

    def test_put_then_get(self, cache):
        """A cached habit reads back with its tree."""
        habit = _habit("habit_a", "Water")

        cache.put(habit, USER_ID)

        loaded = cache.get("habit_a", USER_ID)
        assert loaded.title == "Water"
        assert loaded.tree_nodes[0].date == TODAY

    def test_put_many_merges_by_id(self, cache):
        """put_many replaces matching ids and keeps the rest."""
        cache.put_many([_habit("habit_a", "One"), _habit("habit_b", "Two")], USER_ID)

        cache.put_many([_habit("habit_a", "Uno")], USER_ID)

        titles = {h.id: h.title for h in cache.list(USER_ID)}
        assert titles == {"habit_a": "Uno", "habit_b": "Two"}

    def test_replace_all_drops_missing(self, cache):
        """replace_all overwrites the whole slot."""
        cache.put_many([_habit("habit_a"), _habit("habit_b")], USER_ID)

        cache.replace_all([_habit("habit_b")], USER_ID)

        assert [h.id for h in cache.list(USER_ID)] == ["habit_b"]

    def test_slots_are_per_user(self, cache):
        """Each user and the anonymous slot have separate files."""
        cache.put(_habit("habit_a"), USER_ID)
        cache.put(_habit("habit_b"), "someone/else")
        cache.put(_habit("habit_c"))

        assert [h.id for h in cache.list(USER_ID)] == ["habit_a"]
        assert [h.id for h in cache.list("someone/else")] == ["habit_b"]
        assert [h.id for h in cache.list()] == ["habit_c"]
        assert cache.slot_path().name == f"{ANONYMOUS_SLOT}.json"
        assert "/" not in cache.slot_path("someone/else").name

    def test_delete_and_clear(self, cache):
        """Delete drops one habit; clear drops the slot file."""
        cache.put_many([_habit("habit_a"), _habit("habit_b")], USER_ID)

        cache.delete("habit_a", USER_ID)
        cache.delete("habit_missing", USER_ID)
        assert [h.id for h in cache.list(USER_ID)] == ["habit_b"]

        cache.clear(USER_ID)
        assert not cache.slot_path(USER_ID).exists()

    def test_file_holds_snake_case_documents(self, cache):
        """The slot file holds snake_case habit documents."""
        cache.put(_habit("habit_a"), USER_ID)

        documents = json.loads(cache.slot_path(USER_ID).read_text(encoding="utf-8"))

        assert documents[0]["id"] == "habit_a"
        assert documents[0]["tree_nodes"][0]["date"] == TODAY.isoformat()
        assert "target_checks" in documents[0]

    @pytest.mark.parametrize("payload", ["not json", '{"id": "habit_a"}', '[{"title": ""}]'])
    def test_corrupt_slot_raises(self, cache, payload):
        """Unreadable slot contents raise PersistenceError."""
        path = cache.slot_path(USER_ID)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(payload, encoding="utf-8")

        with pytest.raises(PersistenceError):
            cache.list(USER_ID)

    def test_unwritable_directory_raises(self, tmp_path):
        """Write failures raise PersistenceError."""
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        cache = JSONFileHabitCache(blocker / "cache")

        with pytest.raises(PersistenceError):
            cache.put(_habit("habit_a"), USER_ID)
