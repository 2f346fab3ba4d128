"""Habit service: entity operations, check-ins, branches and daily chains.

Every mutation follows the same cycle: load the habit document, change one
node in memory through ``checkins``/``chains``, write the whole document to
the durable store, then mirror it into the local cache. The cache is written
only after the durable write succeeds; cache failures are logged and never
fail the operation.

Without a user id, or without a durable store, the local cache is the only
source of truth and its failures propagate.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Callable, Iterable, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from ..config import BaseConfig
from ..constants.habits import find_suggestion
from ..domain.repositories.habit import HabitCache, HabitStore
from ..errors import HabitTreeError, NotFoundError, PersistenceError, ValidationError
from ..logging_config import get_logger
from ..models.habit import (
    Habit,
    ProgressOperation,
    TrackingType,
    TreeNode,
    generate_habit_id,
    utcnow,
)
from . import checkins
from .chains import reconcile_chain
from .progress import NodeProgress, ProgressEntry, get_habit_progress, get_progress_entries
from .streaks import HabitStats, StreakRule, get_habit_stats

logger = get_logger(__name__)

# Fields owned by the service; callers cannot set them directly
_SERVER_FIELDS = {"id", "created_at", "updated_at", "version"}
_EDITABLE_FIELDS = set(Habit.model_fields) - _SERVER_FIELDS


def _as_validation_error(exc: PydanticValidationError) -> ValidationError:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return ValidationError(f"Invalid habit data: {problems}")


class HabitService:
    """Habit tree operations over an injected durable store and local cache."""

    def __init__(
        self,
        store: Optional[HabitStore],
        cache: HabitCache,
        *,
        streak_rule: StreakRule = StreakRule.CHECK_COUNT,
        today: Callable[[], date] = date.today,
    ):
        self.store = store
        self.cache = cache
        self.streak_rule = streak_rule
        self._today = today

    def today(self) -> date:
        return self._today()

    # ------------------------------------------------------------------
    # Entity model
    # ------------------------------------------------------------------

    def create_habit(self, user_id: Optional[str], habit_data: Mapping[str, Any]) -> Habit:
        """Create a habit with one active root node dated today.

        Missing fields get defaults: ``check`` tracking, one target check and
        the configured color and emoji. A durable-store failure degrades to a
        local-only habit (version 0) that is written through on its next
        mutation or by ``sync_pending_habits``.
        """
        fields = {
            key: value
            for key, value in habit_data.items()
            if key not in _SERVER_FIELDS and key != "tree_nodes"
        }
        unknown = set(fields) - _EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown habit fields: {', '.join(sorted(unknown))}")

        title = str(fields.get("title") or "").strip()
        if not title:
            raise ValidationError("Habit title is required")
        fields["title"] = title
        fields["tracking_type"] = self._parse_tracking_type(fields.get("tracking_type"))
        fields["target_checks"] = fields.get("target_checks") or 1
        fields["color"] = fields.get("color") or BaseConfig.DEFAULT_COLOR
        fields["emoji"] = fields.get("emoji") or BaseConfig.DEFAULT_EMOJI
        fields["category"] = fields.get("category") or BaseConfig.DEFAULT_CATEGORY
        fields["frequency"] = fields.get("frequency") or BaseConfig.DEFAULT_FREQUENCY

        try:
            habit = Habit(
                id=generate_habit_id(title),
                tree_nodes=[TreeNode.fresh(self.today())],
                **fields,
            )
        except PydanticValidationError as exc:
            raise _as_validation_error(exc) from exc

        if self._is_durable(user_id):
            try:
                self.store.put(user_id, habit)
            except PersistenceError:
                logger.warning(
                    f"Durable store unavailable; habit {habit.id} kept locally", exc_info=True
                )
            self._mirror(user_id, [habit])
        else:
            self.cache.put(habit, user_id)

        logger.info(f"Habit created: {habit.title} ({habit.id})")
        return habit

    def create_habit_from_suggestion(
        self, user_id: Optional[str], title: str, **overrides: Any
    ) -> Habit:
        """Create a habit from one of the built-in templates."""
        suggestion = find_suggestion(title)
        if suggestion is None:
            raise NotFoundError("habit suggestion", title)
        suggestion.update(overrides)
        return self.create_habit(user_id, suggestion)

    def get_habits(self, user_id: Optional[str]) -> list[Habit]:
        """Return the user's habits, newest first.

        Falls back to the local cache when the durable store fails; that
        fallback, and a broken cache, are logged rather than raised.
        """
        if self._is_durable(user_id):
            try:
                habits = self.store.list(user_id)
            except PersistenceError:
                logger.warning(
                    f"Durable store unavailable; serving cached habits for {user_id}",
                    exc_info=True,
                )
            else:
                habits = habits + self._pending_local(user_id, {h.id for h in habits})
                habits.sort(key=lambda h: h.created_at, reverse=True)
                try:
                    self.cache.replace_all(habits, user_id)
                except PersistenceError:
                    logger.warning(f"Could not refresh habit cache for {user_id}", exc_info=True)
                return habits

        try:
            return self.cache.list(user_id)
        except PersistenceError:
            logger.error(f"Habit cache unreadable for {user_id or 'anonymous'}", exc_info=True)
            return []

    def get_habit(self, user_id: Optional[str], habit_id: str) -> Habit:
        return self._load(user_id, habit_id)

    def update_habit(
        self, user_id: Optional[str], habit_id: str, updates: Mapping[str, Any]
    ) -> Habit:
        """Merge top-level fields into a habit; ``tree_nodes`` is replaced wholesale."""
        habit = self._load(user_id, habit_id)
        ignored = set(updates) & _SERVER_FIELDS
        if ignored:
            logger.debug(f"Ignoring server-owned fields on update: {sorted(ignored)}")
        unknown = set(updates) - _EDITABLE_FIELDS - _SERVER_FIELDS
        if unknown:
            raise ValidationError(f"Unknown habit fields: {', '.join(sorted(unknown))}")

        data = habit.model_dump()
        for key, value in updates.items():
            if key in _EDITABLE_FIELDS:
                data[key] = value
        if "tracking_type" in updates:
            data["tracking_type"] = self._parse_tracking_type(updates["tracking_type"])
        try:
            updated = Habit.model_validate(data)
        except PydanticValidationError as exc:
            raise _as_validation_error(exc) from exc

        self._save(user_id, [updated])
        logger.info(f"Habit updated: {updated.id} ({', '.join(sorted(set(updates) - ignored))})")
        return updated

    def delete_habit(self, user_id: Optional[str], habit_id: str) -> bool:
        """Remove a habit and all its nodes. Deleting an absent habit still succeeds."""
        if self._is_durable(user_id):
            try:
                self.store.delete(user_id, habit_id)
            except PersistenceError:
                logger.error(f"Failed to delete habit {habit_id}", exc_info=True)
                raise
            try:
                self.cache.delete(habit_id, user_id)
            except PersistenceError:
                logger.warning(f"Could not remove habit {habit_id} from cache", exc_info=True)
        else:
            self.cache.delete(habit_id, user_id)
        logger.info(f"Habit deleted: {habit_id}")
        return True

    def sync_pending_habits(self, user_id: str) -> list[Habit]:
        """Write habits that exist only in the local cache to the durable store."""
        if not self._is_durable(user_id):
            return []
        durable_ids = {habit.id for habit in self.store.list(user_id)}
        pending = self._pending_local(user_id, durable_ids)
        if pending:
            self._save(user_id, pending)
            logger.info(f"Synced {len(pending)} local-only habits for {user_id}")
        return pending

    # ------------------------------------------------------------------
    # Check-in state machine
    # ------------------------------------------------------------------

    def add_check_in(
        self,
        user_id: Optional[str],
        habit_id: str,
        node_id: str,
        check_type: str = "default",
        progress_amount: float = 1,
    ) -> Habit:
        """Record one check (check habits) or add to the accumulator (count/amount)."""
        return self._mutate(
            user_id,
            habit_id,
            node_id,
            "check-in",
            lambda habit, node: checkins.apply_check_in(
                habit, node, check_type, progress_amount
            ),
        )

    def add_progress_with_operation(
        self,
        user_id: Optional[str],
        habit_id: str,
        node_id: str,
        operation: str | ProgressOperation,
        amount: float,
    ) -> Habit:
        """Apply add/subtract/set to an amount habit's node.

        Non-amount habits take the plain check-in path with ``amount`` as the
        progress amount, whatever the operation.
        """
        op = checkins.parse_operation(operation)

        def apply(habit: Habit, node: TreeNode) -> None:
            if habit.tracking_type != TrackingType.AMOUNT:
                if op is not ProgressOperation.ADD:
                    logger.warning(
                        f"'{op.value}' on {habit.tracking_type.value} habit {habit.id} "
                        "recorded as a check-in"
                    )
                checkins.apply_check_in(habit, node, "default", amount)
            else:
                checkins.apply_progress_operation(habit, node, op, amount)

        return self._mutate(user_id, habit_id, node_id, f"progress {op.value}", apply)

    def edit_progress_entry(
        self,
        user_id: Optional[str],
        habit_id: str,
        node_id: str,
        entry_id: str,
        new_amount: float,
    ) -> Habit:
        return self._mutate(
            user_id,
            habit_id,
            node_id,
            "edit entry",
            lambda habit, node: checkins.edit_entry(habit, node, entry_id, new_amount),
        )

    def delete_progress_entry(
        self, user_id: Optional[str], habit_id: str, node_id: str, entry_id: str
    ) -> Habit:
        return self._mutate(
            user_id,
            habit_id,
            node_id,
            "delete entry",
            lambda habit, node: checkins.delete_entry(habit, node, entry_id),
        )

    # ------------------------------------------------------------------
    # Branch operations
    # ------------------------------------------------------------------

    def create_branch(self, user_id: Optional[str], habit_id: str, parent_node_id: str) -> Habit:
        """Start a new active node dated today that branches from ``parent_node_id``."""
        today = self.today()

        def branch(habit: Habit, parent: TreeNode) -> None:
            habit.tree_nodes.append(TreeNode.fresh(today, parent_id=parent.id))

        return self._mutate(user_id, habit_id, parent_node_id, "branch", branch)

    def reset_branch(self, user_id: Optional[str], habit_id: str, node_id: str) -> Habit:
        """Return a node (typically a failed one) to a clean active state in place."""
        return self._mutate(
            user_id,
            habit_id,
            node_id,
            "reset",
            lambda habit, node: checkins.reset_node(node),
        )

    # ------------------------------------------------------------------
    # Chain auto-management
    # ------------------------------------------------------------------

    def check_and_auto_manage_chains(self, user_id: Optional[str]) -> list[Habit]:
        """Create today's node for each habit and fail yesterday's unmet nodes.

        A habit that cannot be reconciled is logged and skipped; the others
        are still written, together, in one batch. Nothing is written when no
        habit changed.
        """
        habits = self._load_all(user_id)
        today = self.today()
        changed: list[Habit] = []
        for habit in habits:
            try:
                if reconcile_chain(habit, today):
                    changed.append(habit)
            except (HabitTreeError, ValueError, TypeError):
                logger.error(f"Chain reconciliation failed for habit {habit.id}", exc_info=True)

        if changed:
            self._save(user_id, changed)
            logger.info(f"Chain management updated {len(changed)} of {len(habits)} habits")
        else:
            logger.debug(f"Chains already current for {user_id or 'anonymous'}")
        return habits

    def reset_all_progress(self, user_id: Optional[str]) -> list[Habit]:
        """Clear progress on every node of every habit and make them all active."""
        habits = self._load_all(user_id)
        for habit in habits:
            for node in habit.tree_nodes:
                checkins.reset_node(node)
        self._save(user_id, habits)
        logger.info(f"Reset progress on {len(habits)} habits")
        return habits

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def get_habit_stats(self, habit: Habit) -> HabitStats:
        return get_habit_stats(habit, self.streak_rule)

    def get_all_stats(self, user_id: Optional[str]) -> dict[str, HabitStats]:
        return {habit.id: self.get_habit_stats(habit) for habit in self.get_habits(user_id)}

    def get_habit_progress(self, habit: Habit, node_id: Optional[str] = None) -> NodeProgress:
        node = self._require_node(habit, node_id) if node_id else None
        return get_habit_progress(habit, node, today=self.today())

    def get_progress_entries(self, habit: Habit, node_id: str) -> list[ProgressEntry]:
        return get_progress_entries(habit, self._require_node(habit, node_id))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _is_durable(self, user_id: Optional[str]) -> bool:
        return bool(user_id) and self.store is not None

    @staticmethod
    def _parse_tracking_type(value) -> TrackingType:
        if value is None or value == "":
            return TrackingType.CHECK
        try:
            return TrackingType(value)
        except ValueError as exc:
            allowed = ", ".join(t.value for t in TrackingType)
            raise ValidationError(f"Unknown tracking type {value!r} (expected {allowed})") from exc

    @staticmethod
    def _require_node(habit: Habit, node_id: str) -> TreeNode:
        node = habit.find_node(node_id)
        if node is None:
            raise NotFoundError("tree node", node_id)
        return node

    def _pending_local(self, user_id: str, durable_ids: set[str]) -> list[Habit]:
        """Cached habits that never reached the durable store."""
        try:
            cached = self.cache.list(user_id)
        except PersistenceError:
            logger.warning(f"Habit cache unreadable for {user_id}", exc_info=True)
            return []
        return [h for h in cached if h.version == 0 and h.id not in durable_ids]

    def _load(self, user_id: Optional[str], habit_id: str) -> Habit:
        if self._is_durable(user_id):
            try:
                habit = self.store.get(user_id, habit_id)
            except PersistenceError:
                logger.error(f"Failed to load habit {habit_id}", exc_info=True)
                raise
            if habit is None:
                pending = self._pending_local(user_id, set())
                habit = next((h for h in pending if h.id == habit_id), None)
        else:
            habit = self.cache.get(habit_id, user_id)
        if habit is None:
            raise NotFoundError("habit", habit_id)
        return habit

    def _load_all(self, user_id: Optional[str]) -> list[Habit]:
        if self._is_durable(user_id):
            try:
                habits = self.store.list(user_id)
            except PersistenceError:
                logger.error(f"Failed to load habits for {user_id}", exc_info=True)
                raise
            return habits + self._pending_local(user_id, {h.id for h in habits})
        return self.cache.list(user_id)

    def _save(self, user_id: Optional[str], habits: Iterable[Habit]) -> None:
        habits = list(habits)
        if self._is_durable(user_id):
            try:
                self.store.put_many(user_id, habits)
            except PersistenceError:
                logger.error(
                    f"Failed to save habits {[h.id for h in habits]} for {user_id}", exc_info=True
                )
                raise
            self._mirror(user_id, habits)
        else:
            now = utcnow()
            for habit in habits:
                habit.updated_at = now
            self.cache.put_many(habits, user_id)

    def _mirror(self, user_id: Optional[str], habits: list[Habit]) -> None:
        try:
            self.cache.put_many(habits, user_id)
        except PersistenceError:
            logger.warning(f"Could not mirror {len(habits)} habits to cache", exc_info=True)

    def _mutate(
        self,
        user_id: Optional[str],
        habit_id: str,
        node_id: str,
        action: str,
        apply: Callable[[Habit, TreeNode], Any],
    ) -> Habit:
        habit = self._load(user_id, habit_id)
        node = self._require_node(habit, node_id)
        apply(habit, node)
        self._save(user_id, [habit])
        logger.info(f"Habit {habit.id} node {node.id}: {action} -> {node.status.value}")
        return habit
