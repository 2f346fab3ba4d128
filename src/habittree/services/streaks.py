"""Streak and statistics calculations over a habit's tree nodes."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from datetime import timedelta
from enum import Enum
from typing import Iterable

from ..models.habit import Habit, NodeStatus, TreeNode
from .checkins import is_target_met


class StreakRule(str, Enum):
    """Which completed nodes count toward a streak.

    ``check_count`` is the historical rule: a completed node counts when it
    holds at least ``target_checks`` checks, so amount and count habits
    (which record no checks) never build a streak. ``node_progress`` judges
    each node by its own tracking type's progress instead.
    """

    CHECK_COUNT = "check_count"
    NODE_PROGRESS = "node_progress"


@dataclass
class HabitStats:
    """Aggregate numbers shown on a habit card."""

    total_days: int
    completed_days: int
    current_streak: int
    longest_streak: int
    completion_rate: int

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


def parse_streak_rule(value) -> StreakRule:
    try:
        return StreakRule(value)
    except ValueError as exc:
        allowed = ", ".join(rule.value for rule in StreakRule)
        raise ValueError(f"Unknown streak rule {value!r} (expected {allowed})") from exc


def counts_toward_streak(habit: Habit, node: TreeNode, rule: StreakRule) -> bool:
    if rule is StreakRule.NODE_PROGRESS:
        return is_target_met(habit, node)
    return len(node.checks) >= habit.target_checks


def _completed_newest_first(nodes: Iterable[TreeNode]) -> list[TreeNode]:
    completed = [node for node in nodes if node.status == NodeStatus.COMPLETED]
    return sorted(completed, key=lambda n: (n.date, n.created_at), reverse=True)


def compute_streaks(
    habit: Habit, rule: StreakRule = StreakRule.CHECK_COUNT
) -> tuple[int, int]:
    """Return (current_streak, longest_streak) for a habit.

    The current streak scans completed nodes newest first and counts them
    until the first one that does not satisfy ``rule``; dates are not
    compared, so it can exceed the longest streak. The longest streak is
    the longest run of consecutive calendar days that each hold at least
    one completed node satisfying ``rule``.
    """
    current = 0
    for node in _completed_newest_first(habit.tree_nodes):
        if not counts_toward_streak(habit, node, rule):
            break
        current += 1

    qualifying_days = sorted(
        {
            node.date
            for node in habit.tree_nodes
            if node.status == NodeStatus.COMPLETED and counts_toward_streak(habit, node, rule)
        }
    )
    longest = 0
    run = 0
    previous = None
    for day in qualifying_days:
        run = run + 1 if previous is not None and day - previous == timedelta(days=1) else 1
        longest = max(longest, run)
        previous = day
    return current, longest


def get_habit_streak(habit: Habit, rule: StreakRule = StreakRule.CHECK_COUNT) -> int:
    current, _ = compute_streaks(habit, rule)
    return current


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def get_habit_stats(habit: Habit, rule: StreakRule = StreakRule.CHECK_COUNT) -> HabitStats:
    """Compute totals, streaks and completion rate without touching storage."""

    total_days = len(habit.tree_nodes)
    completed_days = sum(1 for node in habit.tree_nodes if node.status == NodeStatus.COMPLETED)
    current, longest = compute_streaks(habit, rule)
    rate = _round_half_up(completed_days / total_days * 100) if total_days else 0
    return HabitStats(
        total_days=total_days,
        completed_days=completed_days,
        current_streak=current,
        longest_streak=longest,
        completion_rate=rate,
    )


__all__ = [
    "HabitStats",
    "StreakRule",
    "compute_streaks",
    "counts_toward_streak",
    "get_habit_stats",
    "get_habit_streak",
    "parse_streak_rule",
]
