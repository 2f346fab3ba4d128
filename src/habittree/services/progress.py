"""Read-only progress views for a habit node."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..models.habit import Habit, NodeStatus, TrackingType, TreeNode
from .checkins import node_progress, progress_target


@dataclass
class NodeProgress:
    current: float
    target: float
    percentage: int
    unit: str


@dataclass
class ProgressEntry:
    """One row in a node's progress history."""

    id: str
    amount: float
    timestamp: Optional[datetime]
    type: str


def get_today_node(habit: Habit, today: date) -> Optional[TreeNode]:
    """Return today's active node, else the latest node dated today, else None."""
    todays = habit.nodes_on(today)
    for node in reversed(todays):
        if node.status == NodeStatus.ACTIVE:
            return node
    return todays[-1] if todays else None


def get_habit_progress(
    habit: Habit, node: Optional[TreeNode] = None, *, today: Optional[date] = None
) -> NodeProgress:
    """Progress of ``node`` toward its target, defaulting to today's active node."""

    target = progress_target(habit)
    unit = (habit.unit or "") if habit.tracking_type == TrackingType.AMOUNT else "completions"
    if node is None:
        node = get_today_node(habit, today or date.today())
    if node is None:
        return NodeProgress(current=0, target=target, percentage=0, unit=unit)

    current = node_progress(habit, node)
    percentage = min(math.floor(current / target * 100 + 0.5), 100) if target else 0
    return NodeProgress(current=current, target=target, percentage=percentage, unit=unit)


def get_progress_entries(habit: Habit, node: TreeNode) -> list[ProgressEntry]:
    """Checks for check habits; a single synthetic ``current`` entry for accumulators."""

    if habit.tracking_type in (TrackingType.AMOUNT, TrackingType.COUNT):
        return [
            ProgressEntry(
                id="current",
                amount=node.current_progress,
                timestamp=node.updated_at or node.created_at,
                type=habit.tracking_type.value,
            )
        ]
    return [
        ProgressEntry(id=check.id, amount=check.amount, timestamp=check.timestamp, type=check.type)
        for check in node.checks
    ]
