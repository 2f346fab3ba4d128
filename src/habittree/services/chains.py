"""Daily chain reconciliation for habit trees."""

from __future__ import annotations

from datetime import date, timedelta

from ..models.habit import Habit, NodeStatus, TreeNode
from .checkins import is_target_met


def reconcile_chain(habit: Habit, today: date) -> bool:
    """Bring one habit's chain up to date for ``today``.

    Adds an active root node for today when the habit has none, then, while
    today's attempt is still active, fails every node from yesterday that is
    still active without having met its target. Returns True when anything
    changed.
    """
    changed = False
    todays_nodes = habit.nodes_on(today)
    if not todays_nodes:
        node = TreeNode.fresh(today)
        habit.tree_nodes.append(node)
        todays_nodes = [node]
        changed = True

    if not any(node.status == NodeStatus.ACTIVE for node in todays_nodes):
        return changed

    for node in habit.nodes_on(today - timedelta(days=1)):
        if node.status == NodeStatus.ACTIVE and not is_target_met(habit, node):
            node.status = NodeStatus.FAILED
            changed = True
    return changed
