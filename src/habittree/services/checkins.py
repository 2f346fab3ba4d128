"""Check-in state machine for habit tree nodes.

Every function here mutates one ``TreeNode`` in place and recomputes its
status. Nothing here touches persistence; ``HabitService`` wraps these in the
load-mutate-persist cycle.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..errors import NotFoundError, ValidationError
from ..models.habit import (
    Check,
    Habit,
    NodeStatus,
    ProgressOperation,
    TrackingType,
    TreeNode,
    utcnow,
)

# Node types whose progress lives in ``current_progress`` rather than ``checks``
ACCUMULATOR_TYPES = (TrackingType.COUNT, TrackingType.AMOUNT)


def uses_accumulator(habit: Habit) -> bool:
    return habit.tracking_type in ACCUMULATOR_TYPES


def accumulator_target(habit: Habit) -> float:
    """Threshold for count/amount nodes: target amount, else target checks, else 1."""
    return habit.target_amount or habit.target_checks or 1


def progress_target(habit: Habit) -> float:
    if uses_accumulator(habit):
        return accumulator_target(habit)
    return habit.target_checks


def node_progress(habit: Habit, node: TreeNode) -> float:
    if uses_accumulator(habit):
        return node.current_progress
    return len(node.checks)


def is_target_met(habit: Habit, node: TreeNode) -> bool:
    return node_progress(habit, node) >= progress_target(habit)


def recompute_status(habit: Habit, node: TreeNode) -> NodeStatus:
    """Set ``completed`` when the target is met, otherwise ``active``.

    Any explicit progress edit re-opens the node, including a ``failed`` one.
    """
    if is_target_met(habit, node):
        node.status = NodeStatus.COMPLETED
    else:
        node.status = NodeStatus.ACTIVE
    return node.status


def parse_operation(operation) -> ProgressOperation:
    try:
        return ProgressOperation(operation)
    except ValueError as exc:
        allowed = ", ".join(op.value for op in ProgressOperation)
        raise ValidationError(f"Unknown progress operation {operation!r} (expected {allowed})") from exc


def apply_check_in(
    habit: Habit,
    node: TreeNode,
    check_type: str = "default",
    progress_amount: float = 1,
    *,
    now: Optional[datetime] = None,
) -> TreeNode:
    """Record one progress event on ``node``.

    Count and amount habits add ``progress_amount`` to the accumulator; check
    habits append a ``Check``. Reaching the target marks the node completed.
    This path never moves a node back to active.
    """
    if progress_amount is None or progress_amount <= 0:
        raise ValidationError(f"Check-in amount must be positive, got {progress_amount!r}")

    now = now or utcnow()
    if uses_accumulator(habit):
        node.current_progress += progress_amount
        if node.current_progress >= accumulator_target(habit):
            node.status = NodeStatus.COMPLETED
    else:
        node.checks.append(
            Check(type=check_type, timestamp=now, completed=True, amount=progress_amount)
        )
        if len(node.checks) >= habit.target_checks:
            node.status = NodeStatus.COMPLETED
    node.updated_at = now
    return node


def apply_progress_operation(
    habit: Habit,
    node: TreeNode,
    operation,
    amount: float,
    *,
    now: Optional[datetime] = None,
) -> TreeNode:
    """Apply add/subtract/set to an amount node's accumulator and recompute status.

    Unlike ``apply_check_in`` this can revert a completed node to active,
    because subtract and set can lower progress below the target.
    """
    op = parse_operation(operation)
    if habit.tracking_type != TrackingType.AMOUNT:
        raise ValidationError(
            f"Progress operations apply to amount habits only; {habit.id} tracks {habit.tracking_type.value}"
        )
    if amount is None:
        raise ValidationError("Progress amount is required")
    if op is not ProgressOperation.SET and amount <= 0:
        raise ValidationError(f"Amount to {op.value} must be positive, got {amount!r}")

    if op is ProgressOperation.ADD:
        node.current_progress += amount
    elif op is ProgressOperation.SUBTRACT:
        node.current_progress = max(0, node.current_progress - amount)
    else:
        node.current_progress = max(0, amount)

    recompute_status(habit, node)
    node.updated_at = now or utcnow()
    return node


def find_check(node: TreeNode, entry_id: str) -> Check:
    for check in node.checks:
        if check.id == entry_id:
            return check
    raise NotFoundError("progress entry", entry_id)


def edit_entry(
    habit: Habit,
    node: TreeNode,
    entry_id: str,
    new_amount: float,
    *,
    now: Optional[datetime] = None,
) -> TreeNode:
    """Overwrite one progress entry and recompute status.

    Accumulator nodes hold a single entry, so the new amount replaces
    ``current_progress`` whatever ``entry_id`` is.
    """
    now = now or utcnow()
    if uses_accumulator(habit):
        node.current_progress = max(0, new_amount)
    else:
        check = find_check(node, entry_id)
        check.amount = new_amount
        check.timestamp = now
    recompute_status(habit, node)
    node.updated_at = now
    return node


def delete_entry(
    habit: Habit,
    node: TreeNode,
    entry_id: str,
    *,
    now: Optional[datetime] = None,
) -> TreeNode:
    """Remove one progress entry; accumulator nodes are zeroed and reactivated."""
    if uses_accumulator(habit):
        node.current_progress = 0
        node.status = NodeStatus.ACTIVE
    else:
        check = find_check(node, entry_id)
        node.checks = [c for c in node.checks if c.id != check.id]
        recompute_status(habit, node)
    node.updated_at = now or utcnow()
    return node


def reset_node(node: TreeNode, *, now: Optional[datetime] = None) -> TreeNode:
    """Clear a node's progress and make it active, keeping id, date and parent."""
    node.checks = []
    node.current_progress = 0
    node.status = NodeStatus.ACTIVE
    node.updated_at = now or utcnow()
    return node
