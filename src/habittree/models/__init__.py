"""SQLModel table and document exports."""

from .habit import (
    Check,
    Habit,
    HabitRecord,
    NodeStatus,
    ProgressOperation,
    TrackingType,
    TreeNode,
)

__all__ = [
    "Check",
    "Habit",
    "HabitRecord",
    "NodeStatus",
    "ProgressOperation",
    "TrackingType",
    "TreeNode",
]
