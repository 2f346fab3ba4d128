"""Service module exports."""

from . import chains, checkins, habits, progress, streaks

__all__ = [
    "chains",
    "checkins",
    "habits",
    "progress",
    "streaks",
]
