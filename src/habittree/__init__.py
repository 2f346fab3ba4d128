"""HabitTree: habit tree tracking with check-ins, branches, streaks and daily chains."""

from __future__ import annotations

from .config import BaseConfig, DevConfig
from .context import create_app_context

__all__ = ["BaseConfig", "DevConfig", "create_app_context"]
