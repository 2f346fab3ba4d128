"""Background scheduler running daily chain management."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from apscheduler.schedulers.background import BackgroundScheduler as APScheduler
from apscheduler.triggers.cron import CronTrigger

from .errors import HabitTreeError
from .logging_config import get_logger

if TYPE_CHECKING:
    from .context import AppContext

logger = get_logger("scheduler")

CHAIN_JOB_ID = "daily_chain_management"


class ChainScheduler:
    """Runs chain auto-management for the current user once a day."""

    def __init__(self, ctx: AppContext):
        """Initialize the scheduler with app context.

        Args:
            ctx: Application context with the habit service and config
        """
        self.ctx = ctx
        self.scheduler: Optional[APScheduler] = None

    @property
    def running(self) -> bool:
        return self.scheduler is not None

    def start(self, *, run_immediately: bool = True) -> None:
        """Start the scheduler, optionally reconciling chains right away."""
        if self.scheduler is not None:
            logger.warning("Scheduler already running")
            return

        hour, minute = self.ctx.config.CHAIN_HOUR, self.ctx.config.CHAIN_MINUTE
        self.scheduler = APScheduler()
        self.scheduler.add_job(
            func=self.run_chain_management,
            trigger=CronTrigger(hour=hour, minute=minute),
            id=CHAIN_JOB_ID,
            name="Daily Chain Management",
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info(f"Scheduled chain management daily at {hour:02d}:{minute:02d}")

        if run_immediately:
            self.run_chain_management()

    def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if self.scheduler is not None:
            self.scheduler.shutdown(wait=True)
            self.scheduler = None
            logger.info("Chain scheduler stopped")

    def run_chain_management(self) -> int:
        """Reconcile chains once; returns how many habits were inspected."""
        user_id = self.ctx.current_user_id
        try:
            habits = self.ctx.habit_service.check_and_auto_manage_chains(user_id)
        except HabitTreeError as exc:
            logger.error(f"Scheduled chain management failed: {exc}", exc_info=True)
            return 0
        logger.info(f"Chain management ran for {user_id or 'anonymous'}: {len(habits)} habits")
        return len(habits)


def create_scheduler(ctx: AppContext, *, auto_start: bool = False) -> ChainScheduler:
    """Create and optionally start a chain scheduler.

    Args:
        ctx: Application context
        auto_start: Whether to start the scheduler immediately

    Returns:
        ChainScheduler instance
    """
    scheduler = ChainScheduler(ctx)
    if auto_start:
        scheduler.start()
    return scheduler
