"""Application context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from sqlmodel import Session

from .config import BaseConfig
from .infra.cache import JSONFileHabitCache
from .infra.database import create_db_engine, create_session_factory, init_database
from .infra.repositories import SQLModelHabitStore
from .logging_config import get_logger, setup_logging
from .services.habits import HabitService
from .services.streaks import parse_streak_rule

logger = get_logger(__name__)


@dataclass
class AppContext:
    """Centralized application context with services and state."""

    config: BaseConfig
    session_factory: Callable[[], Session]

    habit_store: SQLModelHabitStore
    habit_cache: JSONFileHabitCache
    habit_service: HabitService

    # None means offline/anonymous mode backed by the local cache only
    current_user_id: Optional[str] = None

    def require_user_id(self) -> str:
        """Return the current user id or raise if not set."""

        if not self.current_user_id:
            raise RuntimeError("User is not signed in")
        return self.current_user_id


def create_app_context(
    config: Optional[BaseConfig] = None,
    *,
    user_id: Optional[str] = None,
    today: Callable[[], date] = date.today,
    configure_logging: bool = True,
) -> AppContext:
    """Create and initialize the application context."""

    if config is None:
        config = BaseConfig()
    if configure_logging:
        setup_logging(config)

    engine = create_db_engine(config)
    init_database(engine)
    session_factory = create_session_factory(engine)

    habit_store = SQLModelHabitStore(session_factory)
    habit_cache = JSONFileHabitCache(config.CACHE_DIR)
    habit_service = HabitService(
        habit_store,
        habit_cache,
        streak_rule=parse_streak_rule(config.STREAK_RULE),
        today=today,
    )
    logger.debug(f"App context ready (database={config.DATABASE_URL}, cache={config.CACHE_DIR})")

    return AppContext(
        config=config,
        session_factory=session_factory,
        habit_store=habit_store,
        habit_cache=habit_cache,
        habit_service=habit_service,
        current_user_id=user_id,
    )
