"""Pytest configuration and shared fixtures for HabitTree tests.

This module provides database fixtures, a controllable calendar, test data
factories, and a deliberately broken store for exercising the offline fallback
without touching the real app database or cache.
"""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from habittree.config import TestConfig
from habittree.errors import PersistenceError
from habittree.infra.cache import JSONFileHabitCache
from habittree.infra.database import create_db_engine, create_session_factory, init_database
from habittree.infra.repositories import SQLModelHabitStore
from habittree.models.habit import Habit
from habittree.services.habits import HabitService

from habit_builders import TODAY, USER_ID


class FakeToday:
    """Callable calendar the tests can move forward."""

    def __init__(self, value: date):
        self.value = value

    def __call__(self) -> date:
        return self.value

    def advance(self, days: int = 1) -> date:
        self.value = self.value + timedelta(days=days)
        return self.value


class BrokenStore:
    """Durable store whose every call fails like an unreachable database."""

    def __init__(self):
        self.calls = 0

    def _fail(self, *args, **kwargs):
        self.calls += 1
        raise PersistenceError("database unreachable")

    list = get = put = put_many = delete = _fail


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def config(tmp_path):
    """Configuration rooted in a per-test temporary directory."""
    return TestConfig(tmp_path / "data")


@pytest.fixture(scope="function")
def db_engine(config):
    """Create an isolated SQLite database for each test.

    Yields:
        Engine: SQLModel engine with all tables created
    """
    engine = create_db_engine(config)
    init_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory matching the one the application wires up."""
    return create_session_factory(db_engine)


@pytest.fixture
def store(session_factory) -> SQLModelHabitStore:
    return SQLModelHabitStore(session_factory)


@pytest.fixture
def cache(tmp_path) -> JSONFileHabitCache:
    return JSONFileHabitCache(tmp_path / "cache")


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def today() -> FakeToday:
    return FakeToday(TODAY)


@pytest.fixture
def service(store, cache, today) -> HabitService:
    """Service backed by the SQLite store with the cache as mirror."""
    return HabitService(store, cache, today=today)


@pytest.fixture
def offline_service(cache, today) -> HabitService:
    """Service with no durable store: the cache is the source of truth."""
    return HabitService(None, cache, today=today)


@pytest.fixture
def broken_store() -> BrokenStore:
    return BrokenStore()


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def habit_factory(service):
    """Factory for creating persisted habits through the service.

    Returns:
        Callable: Function that creates a habit for ``USER_ID``
    """

    def _create_habit(title: str = "Water", user_id: str | None = USER_ID, **fields) -> Habit:
        return service.create_habit(user_id, {"title": title, **fields})

    return _create_habit
