"""Tests for the background chain scheduler."""

from __future__ import annotations

import pytest

from habittree.context import create_app_context
from habittree.scheduler import CHAIN_JOB_ID, create_scheduler
from habittree.services.habits import HabitService

from habit_builders import USER_ID


@pytest.fixture
def app(config, today):
    return create_app_context(config, user_id=USER_ID, today=today, configure_logging=False)


def test_start_registers_daily_job(app):
    """start registers the cron job and stop clears it."""
    scheduler = create_scheduler(app)
    assert not scheduler.running

    scheduler.start(run_immediately=False)
    try:
        job = scheduler.scheduler.get_job(CHAIN_JOB_ID)
        assert job is not None
        assert "hour='0'" in str(job.trigger)
        assert "minute='0'" in str(job.trigger)
    finally:
        scheduler.stop()

    assert not scheduler.running


def test_start_twice_keeps_one_scheduler(app):
    """A second start is ignored."""
    scheduler = create_scheduler(app)
    scheduler.start(run_immediately=False)
    first = scheduler.scheduler
    try:
        scheduler.start(run_immediately=False)
        assert scheduler.scheduler is first
    finally:
        scheduler.stop()


def test_run_chain_management_adds_todays_node(app, today):
    """A manual run reconciles the current user's habits."""
    habit = app.habit_service.create_habit(USER_ID, {"title": "Read"})
    today.advance()

    assert create_scheduler(app).run_chain_management() == 1

    stored = app.habit_service.get_habit(USER_ID, habit.id)
    assert len(stored.tree_nodes) == 2


def test_run_chain_management_survives_store_failure(app, broken_store, cache, today):
    """Store failures are logged and report zero habits."""
    app.habit_service = HabitService(broken_store, cache, today=today)

    assert create_scheduler(app).run_chain_management() == 0
    assert broken_store.calls == 1
