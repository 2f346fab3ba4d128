"""Smoke tests for the click command-line interface."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from habittree.cli import cli
from habittree.context import create_app_context

from habit_builders import USER_ID


@pytest.fixture
def app(config, today):
    return create_app_context(config, user_id=USER_ID, today=today, configure_logging=False)


@pytest.fixture
def invoke(app):
    runner = CliRunner()

    def _invoke(*args):
        return runner.invoke(cli, list(args), obj=app)

    return _invoke


def test_create_and_list(invoke, app):
    """Created habits show up in the listing with progress."""
    result = invoke("create", "Water", "--tracking-type", "amount", "--target-amount", "8", "--unit", "glasses")
    assert result.exit_code == 0, result.output
    assert result.output.startswith("Created habit_")

    result = invoke("list")
    assert result.exit_code == 0
    assert "Water" in result.output
    assert "0/8 glasses (0%)" in result.output


def test_list_json(invoke, app):
    """--json prints habit documents."""
    app.habit_service.create_habit(USER_ID, {"title": "Read"})

    result = invoke("list", "--json")

    documents = json.loads(result.output)
    assert [d["title"] for d in documents] == ["Read"]


def test_check_in_defaults_to_todays_node(invoke, app):
    """check-in without --node targets today's node."""
    habit = app.habit_service.create_habit(USER_ID, {"title": "Read"})

    result = invoke("check-in", habit.id)

    assert result.exit_code == 0, result.output
    assert "1/1 completions (100%)" in result.output


def test_progress_operation(invoke, app):
    """progress applies add and subtract to an amount habit."""
    habit = app.habit_service.create_habit(
        USER_ID, {"title": "Water", "tracking_type": "amount", "target_amount": 8}
    )

    invoke("progress", habit.id, "add", "5")
    result = invoke("progress", habit.id, "subtract", "1")

    assert result.exit_code == 0, result.output
    assert "4/8" in result.output


def test_suggest_lists_and_creates(invoke):
    """suggest lists templates and creates one by title."""
    listing = invoke("suggest")
    assert "Drink water" in listing.output

    result = invoke("suggest", "Drink water")
    assert result.exit_code == 0
    assert result.output.startswith("Created habit_")


def test_missing_habit_is_reported(invoke):
    """Unknown habit ids exit non-zero with a message."""
    result = invoke("check-in", "habit_missing")

    assert result.exit_code != 0
    assert "habit not found: habit_missing" in result.output


def test_delete_requires_confirmation(invoke, app):
    """delete aborts without confirmation."""
    habit = app.habit_service.create_habit(USER_ID, {"title": "Read"})

    aborted = invoke("delete", habit.id)
    assert aborted.exit_code != 0

    result = invoke("delete", habit.id, "--yes")
    assert result.exit_code == 0
    assert app.habit_service.get_habits(USER_ID) == []


def test_chains_and_stats(invoke, app, today):
    """chains adds today's node and stats reflect it."""
    habit = app.habit_service.create_habit(USER_ID, {"title": "Read"})
    invoke("check-in", habit.id)
    today.advance()

    assert invoke("chains").output.strip() == "Chains up to date for 1 habits"

    stats = json.loads(invoke("stats", "--json").output)
    assert stats[habit.id]["current_streak"] == 1
    assert stats[habit.id]["total_days"] == 2


def test_sync_requires_user(config, today):
    """sync without a user fails cleanly."""
    app = create_app_context(config, today=today, configure_logging=False)

    result = CliRunner().invoke(cli, ["sync"], obj=app)

    assert result.exit_code != 0
    assert "not signed in" in result.output
