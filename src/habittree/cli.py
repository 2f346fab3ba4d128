"""Command-line interface for HabitTree."""

from __future__ import annotations

import json
from typing import Optional

import click

from .constants.habits import HABIT_SUGGESTIONS
from .context import AppContext, create_app_context
from .errors import HabitTreeError
from .models.habit import Habit, TrackingType
from .services.progress import get_today_node


def _app(ctx: click.Context) -> AppContext:
    app = ctx.find_object(AppContext)
    if app is None:
        raise click.ClickException("Application context not initialized")
    return app


def _describe(habit: Habit, app: AppContext) -> str:
    service = app.habit_service
    progress = service.get_habit_progress(habit)
    stats = service.get_habit_stats(habit)
    unit = f" {progress.unit}" if progress.unit else ""
    return (
        f"{habit.emoji} {habit.title} [{habit.id}] "
        f"{progress.current:g}/{progress.target:g}{unit} ({progress.percentage}%) "
        f"streak {stats.current_streak}"
    )


def _today_node_id(app: AppContext, habit: Habit) -> str:
    node = get_today_node(habit, app.habit_service.today())
    if node is None:
        raise click.ClickException(
            f"No node dated today for {habit.id}; run 'habittree chains' or pass --node"
        )
    return node.id


@click.group()
@click.option("--user", "user_id", envvar="HABITTREE_USER", default=None, help="User id (omit for offline mode)")
@click.pass_context
def cli(ctx: click.Context, user_id: Optional[str]) -> None:
    """Track habits as a tree of daily check-ins."""

    if ctx.obj is None:
        ctx.obj = create_app_context(user_id=user_id)
    elif user_id:
        ctx.obj.current_user_id = user_id


@cli.command("list")
@click.option("--json", "as_json", is_flag=True, help="Print habit documents as JSON")
@click.pass_context
def list_habits(ctx: click.Context, as_json: bool) -> None:
    """List habits, newest first."""

    app = _app(ctx)
    habits = app.habit_service.get_habits(app.current_user_id)
    if as_json:
        click.echo(json.dumps([h.to_document() for h in habits], ensure_ascii=False, indent=2))
        return
    if not habits:
        click.echo("No habits yet.")
    for habit in habits:
        click.echo(_describe(habit, app))


@cli.command("create")
@click.argument("title")
@click.option("--description", default="")
@click.option(
    "--tracking-type",
    type=click.Choice([t.value for t in TrackingType]),
    default=TrackingType.CHECK.value,
    show_default=True,
)
@click.option("--target-checks", type=int, default=1, show_default=True)
@click.option("--target-amount", type=float, default=None)
@click.option("--unit", default=None)
@click.option("--category", default=None)
@click.option("--emoji", default=None)
@click.option("--color", default=None)
@click.option("--allow-multiple", is_flag=True, default=False, help="Allow check-ins past the target")
@click.pass_context
def create_habit(ctx: click.Context, title: str, **options) -> None:
    """Create a habit with today's node."""

    app = _app(ctx)
    data = {
        "title": title,
        "description": options["description"],
        "tracking_type": options["tracking_type"],
        "target_checks": options["target_checks"],
        "target_amount": options["target_amount"],
        "unit": options["unit"],
        "category": options["category"],
        "emoji": options["emoji"],
        "color": options["color"],
        "allow_multiple_checks": options["allow_multiple"],
    }
    try:
        habit = app.habit_service.create_habit(app.current_user_id, data)
    except HabitTreeError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Created {habit.id}")


@cli.command("suggest")
@click.argument("title", required=False)
@click.pass_context
def suggest(ctx: click.Context, title: Optional[str]) -> None:
    """List habit templates, or create one by title."""

    if title is None:
        for suggestion in HABIT_SUGGESTIONS:
            click.echo(
                f"{suggestion['emoji']} {suggestion['title']} "
                f"x{suggestion['target_checks']} ({suggestion['category']})"
            )
        return
    app = _app(ctx)
    try:
        habit = app.habit_service.create_habit_from_suggestion(app.current_user_id, title)
    except HabitTreeError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Created {habit.id}")


@cli.command("check-in")
@click.argument("habit_id")
@click.option("--node", "node_id", default=None, help="Node id (defaults to today's node)")
@click.option("--amount", type=float, default=1, show_default=True)
@click.option("--type", "check_type", default="default", show_default=True)
@click.pass_context
def check_in(ctx: click.Context, habit_id: str, node_id: Optional[str], amount: float, check_type: str) -> None:
    """Record a check-in on a habit node."""

    app = _app(ctx)
    service = app.habit_service
    try:
        habit = service.get_habit(app.current_user_id, habit_id)
        habit = service.add_check_in(
            app.current_user_id, habit_id, node_id or _today_node_id(app, habit), check_type, amount
        )
    except HabitTreeError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(_describe(habit, app))


@cli.command("progress")
@click.argument("habit_id")
@click.argument("operation", type=click.Choice(["add", "subtract", "set"]))
@click.argument("amount", type=float)
@click.option("--node", "node_id", default=None, help="Node id (defaults to today's node)")
@click.pass_context
def progress(ctx: click.Context, habit_id: str, operation: str, amount: float, node_id: Optional[str]) -> None:
    """Add, subtract or set progress on an amount habit."""

    app = _app(ctx)
    service = app.habit_service
    try:
        habit = service.get_habit(app.current_user_id, habit_id)
        habit = service.add_progress_with_operation(
            app.current_user_id, habit_id, node_id or _today_node_id(app, habit), operation, amount
        )
    except HabitTreeError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(_describe(habit, app))


@cli.command("branch")
@click.argument("habit_id")
@click.argument("parent_node_id")
@click.pass_context
def branch(ctx: click.Context, habit_id: str, parent_node_id: str) -> None:
    """Start a new branch from an existing node."""

    app = _app(ctx)
    try:
        habit = app.habit_service.create_branch(app.current_user_id, habit_id, parent_node_id)
    except HabitTreeError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Branched {habit.tree_nodes[-1].id} from {parent_node_id}")


@cli.command("reset")
@click.argument("habit_id")
@click.argument("node_id")
@click.pass_context
def reset(ctx: click.Context, habit_id: str, node_id: str) -> None:
    """Reset a node to active with no progress."""

    app = _app(ctx)
    try:
        app.habit_service.reset_branch(app.current_user_id, habit_id, node_id)
    except HabitTreeError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Reset {node_id}")


@cli.command("delete")
@click.argument("habit_id")
@click.confirmation_option(prompt="Delete this habit and all its progress?")
@click.pass_context
def delete(ctx: click.Context, habit_id: str) -> None:
    """Delete a habit."""

    app = _app(ctx)
    try:
        app.habit_service.delete_habit(app.current_user_id, habit_id)
    except HabitTreeError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Deleted {habit_id}")


@cli.command("stats")
@click.option("--json", "as_json", is_flag=True)
@click.pass_context
def stats(ctx: click.Context, as_json: bool) -> None:
    """Show streaks and completion rates."""

    app = _app(ctx)
    all_stats = app.habit_service.get_all_stats(app.current_user_id)
    if as_json:
        click.echo(json.dumps({hid: s.as_dict() for hid, s in all_stats.items()}, indent=2))
        return
    for habit_id, habit_stats in all_stats.items():
        click.echo(
            f"{habit_id}: {habit_stats.completed_days}/{habit_stats.total_days} days "
            f"({habit_stats.completion_rate}%), streak {habit_stats.current_streak}, "
            f"best {habit_stats.longest_streak}"
        )


@cli.command("chains")
@click.pass_context
def chains(ctx: click.Context) -> None:
    """Create today's nodes and fail yesterday's unmet ones."""

    app = _app(ctx)
    try:
        habits = app.habit_service.check_and_auto_manage_chains(app.current_user_id)
    except HabitTreeError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Chains up to date for {len(habits)} habits")


@cli.command("sync")
@click.pass_context
def sync(ctx: click.Context) -> None:
    """Push habits created while offline to the database."""

    app = _app(ctx)
    try:
        pending = app.habit_service.sync_pending_habits(app.require_user_id())
    except RuntimeError as exc:
        raise click.ClickException(str(exc)) from exc
    except HabitTreeError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Synced {len(pending)} habits")


if __name__ == "__main__":  # pragma: no cover
    cli()
