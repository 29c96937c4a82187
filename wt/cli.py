"""Command-line front end for the weekly timers."""

import signal

import click
from PySide6.QtCore import QTimer

from wt.app import WeekTimeApp
from wt.common.logger import log, set_console
from wt.core.timer import Timer, TimerType
from wt.util.misc import format_clock, format_duration, hours_minutes, hours_to_seconds


def _app(ctx: click.Context) -> WeekTimeApp:
    return ctx.obj["app"]


def resolve_timer(store, ref: str) -> Timer:
    """Find a timer by full id, id prefix, or case-insensitive exact title."""

    exact = store.get(ref)
    if exact is not None:
        return exact
    lowered = ref.strip().lower()
    matches = [t for t in store.timers if t.id.startswith(ref) or t.title.strip().lower() == lowered]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise click.BadParameter(f"No timer matches '{ref}'.", param_hint="TIMER")
    raise click.BadParameter(
        f"'{ref}' matches {len(matches)} timers, use more of the id.", param_hint="TIMER"
    )


def describe(timer: Timer) -> str:
    marker = "▶" if timer.is_running else " "
    if timer.type is TimerType.STOPWATCH:
        detail = f"{format_clock(timer.elapsed_seconds)} elapsed"
    elif timer.is_finished:
        detail = f"done, {format_duration(timer.total_seconds)} goal reached"
    else:
        detail = (
            f"{format_clock(timer.remaining_seconds)} left of {format_duration(timer.total_seconds)}"
            f" ({timer.progress:.0%})"
        )
    return f"{marker} {timer.id[:8]}  {timer.type.value:<9}  {timer.title:<24} {detail}"


def _positive_hours(value: float | None, option: str) -> int | None:
    if value is None:
        return None
    seconds = hours_to_seconds(value)
    if seconds <= 0:
        raise click.BadParameter("Must be more than zero hours.", param_hint=option)
    return seconds


@click.group()
@click.option("--verbose", is_flag=True, help="Echo the log to stderr.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Track weekly goals and stopwatches."""

    ctx.ensure_object(dict)
    if "app" not in ctx.obj:
        ctx.obj["app"] = WeekTimeApp.from_environment()
    app = ctx.obj["app"]
    set_console(log, verbose or bool(app.settings.get("console_log")))
    ctx.call_on_close(app.close)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """List every timer."""

    timers = _app(ctx).store.timers
    if not timers:
        click.echo("No timers yet. Add one to begin!")
        return
    for timer in timers:
        click.echo(describe(timer))


@cli.command()
@click.argument("title")
@click.option("--goal", "goal_hours", type=float, help="Weekly target in hours (decimals allowed).")
@click.option("--stopwatch", is_flag=True, help="Count up with no target.")
@click.option("--color", default=None, help="Display colour, e.g. #ff9500.")
@click.option("--size", type=click.Choice(["small", "medium", "large"]), default=None)
@click.pass_context
def add(ctx: click.Context, title: str, goal_hours: float | None, stopwatch: bool, color: str | None,
        size: str | None) -> None:
    """Add a goal timer or a stopwatch."""

    title = title.strip()
    if not title:
        raise click.BadParameter("Title can't be empty.", param_hint="TITLE")
    if stopwatch == (goal_hours is not None):
        raise click.UsageError("Give exactly one of --goal HOURS or --stopwatch.")

    app = _app(ctx)
    timer = app.store.add_timer(
        TimerType.STOPWATCH if stopwatch else TimerType.GOAL,
        title,
        0 if stopwatch else _positive_hours(goal_hours, "--goal"),
        color or app.settings["default_color"],
        size or app.settings["default_size"],
    )
    click.echo(f"Added {describe(timer).strip()}")


@cli.command()
@click.argument("timer_ref", metavar="TIMER")
@click.option("--title", default=None)
@click.option("--color", default=None)
@click.option("--size", type=click.Choice(["small", "medium", "large"]), default=None)
@click.option("--goal", "goal_hours", type=float, help="New target in hours.")
@click.option("--remaining", "remaining_hours", type=float, help="Set the time left on a goal, in hours.")
@click.pass_context
def edit(ctx: click.Context, timer_ref: str, title: str | None, color: str | None, size: str | None,
         goal_hours: float | None, remaining_hours: float | None) -> None:
    """Change a timer's title, colour, size or goal."""

    store = _app(ctx).store
    timer = resolve_timer(store, timer_ref)
    fields = {}
    if title is not None:
        if not title.strip():
            raise click.BadParameter("Title can't be empty.", param_hint="--title")
        fields["title"] = title.strip()
    if color is not None:
        fields["color"] = color
    if size is not None:
        fields["size"] = size
    if goal_hours is not None or remaining_hours is not None:
        if timer.type is not TimerType.GOAL:
            raise click.UsageError("Only goal timers have a target.")
        # Both values are taken as typed; changing the goal does not move the time left.
        total = _positive_hours(goal_hours, "--goal") if goal_hours is not None else timer.total_seconds
        remaining = hours_to_seconds(remaining_hours) if remaining_hours is not None else timer.remaining_seconds
        if not 0 <= remaining <= total:
            raise click.BadParameter(
                f"Time left must be between 0 and the goal ({format_duration(total)}).", param_hint="--remaining"
            )
        if goal_hours is not None:
            fields["total_seconds"] = total
        if remaining_hours is not None:
            fields["remaining_seconds"] = remaining
    if not fields:
        raise click.UsageError("Nothing to change.")

    store.update_timer(timer.id, **fields)
    click.echo(describe(store.get(timer.id)))


@cli.command()
@click.argument("timer_ref", metavar="TIMER")
@click.pass_context
def delete(ctx: click.Context, timer_ref: str) -> None:
    """Delete a timer for good."""

    store = _app(ctx).store
    timer = resolve_timer(store, timer_ref)
    store.delete_timer(timer.id)
    click.echo(f"Deleted '{timer.title}'.")


@cli.command()
@click.argument("timer_ref", metavar="TIMER")
@click.pass_context
def toggle(ctx: click.Context, timer_ref: str) -> None:
    """Start a timer (pausing any other), or pause it if it's running."""

    store = _app(ctx).store
    timer = resolve_timer(store, timer_ref)
    store.toggle_timer(timer.id)
    click.echo(describe(store.get(timer.id)))


@cli.command("log")
@click.argument("timer_ref", metavar="TIMER")
@click.option("--hours", type=click.IntRange(min=0), default=0)
@click.option("--minutes", type=click.IntRange(min=0), default=0)
@click.pass_context
def log_time(ctx: click.Context, timer_ref: str, hours: int, minutes: int) -> None:
    """Log time spent away from the timer."""

    seconds = hours * 3600 + minutes * 60
    if seconds <= 0:
        raise click.UsageError("Give --hours and/or --minutes adding up to more than zero.")
    store = _app(ctx).store
    timer = resolve_timer(store, timer_ref)
    store.deduct_time(timer.id, seconds)
    click.echo(describe(store.get(timer.id)))


@cli.command()
@click.option("--yes", is_flag=True, help="Don't ask for confirmation.")
@click.pass_context
def archive(ctx: click.Context, yes: bool) -> None:
    """Close out the week: save a summary to history and reset every timer."""

    if not yes:
        click.confirm("Archive this week and reset all timers?", abort=True)
    record = _app(ctx).store.archive_week()
    click.echo(f"Archived week of {record.week_start:%Y-%m-%d}:")
    for line in _history_lines(record):
        click.echo(line)


def _history_lines(record):
    if not record.timers_snapshot:
        yield "  (no timers)"
    for entry in record.timers_snapshot:
        done_h, done_m = hours_minutes(entry.completed_seconds)
        line = f"  {entry.title:<24} {done_h}h {done_m}m"
        if entry.type is TimerType.GOAL:
            line += f" / {entry.total_seconds // 3600}h"
        yield line


@cli.command()
@click.pass_context
def history(ctx: click.Context) -> None:
    """Show archived weeks, most recent first."""

    weeks = _app(ctx).store.history
    if not weeks:
        click.echo("No history yet. Complete a week to see your summary!")
        return
    for record in weeks:
        click.echo(f"Week of {record.week_start:%Y-%m-%d}")
        for line in _history_lines(record):
            click.echo(line)


@cli.command()
@click.option("--seconds", type=click.IntRange(min=1), default=None, help="Stop after this many seconds.")
@click.pass_context
def watch(ctx: click.Context, seconds: int | None) -> None:
    """Keep ticking in the foreground until Ctrl+C."""

    app = _app(ctx)
    qt_app = app.qt_app

    def render() -> None:
        running = app.store.running_timer()
        click.echo(describe(running) if running else "Nothing running.")

    app.ticker.ticked.connect(render)
    app.store.goal_reached.connect(lambda timer: click.echo(f"Goal reached: {timer.title}"))
    previous = signal.signal(signal.SIGINT, lambda *_: qt_app.quit())
    if seconds is not None:
        QTimer.singleShot(seconds * 1000, qt_app.quit)

    render()
    app.start()
    try:
        qt_app.exec()
    finally:
        signal.signal(signal.SIGINT, previous)
        app.ticker.stop()
