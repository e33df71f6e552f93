"""RIVER commands — wake once, run the daemon, inspect and nudge state."""

from __future__ import annotations

import time

import click

from rivermind.cli.app import async_cmd
from rivermind.cli.context import generator_for, open_store
from rivermind.cli.formatters import build_table, format_duration, format_timestamp, get_console


@click.group("river")
def river_group() -> None:
    """RIVER, the wake-cycle agent."""
    pass


@river_group.command("beat")
@click.pass_context
@async_cmd
async def river_beat(ctx: click.Context) -> None:
    """Run one wake cycle and print what happened."""
    from rivermind.main import build_river

    console = get_console(no_color=ctx.obj.get("no_color", False))
    with open_store() as (config, store):
        river = build_river(config, store, generator_for(config))
        report = await river.run()

    if not report.ok:
        console.print(f"[red]Cycle failed during {report.phase.value}:[/red] {report.error}")
        raise SystemExit(1)

    action = report.action.kind.value if report.action else "none"
    channel = report.action.channel.value if report.action and report.action.channel else ""
    console.print(f"[bold]Action:[/bold] {action} {channel}".rstrip())
    console.print(f"[bold]Spoke:[/bold] {'yes' if report.spoke else 'no'}")
    console.print(f"[bold]Memory:[/bold] {report.summary}")
    if report.state is not None:
        console.print(
            f"[bold]Now:[/bold] {report.state.mood.value}, energy {report.state.energy:.2f}"
        )


@river_group.command("run")
@click.option("--river-only", is_flag=True, help="Do not schedule ENTITY's jobs")
@async_cmd
async def river_run(river_only: bool) -> None:
    """Run the scheduler in the foreground until interrupted."""
    from rivermind.main import run_daemon

    await run_daemon(with_entity=not river_only)


@river_group.command("status")
@click.option("--journal", "journal_limit", default=0, help="Show the last N journal entries")
@click.pass_context
def river_status(ctx: click.Context, journal_limit: int) -> None:
    """Show RIVER's current state."""
    from rivermind.memory import AspirationStore
    from rivermind.state import StateRepository
    from rivermind.storage.base import namespaced

    console = get_console(no_color=ctx.obj.get("no_color", False))
    with open_store() as (config, store):
        name = config.river.name
        state = StateRepository(store, name).peek()
        if state is None:
            console.print(f"{name} has not been born yet. Run: rivermind river beat")
            return
        aspirations = AspirationStore(store, name).load(config.river.aspiration_limit)
        journal = []
        if journal_limit > 0:
            journal = store.query(
                namespaced(name, "journal"),
                order_by="timestamp",
                descending=True,
                limit=journal_limit,
            )

    now = time.time()
    rows = [
        ["Mood", state.mood.value],
        ["Energy", f"{state.energy:.2f}"],
        ["Focus", state.focus],
        ["Location", state.current_location or "site-wide"],
        ["Last spoke", format_timestamp(state.last_spoke_at)],
        ["Messages (24h)", state.message_count_24h],
        ["Heartbeats", state.heartbeat_count],
        ["Age", format_duration(max(0.0, now - state.birth_timestamp))],
    ]
    console.print(build_table(f"{name} Status", ["Field", "Value"], rows))

    if not aspirations.empty:
        aspiration_rows = [["goal", g] for g in aspirations.goals]
        aspiration_rows += [["wondering", w] for w in aspirations.wonderings]
        console.print(build_table("Aspirations", ["Kind", "Text"], aspiration_rows))

    if journal:
        journal_rows = [
            [format_timestamp(d.get("timestamp")), d.get("mood", ""), d.get("thought", "")]
            for _, d in journal
        ]
        console.print(build_table("Journal", ["When", "Mood", "Thought"], journal_rows))


@river_group.command("reset-quota")
def river_reset_quota() -> None:
    """Reset the daily message counter."""
    from rivermind.state import StateRepository

    with open_store() as (config, store):
        reset = StateRepository(store, config.river.name).reset_daily_count()
    click.echo("Daily message count reset." if reset else "No state to reset yet.")


@river_group.command("goal")
@click.argument("text")
def river_goal(text: str) -> None:
    """Give RIVER a goal to carry."""
    from rivermind.memory import AspirationStore

    with open_store() as (config, store):
        goal_id = AspirationStore(store, config.river.name).add_goal(text)
    click.echo(f"Goal added: {goal_id}")


@river_group.command("wonder")
@click.argument("text")
def river_wonder(text: str) -> None:
    """Give RIVER a question to wonder about."""
    from rivermind.memory import AspirationStore

    with open_store() as (config, store):
        wondering_id = AspirationStore(store, config.river.name).add_wondering(text)
    click.echo(f"Wondering added: {wondering_id}")
