"""Memory commands — run the fading sweep, list what was let go."""

from __future__ import annotations

import click

from rivermind.cli.context import open_store
from rivermind.cli.formatters import build_table, format_timestamp, get_console


@click.group("memory")
def memory_group() -> None:
    """Inspect and maintain agent memories."""
    pass


def _agent_name(config, agent: str) -> str:
    return config.entity.name if agent == "entity" else config.river.name


@memory_group.command("sweep")
@click.option(
    "--agent",
    type=click.Choice(["river", "entity"]),
    default="river",
    show_default=True,
    help="Whose memories to sweep",
)
def memory_sweep(agent: str) -> None:
    """Forget every memory that has faded (old, faint, never revisited)."""
    from rivermind.memory import MemoryStore

    with open_store() as (config, store):
        forgotten = MemoryStore(store, _agent_name(config, agent), config.memory).sweep()
    click.echo(f"Forgot {len(forgotten)} faded memories.")


@memory_group.command("forgotten")
@click.option("--agent", type=click.Choice(["river", "entity"]), default="river")
@click.option("--limit", default=20, show_default=True)
@click.pass_context
def memory_forgotten(ctx: click.Context, agent: str, limit: int) -> None:
    """List archived (forgotten) memories."""
    from rivermind.memory import MemoryStore

    with open_store() as (config, store):
        memories = MemoryStore(store, _agent_name(config, agent), config.memory).forgotten(limit)
    rows = [[m.memory_id, f"{m.salience:.2f}", format_timestamp(m.created_at), m.content[:60]] for m in memories]
    get_console(no_color=ctx.obj.get("no_color", False)).print(
        build_table("Forgotten", ["Id", "Salience", "Created", "Content"], rows)
    )
