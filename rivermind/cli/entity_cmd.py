"""ENTITY commands — birth, awakening, reflection and identity inspection."""

from __future__ import annotations

import click
from rich.panel import Panel

from rivermind.cli.app import async_cmd
from rivermind.cli.context import generator_for, open_store
from rivermind.cli.formatters import build_table, format_timestamp, get_console


@click.group("entity")
def entity_group() -> None:
    """ENTITY, the conversation and reflection agent."""
    pass


@entity_group.command("birth")
def entity_birth() -> None:
    """Create ENTITY with a blank identity."""
    from rivermind.entity import EntityStores

    with open_store() as (config, store):
        born = EntityStores.build(store, config.entity, config.memory).birth()
    click.echo("Born. A blank page awaits." if born else "Already born. Cannot be born again.")


@entity_group.command("awaken")
@async_cmd
async def entity_awaken() -> None:
    """Let a newly born ENTITY write its first identity."""
    from rivermind.main import build_entity

    with open_store() as (config, store):
        entity = build_entity(config, store, generator_for(config))
        text = await entity.reflection.first_awakening()
    if text is None:
        click.echo("Cannot awaken: either not born, already awake, or no words came.")
        return
    get_console().print(Panel(text, title="First identity"))


@entity_group.command("reflect")
@click.argument("session_id")
@async_cmd
async def entity_reflect(session_id: str) -> None:
    """Reflect on one finished conversation."""
    from rivermind.main import build_entity

    with open_store() as (config, store):
        entity = build_entity(config, store, generator_for(config))
        result = await entity.reflection.reflect(session_id)
    if result is None:
        click.echo("Nothing to reflect on (missing, still open, already reflected, or too short).")
        return
    if not result.structured:
        click.echo("Reflection could not be parsed; raw text archived.")
        return
    click.echo(
        f"Memories kept: {len(result.memories_created)}, "
        f"themes: {len(result.themes_added)}, "
        f"identity changed: {'yes' if result.identity_changed else 'no'}"
    )


@entity_group.command("daily")
@async_cmd
async def entity_daily() -> None:
    """Run the daily reflection now."""
    from rivermind.main import build_entity

    with open_store() as (config, store):
        entity = build_entity(config, store, generator_for(config))
        result = await entity.reflection.daily_reflection()
    if result is None:
        click.echo("No daily reflection (no identity yet, or no words came).")
        return
    get_console().print(Panel(result.raw, title="Daily reflection"))
    if result.identity_changed:
        click.echo(f"Identity updated to v{result.identity_version}.")


@entity_group.command("speak")
@async_cmd
async def entity_speak() -> None:
    """Say one thing on the Wire."""
    from rivermind.main import build_entity

    with open_store() as (config, store):
        entity = build_entity(config, store, generator_for(config))
        message = await entity.voice.speak_to_wire(entity.publisher)
    click.echo(message if message else "ENTITY has nothing to say yet.")


@entity_group.command("identity")
@click.option("--history", "history_limit", default=5, help="Revisions to list")
@click.pass_context
def entity_identity(ctx: click.Context, history_limit: int) -> None:
    """Show the current identity and its recent revisions."""
    from rivermind.entity import IdentityStore

    console = get_console(no_color=ctx.obj.get("no_color", False))
    with open_store() as (config, store):
        identities = IdentityStore(store, config.entity.name)
        identity = identities.get()
        history = identities.history(history_limit)

    if identity is None:
        console.print("ENTITY has not been born. Run: rivermind entity birth")
        return
    body = identity.content if not identity.blank else "(blank)"
    console.print(Panel(body, title=f"Identity v{identity.version}"))
    if history:
        rows = [[h.version, format_timestamp(h.timestamp), h.reason] for h in history]
        console.print(build_table("History", ["Version", "When", "Reason"], rows))
