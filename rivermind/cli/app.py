"""CLI application — Click-based command hierarchy for rivermind.

The main CLI group and global flags. Subcommand modules register
themselves by importing and adding to the group.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any

import click


def async_cmd(func):
    """Decorator to run an async Click command via asyncio.run()."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        return asyncio.run(func(*args, **kwargs))

    return wrapper


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.option("--no-color", is_flag=True, help="Disable ANSI colors")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, no_color: bool) -> None:
    """rivermind - RIVER and ENTITY, two agents that live on a site."""
    from rivermind.main import configure_logging

    configure_logging(logging.DEBUG if verbose else logging.INFO)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["no_color"] = no_color


# ---------------------------------------------------------------------------
# Register subcommand modules
# ---------------------------------------------------------------------------

def _register_subcommands() -> None:
    """Import and register all subcommand groups."""
    from rivermind.cli.entity_cmd import entity_group
    from rivermind.cli.memory_cmd import memory_group
    from rivermind.cli.river_cmd import river_group

    cli.add_command(river_group)
    cli.add_command(entity_group)
    cli.add_command(memory_group)


_register_subcommands()
