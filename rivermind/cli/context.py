"""Shared helpers for opening the configured store from a command."""

from __future__ import annotations

import contextlib
from typing import Iterator

import click

from rivermind.config import RivermindConfig
from rivermind.errors import RivermindError
from rivermind.storage.base import DocumentStore


@contextlib.contextmanager
def open_store() -> Iterator[tuple[RivermindConfig, DocumentStore]]:
    """Yield the config and an initialized store, closing the store after."""
    from rivermind.main import build_store

    config = RivermindConfig()
    try:
        store = build_store(config)
    except RivermindError as e:
        raise click.ClickException(str(e)) from e
    try:
        yield config, store
    finally:
        store.close()


def generator_for(config: RivermindConfig):
    from rivermind.main import build_generator

    try:
        return build_generator(config)
    except RivermindError as e:
        raise click.ClickException(str(e)) from e
