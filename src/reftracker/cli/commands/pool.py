"""reftracker pool -- manage pools in the object store."""

from __future__ import annotations

import click
from rich.markup import escape

from reftracker.cli.formatting import format_names


@click.group()
def pool() -> None:
    """Create, list and delete pools."""


@pool.command("create")
@click.argument("name")
@click.pass_context
def create(ctx: click.Context, name: str) -> None:
    """Create pool NAME."""
    from reftracker.cli import _store_session

    with _store_session(ctx) as (store, console):
        store.create_pool(name)
        console.print(f"Created pool {escape(name)}.", highlight=False)


@pool.command("ls")
@click.pass_context
def list_pools(ctx: click.Context) -> None:
    """List pools."""
    from reftracker.cli import _store_session

    with _store_session(ctx) as (store, console):
        format_names(store.list_pools(), console, empty="No pools.")


@pool.command("rm")
@click.argument("name")
@click.confirmation_option(prompt="Delete the pool and every tracker in it?")
@click.pass_context
def delete(ctx: click.Context, name: str) -> None:
    """Delete pool NAME and every object in it."""
    from reftracker.cli import _store_session

    with _store_session(ctx) as (store, console):
        store.delete_pool(name)
        console.print(f"Deleted pool {escape(name)}.", highlight=False)
