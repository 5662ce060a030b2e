"""reftracker ls -- list tracker objects in a pool."""

from __future__ import annotations

import click

from reftracker.cli.formatting import format_names


@click.command()
@click.option("-p", "--pool", required=True, envvar="REFTRACKER_POOL", help="Pool to list.")
@click.pass_context
def ls(ctx: click.Context, pool: str) -> None:
    """List tracker objects in a pool."""
    from reftracker.cli import _store_session

    with _store_session(ctx) as (store, console):
        with store.open_pool(pool) as io:
            format_names(io.list_objects(), console, empty="No trackers.")
