"""reftracker stat -- show a tracker's state."""

from __future__ import annotations

import click

from reftracker.cli.formatting import format_tracker_info


@click.command()
@click.option("-p", "--pool", required=True, envvar="REFTRACKER_POOL", help="Pool holding the tracker.")
@click.argument("name")
@click.pass_context
def stat(ctx: click.Context, pool: str, name: str) -> None:
    """Show version, refcount and tracked keys of tracker NAME."""
    from reftracker.cli import _store_session
    from reftracker.operations import rt_stat

    with _store_session(ctx) as (store, console):
        info = rt_stat(store, pool, name)
        format_tracker_info(info, console)
