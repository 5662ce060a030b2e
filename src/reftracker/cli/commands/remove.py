"""reftracker remove (alias: rem) -- remove reference keys from a tracker."""

from __future__ import annotations

import click

from reftracker.cli.formatting import format_remove_result


@click.command()
@click.option("-p", "--pool", required=True, envvar="REFTRACKER_POOL", help="Pool holding the tracker.")
@click.option("-k", "--keys", "keys_str", required=True, help="Comma-separated reference keys.")
@click.option(
    "--retries",
    default=0,
    show_default=True,
    type=click.IntRange(min=0),
    help="Retry up to N more times if another writer wins the race.",
)
@click.argument("name")
@click.pass_context
def remove(ctx: click.Context, pool: str, keys_str: str, retries: int, name: str) -> None:
    """Remove reference keys from tracker NAME.

    The tracker is deleted once it holds no references.
    """
    from reftracker.cli import _store_session, parse_keys, run_with_retries
    from reftracker.operations import rt_remove

    keys = parse_keys(keys_str)
    with _store_session(ctx) as (store, console):
        result = run_with_retries(lambda: rt_remove(store, pool, name, keys), retries)
        format_remove_result(name, result, console)
