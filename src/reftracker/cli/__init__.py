"""reftracker CLI -- terminal interface for reference trackers.

This module is NEVER imported from reftracker/__init__.py.
It is only loaded via the ``reftracker`` entry point defined in pyproject.toml.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Callable, TypeVar

try:
    import click
except ImportError:
    raise ImportError(
        "CLI dependencies not installed. Install with: pip install reftracker[cli]"
    ) from None

from reftracker.cli.formatting import format_error, get_console
from reftracker.exceptions import ConflictError, RetryExhaustedError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from rich.console import Console

    from reftracker.storage.sql import SqlObjectStore

T = TypeVar("T")

EXIT_ERROR = 1
EXIT_CONFLICT = 3


@click.group()
@click.option(
    "--db",
    default=".reftracker.db",
    envvar="REFTRACKER_DB",
    help="Path to object store database.",
)
@click.option(
    "--url",
    default=None,
    envvar="REFTRACKER_DB_URL",
    help="SQLAlchemy database URL (overrides --db).",
)
@click.option("-v", "--verbose", count=True, help="-v for progress, -vv for debug detail.")
@click.pass_context
def cli(ctx: click.Context, db: str, url: str | None, verbose: int) -> None:
    """reftracker: key-based reference counting on a shared object store."""
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db
    ctx.obj["db_url"] = url
    _configure_logging(verbose)


def _configure_logging(verbose: int) -> None:
    """Route reftracker logs to stderr through Rich."""
    if verbose <= 0:
        return
    from rich.console import Console
    from rich.logging import RichHandler

    level = logging.INFO if verbose == 1 else logging.DEBUG
    handler = RichHandler(console=Console(stderr=True), show_path=False)
    pkg_logger = logging.getLogger("reftracker")
    pkg_logger.handlers = [handler]
    pkg_logger.setLevel(level)


def _get_store(ctx: click.Context) -> SqlObjectStore:
    """Open the object store selected by the group options."""
    from reftracker.storage.sql import SqlObjectStore

    return SqlObjectStore.open(ctx.obj["db_path"], url=ctx.obj["db_url"])


@contextmanager
def _store_session(ctx: click.Context) -> Iterator[tuple[SqlObjectStore, Console]]:
    """Open a store, yield (store, console), and map failures to exit codes.

    Conflicts (including exhausted retries) exit with status 3, every other
    error with status 1.
    """
    console = get_console()
    try:
        store = _get_store(ctx)
        try:
            yield store, console
        finally:
            store.close()
    except SystemExit:
        raise
    except (ConflictError, RetryExhaustedError) as e:
        format_error(str(e), console)
        raise SystemExit(EXIT_CONFLICT) from None
    except Exception as e:
        format_error(str(e), console)
        raise SystemExit(EXIT_ERROR) from None


def parse_keys(value: str) -> list[str]:
    """Split a comma-separated key list, rejecting empty entries."""
    keys = [part.strip() for part in value.split(",")]
    if any(not key for key in keys):
        raise click.BadParameter(
            "keys may not be empty", param_hint="'-k' / '--keys'"
        )
    return keys


def run_with_retries(operation: Callable[[], T], retries: int) -> T:
    """Run *operation*, retrying conflicts up to *retries* extra times."""
    if retries <= 0:
        return operation()
    from reftracker.retry import retry_on_conflict

    return retry_on_conflict(operation, max_attempts=retries + 1).value


def main() -> None:
    """Console script entry point."""
    cli(obj={})


# Register subcommands after cli group is defined
from reftracker.cli.commands.add import add  # noqa: E402
from reftracker.cli.commands.remove import remove  # noqa: E402
from reftracker.cli.commands.stat import stat  # noqa: E402
from reftracker.cli.commands.ls import ls  # noqa: E402
from reftracker.cli.commands.pool import pool  # noqa: E402

cli.add_command(add)
cli.add_command(remove)
cli.add_command(remove, name="rem")
cli.add_command(stat)
cli.add_command(ls)
cli.add_command(pool)
