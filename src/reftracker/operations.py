"""Public reference tracker operations.

rt_add and rt_remove are the two externally visible entry points. Each
call opens the pool, resolves the tracker's schema version, and performs
exactly one conditional write (or none, for idempotent no-ops). Nothing
is cached between calls and nothing is retried: a ConflictError means
another writer won, and the caller decides whether to try again.

The ``tracker_*`` variants take an already-open Pool and are what
ReferenceTracker uses.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from reftracker.engine.layout import normalize_keys
from reftracker.engine.resolver import current_layout, get_layout, resolve_version
from reftracker.exceptions import TrackerNotFoundError
from reftracker.models.results import AddResult, RemoveResult, TrackerInfo

if TYPE_CHECKING:
    from reftracker.storage.store import ObjectStore, Pool

logger = logging.getLogger(__name__)


def tracker_add(pool: Pool, name: str, keys: Iterable[str]) -> AddResult:
    """Add *keys* to tracker *name*, creating it if absent."""
    key_list = normalize_keys(keys)
    logger.info("Adding %d keys to %s/%s", len(key_list), pool.name, name)

    version = resolve_version(pool, name)
    if version is None:
        current_layout().create(pool, name, key_list)
        return AddResult(created=True, added=tuple(key_list))

    added = get_layout(pool, name, version).add(pool, name, key_list)
    return AddResult(created=False, added=added)


def tracker_remove(pool: Pool, name: str, keys: Iterable[str]) -> RemoveResult:
    """Remove *keys* from tracker *name*; an absent tracker counts as deleted."""
    key_list = normalize_keys(keys)
    logger.info("Removing %d keys from %s/%s", len(key_list), pool.name, name)

    version = resolve_version(pool, name)
    if version is None:
        logger.info("Tracker %s/%s not found, assuming already deleted", pool.name, name)
        return RemoveResult(deleted=True)

    return get_layout(pool, name, version).remove(pool, name, key_list)


def tracker_stat(pool: Pool, name: str) -> TrackerInfo:
    """Read the full state of tracker *name*.

    Raises:
        TrackerNotFoundError: If the tracker does not exist.
    """
    version = resolve_version(pool, name)
    if version is None:
        raise TrackerNotFoundError(pool.name, name)
    return get_layout(pool, name, version).stat(pool, name)


def rt_add(store: ObjectStore, pool: str, name: str, keys: Iterable[str]) -> AddResult:
    """Atomically add reference *keys* to tracker *name* in *pool*.

    Keys already tracked are skipped; if every key is already tracked the
    call is a successful no-op.

    Args:
        store: Object store handle.
        pool: Pool holding the tracker object.
        name: Tracker object name.
        keys: Reference keys to add.

    Returns:
        AddResult whose ``created`` is True if this call created the tracker.

    Raises:
        ConflictError: If another writer modified the tracker concurrently.
        UnsupportedVersionError: If the tracker's schema version is unknown.
        StoreError: For any other store failure (e.g. PoolNotFoundError).
    """
    with store.open_pool(pool) as io:
        return tracker_add(io, name, keys)


def rt_remove(store: ObjectStore, pool: str, name: str, keys: Iterable[str]) -> RemoveResult:
    """Atomically remove reference *keys* from tracker *name* in *pool*.

    Keys not tracked are assumed already removed. When the last key goes,
    the tracker object is deleted in the same transaction.

    Returns:
        RemoveResult whose ``deleted`` is True if the tracker no longer
        exists after this call.

    Raises:
        ConflictError: If another writer modified the tracker concurrently.
        UnsupportedVersionError: If the tracker's schema version is unknown.
        StoreError: For any other store failure.
    """
    with store.open_pool(pool) as io:
        return tracker_remove(io, name, keys)


def rt_stat(store: ObjectStore, pool: str, name: str) -> TrackerInfo:
    """Read the full state of tracker *name* in *pool*."""
    with store.open_pool(pool) as io:
        return tracker_stat(io, name)
