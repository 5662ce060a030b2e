"""ReferenceTracker -- client facade over one pool of tracker objects.

Holds an injected ObjectStore plus an open Pool and exposes add/remove/stat.
The facade keeps no tracker state between calls; every call is a fresh
interaction with the store, so any number of ReferenceTracker instances,
in any number of processes, can share the same trackers.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import TypeVar

from reftracker.engine.layout import normalize_keys
from reftracker.engine.resolver import resolve_version
from reftracker.models.config import TrackerConfig
from reftracker.models.results import AddResult, RemoveResult, TrackerInfo
from reftracker.operations import tracker_add, tracker_remove, tracker_stat
from reftracker.retry import retry_on_conflict
from reftracker.storage.sql import SqlObjectStore
from reftracker.storage.store import ObjectStore

T = TypeVar("T")

logger = logging.getLogger(__name__)


class ReferenceTracker:
    """Key-based reference counting against a transactional object store.

    Usage::

        with ReferenceTracker.open("volumes", path="rt.db", create_pool=True) as rt:
            rt.add("snap-1", ["vol-a", "vol-b"])
            rt.remove("snap-1", ["vol-a"], retry=True)
    """

    def __init__(
        self,
        store: ObjectStore,
        pool: str,
        *,
        config: TrackerConfig | None = None,
        owns_store: bool = False,
    ) -> None:
        """Bind a tracker client to *pool* on *store*.

        Args:
            store: Object store handle. Not closed unless *owns_store*.
            pool: Pool holding the tracker objects.
            config: Retry limits. Defaults created if *None*.
            owns_store: Close *store* when this tracker is closed.

        Raises:
            PoolNotFoundError: If *pool* does not exist.
        """
        self._store = store
        self._config = config or TrackerConfig(pool=pool)
        self._owns_store = owns_store
        self._pool = store.open_pool(pool)
        self._closed = False

    @classmethod
    def open(
        cls,
        pool: str | None = None,
        *,
        path: str | None = None,
        url: str | None = None,
        config: TrackerConfig | None = None,
        create_pool: bool | None = None,
    ) -> ReferenceTracker:
        """Open a tracker client over a SQL object store.

        Explicit arguments override the matching *config* fields.

        Args:
            pool: Pool name. Required here or in *config*.
            path: SQLite path.  ``":memory:"`` for in-memory.
            url: Full SQLAlchemy URL. Overrides *path*.
            config: Client configuration. Defaults created if *None*.
            create_pool: Create the pool if it does not exist.

        Returns:
            A ready-to-use ``ReferenceTracker`` owning its store.
        """
        config = config or TrackerConfig()
        updates = {
            "pool": pool,
            "db_path": path,
            "db_url": url,
            "create_pool": create_pool,
        }
        config = config.model_copy(
            update={k: v for k, v in updates.items() if v is not None}
        )
        if config.pool is None:
            raise ValueError("A pool name is required (pass pool= or set config.pool)")

        store = SqlObjectStore.open(config.db_path, url=config.db_url)
        try:
            if config.create_pool:
                store.ensure_pool(config.pool)
            return cls(store, config.pool, config=config, owns_store=True)
        except Exception:
            store.close()
            raise

    @property
    def pool(self) -> str:
        return self._pool.name

    @property
    def store(self) -> ObjectStore:
        return self._store

    def _run(self, operation: Callable[[], T], retry: bool) -> T:
        if not retry:
            return operation()
        result = retry_on_conflict(
            operation,
            max_attempts=self._config.max_retries,
            min_wait=self._config.retry_min_wait,
            max_wait=self._config.retry_max_wait,
        )
        if result.attempts > 1:
            logger.info("Succeeded after %d attempts", result.attempts)
        return result.value

    def add(self, name: str, keys: Iterable[str], *, retry: bool = False) -> AddResult:
        """Add reference *keys* to tracker *name*.

        With ``retry=True`` conflicts are retried up to ``max_retries``
        times before RetryExhaustedError is raised.
        """
        key_list = normalize_keys(keys)
        return self._run(lambda: tracker_add(self._pool, name, key_list), retry)

    def remove(self, name: str, keys: Iterable[str], *, retry: bool = False) -> RemoveResult:
        """Remove reference *keys* from tracker *name*."""
        key_list = normalize_keys(keys)
        return self._run(lambda: tracker_remove(self._pool, name, key_list), retry)

    def stat(self, name: str) -> TrackerInfo:
        """Full state of tracker *name*. Raises TrackerNotFoundError if absent."""
        return tracker_stat(self._pool, name)

    def exists(self, name: str) -> bool:
        """True if tracker *name* currently exists."""
        return resolve_version(self._pool, name) is not None

    def names(self) -> list[str]:
        """Names of all objects in the pool."""
        return self._pool.list_objects()

    def close(self) -> None:
        """Close the pool and, if owned, the store."""
        if self._closed:
            return
        self._closed = True
        self._pool.close()
        if self._owns_store:
            self._store.close()

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> ReferenceTracker:
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()

    def __repr__(self) -> str:
        if self._closed:
            return f"ReferenceTracker(pool='{self.pool}', closed=True)"
        return f"ReferenceTracker(pool='{self.pool}')"
