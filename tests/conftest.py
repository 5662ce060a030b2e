"""Shared test fixtures for reftracker.

Provides in-memory SQL engine, both object store backends, an open pool,
and a pool wrapper that injects a concurrent writer between steps.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from reftracker.models.ops import ReadOp, ReadResult, VersionToken, WriteOp
from reftracker.storage.engine import create_store_engine, init_db
from reftracker.storage.memory import MemoryObjectStore
from reftracker.storage.sql import SqlObjectStore
from reftracker.storage.store import Pool

POOL = "test-pool"


@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables created."""
    eng = create_store_engine(":memory:")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def sql_store(engine) -> SqlObjectStore:
    store = SqlObjectStore(engine)
    store.create_pool(POOL)
    return store


@pytest.fixture
def memory_store() -> MemoryObjectStore:
    return MemoryObjectStore(pools=[POOL])


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Each test using this fixture runs against both store backends."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def pool(store):
    with store.open_pool(POOL) as p:
        yield p


@pytest.fixture
def file_store(tmp_path):
    """File-backed SQLite store, safe to share between threads."""
    store = SqlObjectStore.open(str(tmp_path / "objects.db"))
    store.create_pool(POOL)
    yield store
    store.close()


# ------------------------------------------------------------------
# Shared test helpers
# ------------------------------------------------------------------


class RacingPool(Pool):
    """Pool wrapper that runs *action* once, right after a chosen step.

    ``after="get_xattr"`` fires between version resolution and the read,
    ``after="read"`` fires between the read and the conditional write.
    *action* should use the wrapped pool directly, acting as a second
    writer that commits in between.
    """

    def __init__(self, inner: Pool, action: Callable[[], object], *, after: str = "read") -> None:
        self._inner = inner
        self._action: Callable[[], object] | None = action
        self._after = after
        self.fired = False

    def _maybe_fire(self, step: str) -> None:
        if step == self._after and self._action is not None:
            action, self._action = self._action, None
            action()
            self.fired = True

    @property
    def name(self) -> str:
        return self._inner.name

    def get_xattr(self, oid: str, key: str) -> bytes:
        try:
            return self._inner.get_xattr(oid, key)
        finally:
            self._maybe_fire("get_xattr")

    def read(self, oid: str, op: ReadOp) -> ReadResult:
        result = self._inner.read(oid, op)
        self._maybe_fire("read")
        return result

    def write(self, oid: str, op: WriteOp) -> VersionToken | None:
        return self._inner.write(oid, op)

    def list_objects(self) -> list[str]:
        return self._inner.list_objects()
