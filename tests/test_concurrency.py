"""Concurrent writers against one tracker.

Threads hammer the same tracker object through retry_on_conflict. Losing
writers see ConflictError and retry; afterwards the tracker must hold
exactly the union of what was added minus what was removed, and never
an underflowed refcount.
"""

from __future__ import annotations

import concurrent.futures

import pytest

from reftracker import (
    ReferenceTracker,
    TrackerConfig,
    TrackerNotFoundError,
    retry_on_conflict,
    rt_add,
    rt_remove,
    rt_stat,
)
from reftracker.engine.resolver import resolve_version
from tests.conftest import POOL

RETRY = {"max_attempts": 500, "min_wait": 0.0005, "max_wait": 0.01}


def _run_threads(fn, args_list, max_workers):
    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(fn, *args) for args in args_list]
        return [f.result(timeout=60) for f in futures]


@pytest.fixture(params=["memory", "sql", "file"])
def shared_store(request):
    """Stores safe to share between threads, including in-memory SQLite."""
    return request.getfixturevalue(f"{request.param}_store")


class TestConcurrentWriters:
    def test_disjoint_adds_then_removes(self, shared_store):
        n_workers, keys_per_worker = 4, 5
        worker_keys = [
            [f"w{w}-k{i}" for i in range(keys_per_worker)] for w in range(n_workers)
        ]

        def add_all(keys):
            attempts = 0
            for key in keys:
                attempts += retry_on_conflict(
                    lambda: rt_add(shared_store, POOL, "shared", [key]), **RETRY
                ).attempts
            return attempts

        def remove_all(keys):
            for key in keys:
                retry_on_conflict(
                    lambda: rt_remove(shared_store, POOL, "shared", [key]), **RETRY
                )

        _run_threads(add_all, [(k,) for k in worker_keys], n_workers)

        info = rt_stat(shared_store, POOL, "shared")
        expected = {key for keys in worker_keys for key in keys}
        assert info.keys == expected
        assert info.refcount == len(expected)

        _run_threads(remove_all, [(k,) for k in worker_keys], n_workers)

        with shared_store.open_pool(POOL) as pool:
            assert resolve_version(pool, "shared") is None

    def test_overlapping_removes_never_underflow(self, shared_store):
        keys = [f"k{i}" for i in range(12)]
        rt_add(shared_store, POOL, "shared", keys)
        # Every key is targeted by two different workers
        batches = [keys[0:6], keys[3:9], keys[6:12], keys[9:12] + keys[0:3]]
        results = []

        def remove_batch(batch):
            for key in batch:
                results.append(
                    retry_on_conflict(
                        lambda: rt_remove(shared_store, POOL, "shared", [key]), **RETRY
                    ).value
                )

        _run_threads(remove_batch, [(b,) for b in batches], len(batches))

        removed = [key for r in results for key in r.removed]
        assert sorted(removed) == sorted(keys)
        # Exactly one call observed the transition to zero
        assert sum(1 for r in results if r.deleted and r.removed) == 1
        with shared_store.open_pool(POOL) as pool:
            assert pool.list_objects() == []

    def test_racing_creators(self, shared_store):
        """Many first-adds of the same tracker: exactly one creates it."""
        n_workers = 6

        def add_one(i):
            return retry_on_conflict(
                lambda: rt_add(shared_store, POOL, "fresh", [f"k{i}"]), **RETRY
            ).value

        results = _run_threads(add_one, [(i,) for i in range(n_workers)], n_workers)

        assert sum(1 for r in results if r.created) == 1
        info = rt_stat(shared_store, POOL, "fresh")
        assert info.refcount == n_workers
        assert info.keys == {f"k{i}" for i in range(n_workers)}


class TestSharedInMemoryTracker:
    """One ReferenceTracker on the default in-memory SQL store, many threads."""

    def test_every_reported_add_is_kept(self):
        config = TrackerConfig(
            pool="p",
            create_pool=True,
            max_retries=RETRY["max_attempts"],
            retry_min_wait=RETRY["min_wait"],
            retry_max_wait=RETRY["max_wait"],
        )
        n_workers, adds_per_worker = 6, 40

        def add_many(worker):
            added = []
            for j in range(adds_per_worker):
                key = f"k{worker}-{j}"
                rt.add("t", [key], retry=True)
                added.append(key)
            return added

        with ReferenceTracker.open(config=config) as rt:
            results = _run_threads(add_many, [(w,) for w in range(n_workers)], n_workers)

            info = rt.stat("t")
            expected = {key for added in results for key in added}
            assert len(expected) == n_workers * adds_per_worker
            assert info.keys == expected
            assert info.refcount == len(info.keys)

    def test_failed_writes_leave_no_trace(self):
        """Conflicting removers on one shared connection never corrupt the count."""
        with ReferenceTracker.open("p", create_pool=True) as rt:
            keys = [f"k{i}" for i in range(30)]
            rt.add("t", keys)

            def remove_some(offset):
                for key in keys[offset::3]:
                    retry_on_conflict(lambda: rt.remove("t", [key]), **RETRY)
                    try:
                        info = rt.stat("t")
                    except TrackerNotFoundError:
                        continue
                    assert info.refcount == len(info.keys)

            _run_threads(remove_some, [(i,) for i in range(3)], 3)
            assert rt.names() == []
