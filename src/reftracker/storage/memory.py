"""In-memory implementation of the object store interfaces.

Every transaction runs under one store-wide lock, so a MemoryObjectStore
can be shared by many threads and still gives each ReadOp/WriteOp the
all-or-nothing behavior the tracker relies on. Preconditions are checked
before any mutation, and mutations themselves cannot fail.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from reftracker.exceptions import (
    ObjectExistsError,
    ObjectNotFoundError,
    PoolExistsError,
    PoolNotFoundError,
    VersionMismatchError,
    XattrNotFoundError,
)
from reftracker.models.ops import ReadOp, ReadResult, VersionToken, WriteOp
from reftracker.storage.store import ObjectStore, Pool


@dataclass
class _StoredObject:
    version: int = 0
    data: bytes = b""
    xattrs: dict[str, bytes] = field(default_factory=dict)
    omap: dict[str, bytes] = field(default_factory=dict)


class MemoryPool(Pool):
    """Pool view over a MemoryObjectStore."""

    def __init__(self, store: MemoryObjectStore, name: str) -> None:
        self._store = store
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def _objects(self) -> dict[str, _StoredObject]:
        try:
            return self._store._pools[self._name]
        except KeyError:
            raise PoolNotFoundError(self._name) from None

    def _get(self, oid: str) -> _StoredObject:
        obj = self._objects().get(oid)
        if obj is None:
            raise ObjectNotFoundError(self._name, oid)
        return obj

    def _check_version(self, oid: str, obj: _StoredObject, token: VersionToken | None) -> None:
        if token is not None and obj.version != token.value:
            raise VersionMismatchError(self._name, oid, token.value, obj.version)

    def get_xattr(self, oid: str, key: str) -> bytes:
        with self._store._lock:
            obj = self._get(oid)
            try:
                return obj.xattrs[key]
            except KeyError:
                raise XattrNotFoundError(self._name, oid, key) from None

    def read(self, oid: str, op: ReadOp) -> ReadResult:
        with self._store._lock:
            obj = self._get(oid)
            self._check_version(oid, obj, op.assert_version)
            if op.omap_all:
                omap = dict(obj.omap)
            else:
                omap = {k: obj.omap[k] for k in op.omap_keys if k in obj.omap}
            return ReadResult(
                data=obj.data[: op.read_length],
                omap=omap,
                version=VersionToken(obj.version),
            )

    def write(self, oid: str, op: WriteOp) -> VersionToken | None:
        with self._store._lock:
            objects = self._objects()
            obj = objects.get(oid)

            if op.create_exclusive:
                if obj is not None:
                    raise ObjectExistsError(self._name, oid)
                obj = _StoredObject()
            elif obj is None:
                raise ObjectNotFoundError(self._name, oid)
            else:
                self._check_version(oid, obj, op.assert_version)

            if op.remove:
                objects.pop(oid, None)
                return None

            obj.xattrs.update(op.setxattrs)
            if op.write_full is not None:
                obj.data = op.write_full
            obj.omap.update(op.omap_set)
            for key in op.omap_rm_keys:
                obj.omap.pop(key, None)
            obj.version += 1
            objects[oid] = obj
            return VersionToken(obj.version)

    def list_objects(self) -> list[str]:
        with self._store._lock:
            return sorted(self._objects())


class MemoryObjectStore(ObjectStore):
    """Thread-safe, process-local object store."""

    def __init__(self, pools: list[str] | tuple[str, ...] = ()) -> None:
        self._lock = threading.RLock()
        self._pools: dict[str, dict[str, _StoredObject]] = {}
        for name in pools:
            self.create_pool(name)

    def create_pool(self, name: str) -> None:
        with self._lock:
            if name in self._pools:
                raise PoolExistsError(name)
            self._pools[name] = {}

    def delete_pool(self, name: str) -> None:
        with self._lock:
            if self._pools.pop(name, None) is None:
                raise PoolNotFoundError(name)

    def list_pools(self) -> list[str]:
        with self._lock:
            return sorted(self._pools)

    def open_pool(self, name: str) -> MemoryPool:
        with self._lock:
            if name not in self._pools:
                raise PoolNotFoundError(name)
        return MemoryPool(self, name)
