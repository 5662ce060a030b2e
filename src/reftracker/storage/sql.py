"""SQL implementation of the object store interfaces.

All queries use SQLAlchemy 2.0-style statements (select() + session.execute()).
Each ReadOp/WriteOp runs in its own session and transaction. Write
transactions lock the object row before checking preconditions
(``BEGIN IMMEDIATE`` on SQLite, ``SELECT ... FOR UPDATE`` elsewhere), so
a version assertion that passes cannot be invalidated before commit.

An engine on a StaticPool (the in-memory SQLite default) has a single
connection shared by every thread; transactions on such a store are
serialized behind a store-wide lock held until commit.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager, nullcontext
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import Engine, delete, select
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.pool import StaticPool

from reftracker.exceptions import (
    ObjectExistsError,
    ObjectNotFoundError,
    PoolExistsError,
    PoolNotFoundError,
    StoreError,
    VersionMismatchError,
    XattrNotFoundError,
)
from reftracker.models.ops import ReadOp, ReadResult, VersionToken, WriteOp
from reftracker.storage.engine import create_session_factory, create_store_engine, init_db
from reftracker.storage.schema import ObjectRow, OmapRow, PoolRow, XattrRow
from reftracker.storage.store import ObjectStore, Pool

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SqlPool(Pool):
    """Pool view over a SqlObjectStore."""

    def __init__(self, store: SqlObjectStore, name: str) -> None:
        self._store = store
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def _get_row(self, session: Session, oid: str, *, lock: bool = False) -> ObjectRow:
        stmt = select(ObjectRow).where(
            ObjectRow.pool == self._name, ObjectRow.name == oid
        )
        if lock:
            stmt = stmt.with_for_update()
        row = session.execute(stmt).scalar_one_or_none()
        if row is None:
            raise ObjectNotFoundError(self._name, oid)
        return row

    def _check_version(self, oid: str, row: ObjectRow, token: VersionToken | None) -> None:
        if token is not None and row.version != token.value:
            raise VersionMismatchError(self._name, oid, token.value, row.version)

    def get_xattr(self, oid: str, key: str) -> bytes:
        with self._store._transaction(write=False) as session:
            self._get_row(session, oid)
            value = session.execute(
                select(XattrRow.value).where(
                    XattrRow.pool == self._name,
                    XattrRow.name == oid,
                    XattrRow.key == key,
                )
            ).scalar_one_or_none()
            if value is None:
                raise XattrNotFoundError(self._name, oid, key)
            return value

    def read(self, oid: str, op: ReadOp) -> ReadResult:
        with self._store._transaction(write=False) as session:
            row = self._get_row(session, oid)
            self._check_version(oid, row, op.assert_version)

            omap: dict[str, bytes] = {}
            if op.omap_all or op.omap_keys:
                stmt = select(OmapRow.key, OmapRow.value).where(
                    OmapRow.pool == self._name, OmapRow.name == oid
                )
                if not op.omap_all:
                    stmt = stmt.where(OmapRow.key.in_(sorted(op.omap_keys)))
                omap = {key: value for key, value in session.execute(stmt)}

            return ReadResult(
                data=bytes(row.data[: op.read_length]),
                omap=omap,
                version=VersionToken(row.version),
            )

    def write(self, oid: str, op: WriteOp) -> VersionToken | None:
        now = _utcnow()
        with self._store._transaction(write=True) as session:
            if op.create_exclusive:
                row = self._create_row(session, oid, now)
            else:
                row = self._get_row(session, oid, lock=True)
                self._check_version(oid, row, op.assert_version)
                row.version += 1
                row.updated_at = now

            if op.remove:
                self._delete_children(session, oid)
                session.delete(row)
                session.flush()
                return None

            if op.write_full is not None:
                row.data = op.write_full
            for key, value in op.setxattrs.items():
                session.merge(XattrRow(pool=self._name, name=oid, key=key, value=value))
            for key, value in op.omap_set.items():
                session.merge(OmapRow(pool=self._name, name=oid, key=key, value=value))
            if op.omap_rm_keys:
                session.execute(
                    delete(OmapRow).where(
                        OmapRow.pool == self._name,
                        OmapRow.name == oid,
                        OmapRow.key.in_(sorted(op.omap_rm_keys)),
                    )
                )
            session.flush()
            return VersionToken(row.version)

    def _create_row(self, session: Session, oid: str, now: datetime) -> ObjectRow:
        if session.get(PoolRow, self._name) is None:
            raise PoolNotFoundError(self._name)
        existing = session.execute(
            select(ObjectRow.version).where(
                ObjectRow.pool == self._name, ObjectRow.name == oid
            )
        ).first()
        if existing is not None:
            raise ObjectExistsError(self._name, oid)

        row = ObjectRow(
            pool=self._name,
            name=oid,
            version=1,
            data=b"",
            created_at=now,
            updated_at=now,
        )
        session.add(row)
        try:
            session.flush()
        except IntegrityError:
            # Lost an insert race on a backend without IMMEDIATE transactions
            raise ObjectExistsError(self._name, oid) from None
        return row

    def _delete_children(self, session: Session, oid: str) -> None:
        session.execute(
            delete(OmapRow).where(OmapRow.pool == self._name, OmapRow.name == oid)
        )
        session.execute(
            delete(XattrRow).where(XattrRow.pool == self._name, XattrRow.name == oid)
        )

    def list_objects(self) -> list[str]:
        with self._store._transaction(write=False) as session:
            stmt = (
                select(ObjectRow.name)
                .where(ObjectRow.pool == self._name)
                .order_by(ObjectRow.name)
            )
            return list(session.execute(stmt).scalars().all())


class SqlObjectStore(ObjectStore):
    """Object store persisted in a SQL database.

    Takes a pre-built Engine whose tables already exist (see
    :func:`init_db`), or use :meth:`open` to create both.

    Usage::

        with SqlObjectStore.open("objects.db") as store:
            store.ensure_pool("volumes")
            with store.open_pool("volumes") as pool:
                pool.list_objects()
    """

    def __init__(self, engine: Engine, *, owns_engine: bool = False) -> None:
        self._engine = engine
        self._owns_engine = owns_engine
        self._read_sessions = create_session_factory(engine)
        self._write_sessions = create_session_factory(
            engine.execution_options(sqlite_immediate=True)
        )
        # One shared DBAPI connection: only one transaction at a time
        self._lock = threading.RLock() if isinstance(engine.pool, StaticPool) else None
        self._closed = False

    @classmethod
    def open(cls, path: str = ":memory:", *, url: str | None = None) -> SqlObjectStore:
        """Create an engine, initialize tables, and return an owning store.

        Args:
            path: SQLite path.  ``":memory:"`` for in-memory (default).
            url: Full SQLAlchemy URL. Overrides *path*.
        """
        engine = create_store_engine(path, url=url)
        init_db(engine)
        return cls(engine, owns_engine=True)

    @property
    def engine(self) -> Engine:
        return self._engine

    @contextmanager
    def _transaction(self, *, write: bool) -> Iterator[Session]:
        """Run one store transaction; database failures become StoreError."""
        factory = self._write_sessions if write else self._read_sessions
        guard = self._lock if self._lock is not None else nullcontext()
        try:
            with guard, factory() as session, session.begin():
                yield session
        except DBAPIError as exc:
            logger.warning("Object store transaction failed: %s", exc)
            raise StoreError(f"Object store failure: {exc}") from exc

    def create_pool(self, name: str) -> None:
        try:
            with self._transaction(write=True) as session:
                if session.get(PoolRow, name) is not None:
                    raise PoolExistsError(name)
                session.add(PoolRow(name=name, created_at=_utcnow()))
                session.flush()
        except StoreError as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise PoolExistsError(name) from None
            raise
        logger.info("Created pool %s", name)

    def delete_pool(self, name: str) -> None:
        with self._transaction(write=True) as session:
            pool_row = session.get(PoolRow, name)
            if pool_row is None:
                raise PoolNotFoundError(name)
            session.execute(delete(OmapRow).where(OmapRow.pool == name))
            session.execute(delete(XattrRow).where(XattrRow.pool == name))
            session.execute(delete(ObjectRow).where(ObjectRow.pool == name))
            session.delete(pool_row)
        logger.info("Deleted pool %s", name)

    def list_pools(self) -> list[str]:
        with self._transaction(write=False) as session:
            stmt = select(PoolRow.name).order_by(PoolRow.name)
            return list(session.execute(stmt).scalars().all())

    def open_pool(self, name: str) -> SqlPool:
        with self._transaction(write=False) as session:
            if session.get(PoolRow, name) is None:
                raise PoolNotFoundError(name)
        return SqlPool(self, name)

    def close(self) -> None:
        """Dispose the engine if this store created it."""
        if self._closed:
            return
        self._closed = True
        if self._owns_engine:
            self._engine.dispose()

    def __repr__(self) -> str:
        return f"SqlObjectStore(url='{self._engine.url}')"
