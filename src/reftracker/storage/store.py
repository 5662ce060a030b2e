"""Abstract object store interfaces.

Defines the contract the tracker core needs from a transactional object
store: per-object extended attributes, an omap of keys per object, and
atomic read/write transactions guarded by version preconditions. No
SQLAlchemy imports here -- pure abstract contracts.

Concrete implementations are in memory.py and sql.py.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from reftracker.exceptions import PoolExistsError

if TYPE_CHECKING:
    from reftracker.models.ops import ReadOp, ReadResult, VersionToken, WriteOp

logger = logging.getLogger(__name__)


class Pool(ABC):
    """I/O context for one pool (namespace) of objects."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Pool name."""
        ...

    @abstractmethod
    def get_xattr(self, oid: str, key: str) -> bytes:
        """Read a single extended attribute.

        Raises:
            ObjectNotFoundError: If the object does not exist.
            XattrNotFoundError: If the object exists without the attribute.
        """
        ...

    @abstractmethod
    def read(self, oid: str, op: ReadOp) -> ReadResult:
        """Execute an atomic read transaction.

        Raises:
            ObjectNotFoundError: If the object does not exist.
            VersionMismatchError: If ``op.assert_version`` is stale.
        """
        ...

    @abstractmethod
    def write(self, oid: str, op: WriteOp) -> VersionToken | None:
        """Execute an atomic write transaction.

        Returns the object's new version, or None if the op removed it.

        Raises:
            ObjectExistsError: If ``op.create_exclusive`` and the object exists.
            ObjectNotFoundError: If a non-create write targets a missing object.
            VersionMismatchError: If ``op.assert_version`` is stale.
        """
        ...

    @abstractmethod
    def list_objects(self) -> list[str]:
        """List object names in this pool, sorted."""
        ...

    def close(self) -> None:
        """Release the I/O context. Default is a no-op."""

    def __enter__(self) -> Pool:
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()


class ObjectStore(ABC):
    """Handle to an object store cluster."""

    @abstractmethod
    def create_pool(self, name: str) -> None:
        """Create a pool. Raises PoolExistsError if it already exists."""
        ...

    @abstractmethod
    def delete_pool(self, name: str) -> None:
        """Delete a pool and every object in it.

        Raises PoolNotFoundError if the pool does not exist.
        """
        ...

    @abstractmethod
    def list_pools(self) -> list[str]:
        """List pool names, sorted."""
        ...

    @abstractmethod
    def open_pool(self, name: str) -> Pool:
        """Open an I/O context. Raises PoolNotFoundError for unknown pools."""
        ...

    def ensure_pool(self, name: str) -> None:
        """Create *name* unless it already exists."""
        if name in self.list_pools():
            return
        try:
            self.create_pool(name)
        except PoolExistsError:
            logger.debug("Pool %s created concurrently", name)

    def close(self) -> None:
        """Release store resources. Default is a no-op."""

    def __enter__(self) -> ObjectStore:
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()
