"""Tracker layout interface.

Each on-object schema version is a TrackerLayout: it owns the encoding of
the body and omap for that version and the read/modify/write logic built
on it. Layouts never retry; every lost race surfaces as ConflictError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, ClassVar

from reftracker.exceptions import (
    ConflictError,
    ObjectExistsError,
    ObjectNotFoundError,
    VersionMismatchError,
)

if TYPE_CHECKING:
    from reftracker.models.ops import VersionToken
    from reftracker.models.results import RemoveResult, TrackerInfo, TrackerState
    from reftracker.storage.store import Pool

# Attribute holding the u32 schema version of a tracker object.
VERSION_XATTR = "schema-version"


def normalize_keys(keys: Iterable[str]) -> list[str]:
    """Validate reference keys and drop duplicates, keeping request order.

    Raises:
        TypeError: If *keys* is a bare string or holds non-string items.
        ValueError: If there are no keys or a key is empty.
    """
    if isinstance(keys, (str, bytes)):
        raise TypeError("keys must be an iterable of strings, not a single string")
    result: list[str] = []
    for key in keys:
        if not isinstance(key, str):
            raise TypeError(f"reference keys must be str, got {type(key).__name__}")
        if not key:
            raise ValueError("reference keys may not be empty")
        result.append(key)
    if not result:
        raise ValueError("at least one reference key is required")
    return list(dict.fromkeys(result))


@contextmanager
def store_conflicts(pool: Pool, name: str) -> Iterator[None]:
    """Reinterpret store precondition failures as tracker conflicts."""
    try:
        yield
    except VersionMismatchError:
        raise ConflictError(pool.name, name, reason="version") from None
    except ObjectExistsError:
        raise ConflictError(pool.name, name, reason="exists") from None
    except ObjectNotFoundError:
        raise ConflictError(pool.name, name, reason="vanished") from None


class TrackerLayout(ABC):
    """Read/modify/write logic for one tracker schema version."""

    version: ClassVar[int]

    @abstractmethod
    def create(self, pool: Pool, name: str, keys: list[str]) -> VersionToken:
        """Create a tracker holding exactly *keys*.

        Fails with ConflictError (reason ``"exists"``) if another writer
        created the object first.
        """
        ...

    @abstractmethod
    def read(
        self,
        pool: Pool,
        name: str,
        keys: list[str],
        expected_token: VersionToken | None = None,
    ) -> TrackerState:
        """Atomically read refcount, token, and membership of *keys*."""
        ...

    @abstractmethod
    def add(self, pool: Pool, name: str, keys: list[str]) -> tuple[str, ...]:
        """Add untracked *keys*; returns the keys actually written."""
        ...

    @abstractmethod
    def remove(self, pool: Pool, name: str, keys: list[str]) -> RemoveResult:
        """Remove tracked *keys*, deleting the object when none remain."""
        ...

    @abstractmethod
    def stat(self, pool: Pool, name: str) -> TrackerInfo:
        """Read the full tracker state."""
        ...
