"""Transaction shapes exchanged with an object store.

A ReadOp or WriteOp describes every step of one atomic transaction against
a single object. Stores either apply all of it or none of it.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class VersionToken:
    """Opaque write generation of a stored object.

    Assigned and bumped by the store on every successful write. The tracker
    only ever compares tokens for equality.
    """

    value: int

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class ReadOp:
    """An atomic read transaction.

    Attributes:
        read_length: Number of body bytes to read from offset 0.
        omap_keys: Omap keys to look up. Only keys present are returned.
        omap_all: Return the whole omap instead of looking up ``omap_keys``.
        assert_version: Abort with VersionMismatchError unless the object is
            at this version.
    """

    read_length: int = 0
    omap_keys: frozenset[str] = frozenset()
    omap_all: bool = False
    assert_version: VersionToken | None = None


@dataclass(frozen=True)
class ReadResult:
    """Outcome of a ReadOp: body bytes, found omap entries, current version."""

    data: bytes
    omap: dict[str, bytes]
    version: VersionToken


@dataclass(frozen=True)
class WriteOp:
    """An atomic write transaction.

    Preconditions (``create_exclusive``, ``assert_version``) are checked
    first; if any fails nothing is written. ``remove`` deletes the object
    together with its attributes and omap and ignores the mutation fields.
    """

    create_exclusive: bool = False
    assert_version: VersionToken | None = None
    setxattrs: dict[str, bytes] = field(default_factory=dict)
    write_full: bytes | None = None
    omap_set: dict[str, bytes] = field(default_factory=dict)
    omap_rm_keys: frozenset[str] = frozenset()
    remove: bool = False
