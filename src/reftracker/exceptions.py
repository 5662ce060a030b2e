"""Reference tracker exception hierarchy.

All reftracker-specific exceptions inherit from RefTrackerError.
Store adapters raise StoreError subclasses; the tracker core reinterprets
the ones it understands and lets the rest propagate unchanged.
"""


class RefTrackerError(Exception):
    """Base exception for all reference tracker errors."""


# ---------------------------------------------------------------------------
# Object store errors
# ---------------------------------------------------------------------------


class StoreError(RefTrackerError):
    """Raised for any failure surfaced by the underlying object store."""


class PoolNotFoundError(StoreError):
    """Raised when opening a pool that does not exist."""

    def __init__(self, pool: str) -> None:
        self.pool = pool
        super().__init__(f"Pool not found: {pool}")


class PoolExistsError(StoreError):
    """Raised when creating a pool that already exists."""

    def __init__(self, pool: str) -> None:
        self.pool = pool
        super().__init__(f"Pool already exists: {pool}")


class ObjectNotFoundError(StoreError):
    """Raised when an operation targets an object that does not exist."""

    def __init__(self, pool: str, oid: str) -> None:
        self.pool = pool
        self.oid = oid
        super().__init__(f"Object not found: {pool}/{oid}")


class XattrNotFoundError(StoreError):
    """Raised when an object exists but lacks the requested attribute."""

    def __init__(self, pool: str, oid: str, key: str) -> None:
        self.pool = pool
        self.oid = oid
        self.key = key
        super().__init__(f"Attribute '{key}' not set on {pool}/{oid}")


class ObjectExistsError(StoreError):
    """Raised when an exclusive create finds the object already present."""

    def __init__(self, pool: str, oid: str) -> None:
        self.pool = pool
        self.oid = oid
        super().__init__(f"Object already exists: {pool}/{oid}")


class VersionMismatchError(StoreError):
    """Raised when a transaction's version assertion fails."""

    def __init__(self, pool: str, oid: str, expected: int, actual: int) -> None:
        self.pool = pool
        self.oid = oid
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Version mismatch on {pool}/{oid}: expected {expected}, "
            f"found {actual}"
        )


# ---------------------------------------------------------------------------
# Tracker errors
# ---------------------------------------------------------------------------


class TrackerNotFoundError(RefTrackerError):
    """Raised when a tracker object (or its version attribute) is absent."""

    def __init__(self, pool: str, name: str) -> None:
        self.pool = pool
        self.name = name
        super().__init__(f"Reference tracker not found: {pool}/{name}")


class ConflictError(RefTrackerError):
    """Raised when a concurrent writer changed the tracker mid-operation.

    The tracker is left exactly as the other writer committed it. Callers
    that need the operation to succeed must re-issue it from scratch.

    ``reason`` is one of ``"version"`` (token no longer current),
    ``"exists"`` (lost an exclusive-create race) or ``"vanished"`` (the
    object was deleted after its version was resolved).
    """

    def __init__(self, pool: str, name: str, reason: str = "version") -> None:
        self.pool = pool
        self.name = name
        self.reason = reason
        super().__init__(
            f"Reference tracker {pool}/{name} changed since it was last read "
            f"({reason}). Please try again."
        )


class UnsupportedVersionError(RefTrackerError):
    """Raised when a tracker uses a schema version with no known layout."""

    def __init__(self, pool: str, name: str, version: int) -> None:
        self.pool = pool
        self.name = name
        self.version = version
        super().__init__(
            f"Reference tracker {pool}/{name} has unsupported version {version}"
        )


class CorruptTrackerError(RefTrackerError):
    """Raised when tracker bytes cannot be decoded."""


class RetryExhaustedError(RefTrackerError):
    """All retry attempts failed."""

    def __init__(self, attempts: int, last_diagnosis: str) -> None:
        self.attempts = attempts
        self.last_diagnosis = last_diagnosis
        super().__init__(
            f"All {attempts} retry attempts failed. Last diagnosis: {last_diagnosis}"
        )


class RefcountOverflowError(RefTrackerError):
    """Raised when an add would push a refcount past the u32 limit."""

    def __init__(self, pool: str, name: str, refcount: int) -> None:
        self.pool = pool
        self.name = name
        self.refcount = refcount
        super().__init__(
            f"Reference tracker {pool}/{name} cannot hold {refcount} references "
            f"(u32 limit)"
        )
