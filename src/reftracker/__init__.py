"""reftracker: key-based reference counting on a transactional object store.

Each increment or decrement is tagged with a key, so re-applying the same
key is a no-op. Trackers are safe under retries, duplicate requests and
concurrent writers on different nodes.
"""

from reftracker._version import __version__

# Core entry points
from reftracker.operations import rt_add, rt_remove, rt_stat
from reftracker.tracker import ReferenceTracker

# Result models
from reftracker.models.results import AddResult, RemoveResult, TrackerInfo, TrackerState

# Configuration
from reftracker.models.config import TrackerConfig

# Object stores
from reftracker.models.ops import ReadOp, ReadResult, VersionToken, WriteOp
from reftracker.storage.memory import MemoryObjectStore
from reftracker.storage.sql import SqlObjectStore
from reftracker.storage.store import ObjectStore, Pool

# Retry
from reftracker.retry import RetryResult, retry_on_conflict

# Exceptions
from reftracker.exceptions import (
    ConflictError,
    CorruptTrackerError,
    ObjectExistsError,
    ObjectNotFoundError,
    PoolExistsError,
    PoolNotFoundError,
    RefTrackerError,
    RefcountOverflowError,
    RetryExhaustedError,
    StoreError,
    TrackerNotFoundError,
    UnsupportedVersionError,
    VersionMismatchError,
    XattrNotFoundError,
)

__all__ = [
    "__version__",
    # Core
    "rt_add",
    "rt_remove",
    "rt_stat",
    "ReferenceTracker",
    # Results
    "AddResult",
    "RemoveResult",
    "TrackerInfo",
    "TrackerState",
    # Config
    "TrackerConfig",
    # Stores
    "ObjectStore",
    "Pool",
    "MemoryObjectStore",
    "SqlObjectStore",
    "ReadOp",
    "ReadResult",
    "VersionToken",
    "WriteOp",
    # Retry
    "RetryResult",
    "retry_on_conflict",
    # Exceptions
    "RefTrackerError",
    "StoreError",
    "PoolNotFoundError",
    "PoolExistsError",
    "ObjectNotFoundError",
    "ObjectExistsError",
    "XattrNotFoundError",
    "VersionMismatchError",
    "TrackerNotFoundError",
    "ConflictError",
    "UnsupportedVersionError",
    "CorruptTrackerError",
    "RefcountOverflowError",
    "RetryExhaustedError",
]
