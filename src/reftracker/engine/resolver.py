"""Schema version resolution and layout dispatch."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from reftracker.codec import VERSION_SIZE, decode_version
from reftracker.engine.layout import VERSION_XATTR, TrackerLayout
from reftracker.engine.v1 import TrackerV1
from reftracker.exceptions import (
    CorruptTrackerError,
    ObjectNotFoundError,
    UnsupportedVersionError,
    XattrNotFoundError,
)

if TYPE_CHECKING:
    from reftracker.storage.store import Pool

logger = logging.getLogger(__name__)

CURRENT_VERSION = TrackerV1.version

LAYOUTS: dict[int, TrackerLayout] = {
    TrackerV1.version: TrackerV1(),
}


def resolve_version(pool: Pool, name: str) -> int | None:
    """Read a tracker's schema version.

    Returns None when the object, or its version attribute, is absent.
    Other store failures propagate.

    Raises:
        CorruptTrackerError: If the attribute is not exactly 4 bytes.
    """
    try:
        raw = pool.get_xattr(name, VERSION_XATTR)
    except (ObjectNotFoundError, XattrNotFoundError):
        logger.debug("Tracker %s/%s not found", pool.name, name)
        return None

    if len(raw) != VERSION_SIZE:
        raise CorruptTrackerError(
            f"Reference tracker {pool.name}/{name} version attribute is "
            f"{len(raw)} bytes, expected {VERSION_SIZE}"
        )
    version = decode_version(raw)
    logger.debug("Tracker %s/%s is version %d", pool.name, name, version)
    return version


def get_layout(pool: Pool, name: str, version: int) -> TrackerLayout:
    """Return the layout handling *version*.

    Raises:
        UnsupportedVersionError: If no layout is known for *version*.
    """
    layout = LAYOUTS.get(version)
    if layout is None:
        raise UnsupportedVersionError(pool.name, name, version)
    return layout


def current_layout() -> TrackerLayout:
    """Layout used to create new trackers."""
    return LAYOUTS[CURRENT_VERSION]
