"""Result models for tracker operations."""

from __future__ import annotations

from dataclasses import dataclass

from reftracker.models.ops import VersionToken


@dataclass(frozen=True)
class AddResult:
    """Result of rt_add.

    Attributes:
        created: True if this call created the tracker object.
        added: Keys this call actually inserted (already-tracked keys are
            skipped).
    """

    created: bool
    added: tuple[str, ...] = ()


@dataclass(frozen=True)
class RemoveResult:
    """Result of rt_remove.

    Attributes:
        deleted: True if the tracker holds no references after this call
            (either this call deleted it or it was already absent).
        removed: Keys this call actually dropped.
    """

    deleted: bool
    removed: tuple[str, ...] = ()


@dataclass(frozen=True)
class TrackerState:
    """Snapshot returned by a layout's reader.

    ``found`` maps each candidate key to whether the tracker holds it.
    ``token`` is the CAS precondition for the write that follows.
    """

    refcount: int
    token: VersionToken
    found: dict[str, bool]

    @property
    def tracked(self) -> list[str]:
        return [k for k, hit in self.found.items() if hit]

    @property
    def untracked(self) -> list[str]:
        return [k for k, hit in self.found.items() if not hit]


@dataclass(frozen=True)
class TrackerInfo:
    """Full view of a tracker object, used for inspection."""

    pool: str
    name: str
    version: int
    refcount: int
    keys: frozenset[str]
    token: VersionToken
