"""Version 1 tracker layout.

Object layout (all integers big-endian)::

    location                 type      name
    -----------------------  --------  ----------
    xattr "schema-version"   uint32    version (1)
    body bytes 0 .. 3        uint32    refcount
    omap keys                str       tracked reference keys, empty values

``refcount`` always equals the number of omap entries. The store-assigned
object version is the concurrency token: every write asserts the version
seen by the read that preceded it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from reftracker.codec import (
    REFCOUNT_SIZE,
    U32_MAX,
    decode_refcount,
    encode_refcount,
    encode_version,
)
from reftracker.engine.layout import VERSION_XATTR, TrackerLayout, store_conflicts
from reftracker.exceptions import (
    CorruptTrackerError,
    ObjectNotFoundError,
    RefcountOverflowError,
    TrackerNotFoundError,
)
from reftracker.models.ops import ReadOp, VersionToken, WriteOp
from reftracker.models.results import RemoveResult, TrackerInfo, TrackerState

if TYPE_CHECKING:
    from reftracker.storage.store import Pool

logger = logging.getLogger(__name__)

BODY_SIZE = REFCOUNT_SIZE


class TrackerV1(TrackerLayout):
    """Refcount in the body, reference keys in the omap."""

    version = 1

    def _check_refcount(self, pool: Pool, name: str, refcount: int) -> None:
        if refcount > U32_MAX:
            raise RefcountOverflowError(pool.name, name, refcount)

    def _decode_body(self, pool: Pool, name: str, data: bytes) -> int:
        if len(data) < BODY_SIZE:
            raise CorruptTrackerError(
                f"Reference tracker {pool.name}/{name} body is {len(data)} bytes, "
                f"expected {BODY_SIZE}"
            )
        return decode_refcount(data)

    def create(self, pool: Pool, name: str, keys: list[str]) -> VersionToken:
        logger.debug("Initializing new v1 tracker %s/%s", pool.name, name)
        self._check_refcount(pool, name, len(keys))
        op = WriteOp(
            create_exclusive=True,
            setxattrs={VERSION_XATTR: encode_version(self.version)},
            write_full=encode_refcount(len(keys)),
            omap_set={key: b"" for key in keys},
        )
        with store_conflicts(pool, name):
            token = pool.write(name, op)
        logger.info("Created tracker %s/%s with %d keys", pool.name, name, len(keys))
        return token

    def read(
        self,
        pool: Pool,
        name: str,
        keys: list[str],
        expected_token: VersionToken | None = None,
    ) -> TrackerState:
        op = ReadOp(
            read_length=BODY_SIZE,
            omap_keys=frozenset(keys),
            assert_version=expected_token,
        )
        with store_conflicts(pool, name):
            result = pool.read(name, op)

        refcount = self._decode_body(pool, name, result.data)
        found = {key: key in result.omap for key in keys}
        logger.debug(
            "Tracker %s/%s: refcount=%d token=%s, %d of %d requested keys tracked",
            pool.name, name, refcount, result.version,
            len(result.omap), len(keys),
        )
        return TrackerState(refcount=refcount, token=result.version, found=found)

    def add(self, pool: Pool, name: str, keys: list[str]) -> tuple[str, ...]:
        state = self.read(pool, name, keys)
        keys_to_add = state.untracked
        if not keys_to_add:
            logger.info("No keys added to %s/%s: all already tracked", pool.name, name)
            return ()

        refcount = state.refcount + len(keys_to_add)
        self._check_refcount(pool, name, refcount)
        logger.info(
            "Adding %d of %d requested keys to %s/%s",
            len(keys_to_add), len(keys), pool.name, name,
        )
        op = WriteOp(
            assert_version=state.token,
            write_full=encode_refcount(refcount),
            omap_set={key: b"" for key in keys_to_add},
        )
        with store_conflicts(pool, name):
            pool.write(name, op)
        return tuple(keys_to_add)

    def remove(self, pool: Pool, name: str, keys: list[str]) -> RemoveResult:
        state = self.read(pool, name, keys)
        keys_to_remove = state.tracked
        if not keys_to_remove:
            logger.info("No keys removed from %s/%s: none tracked", pool.name, name)
            return RemoveResult(deleted=False)

        if len(keys_to_remove) > state.refcount:
            raise CorruptTrackerError(
                f"Reference tracker {pool.name}/{name} tracks more keys than its "
                f"refcount {state.refcount}"
            )
        refcount = state.refcount - len(keys_to_remove)
        logger.info(
            "Removing %d of %d requested keys from %s/%s",
            len(keys_to_remove), len(keys), pool.name, name,
        )

        if refcount == 0:
            op = WriteOp(assert_version=state.token, remove=True)
        else:
            op = WriteOp(
                assert_version=state.token,
                write_full=encode_refcount(refcount),
                omap_rm_keys=frozenset(keys_to_remove),
            )
        with store_conflicts(pool, name):
            pool.write(name, op)

        if refcount == 0:
            logger.info("Tracker %s/%s holds no references, deleted", pool.name, name)
        return RemoveResult(deleted=refcount == 0, removed=tuple(keys_to_remove))

    def stat(self, pool: Pool, name: str) -> TrackerInfo:
        op = ReadOp(read_length=BODY_SIZE, omap_all=True)
        try:
            result = pool.read(name, op)
        except ObjectNotFoundError:
            raise TrackerNotFoundError(pool.name, name) from None
        return TrackerInfo(
            pool=pool.name,
            name=name,
            version=self.version,
            refcount=self._decode_body(pool, name, result.data),
            keys=frozenset(result.omap),
            token=result.version,
        )
