"""Read/write locks guarding the folders the manager mutates.

Each filesystem region (mods folder, staging, archives, config) has its own
read/write lock.  Callers acquire one or several regions through
:class:`IOLocks`; several regions are always taken in :class:`LockRegion`
order and released in reverse, so overlapping requests cannot deadlock.

A write scope does not carry over anything checked under an earlier read
scope.  Re-check preconditions once inside the write scope.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator
from contextlib import ExitStack, contextmanager
from enum import IntEnum

from smol_manager.utils.observable import Observable

logger = logging.getLogger(__name__)


class LockRegion(IntEnum):
    """Lockable regions; the value is the global acquisition order."""

    CONFIG = 1
    MODS_FOLDER = 2
    STAGING = 3
    ARCHIVES = 4


MOD_FILES: tuple[LockRegion, ...] = (
    LockRegion.MODS_FOLDER,
    LockRegion.STAGING,
    LockRegion.ARCHIVES,
)
EVERYTHING: tuple[LockRegion, ...] = tuple(LockRegion)


class ReadWriteLock:
    """Writer-preferring read/write lock.

    Any number of readers may hold the lock while no writer holds or waits
    for it.  The writing thread may re-enter for reading or writing.  A
    thread holding only a read lock may not upgrade to write.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._cond = threading.Condition(threading.Lock())
        self._readers: dict[int, int] = {}
        self._writer: int | None = None
        self._writer_depth = 0
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        me = threading.get_ident()
        with self._cond:
            if self._writer == me or me in self._readers:
                self._readers[me] = self._readers.get(me, 0) + 1
                return
            while self._writer is not None or self._writers_waiting:
                self._cond.wait()
            self._readers[me] = 1

    def release_read(self) -> None:
        me = threading.get_ident()
        with self._cond:
            count = self._readers.get(me)
            if not count:
                raise RuntimeError(f"Read lock '{self.name}' released without being held")
            if count == 1:
                del self._readers[me]
                if not self._readers:
                    self._cond.notify_all()
            else:
                self._readers[me] = count - 1

    def acquire_write(self) -> None:
        me = threading.get_ident()
        with self._cond:
            if self._writer == me:
                self._writer_depth += 1
                return
            if me in self._readers:
                raise RuntimeError(
                    f"Cannot upgrade read lock '{self.name}' to write; release the read lock first"
                )
            self._writers_waiting += 1
            try:
                while self._writer is not None or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = me
            self._writer_depth = 1

    def release_write(self) -> None:
        me = threading.get_ident()
        with self._cond:
            if self._writer != me:
                raise RuntimeError(f"Write lock '{self.name}' released by a thread not holding it")
            self._writer_depth -= 1
            if self._writer_depth == 0:
                self._writer = None
                self._cond.notify_all()

    @property
    def reader_count(self) -> int:
        with self._cond:
            return sum(self._readers.values())

    @property
    def is_write_locked(self) -> bool:
        with self._cond:
            return self._writer is not None


def _ordered(regions: Iterable[LockRegion]) -> list[LockRegion]:
    return sorted(set(regions))


class IOLocks:
    """Coordinator handing out scoped read/write access to lock regions."""

    def __init__(self) -> None:
        self._locks = {region: ReadWriteLock(region.name) for region in LockRegion}
        self._write_depth = 0
        self._depth_lock = threading.Lock()
        self.is_writing: Observable[bool] = Observable(False)

    def lock_for(self, region: LockRegion) -> ReadWriteLock:
        return self._locks[region]

    @contextmanager
    def read(self, *regions: LockRegion) -> Iterator[None]:
        """Hold shared access to *regions* (all regions when none are given)."""
        ordered = _ordered(regions or EVERYTHING)
        with ExitStack() as stack:
            for region in ordered:
                lock = self._locks[region]
                lock.acquire_read()
                stack.callback(lock.release_read)
            logger.debug("Read locked %s", [r.name for r in ordered])
            try:
                yield
            finally:
                logger.debug("Read unlocked %s", [r.name for r in ordered])

    @contextmanager
    def write(self, *regions: LockRegion) -> Iterator[None]:
        """Hold exclusive access to *regions* (all regions when none are given)."""
        ordered = _ordered(regions or EVERYTHING)
        with ExitStack() as stack:
            for region in ordered:
                lock = self._locks[region]
                lock.acquire_write()
                stack.callback(lock.release_write)
            logger.debug("Write locked %s", [r.name for r in ordered])
            self._enter_write()
            try:
                yield
            finally:
                self._exit_write()
                logger.debug("Write unlocked %s", [r.name for r in ordered])

    def _enter_write(self) -> None:
        with self._depth_lock:
            self._write_depth += 1
            first = self._write_depth == 1
        if first:
            self.is_writing.set(True)

    def _exit_write(self) -> None:
        with self._depth_lock:
            self._write_depth -= 1
            last = self._write_depth == 0
        if last:
            self.is_writing.set(False)


io_locks = IOLocks()
