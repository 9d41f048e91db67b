"""
Named locks serializing tests that share server-wide state.

Tests that change global server state (fail points, users, server
parameters) run exclusively; tests that only read or work in their own
namespace run concurrently with each other but never alongside an exclusive
one:

    async with TestLock.run_exclusively():
        async with client.fail_point(fp):
            ...

    async with TestLock.run_concurrently():
        ...

asyncio primitives belong to one event loop, so the registry keeps one set
of named locks per loop.
"""

import asyncio
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

DEFAULT_LOCK = "global"


class TestLock:
    """
    An asyncio reader-writer lock registered under a name.

    Writers are preferred: once an exclusive holder is waiting, new
    concurrent holders wait behind it.
    """

    # Not a pytest test class
    __test__ = False

    _registry: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, dict[str, TestLock]]" = (
        weakref.WeakKeyDictionary()
    )

    def __init__(self, name: str) -> None:
        self.name = name
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @classmethod
    def named(cls, name: str = DEFAULT_LOCK) -> "TestLock":
        """Get (or create) the lock registered under name for the running loop."""
        loop = asyncio.get_running_loop()
        locks = cls._registry.get(loop)
        if locks is None:
            locks = {}
            cls._registry[loop] = locks
        lock = locks.get(name)
        if lock is None:
            lock = cls(name)
            locks[name] = lock
        return lock

    @classmethod
    @asynccontextmanager
    async def run_exclusively(cls, name: str = DEFAULT_LOCK) -> AsyncIterator[None]:
        """Hold the named lock alone for the duration of the block."""
        async with cls.named(name).exclusive():
            yield

    @classmethod
    @asynccontextmanager
    async def run_concurrently(cls, name: str = DEFAULT_LOCK) -> AsyncIterator[None]:
        """Share the named lock with other concurrent holders for the block."""
        async with cls.named(name).shared():
            yield

    @property
    def readers(self) -> int:
        return self._readers

    @property
    def locked_exclusively(self) -> bool:
        return self._writer

    @asynccontextmanager
    async def shared(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(
                lambda: not self._writer and self._writers_waiting == 0
            )
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                self._cond.notify_all()

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator[None]:
        async with self._cond:
            self._writers_waiting += 1
            try:
                await self._cond.wait_for(
                    lambda: not self._writer and self._readers == 0
                )
            finally:
                self._writers_waiting -= 1
                # Readers may be waiting on a cancelled writer
                self._cond.notify_all()
            self._writer = True
        try:
            yield
        finally:
            async with self._cond:
                self._writer = False
                self._cond.notify_all()
