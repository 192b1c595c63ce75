"""Per-date exclusive locks

Every operation that validates and then writes calendar or ledger state holds
the locks of the dates it touches. Locks are always taken in ascending date
order so two overlapping stays can never deadlock.
"""
import asyncio
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Dict, Iterable, List

from domain.value_objects import iter_days


class DateRangeLock:
    """Registry of one asyncio.Lock per calendar date.

    A date's lock only lives while some task holds or waits for it, so the
    registry stays empty between operations.
    """

    def __init__(self):
        self._locks: Dict[date, asyncio.Lock] = {}
        self._users: Dict[date, int] = {}

    def tracked_dates(self) -> List[date]:
        return sorted(self._locks)

    def _checkout(self, day: date) -> asyncio.Lock:
        lock = self._locks.get(day)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[day] = lock
        self._users[day] = self._users.get(day, 0) + 1
        return lock

    def _checkin(self, day: date) -> None:
        remaining = self._users[day] - 1
        if remaining:
            self._users[day] = remaining
        else:
            del self._users[day]
            del self._locks[day]

    def is_locked(self, day: date) -> bool:
        lock = self._locks.get(day)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, start: date, end: date) -> AsyncIterator[None]:
        """Lock every day in [start, end)"""
        async with self.hold_dates(iter_days(start, end)):
            yield

    @asynccontextmanager
    async def hold_dates(self, days: Iterable[date]) -> AsyncIterator[None]:
        """Lock an arbitrary set of days"""
        ordered = sorted(set(days))
        acquired: List[date] = []
        try:
            for day in ordered:
                lock = self._checkout(day)
                try:
                    await lock.acquire()
                except BaseException:
                    self._checkin(day)
                    raise
                acquired.append(day)
            yield
        finally:
            for day in reversed(acquired):
                self._locks[day].release()
                self._checkin(day)
