"""Bounded admission for reconciliation runs and connector calls.

:class:`ConcurrencyGate` is a counting gate with N permits. Callers beyond
the limit wait in FIFO order; a release hands the permit directly to the
longest-waiting caller. Permits are single-use handles whose release is
idempotent, and a caller cancelled while waiting never keeps a permit.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

__all__ = ["ConcurrencyGate", "Permit"]


class Permit:
    """Admission handle returned by :meth:`ConcurrencyGate.acquire`."""

    __slots__ = ("_gate", "_released")

    def __init__(self, gate: ConcurrencyGate) -> None:
        self._gate = gate
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Return the permit to its gate. Releasing twice is a no-op."""
        if self._released:
            return
        self._released = True
        self._gate._release()

    def __repr__(self) -> str:
        return f"Permit(released={self._released})"


class ConcurrencyGate:
    """FIFO counting gate for asyncio tasks.

    Parameters
    ----------
    limit : int
        Number of permits; must be at least 1.

    Raises
    ------
    ValueError
        If *limit* is smaller than 1.

    Examples
    --------
    >>> gate = ConcurrencyGate(2)
    >>> async def guarded():
    ...     async with gate.slot():
    ...         ...
    """

    def __init__(self, limit: int) -> None:
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        self._limit = limit
        self._available = limit
        self._waiters: deque[asyncio.Future[Permit]] = deque()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def available(self) -> int:
        """Permits that can be acquired without waiting."""
        return self._available

    @property
    def waiting(self) -> int:
        """Callers currently suspended in :meth:`acquire`."""
        return sum(1 for fut in self._waiters if not fut.done())

    async def acquire(self) -> Permit:
        """Obtain a permit, suspending while none is free.

        Returns
        -------
        Permit
            Handle to release when the guarded work is done.

        Raises
        ------
        asyncio.CancelledError
            If the caller is cancelled while waiting; no permit is held
            afterwards.
        """
        if self._available > 0 and not self.waiting:
            self._available -= 1
            return Permit(self)

        future: asyncio.Future[Permit] = asyncio.get_running_loop().create_future()
        self._waiters.append(future)
        try:
            return await future
        except asyncio.CancelledError:
            if future.done() and not future.cancelled():
                # Handed a permit after cancellation was requested
                future.result().release()
            elif future in self._waiters:
                self._waiters.remove(future)
            raise

    def _release(self) -> None:
        while self._waiters:
            future = self._waiters.popleft()
            if not future.done():
                future.set_result(Permit(self))
                return
        self._available += 1

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[Permit]:
        """Hold one permit for the duration of an ``async with`` block."""
        permit = await self.acquire()
        try:
            yield permit
        finally:
            permit.release()

    def __repr__(self) -> str:
        return (
            f"ConcurrencyGate(limit={self._limit}, available={self._available}, "
            f"waiting={self.waiting})"
        )
