"""FIFO counting gate bounding concurrent chat cycles."""

import asyncio
from collections import deque
from contextlib import asynccontextmanager


class ConcurrencyGate:
    """Admits at most ``capacity`` holders at a time, in arrival order.

    Waiters queue as futures. A release hands the slot straight to the oldest
    waiter that is still waiting, so a late arrival can never overtake the queue.
    """

    def __init__(self, capacity: int = 5) -> None:
        if capacity < 1:
            raise ValueError(f"Gate capacity must be at least 1, got {capacity}.")
        self.capacity = capacity
        self._active = 0
        self._waiters: deque[asyncio.Future] = deque()

    @property
    def active(self) -> int:
        return self._active

    @property
    def waiting(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    async def acquire(self) -> None:
        if self._active < self.capacity and not self.waiting:
            self._active += 1
            return

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # slot was handed over just before the cancellation landed
                self.release()
            raise
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)

    def release(self) -> None:
        # hand over without touching the active count
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        if self._active <= 0:
            raise RuntimeError("ConcurrencyGate released more often than acquired.")
        self._active -= 1

    @asynccontextmanager
    async def slot(self):
        await self.acquire()
        try:
            yield
        finally:
            self.release()

    def snapshot(self) -> dict:
        return {"active": self.active, "waiting": self.waiting, "capacity": self.capacity}
