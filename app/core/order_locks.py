# app/core/order_locks.py

import asyncio
import weakref
from contextlib import asynccontextmanager

from app.core.config import ORDER_LOCK_TIMEOUT_SECONDS
from app.core.exceptions import OrderBusy
from app.utils.logger import get_logger

logger = get_logger(__name__)


async def _abandon(acquire: "asyncio.Future[bool]", lock: asyncio.Lock) -> None:
    """Cancel a pending acquire and give the lock back if it was granted anyway."""
    acquire.cancel()
    await asyncio.wait({acquire})
    # the acquire can complete before the cancel lands
    if not acquire.cancelled() and acquire.exception() is None:
        lock.release()


class OrderLockRegistry:
    """
    In-process lease per sales order.

    Stock-out, cancellation and QR status updates for one order must never
    interleave. A caller that cannot take the lease within ``timeout`` seconds
    gets ``OrderBusy`` instead of queueing behind the running mutation.
    Locks live only while someone holds or waits on them.
    """

    def __init__(self, timeout: float):
        self.timeout = timeout
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, order_id: int) -> asyncio.Lock:
        lock = self._locks.get(order_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[order_id] = lock
        return lock

    def is_held(self, order_id: int) -> bool:
        lock = self._locks.get(order_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, order_id: int):
        lock = self._lock_for(order_id)

        if self.timeout <= 0:
            if lock.locked():
                logger.warning("Order busy", extra={"order_id": order_id})
                raise OrderBusy(order_id)
            await lock.acquire()
        else:
            acquire = asyncio.ensure_future(lock.acquire())
            try:
                done, _ = await asyncio.wait({acquire}, timeout=self.timeout)
            except asyncio.CancelledError:
                await _abandon(acquire, lock)
                raise
            if acquire not in done:
                await _abandon(acquire, lock)
                logger.warning(
                    "Order lease wait timed out",
                    extra={"order_id": order_id, "timeout": self.timeout},
                )
                raise OrderBusy(order_id)
            acquire.result()

        try:
            yield
        finally:
            lock.release()


order_locks = OrderLockRegistry(ORDER_LOCK_TIMEOUT_SECONDS)
