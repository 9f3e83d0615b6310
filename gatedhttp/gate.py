"""
Process-wide dispatch gate.

One permit covers the network call and the pacing delay that follows it, so no
two requests from any Requester in the process are in flight at once.
"""

import asyncio
import threading
from typing import Awaitable, Callable, ClassVar, Optional, TypeVar

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


class RequestGate:
    """Single-permit async mutex with a pacing delay before release."""

    _shared: ClassVar[Optional["RequestGate"]] = None
    _shared_guard: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self):
        self._lock: Optional[asyncio.Lock] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @classmethod
    def shared(cls) -> "RequestGate":
        """Return the gate every Requester uses by default, creating it on first call."""
        if cls._shared is None:
            with cls._shared_guard:
                if cls._shared is None:
                    cls._shared = cls()
        return cls._shared

    def _get_lock(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if self._lock is None or (self._loop is not loop and not self._lock.locked()):
            # asyncio primitives are bound to one loop; rebind only while free
            self._lock = asyncio.Lock()
            self._loop = loop
        return self._lock

    @property
    def locked(self) -> bool:
        return self._lock is not None and self._lock.locked()

    async def acquire(self):
        """Suspend until the permit is free, then take it."""
        await self._get_lock().acquire()

    def release(self):
        self._lock.release()

    async def run_exclusive(self, task: Callable[[], Awaitable[T]], pacing_delay: float, sleep: Sleep = asyncio.sleep) -> T:
        """Run ``task`` holding the permit, then wait ``pacing_delay`` before releasing.

        The delay and the release happen whether or not ``task`` raises.
        """
        await self.acquire()
        try:
            return await task()
        finally:
            try:
                if pacing_delay > 0:
                    await sleep(pacing_delay)
            finally:
                self.release()
