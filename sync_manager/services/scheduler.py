# sync_manager/services/scheduler.py
"""
Minuteries répétitives sur une seule ligne de temps logique.

Le moteur de synchro ne manipule jamais asyncio directement: il reçoit un
``Scheduler`` et garde pour lui les ``TimerHandle`` retournés.
"""

import asyncio
import logging
from typing import Callable, Optional, Protocol

log = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...

    @property
    def active(self) -> bool: ...


class Scheduler(Protocol):
    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle: ...


class _AsyncioTimer:
    def __init__(self, loop: asyncio.AbstractEventLoop, interval: float, callback: Callable[[], None]) -> None:
        self._loop = loop
        self._interval = interval
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None
        self._active = True
        self._schedule()

    @property
    def active(self) -> bool:
        return self._active

    def _schedule(self) -> None:
        self._handle = self._loop.call_later(self._interval, self._fire)

    def _fire(self) -> None:
        if not self._active:
            return
        try:
            self._callback()
        except Exception:
            log.exception("[SCHEDULER] callback en échec, minuterie arrêtée")
            self.cancel()
            return
        # le callback a pu annuler la minuterie
        if self._active:
            self._schedule()

    def cancel(self) -> None:
        self._active = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class AsyncioScheduler:
    """
    Scheduler de production: ``loop.call_later`` re-planifié après chaque tick.

    Doit être utilisé depuis la boucle asyncio (handlers FastAPI ``async def``).
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def call_every(self, interval: float, callback: Callable[[], None]) -> _AsyncioTimer:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        loop = self._loop or asyncio.get_running_loop()
        return _AsyncioTimer(loop, interval, callback)
