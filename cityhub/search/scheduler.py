import asyncio
from typing import Callable, Optional


class DebounceScheduler:
    """
    Runs `callback` once, `delay` seconds after the latest restart().

    Each restart() drops the previous timer, so a burst of restarts fires a
    single time. Must be driven from inside a running event loop.
    """

    def __init__(self, delay: float, callback: Callable[[], None]):
        self.delay = delay
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None

    def restart(self) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._callback()
