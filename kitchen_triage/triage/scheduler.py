"""
Polling/Refresh Scheduler — periodic re-fetch of the admin queue.

A cancellable task handle with explicit start / stop / is_running state.
Ticks of one scheduler never overlap: each tick awaits its callback before
the next interval starts. Stopping does not abort a fetch already in
flight; it only prevents the next tick.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)


class PollingScheduler:
    """Calls `callback` every `interval_seconds` while running."""

    def __init__(
        self,
        callback: Callable[[], Awaitable[Any]],
        interval_seconds: float = 15.0,
        on_toggle: Optional[Callable[[bool], None]] = None,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.callback = callback
        self.interval_seconds = interval_seconds
        self.on_toggle = on_toggle
        self.tick_count = 0

        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._draining: Set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def indicator(self) -> str:
        return "Auto-Refresh: ON" if self.is_running else "Auto-Refresh: OFF"

    def start(self) -> bool:
        """Start polling. A no-op returning False when already running."""
        if self.is_running:
            return False
        self._stop_event = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(
            self._run(self._stop_event), name="order-polling"
        )
        logger.info("Polling started (every %ss)", self.interval_seconds)
        self._toggled(True)
        return True

    def stop(self) -> bool:
        """Stop polling. A no-op returning False when not running."""
        if not self.is_running:
            return False
        self._stop_event.set()
        task, self._task = self._task, None
        # Let an in-flight tick finish on its own
        self._draining.add(task)
        task.add_done_callback(self._draining.discard)
        logger.info("Polling stopped")
        self._toggled(False)
        return True

    def toggle(self) -> bool:
        """Flip polling on or off. Returns the new running state."""
        if self.is_running:
            self.stop()
        else:
            self.start()
        return self.is_running

    async def wait_stopped(self) -> None:
        """Wait for stopped polling tasks to wind down."""
        if self._draining:
            await asyncio.gather(*list(self._draining), return_exceptions=True)

    def _toggled(self, on: bool) -> None:
        if self.on_toggle is not None:
            self.on_toggle(on)

    async def _run(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                await self._tick()

    async def _tick(self) -> None:
        self.tick_count += 1
        try:
            await self.callback()
        except Exception:
            # A failed tick must not end polling
            logger.exception("Polling refresh failed")


class Debouncer:
    """
    Delays a call until input has been quiet for `delay_seconds`.
    Used at the search box so the queue is not re-filtered on every keystroke.
    """

    def __init__(self, callback: Callable[..., Any], delay_seconds: float = 0.25):
        self.callback = callback
        self.delay_seconds = delay_seconds
        self._handle: Optional[asyncio.TimerHandle] = None

    def __call__(self, *args: Any) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay_seconds, self._fire, args)

    def _fire(self, args) -> None:
        self._handle = None
        self.callback(*args)

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def flush(self, *args: Any) -> None:
        """Run the callback now, dropping any pending delayed call."""
        self.cancel()
        self.callback(*args)
