"""Paced, cancellable runner driving an engine's continuous mode."""

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

TickFn = Callable[[], bool]
IntervalFn = Callable[[], float]
FinishFn = Callable[[bool], None]


class PacedRunner:
    """
    Runs a tick function on an asyncio task, waiting between ticks.

    Each tick performs one whole phase synchronously, so the only suspension
    points are the waits between ticks and a cancellation always lands between
    two phases. The wait length is re-read from ``interval`` before every tick,
    which lets a speed change take effect on the next tick.

    Every run is tagged with a session number. ``cancel()`` bumps the number,
    so a tick belonging to a cancelled run is dropped instead of applied.
    """

    def __init__(self, name: str = "runner"):
        self.name = name
        self._task: Optional[asyncio.Task] = None
        self._session = 0
        self.ticks = 0

    @property
    def session(self) -> int:
        """Number of the current (or last) run."""
        return self._session

    @property
    def running(self) -> bool:
        """Whether a run is in progress."""
        return self._task is not None and not self._task.done()

    def start(self, tick: TickFn, interval: IntervalFn,
              on_finish: Optional[FinishFn] = None) -> bool:
        """
        Start a new run on the running event loop.

        Args:
            tick: Performs one phase; returns False once the run is complete
            interval: Seconds to wait before each tick, sampled every time
            on_finish: Called with True after natural completion, False after
                a failing tick. Not called for cancelled runs.

        Returns:
            False if a run is already in progress
        """
        if self.running:
            return False

        self._session += 1
        self.ticks = 0
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(
            self._run(self._session, tick, interval, on_finish),
            name=f"{self.name}-session-{self._session}",
        )
        return True

    def cancel(self) -> bool:
        """Cancel the current run. Returns False if nothing was running."""
        # Invalidate the session first so an in-flight tick is discarded
        self._session += 1
        task, self._task = self._task, None
        if task is None or task.done():
            return False
        # The task unwinds on its next await; a new run may start right away
        task.cancel()
        logger.debug("%s: run cancelled", self.name)
        return True

    async def wait(self) -> None:
        """
        Wait until the current run has ended.

        Returns at once after ``cancel()``. Re-raises a failing tick's error.
        """
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    async def _run(self, session: int, tick: TickFn, interval: IntervalFn,
                   on_finish: Optional[FinishFn]) -> None:
        completed = False
        try:
            while True:
                await asyncio.sleep(max(0.0, float(interval())))

                if session != self._session:
                    logger.debug("%s: dropping tick from stale session %d", self.name, session)
                    return

                self.ticks += 1
                if not tick():
                    completed = True
                    break
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("%s: tick failed, stopping run", self.name)
            if session == self._session and on_finish:
                on_finish(False)
            raise

        if session == self._session and on_finish:
            on_finish(completed)
