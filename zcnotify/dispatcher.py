"""Change dispatcher — fans each event out to every notifier.

Events are taken from the handoff queue one at a time.  For every event one
task per notifier is started and tracked; the dispatcher does not wait for
those tasks before taking the next event.  Whether shutdown waits for the
outstanding tasks is chosen by the caller of :meth:`ChangeDispatcher.stop`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from zcnotify.models import ChangeEvent
from zcnotify.notifiers.base import Notifier

logger = logging.getLogger(__name__)


class ChangeDispatcher:
    """Consumes change events and hands them to the notifiers."""

    def __init__(self, queue: asyncio.Queue[ChangeEvent], notifiers: Sequence[Notifier]) -> None:
        if not notifiers:
            raise ValueError("at least one notifier is required")
        self.queue = queue
        self.notifiers = list(notifiers)
        self._task: asyncio.Task | None = None
        self._pending: dict[asyncio.Task, Notifier] = {}
        self._closers: set[asyncio.Task] = set()
        self._dispatched = 0

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def start(self) -> None:
        """Start consuming the queue in a background task."""
        if self._task is not None:
            logger.warning("Dispatcher is already running")
            return
        self._task = asyncio.create_task(self._loop(), name="zcnotify-dispatcher")
        logger.info("Dispatcher started with %s", self.notifiers)

    async def stop(self, drain_timeout: float = 0.0) -> None:
        """Stop consuming and close the notifiers.

        With ``drain_timeout > 0`` waits up to that many seconds for
        in-flight notifications first; the rest are left to finish or be
        cancelled with the event loop.  A notifier with sends still in
        flight is closed only once they are done.
        """
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if drain_timeout > 0 and self._pending:
            logger.info("Waiting up to %ss for %d notification(s)", drain_timeout, len(self._pending))
            _, still_running = await asyncio.wait(set(self._pending), timeout=drain_timeout)
            if still_running:
                logger.warning("%d notification(s) still running at shutdown", len(still_running))

        for notifier in self.notifiers:
            in_flight = [t for t, owner in self._pending.items() if owner is notifier]
            if in_flight:
                logger.info("Closing %r after %d in-flight notification(s)", notifier, len(in_flight))
                closer = asyncio.create_task(self._close_when_done(notifier, in_flight))
                self._closers.add(closer)
                closer.add_done_callback(self._closers.discard)
            else:
                await self._close(notifier)
        logger.info("Dispatcher stopped after %d event(s)", self._dispatched)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pending(self) -> int:
        """Notifier tasks still in flight."""
        return len(self._pending)

    @property
    def dispatched(self) -> int:
        """Events handed to the notifiers so far."""
        return self._dispatched

    # ------------------------------------------------------------------ #
    # Dispatch
    # ------------------------------------------------------------------ #

    def dispatch(self, event: ChangeEvent) -> list[asyncio.Task]:
        """Start one notification task per notifier for *event*."""
        tasks = []
        for notifier in self.notifiers:
            task = asyncio.create_task(self._notify(notifier, event))
            self._pending[task] = notifier
            task.add_done_callback(self._forget)
            tasks.append(task)
        self._dispatched += 1
        return tasks

    def _forget(self, task: asyncio.Task) -> None:
        self._pending.pop(task, None)

    async def _close_when_done(self, notifier: Notifier, tasks: list[asyncio.Task]) -> None:
        await asyncio.wait(tasks)
        await self._close(notifier)

    @staticmethod
    async def _close(notifier: Notifier) -> None:
        try:
            await notifier.aclose()
        except Exception:
            logger.exception("Error closing %r", notifier)

    async def _loop(self) -> None:
        while True:
            event = await self.queue.get()
            try:
                self.dispatch(event)
            finally:
                self.queue.task_done()

    @staticmethod
    async def _notify(notifier: Notifier, event: ChangeEvent) -> bool:
        try:
            ok = await notifier.notify(event)
        except Exception:
            logger.exception("%r failed on %s", notifier, event.subject)
            return False
        if not ok:
            logger.warning("%r could not deliver %s", notifier, event.subject)
        return ok
