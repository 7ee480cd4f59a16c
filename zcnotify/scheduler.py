"""Scan scheduler — periodic browse, diff and publish.

The scheduler is the only owner of the previous scan's snapshots.  Each cycle
it browses, diffs against the retained collection, hands every event to the
dispatcher through a capacity-1 queue and waits until the dispatcher has
taken them all before the next cycle may start.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

from zcnotify.differ import apply_changes, diff
from zcnotify.discovery import BrowseRequest, Discoverer, DiscoveryError
from zcnotify.models import ChangeEvent, ServiceSnapshot

logger = logging.getLogger(__name__)

# Extra time allowed past the browse budget before the call is abandoned
_BROWSE_GRACE = 5.0


@dataclass(frozen=True)
class RetryPolicy:
    """How discovery errors are handled.

    With ``max_retries == 0`` the first failure ends the scan loop.
    Otherwise the browse is retried with exponential backoff, and the error
    is raised once the retries are used up.
    """

    max_retries: int = 0
    backoff_base: float = 1.0
    backoff_max: float = 60.0

    def delay(self, attempt: int) -> float:
        return min(self.backoff_base * (2 ** attempt), self.backoff_max)


class ScanScheduler:
    """Runs the browse → diff → publish cycle until told to stop."""

    def __init__(
        self,
        discoverer: Discoverer,
        queue: asyncio.Queue[ChangeEvent],
        request: BrowseRequest,
        period: float = 10.0,
        retry: RetryPolicy | None = None,
    ) -> None:
        if period <= 0:
            raise ValueError("period must be positive")
        self.discoverer = discoverer
        self.queue = queue
        self.request = request
        self.period = period
        self.retry = retry or RetryPolicy()
        self._previous: list[ServiceSnapshot] = []
        self._cycles = 0

    @property
    def cycles(self) -> int:
        """Number of completed scan cycles."""
        return self._cycles

    async def run(self, stop: asyncio.Event) -> None:
        """Scan until *stop* is set.

        Returns normally when stopped.  Raises :class:`DiscoveryError` when a
        browse fails and the retry policy gives up.
        """
        logger.info(
            "Scanning %s every %ss", self.request.service_type, self.period
        )
        delay = 0.0
        while True:
            if await _wait_or_stop(stop, delay):
                logger.info("Stop requested, scan loop exiting after %d cycle(s)", self._cycles)
                return

            started = time.monotonic()
            current = await self._browse(stop)
            if current is None:
                logger.info("Stop requested during discovery retry")
                return

            events = diff(self._previous, current)
            for event in events:
                logger.info("%s", event)
                await self.queue.put(event)
            # Next cycle only after the dispatcher took every event
            await self.queue.join()

            self._previous = apply_changes(self._previous, events)
            self._cycles += 1
            logger.debug(
                "Cycle %d: %d instance(s), %d change(s)",
                self._cycles, len(self._previous), len(events),
            )
            delay = max(0.0, self.period - (time.monotonic() - started))

    async def _browse(self, stop: asyncio.Event) -> list[ServiceSnapshot] | None:
        attempt = 0
        while True:
            try:
                return await asyncio.wait_for(
                    self.discoverer.browse(self.request, self.period),
                    timeout=self.period + _BROWSE_GRACE,
                )
            except asyncio.TimeoutError:
                error = DiscoveryError(
                    f"browse did not finish within {self.period + _BROWSE_GRACE}s"
                )
            except DiscoveryError as exc:
                error = exc

            if attempt >= self.retry.max_retries:
                logger.error("Failed to browse: %s", error)
                raise error
            backoff = self.retry.delay(attempt)
            attempt += 1
            logger.warning(
                "Failed to browse: %s, retry %d/%d in %ss",
                error, attempt, self.retry.max_retries, backoff,
            )
            if await _wait_or_stop(stop, backoff):
                return None


async def _wait_or_stop(stop: asyncio.Event, delay: float) -> bool:
    """Sleep up to *delay* seconds; return True as soon as *stop* is set."""
    if stop.is_set():
        return True
    if delay <= 0:
        return False
    try:
        await asyncio.wait_for(stop.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return False
    return True
