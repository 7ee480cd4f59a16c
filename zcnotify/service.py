"""ZCNotifyService wires discovery, scheduler and dispatcher together."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from zcnotify.config import ZCNotifyConfig
from zcnotify.discovery import BrowseRequest, Discoverer, ZeroconfDiscoverer
from zcnotify.dispatcher import ChangeDispatcher
from zcnotify.interfaces import list_interfaces, resolve_interfaces, zeroconf_interfaces
from zcnotify.models import ChangeEvent
from zcnotify.notifiers import Notifier, build_notifiers
from zcnotify.scheduler import RetryPolicy, ScanScheduler

logger = logging.getLogger(__name__)


def browse_request_from_config(config: ZCNotifyConfig) -> BrowseRequest:
    """Resolve the configured interfaces into a :class:`BrowseRequest`."""
    available = list_interfaces()
    selected = resolve_interfaces(config.interfaces_use, config.interfaces_exclude, available)
    return BrowseRequest(
        service=config.service,
        domain=config.domain,
        ip_version=config.ip_version,
        interfaces=zeroconf_interfaces(selected, config.ip_version, available),
    )


class ZCNotifyService:
    """One scan loop feeding one dispatcher through a capacity-1 queue."""

    def __init__(
        self,
        config: ZCNotifyConfig,
        notifiers: Sequence[Notifier] | None = None,
        discoverer: Discoverer | None = None,
        request: BrowseRequest | None = None,
    ) -> None:
        self.config = config
        self.queue: asyncio.Queue[ChangeEvent] = asyncio.Queue(maxsize=1)
        self.dispatcher = ChangeDispatcher(
            self.queue, notifiers if notifiers is not None else build_notifiers(config)
        )
        self.scheduler = ScanScheduler(
            discoverer or ZeroconfDiscoverer(),
            self.queue,
            request or browse_request_from_config(config),
            period=config.scan_period_seconds,
            retry=RetryPolicy(
                max_retries=config.discovery_retries,
                backoff_base=config.discovery_backoff_seconds,
                backoff_max=config.discovery_backoff_max_seconds,
            ),
        )

    async def run(self, stop: asyncio.Event) -> None:
        """Run until *stop* is set; a fatal discovery error propagates."""
        await self.dispatcher.start()
        try:
            await self.scheduler.run(stop)
        finally:
            await self.dispatcher.stop(drain_timeout=self.config.notify_drain_seconds)
