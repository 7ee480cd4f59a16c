"""Zeroconf discovery: one bounded mDNS browse per scan cycle.

The scheduler only depends on the :class:`Discoverer` protocol.  The
production implementation, :class:`ZeroconfDiscoverer`, browses the service
type for most of the time budget, then resolves every instance it heard of
and returns the resolved instances as :class:`ServiceSnapshot` objects in
arrival order.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Protocol, Sequence, Union

from zeroconf import (
    BadTypeInNameException,
    Error as ZeroconfError,
    InterfaceChoice,
    IPVersion,
    ServiceStateChange,
    Zeroconf,
)
from zeroconf.asyncio import AsyncServiceBrowser, AsyncServiceInfo, AsyncZeroconf
from zeroconf.const import _CLASS_IN, _TYPE_A, _TYPE_AAAA, _TYPE_SRV

from zcnotify.config import DEFAULT_DOMAIN, DEFAULT_SERVICE
from zcnotify.models import ServiceSnapshot

logger = logging.getLogger(__name__)

# Share of the time budget kept back for resolving the names found
_RESOLVE_SHARE = 0.25
_RESOLVE_MAX_SECONDS = 3.0

InterfacesArg = Union[Sequence[Union[str, int]], InterfaceChoice]


class DiscoveryError(Exception):
    """Raised when a browse cannot be started or does not complete."""


@dataclass(frozen=True)
class BrowseRequest:
    """What to browse for and where.  Resolved once from configuration."""

    service: str = DEFAULT_SERVICE
    domain: str = DEFAULT_DOMAIN
    ip_version: IPVersion = IPVersion.All
    interfaces: InterfacesArg = field(default=InterfaceChoice.All)

    @property
    def service_type(self) -> str:
        """Fully qualified type, e.g. ``_workstation._tcp.local.``."""
        return f"{self.service}.{self.domain.rstrip('.')}."


class Discoverer(Protocol):
    async def browse(
        self, request: BrowseRequest, time_budget: float
    ) -> list[ServiceSnapshot]:
        ...


def parse_txt(raw: bytes | None) -> tuple[str, ...]:
    """Split a raw TXT RDATA payload into its strings.

    Each string is prefixed by a one-byte length.  Empty strings (the usual
    encoding of an empty TXT record) are dropped.
    """
    records: list[str] = []
    if not raw:
        return ()
    i = 0
    while i < len(raw):
        length = raw[i]
        chunk = raw[i + 1:i + 1 + length]
        i += 1 + length
        if chunk:
            records.append(chunk.decode("utf-8", errors="replace"))
    return tuple(records)


def record_ttl(zc: Zeroconf, info: AsyncServiceInfo) -> int:
    """TTL as advertised, read from the records zeroconf cached.

    The host's address record is preferred, then the instance's SRV record.
    ``info.host_ttl`` is only the default zeroconf would announce with, so it
    is the last resort.
    """
    cache = zc.cache
    if info.server:
        for type_ in (_TYPE_A, _TYPE_AAAA):
            record = cache.get_by_details(info.server, type_, _CLASS_IN)
            if record is not None:
                return int(record.ttl)
    record = cache.get_by_details(info.name, _TYPE_SRV, _CLASS_IN)
    if record is not None:
        return int(record.ttl)
    return int(info.host_ttl)


def snapshot_from_info(
    info: AsyncServiceInfo, service_type: str, ttl: int | None = None
) -> ServiceSnapshot:
    """Build a :class:`ServiceSnapshot` from a resolved service info."""
    name = info.name
    instance = name[: -len(service_type) - 1] if name.endswith("." + service_type) else name
    return ServiceSnapshot(
        instance_key=name,
        instance=instance,
        host_name=info.server or "",
        port=info.port or 0,
        ttl=int(info.host_ttl) if ttl is None else ttl,
        text_records=parse_txt(info.text),
        addresses_v4=info.parsed_addresses(IPVersion.V4Only),
        addresses_v6=info.parsed_addresses(IPVersion.V6Only),
    )


class ZeroconfDiscoverer:
    """:class:`Discoverer` backed by ``python-zeroconf``'s asyncio API.

    A fresh :class:`AsyncZeroconf` is opened for every browse and closed
    before returning, so interface or network changes between scans are
    picked up.
    """

    def __init__(self, resolve_timeout: float = _RESOLVE_MAX_SECONDS) -> None:
        self.resolve_timeout = resolve_timeout

    async def browse(
        self, request: BrowseRequest, time_budget: float
    ) -> list[ServiceSnapshot]:
        type_name = request.service_type
        resolve_window = min(self.resolve_timeout, time_budget * _RESOLVE_SHARE)
        listen_window = max(0.0, time_budget - resolve_window)

        try:
            aiozc = AsyncZeroconf(interfaces=request.interfaces, ip_version=request.ip_version)
        except (ZeroconfError, OSError, ValueError, RuntimeError) as exc:
            raise DiscoveryError(f"failed to initialise resolver: {exc}") from exc

        found: dict[str, None] = {}

        # zeroconf calls handlers with keyword arguments; keep these names
        def on_state_change(
            zeroconf: Zeroconf,
            service_type: str,
            name: str,
            state_change: ServiceStateChange,
        ) -> None:
            if state_change is ServiceStateChange.Removed:
                found.pop(name, None)
            else:
                found.setdefault(name, None)

        browser: AsyncServiceBrowser | None = None
        try:
            try:
                browser = AsyncServiceBrowser(
                    aiozc.zeroconf, [type_name], handlers=[on_state_change]
                )
            except (ZeroconfError, OSError, RuntimeError) as exc:
                raise DiscoveryError(f"failed to browse {type_name}: {exc}") from exc

            await asyncio.sleep(listen_window)
            names = list(found)
            logger.debug("Browse of %s heard %d instance(s)", type_name, len(names))

            try:
                results = await asyncio.gather(
                    *(self._resolve(aiozc, type_name, n, resolve_window) for n in names)
                )
            except ZeroconfError as exc:
                raise DiscoveryError(f"failed to resolve {type_name}: {exc!r}") from exc
        finally:
            if browser is not None:
                await browser.async_cancel()
            await aiozc.async_close()

        return [snap for snap in results if snap is not None]

    async def _resolve(
        self, aiozc: AsyncZeroconf, service_type: str, name: str, window: float
    ) -> ServiceSnapshot | None:
        info = AsyncServiceInfo(service_type, name)
        try:
            # async_request takes milliseconds
            ok = await info.async_request(aiozc.zeroconf, max(window, 0.1) * 1000)
        except (OSError, BadTypeInNameException) as exc:
            logger.debug("Could not resolve %s: %s", name, exc)
            return None
        if not ok:
            logger.debug("No answer resolving %s", name)
            return None
        return snapshot_from_info(info, service_type, ttl=record_ttl(aiozc.zeroconf, info))
