"""Network interface selection for the zeroconf browser."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

import ifaddr
from zeroconf import InterfaceChoice, IPVersion

from zcnotify.config import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class NetworkInterface:
    name: str
    index: int | None = None
    ipv4: list[str] = field(default_factory=list)
    ipv6: list[str] = field(default_factory=list)


def list_interfaces() -> list[NetworkInterface]:
    """Enumerate the host's network adapters and their addresses."""
    result = []
    for adapter in ifaddr.get_adapters():
        intf = NetworkInterface(name=adapter.name, index=adapter.index)
        for ip in adapter.ips:
            if ip.is_IPv4:
                intf.ipv4.append(ip.ip)
            else:
                # ifaddr gives IPv6 as (address, flowinfo, scope_id)
                intf.ipv6.append(ip.ip[0])
        result.append(intf)
    return result


def resolve_interfaces(
    use: Sequence[str],
    exclude: Sequence[str],
    available: Sequence[NetworkInterface] | None = None,
) -> list[NetworkInterface]:
    """Apply the ``use`` / ``exclude`` lists to the available interfaces.

    An empty *use* selects every interface.  Naming an interface that does
    not exist, in either list, is a configuration error.
    """
    if available is None:
        available = list_interfaces()
    by_name = {intf.name: intf for intf in available}

    if not use:
        selected = list(available)
        logger.info("No interfaces specified, assuming all: %s", [i.name for i in selected])
    else:
        selected = []
        for name in use:
            if name not in by_name:
                raise ConfigError(f"no such interface {name!r}")
            selected.append(by_name[name])
        logger.info("Using specific interfaces %s", [i.name for i in selected])

    if exclude:
        logger.info("Excluding interfaces %s", list(exclude))
        for name in exclude:
            if name not in by_name:
                raise ConfigError(f"no such interface {name!r}")
        selected = [intf for intf in selected if intf.name not in exclude]

    logger.info("Final interface list %s", [i.name for i in selected])
    return selected


def zeroconf_interfaces(
    selected: Sequence[NetworkInterface],
    ip_version: IPVersion,
    available: Sequence[NetworkInterface] | None = None,
) -> list[str | int] | InterfaceChoice:
    """Translate *selected* into the ``interfaces`` argument of zeroconf.

    zeroconf joins IPv4 multicast by address and IPv6 multicast by interface
    index.  When every available interface is selected the plain
    ``InterfaceChoice.All`` is returned.
    """
    if available is not None and {i.name for i in selected} == {i.name for i in available}:
        return InterfaceChoice.All

    result: list[str | int] = []
    for intf in selected:
        if ip_version in (IPVersion.V4Only, IPVersion.All):
            result.extend(intf.ipv4)
        if ip_version in (IPVersion.V6Only, IPVersion.All) and intf.ipv6 and intf.index is not None:
            result.append(intf.index)
    if not result:
        raise ConfigError(
            f"no usable addresses on interfaces {[i.name for i in selected]}"
        )
    return result
