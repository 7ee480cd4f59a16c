"""Tests for interface enumeration and selection."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import patch

import pytest
from zeroconf import InterfaceChoice, IPVersion

from zcnotify.config import ConfigError
from zcnotify.interfaces import (
    NetworkInterface,
    list_interfaces,
    resolve_interfaces,
    zeroconf_interfaces,
)

LO = NetworkInterface("lo", 1, ["127.0.0.1"], ["::1"])
ETH0 = NetworkInterface("eth0", 2, ["192.168.1.10"], ["fe80::10"])
WLAN0 = NetworkInterface("wlan0", 3, ["10.0.0.5"], [])
AVAILABLE = [LO, ETH0, WLAN0]


def names(interfaces) -> list[str]:
    return [i.name for i in interfaces]


class TestListInterfaces:
    def test_from_ifaddr(self):
        adapters = [
            SimpleNamespace(
                name="eth0",
                index=2,
                ips=[
                    SimpleNamespace(ip="192.168.1.10", is_IPv4=True),
                    SimpleNamespace(ip=("fe80::10", 0, 2), is_IPv4=False),
                ],
            ),
            SimpleNamespace(name="tun0", index=7, ips=[]),
        ]
        with patch("zcnotify.interfaces.ifaddr.get_adapters", return_value=adapters):
            result = list_interfaces()
        assert result == [
            NetworkInterface("eth0", 2, ["192.168.1.10"], ["fe80::10"]),
            NetworkInterface("tun0", 7, [], []),
        ]


class TestResolveInterfaces:
    def test_nothing_named_selects_all(self):
        assert names(resolve_interfaces([], [], AVAILABLE)) == ["lo", "eth0", "wlan0"]

    def test_use(self):
        assert names(resolve_interfaces(["wlan0", "eth0"], [], AVAILABLE)) == ["wlan0", "eth0"]

    def test_exclude(self):
        assert names(resolve_interfaces([], ["lo"], AVAILABLE)) == ["eth0", "wlan0"]

    def test_use_and_exclude(self):
        assert names(resolve_interfaces(["eth0", "wlan0"], ["wlan0"], AVAILABLE)) == ["eth0"]

    @pytest.mark.parametrize("use,exclude", [(["eth9"], []), ([], ["eth9"])])
    def test_unknown_interface(self, use, exclude):
        with pytest.raises(ConfigError, match="eth9"):
            resolve_interfaces(use, exclude, AVAILABLE)

    def test_enumerates_when_not_given(self):
        with patch("zcnotify.interfaces.list_interfaces", return_value=AVAILABLE) as lister:
            assert names(resolve_interfaces(["lo"], [])) == ["lo"]
        lister.assert_called_once()


class TestZeroconfInterfaces:
    def test_all_selected(self):
        assert zeroconf_interfaces(AVAILABLE, IPVersion.All, AVAILABLE) is InterfaceChoice.All

    def test_subset_both_families(self):
        assert zeroconf_interfaces([ETH0], IPVersion.All, AVAILABLE) == ["192.168.1.10", 2]

    def test_subset_v4_only(self):
        assert zeroconf_interfaces([ETH0, WLAN0], IPVersion.V4Only, AVAILABLE) == [
            "192.168.1.10",
            "10.0.0.5",
        ]

    def test_subset_v6_only_skips_v4_only_interface(self):
        assert zeroconf_interfaces([ETH0, WLAN0], IPVersion.V6Only, AVAILABLE) == [2]

    def test_no_usable_address(self):
        with pytest.raises(ConfigError, match="no usable addresses"):
            zeroconf_interfaces([WLAN0], IPVersion.V6Only, AVAILABLE)

    def test_empty_selection(self):
        with pytest.raises(ConfigError):
            zeroconf_interfaces([], IPVersion.All, AVAILABLE)
