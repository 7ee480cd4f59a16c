"""pytest configuration for zcnotify tests."""

from __future__ import annotations

import pytest

from zcnotify.models import ServiceSnapshot


def snap(key: str, host: str = "h1", port: int = 80, ttl: int = 60, **kwargs) -> ServiceSnapshot:
    """Short-hand ServiceSnapshot used throughout the tests."""
    return ServiceSnapshot(instance_key=key, host_name=host, port=port, ttl=ttl, **kwargs)


# Configure asyncio mode for pytest-asyncio
def pytest_configure(config):
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


@pytest.fixture
def printer() -> ServiceSnapshot:
    return ServiceSnapshot(
        instance_key="printer._workstation._tcp.local.",
        instance="printer",
        host_name="printer.local.",
        port=9,
        ttl=120,
        text_records=("model=lp", "rev=2"),
        addresses_v4=frozenset({"192.168.1.20"}),
        addresses_v6=frozenset({"fe80::1"}),
    )
