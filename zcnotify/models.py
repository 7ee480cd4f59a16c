"""Data model for discovered services and the change events derived from them.

A :class:`ServiceSnapshot` describes one service instance as seen during a
single scan.  A :class:`ChangeEvent` records that an instance appeared,
disappeared or changed between two scans, and knows how to render itself for
notifiers (transport dict, JSON body, subject and summary line).
"""

from __future__ import annotations

import enum
import ipaddress
import json
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable


class ChangeType(enum.Enum):
    """Kind of change detected for a service instance."""

    ADD = "ADD"
    REMOVE = "REMOVE"
    MODIFY = "MODIFY"

    def __str__(self) -> str:
        return self.value


def _normalize_addresses(addresses: Iterable[str]) -> frozenset[str]:
    return frozenset(str(ipaddress.ip_address(a)) for a in addresses)


def format_timestamp(ts: datetime) -> str:
    """RFC 3339 UTC text for *ts*, e.g. ``2026-01-02T03:04:05.123456Z``."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class ServiceSnapshot:
    """One discovered service instance at a scan moment.

    ``instance_key`` is the full instance name
    (``"<instance>.<service>.<domain>."``) and is the only field used to match
    snapshots across scans.  Addresses are normalised on construction so that
    two spellings of the same IP compare equal.
    """

    instance_key: str
    instance: str = ""
    host_name: str = ""
    port: int = 0
    ttl: int = 0
    text_records: tuple[str, ...] = ()
    addresses_v4: frozenset[str] = field(default_factory=frozenset)
    addresses_v6: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "text_records", tuple(self.text_records))
        object.__setattr__(self, "addresses_v4", _normalize_addresses(self.addresses_v4))
        object.__setattr__(self, "addresses_v6", _normalize_addresses(self.addresses_v6))
        if not self.instance:
            object.__setattr__(self, "instance", self.instance_key.split(".", 1)[0])

    def same_key(self, other: ServiceSnapshot) -> bool:
        return self.instance_key == other.instance_key

    def same_payload(self, other: ServiceSnapshot) -> bool:
        """True if the published attributes match.

        TXT records are compared as a multiset and addresses as sets, so
        ordering differences between two scans are not reported as changes.
        """
        return (
            self.host_name == other.host_name
            and self.port == other.port
            and self.ttl == other.ttl
            and Counter(self.text_records) == Counter(other.text_records)
            and self.addresses_v4 == other.addresses_v4
            and self.addresses_v6 == other.addresses_v6
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "instanceKey": self.instance_key,
            "instance": self.instance,
            "hostName": self.host_name,
            "port": self.port,
            "ttl": self.ttl,
            "textRecords": list(self.text_records),
            "addressesV4": sorted(self.addresses_v4),
            "addressesV6": sorted(self.addresses_v6),
        }


@dataclass(frozen=True)
class ChangeEvent:
    """A single ADD / REMOVE / MODIFY observation.

    ``entry`` is the current snapshot for ADD and MODIFY, and the last known
    snapshot for REMOVE.
    """

    change_type: ChangeType
    timestamp: datetime
    entry: ServiceSnapshot

    def to_dict(self) -> dict[str, Any]:
        """Transport record consumed by notifiers."""
        return {
            "changeType": self.change_type.value,
            "timestamp": format_timestamp(self.timestamp),
            "entry": self.entry.to_dict(),
        }

    def to_json(self, indent: int | None = 4) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @property
    def subject(self) -> str:
        return f'[ZCNOTIFY] {self.change_type.value} "{self.entry.instance}"'

    def __str__(self) -> str:
        e = self.entry
        return (
            f'Service {self.change_type.value} "{e.instance}" @ '
            f"{format_timestamp(self.timestamp)}: "
            f"(h: {e.host_name}, 4: {sorted(e.addresses_v4)}, "
            f"6: {sorted(e.addresses_v6)}, ttl: {e.ttl})"
        )
