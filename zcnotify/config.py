"""Configuration for zcnotify, loaded from a TOML file.

Keys are matched case-insensitively and with underscores ignored, so both
``ScanPeriodSeconds = 10`` and ``scan_period_seconds = 10`` are accepted.
"""

from __future__ import annotations

import enum
import logging
import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from zeroconf import IPVersion

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "zcnotify.toml"
DEFAULT_SERVICE = "_workstation._tcp"
DEFAULT_DOMAIN = "local"
DEFAULT_SCAN_PERIOD = 10

SMTP_PORT = 25
SMTPS_PORT = 587

# Same pattern checkmail uses for address syntax
_EMAIL_RE = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9]"
    r"(?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)


class ConfigError(Exception):
    """Raised when the configuration file is missing, malformed or invalid."""


class NotifierKind(enum.Enum):
    EMAIL = "email"
    WEBHOOK = "webhook"
    LOG = "log"


def valid_email(address: str) -> bool:
    return bool(_EMAIL_RE.match(address or ""))


def _norm(key: str) -> str:
    return key.lower().replace("_", "").replace("-", "")


def _lookup(data: dict[str, Any], key: str, default: Any = None) -> Any:
    wanted = _norm(key)
    for k, v in data.items():
        if _norm(k) == wanted:
            return v
    return default


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    return value


def _as_float(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{name} must be a number, got {value!r}")
    return float(value)


def _as_bool(value: Any, name: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"{name} must be true or false, got {value!r}")
    return value


def _sections(value: Any, name: str) -> dict[str, dict[str, Any]]:
    if value is None:
        return {}
    if not isinstance(value, dict) or not all(isinstance(v, dict) for v in value.values()):
        raise ConfigError(f"{name} must be a table of [{name}.<name>] sections")
    return value


def _as_str_list(value: Any, name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{name} must be a list of strings")
    return list(value)


@dataclass
class EmailRecipient:
    """One ``[email.<name>]`` section."""

    name: str
    from_addr: str
    to_addr: str
    ssl: bool = False
    server: str = ""
    password: str = ""

    @property
    def host(self) -> str:
        return self._split_server()[0]

    @property
    def port(self) -> int:
        return self._split_server()[1]

    def _split_server(self) -> tuple[str, int]:
        host, sep, port = self.server.rpartition(":")
        if sep and port.isdigit() and ":" not in host:
            return host, int(port)
        return self.server, SMTPS_PORT if self.ssl else SMTP_PORT

    def validate(self) -> None:
        if not valid_email(self.from_addr):
            raise ConfigError(f"email config: {self.name!r} from: {self.from_addr!r} invalid format")
        if not valid_email(self.to_addr):
            raise ConfigError(f"email config: {self.name!r} to: {self.to_addr!r} invalid format")
        if not self.server:
            raise ConfigError(f"email config: {self.name!r} no server specified")


@dataclass
class WebhookEndpoint:
    """One ``[webhook.<name>]`` section."""

    name: str
    url: str
    timeout: float = 10.0
    headers: dict[str, str] = field(default_factory=dict)

    def validate(self) -> None:
        if not self.url.startswith(("http://", "https://")):
            raise ConfigError(f"webhook config: {self.name!r} url must be http(s): {self.url!r}")
        if self.timeout <= 0:
            raise ConfigError(f"webhook config: {self.name!r} timeout must be positive")


@dataclass
class ZCNotifyConfig:
    """Validated program configuration."""

    scan_period_seconds: int = DEFAULT_SCAN_PERIOD
    notify_types: list[NotifierKind] = field(default_factory=list)

    service: str = DEFAULT_SERVICE
    domain: str = DEFAULT_DOMAIN

    interfaces_use: list[str] = field(default_factory=list)
    interfaces_exclude: list[str] = field(default_factory=list)
    ip_versions: list[str] = field(default_factory=list)

    email: dict[str, EmailRecipient] = field(default_factory=dict)
    webhook: dict[str, WebhookEndpoint] = field(default_factory=dict)

    # Discovery failures: 0 retries keeps the fail-fast behaviour
    discovery_retries: int = 0
    discovery_backoff_seconds: float = 1.0
    discovery_backoff_max_seconds: float = 60.0

    # Seconds to wait for in-flight notifications on shutdown
    notify_drain_seconds: float = 0.0

    @property
    def ip_version(self) -> IPVersion:
        """IP traffic selection; both families when none are listed."""
        v4 = "ipv4" in self.ip_versions
        v6 = "ipv6" in self.ip_versions
        if v4 and not v6:
            return IPVersion.V4Only
        if v6 and not v4:
            return IPVersion.V6Only
        return IPVersion.All

    @classmethod
    def default_path(cls) -> Path:
        return Path(os.environ.get("ZCNOTIFY_CONFIG", DEFAULT_CONFIG_PATH))

    @classmethod
    def load(cls, path: str | Path) -> ZCNotifyConfig:
        path = Path(path)
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except OSError as exc:
            raise ConfigError(f"failed to read config file {path}: {exc}") from exc
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"failed to decode config file {path}: {exc}") from exc
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ZCNotifyConfig:
        zc = _lookup(data, "zeroconf", {}) or {}
        intf = _lookup(data, "interfaces", {}) or {}
        if not isinstance(zc, dict) or not isinstance(intf, dict):
            raise ConfigError("[zeroconf] and [interfaces] must be tables")

        period = _lookup(data, "scan_period_seconds", 0)
        cfg = cls(
            scan_period_seconds=_as_int(period, "scan_period_seconds") or DEFAULT_SCAN_PERIOD,
            service=_lookup(zc, "service", "") or DEFAULT_SERVICE,
            domain=_lookup(zc, "domain", "") or DEFAULT_DOMAIN,
            interfaces_use=_as_str_list(_lookup(intf, "use"), "interfaces.use"),
            interfaces_exclude=_as_str_list(_lookup(intf, "exclude"), "interfaces.exclude"),
            ip_versions=[v.lower() for v in _as_str_list(_lookup(intf, "ip"), "interfaces.ip")],
            discovery_retries=_as_int(_lookup(data, "discovery_retries", 0), "discovery_retries"),
            discovery_backoff_seconds=_as_float(
                _lookup(data, "discovery_backoff_seconds", 1.0), "discovery_backoff_seconds"
            ),
            discovery_backoff_max_seconds=_as_float(
                _lookup(data, "discovery_backoff_max_seconds", 60.0), "discovery_backoff_max_seconds"
            ),
            notify_drain_seconds=_as_float(
                _lookup(data, "notify_drain_seconds", 0.0), "notify_drain_seconds"
            ),
        )

        kinds = []
        for name in _as_str_list(_lookup(data, "notify_types"), "notify_types"):
            try:
                kinds.append(NotifierKind(name.lower()))
            except ValueError:
                raise ConfigError(f"unknown notification type {name.lower()!r}") from None
        cfg.notify_types = kinds

        for name, section in _sections(_lookup(data, "email"), "email").items():
            cfg.email[name] = EmailRecipient(
                name=name,
                from_addr=_lookup(section, "from", ""),
                to_addr=_lookup(section, "to", ""),
                ssl=_as_bool(_lookup(section, "ssl", False), f"email.{name}.ssl"),
                server=_lookup(section, "server", ""),
                password=_lookup(section, "password", ""),
            )

        for name, section in _sections(_lookup(data, "webhook"), "webhook").items():
            cfg.webhook[name] = WebhookEndpoint(
                name=name,
                url=_lookup(section, "url", ""),
                timeout=_as_float(_lookup(section, "timeout", 10.0), f"webhook.{name}.timeout"),
                headers=dict(_lookup(section, "headers", {}) or {}),
            )

        cfg.validate()
        return cfg

    def validate(self) -> None:
        """Raise :class:`ConfigError` unless the core can run with this config."""
        for ipv in self.ip_versions:
            if ipv not in ("ipv4", "ipv6"):
                raise ConfigError(f"unknown IP version {ipv} in interface config")
        if self.service != DEFAULT_SERVICE:
            raise ConfigError(f"unknown zeroconf service: {self.service}")
        if self.domain != DEFAULT_DOMAIN:
            raise ConfigError(f"unknown zeroconf domain: {self.domain}")
        if self.scan_period_seconds <= 0:
            raise ConfigError("scan_period_seconds must be positive")
        if self.discovery_retries < 0:
            raise ConfigError("discovery_retries must not be negative")
        if self.notify_drain_seconds < 0:
            raise ConfigError("notify_drain_seconds must not be negative")
        if not self.notify_types:
            raise ConfigError("no notification types found in config file")

        if NotifierKind.EMAIL in self.notify_types:
            if not self.email:
                raise ConfigError("invalid email configuration settings: no [email.<name>] sections")
            for recipient in self.email.values():
                recipient.validate()
        if NotifierKind.WEBHOOK in self.notify_types:
            if not self.webhook:
                raise ConfigError("invalid webhook configuration settings: no [webhook.<name>] sections")
            for endpoint in self.webhook.values():
                endpoint.validate()

        logger.info("Will browse every %d seconds", self.scan_period_seconds)
