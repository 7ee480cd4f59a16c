"""zcnotify.notifiers — notification sinks and the factory that builds them.

Exports:
    Notifier         — abstract base class
    NotifierKind     — enum of the sink types accepted in ``notify_types``
    EmailNotifier    — SMTP email per configured recipient
    WebhookNotifier  — JSON POST per configured endpoint
    LogNotifier      — one log line per event
    build_notifiers  — one notifier per enabled kind
"""

from __future__ import annotations

from typing import Callable

from zcnotify.config import NotifierKind, ZCNotifyConfig
from zcnotify.notifiers.base import Notifier, NotifierError
from zcnotify.notifiers.log import LogNotifier
from zcnotify.notifiers.mail import EmailNotifier
from zcnotify.notifiers.webhook import WebhookNotifier

_FACTORIES: dict[NotifierKind, Callable[[ZCNotifyConfig], Notifier]] = {
    NotifierKind.EMAIL: lambda cfg: EmailNotifier(cfg.email.values()),
    NotifierKind.WEBHOOK: lambda cfg: WebhookNotifier(cfg.webhook.values()),
    NotifierKind.LOG: lambda cfg: LogNotifier(),
}


def build_notifiers(config: ZCNotifyConfig) -> list[Notifier]:
    """Build one notifier per distinct kind in ``config.notify_types``."""
    notifiers: list[Notifier] = []
    seen: set[NotifierKind] = set()
    for kind in config.notify_types:
        if kind in seen:
            continue
        seen.add(kind)
        notifiers.append(_FACTORIES[kind](config))
    if not notifiers:
        raise NotifierError("no notification types enabled")
    return notifiers


__all__ = [
    "Notifier",
    "NotifierError",
    "NotifierKind",
    "EmailNotifier",
    "WebhookNotifier",
    "LogNotifier",
    "build_notifiers",
]
