"""Webhook notifier — POSTs the event record as JSON.

Uses a single :class:`httpx.AsyncClient` per endpoint for connection reuse.
"""

from __future__ import annotations

import logging
from typing import Iterable

import httpx

from zcnotify.config import NotifierKind, WebhookEndpoint
from zcnotify.models import ChangeEvent
from zcnotify.notifiers.base import Notifier, NotifierError

logger = logging.getLogger(__name__)


class WebhookNotifier(Notifier):
    kind = NotifierKind.WEBHOOK

    def __init__(
        self,
        endpoints: Iterable[WebhookEndpoint],
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.endpoints = list(endpoints)
        if not self.endpoints:
            raise NotifierError("webhook notifier needs at least one endpoint")
        self._clients: dict[str, httpx.AsyncClient] = {
            ep.name: httpx.AsyncClient(
                timeout=ep.timeout, headers=ep.headers, transport=transport
            )
            for ep in self.endpoints
        }

    async def notify(self, event: ChangeEvent) -> bool:
        payload = event.to_dict()
        ok = True
        for ep in self.endpoints:
            try:
                response = await self._clients[ep.name].post(ep.url, json=payload)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                logger.error(
                    "Webhook %s returned %d for %s", ep.name, exc.response.status_code, event.subject
                )
                ok = False
            except httpx.HTTPError as exc:
                logger.error("Webhook %s unreachable (%s): %s", ep.name, ep.url, exc)
                ok = False
        return ok

    async def aclose(self) -> None:
        for client in self._clients.values():
            await client.aclose()
