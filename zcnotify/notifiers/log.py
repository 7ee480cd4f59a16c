"""Log notifier: writes the one-line event summary to the log."""

from __future__ import annotations

import logging

from zcnotify.config import NotifierKind
from zcnotify.models import ChangeEvent
from zcnotify.notifiers.base import Notifier

logger = logging.getLogger(__name__)


class LogNotifier(Notifier):
    kind = NotifierKind.LOG

    def __init__(self, level: int = logging.INFO) -> None:
        self.level = level

    async def notify(self, event: ChangeEvent) -> bool:
        logger.log(self.level, "%s", event)
        return True
