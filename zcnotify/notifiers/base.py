"""Notifier base class.

Each sink (email, webhook, log) implements this interface.  The dispatcher
runs ``notify`` for many events and sinks at once, so implementations must
tolerate concurrent calls and must give up on their own I/O rather than hang.
"""

from __future__ import annotations

import abc

from zcnotify.config import NotifierKind
from zcnotify.models import ChangeEvent


class NotifierError(Exception):
    """Raised when a notifier cannot be built from its configuration."""


class Notifier(abc.ABC):
    """Abstract base class for all notification sinks."""

    #: Which ``notify_types`` entry enables this sink
    kind: NotifierKind

    @abc.abstractmethod
    async def notify(self, event: ChangeEvent) -> bool:
        """Deliver *event*.

        Returns ``True`` on success and ``False`` on a delivery failure.
        Failures are expected to be logged by the implementation.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release any resources held by the notifier."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} kind={self.kind.value}>"
