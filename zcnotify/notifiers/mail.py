"""Email notifier — one message per configured recipient over SMTP.

``smtplib`` is blocking, so each send runs in a worker thread with a socket
timeout; a dead server turns into a failed outcome instead of a stuck task.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Iterable

from zcnotify.config import EmailRecipient, NotifierKind
from zcnotify.models import ChangeEvent
from zcnotify.notifiers.base import Notifier, NotifierError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def build_message(recipient: EmailRecipient, event: ChangeEvent) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = recipient.from_addr
    msg["To"] = recipient.to_addr
    msg["Subject"] = event.subject
    msg.set_content(event.to_json(indent=4))
    return msg


class EmailNotifier(Notifier):
    kind = NotifierKind.EMAIL

    def __init__(
        self,
        recipients: Iterable[EmailRecipient],
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.recipients = list(recipients)
        if not self.recipients:
            raise NotifierError("email notifier needs at least one recipient")
        self.timeout = timeout

    async def notify(self, event: ChangeEvent) -> bool:
        ok = True
        for recipient in self.recipients:
            msg = build_message(recipient, event)
            try:
                await asyncio.to_thread(self._send, recipient, msg)
            except (smtplib.SMTPException, OSError) as exc:
                logger.error(
                    "Failed to send notification email to %s via %s: %s",
                    recipient.to_addr, recipient.server, exc,
                )
                ok = False
            else:
                logger.debug("Sent %s to %s", event.subject, recipient.to_addr)
        return ok

    def _send(self, recipient: EmailRecipient, msg: EmailMessage) -> None:
        with smtplib.SMTP(recipient.host, recipient.port, timeout=self.timeout) as smtp:
            if recipient.ssl:
                smtp.starttls(context=ssl.create_default_context())
            if recipient.password:
                smtp.login(recipient.from_addr, recipient.password)
            smtp.send_message(msg)
