from __future__ import annotations

import logging

from app.domain.entities import MailMessage
from app.domain.ports.email_port import EmailPort

logger = logging.getLogger("app.infrastructure.email.console_adapter")

_BODY_PREVIEW = 300


class ConsoleEmailAdapter(EmailPort):
    """Development sink: logs the message instead of contacting a relay."""

    async def send(self, message: MailMessage, *, request_id: str) -> None:
        body = message.text if message.text is not None else message.html or ""
        preview = body[:_BODY_PREVIEW] + ("..." if len(body) > _BODY_PREVIEW else "")
        logger.info(
            "email (console transport, not sent)",
            extra={
                "request_id": request_id,
                "sender": message.sender,
                "recipients": list(message.to),
                "cc": list(message.cc),
                "bcc": list(message.bcc),
                "subject": message.subject,
                "body": preview,
                "attachments": [a.filename for a in message.attachments],
            },
        )

    async def aclose(self) -> None:
        return None
