from __future__ import annotations

import asyncio
import logging

import aiosmtplib
import httpx

from app.domain.entities import MailMessage
from app.domain.errors import DeliveryFailure
from app.domain.ports.email_port import EmailPort
from app.infrastructure.email.attachments import AttachmentFetcher, AttachmentTooLarge
from app.infrastructure.email.mime import build_email_message, envelope_recipients

logger = logging.getLogger("app.infrastructure.email.smtp_adapter")


class SmtpEmailAdapter(EmailPort):
    def __init__(
        self,
        *,
        hostname: str,
        port: int,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        start_tls: bool = False,
        timeout: float = 30.0,
        fetcher: AttachmentFetcher,
    ) -> None:
        self._hostname = hostname
        self._port = port
        self._username = username or None
        self._password = password or None
        self._use_tls = use_tls
        self._start_tls = start_tls if not use_tls else False
        self._timeout = timeout
        self._fetcher = fetcher

    async def send(self, message: MailMessage, *, request_id: str) -> None:
        try:
            attachment_data = await self._fetcher.resolve_all(message.attachments)
        except (httpx.HTTPError, AttachmentTooLarge) as e:
            raise DeliveryFailure() from e

        mime = build_email_message(
            message, request_id=request_id, attachment_data=attachment_data
        )
        try:
            await aiosmtplib.send(
                mime,
                sender=message.sender,
                recipients=envelope_recipients(message),
                hostname=self._hostname,
                port=self._port,
                username=self._username,
                password=self._password,
                use_tls=self._use_tls,
                start_tls=self._start_tls,
                timeout=self._timeout,
            )
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as e:
            raise DeliveryFailure() from e

        logger.debug(
            "handed to smtp relay",
            extra={"request_id": request_id, "host": self._hostname, "port": self._port},
        )

    async def aclose(self) -> None:
        # one connection per send; nothing held open
        return None
