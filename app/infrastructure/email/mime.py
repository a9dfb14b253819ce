from __future__ import annotations

import mimetypes
from email.message import EmailMessage
from email.utils import make_msgid

from app.domain.entities import Attachment, MailMessage


def _guess_type(filename: str) -> tuple[str, str]:
    guessed, _ = mimetypes.guess_type(filename)
    if not guessed or "/" not in guessed:
        return "application", "octet-stream"
    maintype, subtype = guessed.split("/", 1)
    return maintype, subtype


def build_email_message(
    message: MailMessage,
    *,
    request_id: str,
    attachment_data: list[bytes] | None = None,
) -> EmailMessage:
    """
    Build the MIME message. Bcc recipients are deliberately absent from the
    headers; they only appear in the SMTP envelope.
    """
    mime = EmailMessage()
    mime["From"] = message.sender
    mime["To"] = ", ".join(message.to)
    if message.cc:
        mime["Cc"] = ", ".join(message.cc)
    mime["Subject"] = message.subject
    mime["Message-ID"] = make_msgid(domain=message.sender.rsplit("@", 1)[-1])
    mime["X-Request-ID"] = request_id

    if message.html is not None:
        mime.set_content(message.html, subtype="html")
    else:
        mime.set_content(message.text or "")

    for attachment, data in zip(message.attachments, attachment_data or [], strict=True):
        _attach(mime, attachment, data)
    return mime


def _attach(mime: EmailMessage, attachment: Attachment, data: bytes) -> None:
    maintype, subtype = _guess_type(attachment.filename)
    if attachment.cid:
        mime.add_attachment(
            data,
            maintype=maintype,
            subtype=subtype,
            filename=attachment.filename,
            disposition="inline",
            cid=f"<{attachment.cid}>",
        )
    else:
        mime.add_attachment(data, maintype=maintype, subtype=subtype, filename=attachment.filename)


def envelope_recipients(message: MailMessage) -> list[str]:
    return [*message.to, *message.cc, *message.bcc]
