import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class Attachment:
    filename: str
    href: str | None = None
    content: str | None = None
    cid: str | None = None

    def to_payload(self) -> dict[str, str]:
        payload = {"filename": self.filename}
        for key in ("href", "content", "cid"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload


@dataclass(frozen=True)
class MailMessage:
    """A payload that passed every validation rule; `sender` is the wire `from`."""

    sender: str
    to: tuple[str, ...]
    subject: str
    cc: tuple[str, ...] = ()
    bcc: tuple[str, ...] = ()
    text: str | None = None
    html: str | None = None
    attachments: tuple[Attachment, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "from": self.sender,
            "to": list(self.to),
            "subject": self.subject,
        }
        if self.cc:
            payload["cc"] = list(self.cc)
        if self.bcc:
            payload["bcc"] = list(self.bcc)
        if self.text is not None:
            payload["text"] = self.text
        if self.html is not None:
            payload["html"] = self.html
        if self.attachments:
            payload["attachments"] = [a.to_payload() for a in self.attachments]
        return payload


class ClientIdentity(str, Enum):
    BROWSER_ORIGIN = "browser_origin"
    API_KEY = "api_key"


@dataclass(frozen=True)
class RateWindow:
    count: int
    reset_at: float  # on the owning store's clock

    def remaining(self, ceiling: int) -> int:
        return max(ceiling - self.count, 0)

    def seconds_until_reset(self, now: float) -> int:
        return max(int(self.reset_at - now + 0.999), 0)


@dataclass
class RequestContext:
    request_id: str
    client_address: str
    method: str
    path: str
    started_at: float = field(default_factory=time.perf_counter)
    response_headers: dict[str, str] = field(default_factory=dict)
    identity: ClientIdentity | None = None
    message: MailMessage | None = None

    def elapsed_ms(self) -> float:
        return round((time.perf_counter() - self.started_at) * 1000, 2)
