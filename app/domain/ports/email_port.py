from __future__ import annotations

from typing import Protocol

from app.domain.entities import MailMessage


class EmailPort(Protocol):
    async def send(self, message: MailMessage, *, request_id: str) -> None:
        """Hand a validated message to the relay; raise DeliveryFailure on failure."""

    async def aclose(self) -> None:
        """Release any connection the adapter owns."""
