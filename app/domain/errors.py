from __future__ import annotations

from typing import Any


class MailRelayError(Exception):
    """Base class for every failure the admission pipeline reports to a caller."""

    status_code: int = 500
    default_message: str = "Unknown error."

    def __init__(
        self, message: str | None = None, *, errors: list[dict[str, Any]] | None = None
    ) -> None:
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class AuthenticationFailure(MailRelayError):
    """Missing or unknown API key on a server-to-server call."""

    status_code = 401
    default_message = "Unauthorized Access: invalid API key."


class OriginRejected(MailRelayError):
    """Browser origin not trusted, or an HTTP method the gate never lets through."""

    status_code = 403
    default_message = "Unauthorized Access: untrusted origin"


class ValidationFailure(MailRelayError):
    """The mail payload broke one or more field rules."""

    status_code = 400

    def __init__(self, errors: list[dict[str, Any]]) -> None:
        super().__init__(errors[0]["msg"] if errors else None, errors=errors)


class RateLimitExceeded(MailRelayError):
    status_code = 429
    default_message = "Too many requests from this IP, please try again later."

    def __init__(self, retry_after: int = 0) -> None:
        super().__init__()
        self.retry_after = retry_after


class DeliveryFailure(MailRelayError):
    """The delivery adapter could not hand the message to the relay."""

    status_code = 500
    default_message = "Failed to send email"


class UnknownFailure(MailRelayError):
    pass
