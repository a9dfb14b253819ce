"""
Stage outcomes. Every admission stage answers with exactly one of these;
the pipeline advances only on Continue.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from app.domain.errors import MailRelayError


@dataclass(frozen=True)
class Continue:
    pass


@dataclass(frozen=True)
class Redirect:
    location: str
    status_code: int = 302


@dataclass(frozen=True)
class Preflight:
    headers: dict[str, str] = field(default_factory=dict)
    status_code: int = 204


@dataclass(frozen=True)
class Reject:
    error: MailRelayError


Outcome = Continue | Redirect | Preflight | Reject

CONTINUE = Continue()
