# app/domain/services.py
from __future__ import annotations

import hmac
import html
import re
import uuid

_LINE_BREAKS = re.compile(r"[\r\n]+")


def new_request_id() -> str:
    """Random UUID4 in canonical text form."""
    return str(uuid.uuid4())


def secure_compare(a: str, b: str) -> bool:
    """
    Constant-time comparison for secrets.
    Accepts strings; falls back to bytes if needed.
    """
    try:
        # hmac.compare_digest supports str only when both are ASCII
        return hmac.compare_digest(a, b)
    except TypeError:
        return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def matches_any_secret(candidate: str, secrets: list[str]) -> bool:
    # every key is compared so timing does not reveal which one matched
    matched = False
    for secret in secrets:
        matched |= secure_compare(candidate, secret)
    return matched


def strip_line_breaks(value: str) -> str:
    """Collapse CR/LF runs into one space so a value cannot start a new header."""
    return _LINE_BREAKS.sub(" ", value)


def sanitize_header_text(value: str) -> str:
    """
    Collapse line breaks (header injection) and escape HTML-significant
    characters for strings that end up outside the mail body.
    """
    return html.escape(strip_line_breaks(value), quote=True)
