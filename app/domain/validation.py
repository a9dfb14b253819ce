"""
Mail payload validation.

Rules are small objects with a `check(payload) -> list[FieldError]` contract,
evaluated in declaration order. Every rule runs, so the caller receives the
complete error list; the first entry is the one summarised in the response.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence

from email_validator import EmailNotValidError, validate_email
from pydantic import HttpUrl, TypeAdapter, ValidationError

from app.domain.entities import Attachment, MailMessage
from app.domain.services import sanitize_header_text, strip_line_breaks

MAIL_MESSAGE_KEYS = ("from", "to", "subject", "cc", "bcc", "text", "html", "attachments")
ATTACHMENT_KEYS = ("filename", "href", "content", "cid")

BODY_NOT_OBJECT = "Request body must be a JSON object"
TEXT_HTML_EXCLUSIVE = (
    "Each email must contain either `text` or `html`, but not both or neither"
)
HREF_CONTENT_EXCLUSIVE = (
    "Each attachment must contain either `href` or `content`, but not both or neither."
)

_MISSING: Any = object()
_url_adapter = TypeAdapter(HttpUrl)


@dataclass(frozen=True)
class FieldError:
    msg: str
    path: str

    def as_dict(self) -> dict[str, str]:
        return {"type": "field", "msg": self.msg, "path": self.path, "location": "body"}


@dataclass
class ValidationResult:
    message: MailMessage | None = None
    errors: list[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.message is not None and not self.errors

    def error_dicts(self) -> list[dict[str, str]]:
        return [e.as_dict() for e in self.errors]


def is_email_address(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def is_url(value: Any) -> bool:
    """Absolute http(s) URL; the attachment fetcher speaks nothing else."""
    if not isinstance(value, str):
        return False
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        return False
    return True


def _join(prefix: str, name: str) -> str:
    return f"{prefix}.{name}" if prefix else name


class Rule(Protocol):
    def check(self, payload: Mapping[str, Any], prefix: str = "") -> list[FieldError]:
        ...


@dataclass(frozen=True)
class EmailAddress:
    name: str
    message: str

    def check(self, payload, prefix=""):
        if is_email_address(payload.get(self.name, _MISSING)):
            return []
        return [FieldError(self.message, _join(prefix, self.name))]


@dataclass(frozen=True)
class AddressList:
    """A list of addresses; a bare string is rejected even when it is an address."""

    name: str
    list_message: str
    item_message: str
    required: bool = True

    def check(self, payload, prefix=""):
        value = payload.get(self.name, _MISSING)
        path = _join(prefix, self.name)
        if value is _MISSING and not self.required:
            return []
        if not isinstance(value, list) or (self.required and not value):
            return [FieldError(self.list_message, path)]
        return [
            FieldError(self.item_message, f"{path}[{i}]")
            for i, item in enumerate(value)
            if not is_email_address(item)
        ]


@dataclass(frozen=True)
class NonEmptyString:
    """Absent is fine when optional; present-but-empty never is."""

    name: str
    message: str
    required: bool = True

    def check(self, payload, prefix=""):
        value = payload.get(self.name, _MISSING)
        if value is _MISSING and not self.required:
            return []
        if isinstance(value, str) and value:
            return []
        return [FieldError(self.message, _join(prefix, self.name))]


@dataclass(frozen=True)
class OptionalString:
    name: str
    message: str

    def check(self, payload, prefix=""):
        value = payload.get(self.name, _MISSING)
        if value is _MISSING or isinstance(value, str):
            return []
        return [FieldError(self.message, _join(prefix, self.name))]


@dataclass(frozen=True)
class OptionalUrl:
    name: str
    message: str

    def check(self, payload, prefix=""):
        value = payload.get(self.name, _MISSING)
        if value is _MISSING or is_url(value):
            return []
        return [FieldError(self.message, _join(prefix, self.name))]


@dataclass(frozen=True)
class ExactlyOneOf:
    first: str
    second: str
    message: str

    def check(self, payload, prefix=""):
        has_first = bool(payload.get(self.first))
        has_second = bool(payload.get(self.second))
        if has_first != has_second:
            return []
        return [FieldError(self.message, _join(prefix, self.first))]


@dataclass(frozen=True)
class ClosedSchema:
    allowed: Sequence[str]
    message: str
    one_error_per_key: bool = False

    def check(self, payload, prefix=""):
        extra = [key for key in payload if key not in self.allowed]
        if not extra:
            return []
        if self.one_error_per_key:
            return [
                FieldError(self.message.format(keys=key), _join(prefix, key))
                for key in extra
            ]
        return [FieldError(self.message.format(keys=", ".join(extra)), prefix or extra[0])]


@dataclass(frozen=True)
class ObjectList:
    """Optional list whose elements are objects checked by `item_rules`."""

    name: str
    message: str
    item_rules: Sequence[Rule]

    def check(self, payload, prefix=""):
        value = payload.get(self.name, _MISSING)
        path = _join(prefix, self.name)
        if value is _MISSING:
            return []
        if not isinstance(value, list):
            return [FieldError(self.message, path)]
        errors: list[FieldError] = []
        for i, item in enumerate(value):
            item_path = f"{path}[{i}]"
            if not isinstance(item, dict):
                errors.append(FieldError(self.message, item_path))
                continue
            for rule in self.item_rules:
                errors.extend(rule.check(item, item_path))
        return errors


ATTACHMENT_RULES: tuple[Rule, ...] = (
    NonEmptyString("filename", "Attachment filename must be a string"),
    OptionalUrl("href", "Attachment href must be a URL"),
    OptionalString("content", "Attachment content must be a string (base64 for binary data)"),
    OptionalString("cid", "cid must be a string"),
    ExactlyOneOf("href", "content", HREF_CONTENT_EXCLUSIVE),
    ClosedSchema(ATTACHMENT_KEYS, "Attachment contains an invalid field: {keys}", one_error_per_key=True),
)

MAIL_MESSAGE_RULES: tuple[Rule, ...] = (
    EmailAddress("from", "Invalid sender email address"),
    AddressList("to", "To must be an array of email addresses", "Invalid email address in To field"),
    NonEmptyString("subject", "Subject cannot be empty"),
    AddressList("cc", "Cc must be an array of email addresses", "Invalid email address in Cc field", required=False),
    AddressList("bcc", "Bcc must be an array of email addresses", "Invalid email address in Bcc field", required=False),
    NonEmptyString("text", "Message cannot be empty", required=False),
    NonEmptyString("html", "html cannot be empty", required=False),
    ObjectList("attachments", "Attachments must be an array of objects", ATTACHMENT_RULES),
    ExactlyOneOf("text", "html", TEXT_HTML_EXCLUSIVE),
    ClosedSchema(MAIL_MESSAGE_KEYS, "Invalid keys found in request body: {keys}"),
)


def _build_attachment(raw: Mapping[str, Any]) -> Attachment:
    cid = raw.get("cid")
    return Attachment(
        filename=strip_line_breaks(raw["filename"]),
        href=raw.get("href") or None,
        content=raw.get("content") or None,
        cid=strip_line_breaks(cid) if cid is not None else None,
    )


def _build_message(payload: Mapping[str, Any]) -> MailMessage:
    return MailMessage(
        sender=payload["from"],
        to=tuple(payload["to"]),
        subject=sanitize_header_text(payload["subject"]),
        cc=tuple(payload.get("cc", ())),
        bcc=tuple(payload.get("bcc", ())),
        text=payload.get("text"),
        html=payload.get("html"),
        attachments=tuple(_build_attachment(a) for a in payload.get("attachments", ())),
    )


def validate_mail_payload(
    payload: Any, rules: Sequence[Rule] = MAIL_MESSAGE_RULES
) -> ValidationResult:
    if not isinstance(payload, dict):
        return ValidationResult(errors=[FieldError(BODY_NOT_OBJECT, "")])

    errors: list[FieldError] = []
    for rule in rules:
        errors.extend(rule.check(payload))
    if errors:
        return ValidationResult(errors=errors)
    return ValidationResult(message=_build_message(payload))


def validate_mail_body(raw: bytes) -> ValidationResult:
    """Decode a JSON request body and validate it."""
    try:
        payload = json.loads(raw) if raw else None
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError):
        payload = None
    return validate_mail_payload(payload)
