from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from app.domain.entities import RequestContext
from app.domain.errors import MailRelayError, UnknownFailure
from app.logging import request_log_fields

logger = logging.getLogger("app.application.error_reporter")

DEFAULT_STATUS = 500
DEFAULT_MESSAGE = UnknownFailure.default_message


@dataclass(frozen=True)
class ErrorReport:
    status_code: int
    body: dict[str, Any]


def _status_of(error: BaseException) -> int:
    status = getattr(error, "status_code", None)
    if isinstance(status, int) and 400 <= status <= 599:
        return status
    return DEFAULT_STATUS


def _message_of(error: BaseException) -> str:
    # only errors raised on purpose carry text meant for the caller
    if not isinstance(error, MailRelayError):
        error = UnknownFailure()
    message = error.message
    return message if isinstance(message, str) and message else DEFAULT_MESSAGE


def _errors_of(error: BaseException) -> list[dict[str, Any]] | None:
    errors = getattr(error, "errors", None)
    return errors if isinstance(errors, list) and errors else None


class ErrorReporter:
    """
    Last stop for every failed request: turns the error into a status code and
    a JSON body, and writes exactly one log record. It never raises.
    """

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def report(
        self, error: BaseException, context: RequestContext | None = None
    ) -> ErrorReport:
        try:
            report = self._build(error)
        except Exception:  # noqa: BLE001
            return ErrorReport(DEFAULT_STATUS, {"message": DEFAULT_MESSAGE})
        try:
            self._emit(error, report, context)
        except Exception:  # noqa: BLE001
            # a failing log handler must not change the response
            pass
        return report

    def _build(self, error: BaseException) -> ErrorReport:
        body: dict[str, Any] = {"message": _message_of(error)}
        errors = _errors_of(error)
        if errors:
            body["errors"] = errors
        return ErrorReport(_status_of(error), body)

    def _emit(
        self, error: BaseException, report: ErrorReport, context: RequestContext | None
    ) -> None:
        extra: dict[str, Any] = (
            request_log_fields(context, report.status_code)
            if context is not None
            else {"status": report.status_code}
        )
        extra["error"] = report.body["message"]
        if error.__cause__ is not None:
            extra["cause"] = repr(error.__cause__)

        if not isinstance(error, MailRelayError):
            self._log.error("request failed", extra=extra, exc_info=error)
        elif report.status_code >= 500:
            self._log.error("request failed", extra=extra)
        else:
            self._log.warning("request rejected", extra=extra)
