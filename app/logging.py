import logging
import sys
import time
from typing import Any

from pythonjsonlogger import jsonlogger


class UTCJsonFormatter(jsonlogger.JsonFormatter):
    converter = time.gmtime


def setup_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level.upper())

    handler = logging.StreamHandler(sys.stdout)
    fmt = "%(asctime)s %(levelname)s %(name)s %(message)s"
    handler.setFormatter(UTCJsonFormatter(fmt))
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel("WARNING")
    logging.getLogger("httpx").setLevel("WARNING")


def request_log_fields(context: Any, status: int) -> dict[str, Any]:
    """
    Structured fields for the one-record-per-request log line.
    Message metadata is only present once the payload has been validated.
    """
    fields: dict[str, Any] = {
        "request_id": context.request_id,
        "method": context.method,
        "path": context.path,
        "status": status,
        "remote_addr": context.client_address,
        "duration_ms": context.elapsed_ms(),
    }
    if context.identity is not None:
        fields["identity"] = context.identity.value
    message = context.message
    if message is not None:
        fields["sender"] = message.sender
        fields["recipients"] = list(message.to)
        fields["subject"] = message.subject
    return fields
