"""JSON logging for the Lambda handlers.

Each record is written to stdout as one JSON object, tagged with the API
Gateway request id and the function name of the current invocation, so
CloudWatch Logs Insights can filter on them.

Never log the token cookie, passwords or confirmation codes. Emails go
through mask_email() first.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import traceback
from contextvars import ContextVar
from datetime import datetime
from datetime import timezone
from typing import Any
from typing import Mapping
from typing import MutableMapping
from typing import Optional

_QUIET_LOGGERS = ("boto3", "botocore", "urllib3")

request_id: ContextVar[str] = ContextVar("request_id", default="")
function_name: ContextVar[str] = ContextVar("function_name", default="")


def mask_email(email: Optional[str]) -> str:
    """Hide most of an email address.

    Keeps up to two leading characters of the mailbox and the top-level
    domain:

        >>> mask_email("john.doe@example.com")
        'jo***@***.com'
        >>> mask_email("a@b.co")
        'a***@***.co'
    """
    if not email or "@" not in email:
        return "***"

    mailbox, _, host = email.rpartition("@")
    prefix = mailbox[:2] if len(mailbox) > 2 else mailbox[:1]
    masked = f"{prefix}***@***"
    if "." in host:
        masked += "." + host.rsplit(".", 1)[1]
    return masked


def _exception_fields(exc_info: Any) -> dict[str, Any]:
    exc_type, exc_value, _ = exc_info
    return {
        "type": exc_type.__name__ if exc_type else None,
        "message": str(exc_value) if exc_value else None,
        "traceback": traceback.format_exception(*exc_info),
    }


class StructuredLogFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, var in (("request_id", request_id), ("function", function_name)):
            value = var.get()
            if value:
                payload[key] = value

        # Warnings and errors point back at the call site.
        if record.levelno >= logging.WARNING:
            payload["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }
        if record.exc_info:
            payload["exception"] = _exception_fields(record.exc_info)

        context = getattr(record, "context", None)
        if isinstance(context, dict) and context:
            payload["context"] = context

        return json.dumps(payload, default=str)


class ContextLogger(logging.LoggerAdapter):
    """Adapter that merges its bound fields with each call's ``extra``.

    The merged mapping is stored on the record as ``context`` so that it
    does not clash with the standard LogRecord attributes.
    """

    def process(
        self,
        msg: str,
        kwargs: MutableMapping[str, Any],
    ) -> tuple[str, MutableMapping[str, Any]]:
        context = {**(self.extra or {}), **(kwargs.pop("extra", None) or {})}
        kwargs["extra"] = {"context": context}
        return msg, kwargs


def configure_logging(level: Optional[str] = None) -> None:
    """Send JSON records to stdout at ``level`` (or ``LOG_LEVEL``, or INFO)."""
    root = logging.getLogger()
    root.setLevel(level or os.getenv("LOG_LEVEL") or "INFO")

    # The Lambda runtime installs its own handler; replace it.
    for existing in list(root.handlers):
        root.removeHandler(existing)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredLogFormatter())
    root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str, **extra: Any) -> ContextLogger:
    """Return a ContextLogger with ``extra`` bound to every record."""
    return ContextLogger(logging.getLogger(name), extra)


def set_request_context(
    req_id: Optional[str] = None,
    fn_name: Optional[str] = None,
) -> None:
    """Tag the records of the current invocation."""
    if req_id:
        request_id.set(req_id)
    if fn_name:
        function_name.set(fn_name)


def clear_request_context() -> None:
    request_id.set("")
    function_name.set("")


def log_lambda_event(logger: ContextLogger, event: Mapping[str, Any]) -> None:
    """Log where a request was routed, at DEBUG.

    Headers and body stay out of the log: they hold the token cookie and
    credentials.
    """
    logger.debug(
        "Lambda event received",
        extra={
            "http_method": event.get("httpMethod"),
            "path": event.get("path"),
            "path_params": event.get("pathParameters"),
            "query_params": event.get("queryStringParameters"),
        },
    )


def log_response(
    logger: ContextLogger,
    status_code: int,
    duration_ms: Optional[float] = None,
) -> None:
    """Log the status of a response; 4xx and 5xx are logged as warnings."""
    fields: dict[str, Any] = {"status_code": status_code}
    if duration_ms is not None:
        fields["duration_ms"] = round(duration_ms, 2)
    logger.log(
        logging.WARNING if status_code >= 400 else logging.INFO,
        "Lambda response",
        extra=fields,
    )
