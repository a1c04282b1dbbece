"""Structured logging for the converter service.

Every record is one JSON line carrying the request id (when inside an HTTP
request) and the converter's identity: its default currency and rate source.
"""

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Keys passed through ``extra=`` that are copied into the JSON line.
EXTRA_FIELDS = ("currency", "count", "snapshot_id", "path", "status_code")


class ConverterContextFilter(logging.Filter):
    """Stamp records with the request id and the converter's configuration."""

    def __init__(self, default_currency: str = "-", rate_source: str = "-"):
        super().__init__()
        self.default_currency = default_currency
        self.rate_source = rate_source

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        record.request_id = request_id_ctx.get() or "-"
        record.default_currency = self.default_currency
        record.rate_source = self.rate_source
        return True


class JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        line: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
            "default_currency": getattr(record, "default_currency", "-"),
            "rate_source": getattr(record, "rate_source", "-"),
        }
        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                line[key] = getattr(record, key)
        if record.exc_info:
            line["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(line, ensure_ascii=False, default=str)


def init_logging(
    debug: bool = False,
    *,
    default_currency: str = "-",
    rate_source: str = "-",
    stream: Optional[TextIO] = None,
) -> logging.Handler:
    """Route the ``fxconvert`` logger tree to one JSON handler and return it."""
    level = logging.DEBUG if debug else logging.INFO
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)
    handler.addFilter(ConverterContextFilter(default_currency, rate_source))
    handler.setFormatter(JsonLineFormatter())

    logger = logging.getLogger("fxconvert")
    for old in list(logger.handlers):
        logger.removeHandler(old)
    logger.addHandler(handler)
    logger.setLevel(level)
    return handler


async def request_context_middleware(request, call_next):  # type: ignore
    rid = request.headers.get("x-request-id") or uuid.uuid4().hex
    token = request_id_ctx.set(rid)
    logger = logging.getLogger("fxconvert.request")
    try:
        response = await call_next(request)
        response.headers["x-request-id"] = rid
        logger.debug(
            "%s %s",
            request.method,
            request.url.path,
            extra={"path": request.url.path, "status_code": response.status_code},
        )
        return response
    finally:
        request_id_ctx.reset(token)
