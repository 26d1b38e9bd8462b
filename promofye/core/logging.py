"""
Logging for the promofye logger.

Production writes one JSON object per line; development writes a single
readable line. Both carry the request_id of the HTTP request being served
(set by RequestIdMiddleware) and any context passed through log_event.
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

LOGGER_NAME = "promofye"

# Record attributes copied into formatted output when present
CONTEXT_FIELDS = (
    "user_id", "event_type", "error_code", "action_type", "plan_id",
    "method", "path", "status", "latency_bucket",
)

MAX_FIELD_LENGTH = 500

_LATENCY_BUCKETS = ((10, "<10ms"), (100, "10-100ms"), (500, "100-500ms"), (1000, "500-1000ms"))

request_id_ctx_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id(default: Optional[str] = None) -> Optional[str]:
    rid = request_id_ctx_var.get()
    return default if rid is None else rid


def latency_bucket_ms(latency_ms: Optional[float]) -> str:
    if latency_ms is None:
        return "unknown"
    for upper, label in _LATENCY_BUCKETS:
        if latency_ms < upper:
            return label
    return ">=1000ms"


def _timestamp(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created, timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def _context(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        field: getattr(record, field)
        for field in CONTEXT_FIELDS
        if getattr(record, field, None) is not None
    }


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": _timestamp(record),
            "level": record.levelname,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        payload.update(_context(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class PrettyFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        tags = ""
        rid = getattr(record, "request_id", None)
        if rid:
            tags += f" [rid={rid}]"
        context = _context(record)
        if "user_id" in context:
            tags += f" [user={context.pop('user_id')}]"
        details = " ".join(f"{key}={value}" for key, value in context.items())
        line = f"{_timestamp(record)} {record.levelname:<7} {record.getMessage()}{tags}"
        if details:
            line = f"{line} {details}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(env: str = "development", level: Optional[str] = None) -> logging.Logger:
    """Install a single stdout handler on the promofye logger."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel((level or os.getenv("LOG_LEVEL") or "INFO").upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if env.lower() == "production" else PrettyFormatter())
    handler.addFilter(RequestIdFilter())
    logger.handlers = [handler]

    # uvicorn keeps its own handlers; avoid duplicate lines through the root logger
    for name in ("uvicorn", "uvicorn.error"):
        logging.getLogger(name).propagate = False
    return logger


def _truncate(value: Any) -> str:
    try:
        text = str(value)
    except Exception:
        return "<unserializable>"
    if len(text) > MAX_FIELD_LENGTH:
        return text[:MAX_FIELD_LENGTH] + "...<truncated>"
    return text


def log_event(
    level: str,
    msg: str,
    *,
    request_id: Optional[str] = None,
    user_id: Optional[str] = None,
    event_type: Optional[str] = None,
    error_code: Optional[str] = None,
    extra: Optional[Dict[str, object]] = None,
):
    """
    Log msg on the promofye logger with request correlation.

    Values in `extra` are stringified and cut at 500 characters so prompts
    and provider error bodies cannot flood the log.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        configure_logging(os.getenv("ENV", "development"))

    fields: Dict[str, Any] = {"request_id": request_id or get_request_id(), "user_id": user_id}
    if event_type:
        fields["event_type"] = event_type
    if error_code:
        fields["error_code"] = error_code
    for key, value in (extra or {}).items():
        fields[key] = _truncate(value)

    getattr(logger, level, logger.info)(msg, extra=fields)
