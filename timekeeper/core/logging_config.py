"""Logging setup for Timekeeper.

Two output modes share one set of context fields:

* ``json``: one object per line, for log shippers. Caller ``extra`` fields
  (``actor_id``, ``rule``, ``authz_failure`` ...) become top-level keys.
* ``text``: for a terminal. The request id and acting user are appended
  in brackets so a denied request can still be followed by eye.

Credentials are scrubbed from messages and tracebacks in both modes.
"""

import contextvars
import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Optional

# Written by RequestContextMiddleware for the lifetime of one request.
request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")

_RECORD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}

# Third-party loggers and the level they are capped at.
_QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "passlib": logging.ERROR,
}


def _context_fields(record: logging.LogRecord) -> dict:
    fields = {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}
    request_id = request_id_var.get()
    if request_id:
        fields.setdefault("request_id", request_id)
    return fields


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in _context_fields(record).items():
            payload.setdefault(key, value)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class _TextFormatter(logging.Formatter):
    def __init__(self):
        super().__init__(fmt="%(asctime)s %(levelname)-7s %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = _context_fields(record)
        tags = [f"{key}={fields[key]}" for key in ("request_id", "actor_id") if fields.get(key)]
        return f"{line} [{' '.join(tags)}]" if tags else line


_REDACTED = "***REDACTED***"

_SECRET_PATTERNS = [
    # Bearer tokens in echoed headers.
    re.compile(r"(?i)(bearer\s+)[A-Za-z0-9._\-]{20,}"),
    # bcrypt hashes.
    re.compile(r"()\$2[aby]\$\d{2}\$[./A-Za-z0-9]{53}"),
    # password=..., token: ..., jwt_secret_key=...
    re.compile(r"(?i)((?:password|secret|secret_key|token|authorization)\s*[=:]\s*)[^\s,'\"]{6,}"),
]


def redact(text: str) -> str:
    """Replace every credential-looking substring of *text*."""
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(lambda m: m.group(1) + _REDACTED, text)
    return text


class _SecretFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if record.args:
            record.msg = record.getMessage()
            record.args = None
        record.msg = redact(str(record.msg))
        if record.exc_text:
            record.exc_text = redact(record.exc_text)
        return True


def setup_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Install a single stdout handler on the root logger.

    Args:
        log_level: Root level name. Defaults to INFO.
        log_format: ``"json"`` (default) or ``"text"``.
    """
    level = (log_level or "INFO").upper()
    fmt = (log_format or "json").lower()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(_SecretFilter())
    handler.setFormatter(_JsonFormatter() if fmt == "json" else _TextFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name, cap in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(cap)

    logging.getLogger(__name__).info("Logging configured", extra={"level": level, "format": fmt})
