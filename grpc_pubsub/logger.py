"""Structured JSON logging with fixed service fields."""

import json
import logging
import os
import sys
from datetime import datetime

_FIELDS_ATTR = "structured_fields"
_LEVEL_NAMES = {logging.WARNING: "warn", logging.CRITICAL: "fatal"}


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON object per line."""

    def __init__(self, fields=None):
        super().__init__()
        self.fields = dict(fields or {})

    def format(self, record):
        moment = datetime.fromtimestamp(record.created).astimezone()
        offset = moment.strftime("%z")
        if offset in ("+0000", ""):
            offset = "Z"
        entry = {
            "level": _LEVEL_NAMES.get(record.levelno, record.levelname.lower()),
            "timestamp": f"{moment:%Y-%m-%dT%H:%M:%S}.{int(record.msecs):03d}{offset}",
            "caller": f"{os.path.basename(record.pathname)}:{record.lineno}",
            "msg": record.getMessage(),
            **self.fields,
            **getattr(record, "structured_fields", {}),
        }
        if record.exc_info:
            entry["error"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stacktrace"] = record.stack_info
        return json.dumps(entry, default=str)


class StructuredLogger:
    """Logger taking a message and key/value fields."""

    def __init__(self, logger):
        self.logger = logger

    def info(self, message, **kwargs):
        self.logger.info(message, extra={_FIELDS_ATTR: kwargs}, stacklevel=2)

    def fatal(self, message, **kwargs):
        """Log at fatal level with a stack trace, then exit with status 1."""
        self.logger.critical(message, extra={_FIELDS_ATTR: kwargs}, stack_info=True, stacklevel=2)
        raise SystemExit(1)


def _stream_for(path):
    if path == "stderr":
        return sys.stderr
    return sys.stdout


def new_logger(service, *args):
    """Build a JSON logger for ``service`` writing to the given paths (stderr by default)."""
    formatter = JsonFormatter({"service": service, "pid": os.getpid()})
    logger = logging.Logger(f"grpc_pubsub.{service}", logging.INFO)
    logger.propagate = False
    for path in args or ("stderr",):
        if path in ("stderr", "stdout"):
            handler = logging.StreamHandler(_stream_for(path))
        else:
            handler = logging.FileHandler(path, encoding="utf-8")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return StructuredLogger(logger)