from __future__ import annotations

import json
import logging
import sys
from typing import Any

# Attributes every LogRecord carries; anything else was passed through ``extra``.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime", "taskName"}

STRUCTURED_FIELDS = ("controller", "resource", "uid", "event", "reason")


class StructuredJSONFormatter(logging.Formatter):
    """Render log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.default_time_format),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in STRUCTURED_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS and key not in log_entry:
                log_entry[key] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_structured_logging(level: int = logging.INFO) -> None:
    """Route the root logger (and kopf's) through the JSON formatter on stdout."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredJSONFormatter())
    root_logger.addHandler(handler)

    # kopf's own records propagate to the root handler
    logging.getLogger("kopf").setLevel(level)


class StructuredLogger:
    """Logger that attaches Extract context fields to each record.

    ``resource`` is conventionally ``"<namespace>/<name>"``; any additional
    keyword arguments end up as top-level keys in the JSON output.
    """

    def __init__(self, name: str, controller: str = "Extract"):
        self._logger = logging.getLogger(name)
        self._controller = controller

    def log(
        self,
        level: int,
        message: str,
        *,
        resource: str | None = None,
        uid: str | None = None,
        event: str | None = None,
        reason: str | None = None,
        exc_info: bool = False,
        **kwargs: Any,
    ) -> None:
        extra: dict[str, Any] = {"controller": self._controller}
        if resource is not None:
            extra["resource"] = resource
        if uid is not None:
            extra["uid"] = uid
        if event is not None:
            extra["event"] = event
        if reason is not None:
            extra["reason"] = reason
        extra.update(kwargs)

        self._logger.log(level, message, extra=extra, exc_info=exc_info)

    def info(self, message: str, **kwargs: Any) -> None:
        self.log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.log(logging.ERROR, message, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log(logging.DEBUG, message, **kwargs)


logger = StructuredLogger("gitops-primer")
