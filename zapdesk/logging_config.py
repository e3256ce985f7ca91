"""JSON logging for zapdesk API.

Each record is one JSON line. Correlation fields (gateway instance, event,
conversation, company) found in the record context are lifted to the top
level so log queries can filter on them directly.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional

SERVICE_NAME = "zapdesk-api"
CORRELATION_FIELDS = ("instance", "event", "conversa_id", "empresa_id")
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = dict(getattr(record, "context", None) or {})
        for field in CORRELATION_FIELDS:
            if context.get(field) is not None:
                entry[field] = context.pop(field)
        if context:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(level: Optional[str] = None) -> None:
    """Route the root logger to stdout as JSON. Defaults to DEBUG when settings.debug is on."""
    if level is None:
        from zapdesk.config import settings

        level = "DEBUG" if settings.debug else "INFO"

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"zapdesk.{name}")


class WebhookLogger(logging.LoggerAdapter):
    """Adapter bound to one webhook call; `context=` kwargs merge into the bound fields."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra_context = kwargs.pop("context", None) or {}
        kwargs["extra"] = {"context": {**self.extra, **extra_context}}
        return msg, kwargs


def get_request_logger(name: str, **bound: Any) -> WebhookLogger:
    return WebhookLogger(get_logger(name), bound)
