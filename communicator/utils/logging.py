"""JSON log lines tagged with the Slack delivery being handled.

Routes call set_request_id() with the event_id or trigger_id of the
delivery. Background jobs are created after that call, copy the context,
and therefore log under the same ID as the request that spawned them.
"""

import json
import logging
from contextvars import ContextVar
from typing import Any

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Attributes every LogRecord has; anything else came in through `extra=`
_RECORD_FIELDS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}

PLAIN_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [%(request_id)s] %(message)s"


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def get_request_id() -> str:
    """Slack delivery ID for the current context, or an empty string."""
    return request_id_var.get()


class RequestIdFilter(logging.Filter):
    """Copy the current delivery ID onto each record as `request_id`."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


class StructuredFormatter(logging.Formatter):
    """Render a record as one JSON object per line.

    Keys: timestamp, level, logger, message, plus request_id when a
    delivery is being handled, exception when one is attached, and any
    values passed through `extra=`.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = get_request_id()
        if request_id:
            payload["request_id"] = request_id

        for key, value in record.__dict__.items():
            if key not in _RECORD_FIELDS and key != "request_id":
                payload[key] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def configure_logging(level: str | int = logging.INFO, json_format: bool = True) -> None:
    """Install a single stderr handler on the root logger.

    Args:
        level: Level name ("debug", "INFO") or number. Unknown names fall
            back to INFO.
        json_format: JSON lines when True, otherwise a plain text line that
            still carries the delivery ID.
    """
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        level = resolved if isinstance(resolved, int) else logging.INFO

    handler = logging.StreamHandler()
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(StructuredFormatter() if json_format else logging.Formatter(PLAIN_FORMAT))

    logging.root.handlers = [handler]
    logging.root.setLevel(level)
