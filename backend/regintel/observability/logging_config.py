"""
Structured JSON logging configuration.

Replaces default text formatter with JSON structured logging so that every
log line includes: timestamp, level, logger, message and the turn identifiers.
"""

import json
import logging
from datetime import datetime, timezone

from regintel.observability.turn_context import (
    get_conversation_id,
    get_tenant_id,
    get_turn_id,
)


class JSONFormatter(logging.Formatter):
    """Emit each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "turn_id": get_turn_id(),
        }

        tenant_id = get_tenant_id()
        if tenant_id:
            log_entry["tenant_id"] = tenant_id
        conversation_id = get_conversation_id()
        if conversation_id:
            log_entry["conversation_id"] = conversation_id

        if hasattr(record, "duration_ms"):
            log_entry["duration_ms"] = record.duration_ms

        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def configure_logging(log_level: str = "INFO", json_output: bool = True):
    """Install a single root handler, JSON or plain text."""
    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))
