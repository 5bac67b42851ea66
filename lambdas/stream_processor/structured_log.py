# lambdas/stream_processor/structured_log.py
"""
Structured JSON logging for the stream processor.

Every entry is a single JSON line printed to stdout, which Lambda forwards
to CloudWatch Logs as-is.
"""
import json
import os
import re
import uuid
from collections.abc import Mapping
from typing import Any

from .models import utc_timestamp

LEVELS = ["DEBUG", "INFO", "WARN", "ERROR"]
MAX_LOG_STRING_LENGTH = 1000

_LINE_BREAKS = re.compile(r"\r\n|\r|\n|\t")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")


def _min_level() -> str:
    # Read on every call so LOG_LEVEL can be changed without a cold start.
    level = os.environ.get("LOG_LEVEL", "DEBUG").upper()
    if level == "WARNING":
        level = "WARN"
    return level if level in LEVELS else "DEBUG"


def _strip_control_char(match: re.Match) -> str:
    """Control characters between two word characters become a space, others are dropped."""
    text, pos = match.string, match.start()
    before = text[pos - 1] if pos > 0 else ""
    after = text[pos + 1] if pos + 1 < len(text) else ""
    if (before.isalnum() or before == "_") and (after.isalnum() or after == "_"):
        return " "
    return ""


def sanitize_for_log(value: Any, _seen: set | None = None) -> Any:
    """
    Makes a value safe to embed in a log line.

    Strings lose line breaks and control characters (so a crafted value
    cannot forge extra log entries) and are truncated. Mappings and
    sequences are sanitised recursively; numbers, booleans and None are
    returned untouched.
    """
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        cleaned = _LINE_BREAKS.sub(" ", value)
        cleaned = _CONTROL_CHARS.sub(_strip_control_char, cleaned)
        return cleaned[:MAX_LOG_STRING_LENGTH]

    if isinstance(value, (Mapping, list, tuple, set)):
        seen = _seen if _seen is not None else set()
        if id(value) in seen:
            return "[Circular]"
        seen.add(id(value))
        if isinstance(value, Mapping):
            result = {
                sanitize_for_log(str(k), seen): sanitize_for_log(v, seen)
                for k, v in value.items()
            }
        else:
            result = [sanitize_for_log(item, seen) for item in value]
        seen.discard(id(value))
        return result

    return sanitize_for_log(str(value))


class StructuredLogger:
    """
    Small JSON-lines logger bound to a service name and a correlation id.

    Usage:
        log = StructuredLogger("stream-processor", context.aws_request_id)
        log.info("published", eventType="PAYMENT", eventName="INSERT")
    """

    def __init__(self, service: str, correlation_id: str | None = None):
        self.service = service
        self.correlation_id = correlation_id or str(uuid.uuid4())

    def _log(self, level: str, event: str, metadata: dict) -> None:
        if LEVELS.index(level) < LEVELS.index(_min_level()):
            return

        entry = {
            "timestamp": utc_timestamp(),
            "level": level,
            "service": sanitize_for_log(self.service),
            "correlationId": sanitize_for_log(self.correlation_id),
            "event": sanitize_for_log(event),
        }
        entry.update(sanitize_for_log(metadata))
        print(json.dumps(entry, default=str))

    def debug(self, event: str, **metadata: Any) -> None:
        self._log("DEBUG", event, metadata)

    def info(self, event: str, **metadata: Any) -> None:
        self._log("INFO", event, metadata)

    def warn(self, event: str, **metadata: Any) -> None:
        self._log("WARN", event, metadata)

    def error(self, event: str, **metadata: Any) -> None:
        self._log("ERROR", event, metadata)
