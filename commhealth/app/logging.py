from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import IO, Any, Dict, Iterator, Optional


# Assessment currently being scored or analyzed; stamped on every record.
_ASSESSMENT_ID: ContextVar[Optional[str]] = ContextVar("assessment_id", default=None)

# LogRecord attributes that are not user extras.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "assessment_id",
    "taskName",
}


def set_assessment_id(assessment_id: Optional[str]) -> None:
    _ASSESSMENT_ID.set(assessment_id)


def clear_assessment_id() -> None:
    _ASSESSMENT_ID.set(None)


@contextmanager
def assessment_context(assessment_id: Optional[str]) -> Iterator[None]:
    # Scoped variant; restores whatever was set before.
    token = _ASSESSMENT_ID.set(assessment_id)
    try:
        yield
    finally:
        _ASSESSMENT_ID.reset(token)


class AssessmentIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.assessment_id = _ASSESSMENT_ID.get()
        return True


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value, ensure_ascii=False)
        return value
    except (TypeError, ValueError):
        return str(value)


class JsonFormatter(logging.Formatter):
    # One JSON object per line: ts, level, logger, msg, assessment_id, then extra={} fields.
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).replace(microsecond=0).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "assessment_id": getattr(record, "assessment_id", None),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        payload.update({k: _jsonable(v) for k, v in record.__dict__.items() if k not in _RECORD_ATTRS})
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(level: str = "INFO", json_logs: bool = True, stream: Optional[IO[str]] = None) -> None:
    """
    Configure root logging once.

    Logs go to stderr by default so command output on stdout stays clean.
    An unrecognized level name falls back to INFO.
    """
    root = logging.getLogger()
    root.handlers.clear()
    resolved = logging.getLevelName(str(level).upper())
    root.setLevel(resolved if isinstance(resolved, int) else logging.INFO)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.addFilter(AssessmentIdFilter())

    if json_logs:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s assessment_id=%(assessment_id)s %(message)s"
        ))

    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
