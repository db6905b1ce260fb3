from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

_EVENT_FIELDS = ("document_id", "stage", "extractor", "latency_ms", "outcome", "error_code")
_SDK_LOGGERS = ("httpx", "httpcore", "openai", "google_genai", "urllib3")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in _EVENT_FIELDS:
            if hasattr(record, name):
                payload[name] = getattr(record, name)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(level.upper())
    if not root.handlers:
        root.addHandler(logging.StreamHandler())
    formatter = JsonFormatter()
    for handler in root.handlers:
        handler.setFormatter(formatter)
    # Provider SDK request chatter stays at WARNING unless the root is stricter.
    for name in _SDK_LOGGERS:
        logging.getLogger(name).setLevel(max(root.level, logging.WARNING))


def log_document_event(
    logger: logging.Logger,
    level: int,
    message: str,
    *,
    document_id: str,
    stage: str | None = None,
    extractor: str | None = None,
    latency_ms: int | None = None,
    outcome: str | None = None,
    error_code: str | None = None,
) -> None:
    extra: dict[str, Any] = {"document_id": document_id}
    if stage is not None:
        extra["stage"] = stage
    if extractor is not None:
        extra["extractor"] = extractor
    if latency_ms is not None:
        extra["latency_ms"] = latency_ms
    if outcome is not None:
        extra["outcome"] = outcome
    if error_code is not None:
        extra["error_code"] = error_code
    logger.log(level, message, extra=extra)
