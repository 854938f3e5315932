"""Structured logging: plain or one JSON object per line. Payloads are redacted before emit."""
import json
import logging
from typing import Any

from app.core.config import Settings, get_settings
from app.core.logging_redaction import redact_for_log


def configure_logging(settings: Settings | None = None) -> None:
    """Install a single stream handler on the "app" logger (idempotent)."""
    settings = settings or get_settings()
    logger = logging.getLogger("app")
    for h in logger.handlers[:]:
        logger.removeHandler(h)
    h = logging.StreamHandler()
    if settings.log_json:
        h.setFormatter(logging.Formatter("%(message)s"))
    else:
        h.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger.addHandler(h)
    logger.setLevel(logging.DEBUG if settings.debug else settings.log_level.upper())


def log_event(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    """Log one event with redacted fields; single JSON line when log_json."""
    if not logger.isEnabledFor(level):
        return
    extra = redact_for_log(fields)
    if get_settings().log_json:
        logger.log(level, json.dumps({"event": event, **extra}, default=str))
    else:
        details = " ".join(f"{k}={v}" for k, v in extra.items())
        logger.log(level, "%s %s", event, details, extra={"event_fields": extra})
