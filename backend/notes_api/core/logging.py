from __future__ import annotations

import logging
import re
import sys
from typing import Optional

_configured = False

EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
# Loose on purpose: bearer tokens, sk_ keys, service role keys, api_key=... style pairs
TOKEN_LIKE_RE = re.compile(
    r"(?i)("
    r"(?:bearer\s+[A-Za-z0-9._~+\-/]+=*)"
    r"|(?:sk_[A-Za-z0-9]{16,})"
    r"|(?:api[_-]?key\s*[=:]\s*\w{12,})"
    r"|(?:(?:service[_-]?role[_-]?)?key\s*[=:]\s*[\w.\-]{12,})"
    r"|(?:token\s*[=:]\s*\w{12,})"
    r")"
)


class _OneLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        return base.replace("\n", " | ")


class RedactionFilter(logging.Filter):
    """Mask emails and token-like secrets in log messages."""

    def __init__(self, replacement: str = "***") -> None:
        super().__init__()
        self.replacement = replacement

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            msg = record.getMessage()
        except Exception:
            return True
        redacted = EMAIL_RE.sub(self.replacement, msg)
        redacted = TOKEN_LIKE_RE.sub(self.replacement, redacted)
        if redacted != msg:
            record.msg = redacted
            record.args = ()
        return True


def configure_logging(level: int = logging.INFO) -> None:
    global _configured
    logger = logging.getLogger()
    logger.setLevel(level)

    # Re-running must not stack handlers or filters
    for f in list(logger.filters):
        if isinstance(f, RedactionFilter):
            logger.removeFilter(f)
    for h in list(logger.handlers):
        if getattr(h, "_notes_api_handler", False):
            logger.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_OneLineFormatter("[%(asctime)s] %(levelname)s %(name)s: %(message)s"))
    handler._notes_api_handler = True  # type: ignore[attr-defined]

    redact_filter = RedactionFilter()
    handler.addFilter(redact_filter)
    for h in logger.handlers:
        h.addFilter(redact_filter)
    # Logger-level too, so caplog-style collectors see redacted messages
    logger.addFilter(redact_filter)
    logger.addHandler(handler)
    _configured = True

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    if not name:
        name = __name__
    if not _configured:
        configure_logging()
    return logging.getLogger(name)


def setup_sentry(environment: str, dsn: Optional[str] = None, traces_sample_rate: float = 0.1) -> None:
    """Initialize Sentry error tracking outside dev/test when a DSN is configured."""
    log = get_logger("notes_api.core.logging")
    if not dsn or environment.strip().lower() in ("dev", "development", "test", "testing", "local"):
        log.debug("[startup] Sentry disabled (missing DSN or dev/test env)")
        return

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    def before_send(event, hint):
        # Missing profiles are user errors, not incidents
        if event.get("tags", {}).get("status_code") == 404:
            return None
        return event

    sentry_sdk.init(
        dsn=dsn,
        integrations=[
            FastApiIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=traces_sample_rate,
        environment=environment,
        send_default_pii=False,
        before_send=before_send,
    )
    log.info("[startup] Sentry initialized for env=%s", environment)


__all__ = ["configure_logging", "get_logger", "setup_sentry", "RedactionFilter"]
