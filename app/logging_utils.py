"""
Logging setup for the importer.

Storage errors from the Supabase client can echo request URLs, headers and
JWT keys; every handler gets a redaction filter so those never reach the
logs. The HTTP client libraries under supabase-py are turned down to
WARNING since they log one line per request.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional

from app.config import get_env

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

NOISY_LOGGERS = ("httpx", "httpcore", "hpack", "postgrest", "storage3", "realtime")

FILTER_NAME = "journal_redact_secrets"

# (pattern, replacement) applied in order
SECRET_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"(?i)\bBearer\s+[A-Za-z0-9._\-]+"), "Bearer REDACTED"),
    (re.compile(r"\beyJ[A-Za-z0-9_\-]{8,}\.[A-Za-z0-9_\-]{8,}\.[A-Za-z0-9_\-]+"), "JWT-REDACTED"),
    (re.compile(r"(?i)\b(apikey|api_key|access_token|refresh_token|token|secret|password)=([^&\s]+)"), r"\1=REDACTED"),
    (re.compile(r"(?i)(['\"]?(apikey|service_role|password)['\"]?\s*[:=]\s*)(['\"]?)[^'\"\s,}&]+\3"), r"\1\3REDACTED\3"),
]


def redact(text: str) -> str:
    """Mask Supabase keys, bearer tokens and credential query params in ``text``."""
    for pattern, replacement in SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class RedactSecretsFilter(logging.Filter):
    """Rewrites a record's message when it contains credentials."""

    def __init__(self):
        super().__init__()
        self.name = FILTER_NAME

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003 (Filter.filter)
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # Malformed %-args; leave the record for the handler to report
            return True

        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = ()
        return True


def _attach(filters_owner: logging.Filterer, redact_filter: RedactSecretsFilter) -> None:
    if not _has_filter(filters_owner.filters, redact_filter.name):
        filters_owner.addFilter(redact_filter)


def _has_filter(filters: Iterable[object], name: str) -> bool:
    return any(getattr(f, "name", None) == name for f in filters)


def install_log_safety() -> None:
    """Attach the redaction filter to every existing handler and quiet HTTP client loggers."""
    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    redact_filter = RedactSecretsFilter()
    root = logging.getLogger()
    _attach(root, redact_filter)
    for handler in root.handlers:
        _attach(handler, redact_filter)

    # uvicorn installs its own handlers on named loggers
    for obj in logging.Logger.manager.loggerDict.values():
        if isinstance(obj, logging.Logger):
            for handler in obj.handlers:
                _attach(handler, redact_filter)


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging for the CLI and the web server.

    Args:
        level: Level name; defaults to the LOG_LEVEL environment variable, then INFO
    """
    level_name = (level or get_env("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)
    install_log_safety()
