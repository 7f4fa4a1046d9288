"""Structured logging configuration for autocert.

Provides JSON and text formatters, a context filter that injects the
domain currently being validated into every log record, and a one-call
``configure_logging`` function driven by config settings.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from autocert.config.settings import LoggingSettings

# Domain under validation in the current asyncio task.  Each per-domain
# validation task runs in its own context copy, so concurrent domains
# never see each other's value.
current_domain: ContextVar[str | None] = ContextVar("autocert_domain", default=None)

# Attributes that are part of the standard LogRecord; everything else
# is considered "extra" and gets included in structured output.
_STANDARD_ATTRS = frozenset(
    {
        "args",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
        # Context attribute (handled explicitly):
        "domain",
    }
)


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


class StructuredFormatter(logging.Formatter):
    """JSON-lines formatter for production logging.

    Every record becomes a single JSON object on one line containing
    the standard fields plus any *extra* attributes passed by the
    caller or injected by filters.
    """

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()

        data: dict = {
            "timestamp": datetime.fromtimestamp(
                record.created,
                tz=UTC,
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
        }

        domain = getattr(record, "domain", None)
        if domain is not None:
            data["domain"] = domain

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                data.setdefault(key, value)

        if record.exc_info and record.exc_info[0] is not None:
            data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            data["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter for console use."""

    _FMT = "%(asctime)s %(levelname)-8s [%(domain)s] %(name)s: %(message)s"

    def __init__(self) -> None:
        super().__init__(fmt=self._FMT, datefmt="%Y-%m-%d %H:%M:%S")


# ---------------------------------------------------------------------------
# Filter
# ---------------------------------------------------------------------------


class DomainContextFilter(logging.Filter):
    """Inject the domain being validated into every log record.

    Falls back to ``"-"`` outside a per-domain validation task so the
    text formatter always has the attribute.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "domain"):
            record.domain = current_domain.get() or "-"  # type: ignore[attr-defined]
        return True


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def configure_logging(settings: LoggingSettings) -> logging.Logger:
    """Configure the ``autocert`` logger hierarchy from settings.

    Replaces any bootstrap handlers with properly formatted output.

    Returns the root ``autocert`` logger.
    """
    level = getattr(logging, settings.level.upper(), logging.INFO)

    root = logging.getLogger("autocert")
    root.setLevel(level)
    root.handlers.clear()
    root.propagate = False

    formatter: logging.Formatter
    formatter = StructuredFormatter() if settings.format == "json" else TextFormatter()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console.addFilter(DomainContextFilter())
    root.addHandler(console)

    # ACME action log inherits the root handlers.
    logging.getLogger("autocert.acme").setLevel(logging.INFO if level > logging.INFO else level)

    # Quieten noisy third-party loggers
    for lib in ("acme", "urllib3", "werkzeug"):
        logging.getLogger(lib).setLevel(logging.WARNING)

    return root
