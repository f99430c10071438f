"""
Logging setup for the ledger service.

Two output modes, chosen by LOG_FORMAT:
- "json": one JSON object per line on stdout (default outside DEBUG)
- "console": readable single-line records (default in DEBUG)

LOG_LEVEL overrides the level of the application loggers.

Every handler runs TenantContextFilter, so each record knows which
school's books it concerns even when the caller did not pass one.
"""
import json
import logging
import os
from datetime import datetime, timezone

APP_LOGGERS = ("accounting", "tenant", "ops")


def get_logging_config(debug: bool = False) -> dict:
    """Build the Django LOGGING dict."""
    level = os.environ.get("LOG_LEVEL", "DEBUG" if debug else "INFO")
    output = os.environ.get("LOG_FORMAT", "console" if debug else "json")

    formatters = {
        "json": {"()": "ops.logging_config.JsonFormatter"},
        "verbose": {
            "format": "[{asctime}] {levelname} {name} tenant={tenant} {message}",
            "style": "{",
        },
    }
    formatter = "json" if output == "json" else "verbose"

    loggers = {
        "": {"handlers": ["console"], "level": level},
        "django": {"handlers": ["console"], "level": level, "propagate": False},
        "django.request": {
            "handlers": ["console"],
            "level": level if debug else "ERROR",
            "propagate": False,
        },
        # SQL echo stays off even in DEBUG.
        "django.db.backends": {"handlers": ["null"], "level": "INFO", "propagate": False},
    }
    for name in APP_LOGGERS:
        loggers[name] = {"handlers": ["console"], "level": level, "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "tenant_context": {"()": "ops.logging_config.TenantContextFilter"},
        },
        "formatters": {formatter: formatters[formatter]},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "filters": ["tenant_context"],
                "stream": "ext://sys.stdout",
            },
            "null": {"class": "logging.NullHandler"},
        },
        "loggers": loggers,
    }


class TenantContextFilter(logging.Filter):
    """Attach the current tenant slug (or "-") to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "tenant"):
            from tenant.context import get_current_tenant

            ctx = get_current_tenant()
            record.tenant = ctx.slug if ctx else "-"
        return True


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record.

    Keys: timestamp (UTC ISO 8601), level, logger, message, location,
    exception (when present) and extra, which holds every attribute the
    caller passed through `extra=`. Values that json cannot encode are
    stringified.
    """

    RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {}
        for key, value in vars(record).items():
            if key in self.RESERVED:
                continue
            try:
                json.dumps(value)
            except (TypeError, ValueError):
                value = str(value)
            extra[key] = value
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=str)
