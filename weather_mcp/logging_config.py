"""Logging configuration setup."""

import copy
import logging
import logging.config
import re
import sys
from typing import Set

# ── Secret redaction filter ──────────────────────────────────────────────

_REDACTED = "***REDACTED***"


class SecretRedactionFilter(logging.Filter):
    """Logging filter that replaces registered secret values with a placeholder.

    Call :meth:`register` at startup with values resolved from configuration.
    Request-time credentials are masked where they are logged instead.
    """

    def __init__(self) -> None:
        super().__init__()
        self._secrets: Set[str] = set()
        self._pattern: "re.Pattern[str] | None" = None

    def register(self, value: str) -> None:
        """Register a secret value for redaction."""
        if value and len(value) >= 4 and value not in self._secrets:
            self._secrets.add(value)
            # longest first so overlapping secrets are fully replaced
            escaped = sorted((re.escape(s) for s in self._secrets), key=len, reverse=True)
            self._pattern = re.compile("|".join(escaped))

    def redact(self, text: str) -> str:
        if self._pattern is None:
            return text
        return self._pattern.sub(_REDACTED, text)

    def filter(self, record: logging.LogRecord) -> bool:
        if self._pattern is not None:
            if isinstance(record.msg, str):
                record.msg = self.redact(record.msg)
            if record.args:
                if isinstance(record.args, dict):
                    record.args = {
                        k: self.redact(v) if isinstance(v, str) else v
                        for k, v in record.args.items()
                    }
                elif isinstance(record.args, tuple):
                    record.args = tuple(
                        self.redact(a) if isinstance(a, str) else a for a in record.args
                    )
        return True


# Attached to every handler by setup_logging.
secret_redaction_filter = SecretRedactionFilter()

BASE_LOG_CFG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": ("%(asctime)s - %(name)30s:%(lineno)-4d - " "%(levelname)-7s - %(message)s"),
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
        "compact": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
            "datefmt": "%Y-%m-%dT%H:%M:%S%z",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": "DEBUG",
            "formatter": "verbose",
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        "uvicorn": {"handlers": ["console"], "propagate": False, "level": "INFO"},
        "uvicorn.error": {"handlers": ["console"], "propagate": False, "level": "INFO"},
        "uvicorn.access": {"handlers": ["console"], "propagate": False, "level": "WARNING"},
        "starlette": {"handlers": ["console"], "propagate": False, "level": "INFO"},
        "httpx": {"handlers": ["console"], "propagate": False, "level": "WARNING"},
        "mcp": {"handlers": ["console"], "propagate": False, "level": "INFO"},
        "weather_mcp": {"handlers": ["console"], "propagate": False, "level": "INFO"},
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
}

VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def setup_logging(log_lvl_str: str, *, environment: str = "development") -> str:
    """
    Set up the logging system.

    Args:
        log_lvl_str: The desired log level string (e.g., 'debug', 'info').
        environment: ``"production"`` selects the compact single-line
            formatter; anything else uses the verbose one.

    Returns:
        The validated log level name.
    """
    log_lvl_valid = log_lvl_str.upper()
    if log_lvl_valid not in VALID_LEVELS:
        print(f"Warning: invalid log level '{log_lvl_str}'. Using 'INFO'.", file=sys.stderr)
        log_lvl_valid = "INFO"

    log_cfg: dict = copy.deepcopy(BASE_LOG_CFG)
    if environment == "production":
        log_cfg["handlers"]["console"]["formatter"] = "compact"

    for name in ("weather_mcp", "mcp", "uvicorn", "uvicorn.error", "starlette"):
        log_cfg["loggers"][name]["level"] = log_lvl_valid

    quiet_level = "INFO" if log_lvl_valid == "DEBUG" else "WARNING"
    log_cfg["loggers"]["uvicorn.access"]["level"] = quiet_level
    log_cfg["loggers"]["httpx"]["level"] = quiet_level
    log_cfg["root"]["level"] = log_lvl_valid if log_lvl_valid == "DEBUG" else "WARNING"

    logging.config.dictConfig(log_cfg)
    for handler in logging.root.handlers:
        handler.addFilter(secret_redaction_filter)
    # Non-propagating loggers own their handler references too.
    for name in log_cfg["loggers"]:
        for handler in logging.getLogger(name).handlers:
            if secret_redaction_filter not in handler.filters:
                handler.addFilter(secret_redaction_filter)

    return log_lvl_valid
