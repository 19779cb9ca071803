"""
Logging for sync and repair batch jobs.

Every job sets a run id (one UUID per invocation of scripts/run_sync.py or
scripts/resolve_conflicts.py); both formatters stamp it on each line so the
lines of one pass can be pulled out of a shared log stream.

Record context passed through ``extra`` (entity_type, provider, provider_id)
is lifted to top-level JSON keys, so unmapped and skipped records can be
filtered by kind and provider.
"""
import logging
import json
import sys
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from contextvars import ContextVar

run_id_var: ContextVar[str] = ContextVar("run_id", default="")

RECORD_CONTEXT_KEYS = ("entity_type", "provider", "provider_id")

# LogRecord attributes that are not caller-supplied context
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def _context(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RESERVED}


class JSONFormatter(logging.Formatter):
    """One JSON object per line: time, level, logger, message, run_id, record context."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "run_id": run_id_var.get(),
        }

        context = _context(record)
        for key in RECORD_CONTEXT_KEYS:
            if key in context:
                entry[key] = context.pop(key)
        if context:
            entry["extra"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ColoredFormatter(logging.Formatter):
    """Console output for interactive runs; warnings and errors are highlighted."""

    HIGHLIGHT = {"WARNING": "\033[33m", "ERROR": "\033[31m", "CRITICAL": "\033[31m"}
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.HIGHLIGHT.get(record.levelname, "")
        line = f"{color}{record.levelname:<7}{self.RESET if color else ''} {record.name}: {record.getMessage()}"

        run_id = run_id_var.get()
        if run_id:
            line += f" [run {run_id[:8]}]"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    handler: Optional[logging.Handler] = None,
) -> None:
    """
    Install one root handler for a batch job.

    Args:
        level: Root level name (DEBUG, INFO, ...)
        json_output: JSON lines when True, console format otherwise
        handler: Handler to use instead of a stdout stream handler
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = handler or logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if json_output else ColoredFormatter())
    root_logger.addHandler(handler)

    # Request-level chatter from the provider clients and the ORM
    for name in ("httpx", "httpcore", "sqlalchemy.engine"):
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_run_id(run_id: Optional[str] = None) -> Any:
    """Start a run; returns the token for clear_run_id()."""
    return run_id_var.set(run_id or str(uuid.uuid4()))


def get_run_id() -> str:
    return run_id_var.get()


def clear_run_id(token: Any) -> None:
    run_id_var.reset(token)
