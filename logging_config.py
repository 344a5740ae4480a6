"""Logging setup for Site Foundry.

Console output goes through rich; ``--json-logs`` switches to one JSON object
per line. Every record carries the current pipeline run id.
"""

import json
import logging
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

# Correlation id of the pipeline run executing in the current context
run_id_var: ContextVar[Optional[str]] = ContextVar("run_id", default=None)

# Attributes every LogRecord has; anything else came in through ``extra=``
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime", "run_id"}


class RunIdFilter(logging.Filter):
    """Stamps ``record.run_id`` from the context variable."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = run_id_var.get()
        return True


class StructuredFormatter(logging.Formatter):
    """JSON formatter: timestamp, level, logger, message, run id and extras."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        run_id = getattr(record, "run_id", None)
        if run_id:
            log_obj["run_id"] = run_id

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_obj[key] = value

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str, ensure_ascii=False)


def configure_logging(level: Union[str, int] = "INFO", json_output: bool = False) -> None:
    """Configure root logging for the CLI and library use.

    Args:
        level: Log level name or number
        json_output: Emit structured JSON lines instead of rich console output
    """
    if json_output:
        handler: logging.Handler = logging.StreamHandler()
        handler.setFormatter(StructuredFormatter())
    else:
        handler = RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            show_path=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    handler.addFilter(RunIdFilter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)

    # Set levels for noisy libraries
    logging.getLogger("LiteLLM").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def set_run_id(run_id: Optional[str]) -> None:
    """Set the pipeline run id for the current context."""
    run_id_var.set(run_id)


def get_run_id() -> Optional[str]:
    """Get the pipeline run id from the current context."""
    return run_id_var.get()


__all__ = ["configure_logging", "set_run_id", "get_run_id", "StructuredFormatter", "RunIdFilter"]
