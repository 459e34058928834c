"""Structured logging configuration for Laudos.

Production emits one JSON object per line; development gets a compact text
format. Records logged while an HTTP request is being served carry its
request ID and user through ``RequestContextFilter``.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone

from .config import get_settings

# Set by the request middleware for the duration of one request
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)

# Attributes every LogRecord carries; anything else came in through `extra`
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime"}

_NOISY_LOGGERS = ("httpx", "httpcore", "botocore", "boto3", "s3transfer", "pdfminer", "pdfplumber")


class RequestContextFilter(logging.Filter):
    """Copy the current request ID and user onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get()
        if not hasattr(record, "user_id"):
            record.user_id = user_id_var.get()
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with `extra` fields flattened in."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        entry.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and not key.startswith("_") and value is not None
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Human-readable format for development; shows the request ID when set."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        request_id = getattr(record, "request_id", None)
        return f"{text} [{request_id[:8]}]" if request_id else text


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger from settings.

    Args:
        level: Overrides LOG_LEVEL (used by the CLI ``--verbose`` flags)
    """
    settings = get_settings()
    level_name = (level or settings.log_level).upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestContextFilter())
    handler.setFormatter(JSONFormatter() if settings.log_format == "json" else TextFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))
    root_logger.handlers = [handler]

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    get_logger(__name__).debug(
        "Logging initialized",
        extra={"environment": settings.environment, "log_format": settings.log_format},
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


# =========================
# Event helpers
# =========================


def log_report_generated(
    process_id: str,
    report_type: str,
    source: str,
    content_length: int,
    persisted: bool,
) -> None:
    """Log a completed report generation.

    Args:
        process_id: Process the report belongs to
        report_type: insalubridade, periculosidade or completo
        source: Where the text was assembled (local or remote)
        content_length: Size of the generated text in characters
        persisted: Whether a history row was written
    """
    get_logger("laudos.reports").info(
        f"Generated {report_type} report for process {process_id}",
        extra={
            "event": "report_generated",
            "process_id": process_id,
            "report_type": report_type,
            "source": source,
            "content_length": content_length,
            "persisted": persisted,
        },
    )


def log_process_deleted(process_id: str, removed_files: int, warnings: list[str]) -> None:
    """Log the outcome of a cascading process deletion."""
    get_logger("laudos.processes").log(
        logging.WARNING if warnings else logging.INFO,
        f"Deleted process {process_id} ({removed_files} files, {len(warnings)} warnings)",
        extra={
            "event": "process_deleted",
            "process_id": process_id,
            "removed_files": removed_files,
            "warnings": warnings,
        },
    )


def log_extraction_result(category: str, method: str, input_chars: int, output_chars: int) -> None:
    get_logger("laudos.extraction").debug(
        f"Extraction {category} via {method}: {output_chars} chars",
        extra={
            "event": "extraction_result",
            "category": category,
            "method": method,
            "input_chars": input_chars,
            "output_chars": output_chars,
        },
    )


def log_api_request(method: str, path: str, status_code: int, duration_ms: float) -> None:
    """Log a served request; 5xx responses are logged as errors."""
    if status_code >= 500:
        level = logging.ERROR
    elif status_code >= 400:
        level = logging.WARNING
    else:
        level = logging.INFO
    get_logger("laudos.api").log(
        level,
        f"{method} {path} - {status_code} ({duration_ms:.0f} ms)",
        extra={
            "event": "api_request",
            "method": method,
            "path": path,
            "status_code": status_code,
            "duration_ms": round(duration_ms, 1),
        },
    )
