"""
Structured JSON logging utilities.

Generation runs are usually driven from CI or benchmark harnesses that
collect logs as JSON lines. Every record written while a block is being
produced carries the block id and, once known, the write stage
(``chunks``, ``index`` or ``meta``), so a failed run can be traced to the
file it was writing:

    {"timestamp": "...", "level": "INFO", "logger": "tsdb_blockgen.blocks.writer",
     "message": "Wrote block ...", "block_id": "01HK...", "stage": "meta"}
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Attributes every LogRecord has; anything else was passed as ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}

# Context fields placed right after the message, in this order.
CONTEXT_FIELDS = ("block_id", "stage")


class StructuredJsonFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs logs as single-line JSON objects with fields:
    - timestamp: time the record was created, ISO 8601 in UTC
    - level, logger, message
    - block_id and stage, when the record has them
    - any other ``extra`` fields; values JSON cannot encode are stringified
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_obj: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        for key in CONTEXT_FIELDS:
            if key in extra:
                log_obj[key] = extra.pop(key)
        for key, value in extra.items():
            log_obj[key] = _jsonable(value)

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


def configure_structured_logging(
    level: int = logging.INFO,
    logger_name: str | None = None,
) -> logging.Logger:
    """
    Send JSON lines for ``logger_name`` (default: root logger) to stderr.

    Existing handlers on that logger are replaced, so calling this twice
    does not duplicate output.

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(StructuredJsonFormatter())

    logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def get_generator_logger(name: str) -> logging.Logger:
    """Logger named ``tsdb_blockgen.{name}``."""
    return logging.getLogger(f"tsdb_blockgen.{name}")


class BlockLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that tags records with the block being written.

    ``for_stage`` derives an adapter that also tags the write stage.
    Fields passed explicitly in ``extra`` win over the adapter's context.
    """

    def __init__(self, logger: logging.Logger, block_id: str, stage: str | None = None):
        context: dict[str, Any] = {"block_id": block_id}
        if stage:
            context["stage"] = stage
        super().__init__(logger, context)

    @property
    def block_id(self) -> str:
        return self.extra["block_id"]

    def for_stage(self, stage: str) -> "BlockLoggerAdapter":
        """Adapter for the same block, tagged with ``stage``."""
        return BlockLoggerAdapter(self.logger, self.block_id, stage)

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        """Merge block context into the record's extra fields."""
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs
