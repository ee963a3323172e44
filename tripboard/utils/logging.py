"""Structured logging for store operations and provider calls."""

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


class StructuredFormatter(logging.Formatter):
    """Appends the ``structured`` extra, when present, as compact JSON."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        structured = getattr(record, "structured", None)
        if structured:
            message = f"{message} {json.dumps(structured, default=str, ensure_ascii=False)}"
        return message


def configure_logging(level: str = "INFO") -> None:
    """Install the structured formatter on the root logger."""
    handler = logging.StreamHandler()
    handler.setFormatter(
        StructuredFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level.upper())


class StructuredOperationLogger:
    """Structured logger for store mutations and provider calls."""

    def log_operation(
        self,
        operation: str,
        outcome: str,
        latency_ms: float,
        path: str | None = None,
        error_reason: str | None = None,
        **fields: Any,
    ) -> None:
        """Log one operation with structured data."""
        log_data: dict[str, Any] = {
            "operation": operation,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if path is not None:
            log_data["path"] = path

        if error_reason:
            log_data["error_reason"] = error_reason

        log_data.update(fields)

        log_msg = f"Operation: {operation} - {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
