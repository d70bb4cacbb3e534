"""
Centralized structured logging for the chat gateway.
Uses Python's standard logging with JSON formatting for production.

Every record carries the correlation ID of the HTTP request or WebSocket
connection that produced it (see shared.infrastructure.correlation).
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from shared.config.settings import Settings, get_settings


def _record_time(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


def _correlation_of(record: logging.LogRecord) -> str | None:
    correlation_id = getattr(record, "correlation_id", None)
    if correlation_id and correlation_id != "-":
        return correlation_id
    return None


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.
    One object per line, easily parseable by log aggregation tools.
    """

    def __init__(self, include_source: bool = False) -> None:
        super().__init__()
        self.include_source = include_source

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": _record_time(record).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = _correlation_of(record)
        if correlation_id:
            log_data["correlation_id"] = correlation_id

        fields = getattr(record, "extra_data", None)
        if fields:
            log_data["data"] = fields

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if self.include_source:
            log_data["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)


class DevelopmentFormatter(logging.Formatter):
    """
    Human-readable formatter for development.

        [14:02:11] INFO     [3f9a1c2e] chat_gateway.main: Guest connected (user_id=g-1)
    """

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"
    DIM = "\033[2m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        clock = _record_time(record).astimezone().strftime("%H:%M:%S")

        correlation_id = _correlation_of(record)
        tag = f"{self.DIM}[{correlation_id[:8]}]{self.RESET} " if correlation_id else ""

        line = (
            f"{color}[{clock}] {record.levelname:8}{self.RESET} "
            f"{tag}{record.name}: {record.getMessage()}"
        )

        fields = getattr(record, "extra_data", None)
        if fields:
            line += " (" + " | ".join(f"{k}={v}" for k, v in fields.items()) + ")"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)

        return line


class StructuredLogger(logging.Logger):
    """
    Logger that turns keyword arguments into structured fields.

        logger.info("Client connected", connection_id="ab12", name="Guest-7QX2")

    The fields land on the record as `extra_data`; both formatters render them.
    """

    def _log(
        self,
        level: int,
        msg: object,
        args: Any,
        exc_info: Any = None,
        extra: dict | None = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **fields: Any,
    ) -> None:
        extra = dict(extra or {})
        extra["extra_data"] = fields or None
        super()._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=extra,
            stack_info=stack_info,
            stacklevel=stacklevel + 1,
        )


logging.setLoggerClass(StructuredLogger)


def setup_logging(settings: Settings | None = None) -> None:
    """
    Configure the root logger once at application startup.

    Production gets JSON lines; anything else gets the colored formatter.
    """
    # Import here to avoid circular imports
    from shared.infrastructure.correlation import CorrelationIdFilter

    cfg = settings or get_settings()
    log_level = logging.DEBUG if cfg.debug else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.addFilter(CorrelationIdFilter())
    if cfg.environment == "production":
        handler.setFormatter(StructuredFormatter(include_source=cfg.debug))
    else:
        handler.setFormatter(DevelopmentFormatter())

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()
    root.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """
    Get a logger instance with the given name.

    Usage:
        from shared.config.logging import get_logger
        logger = get_logger(__name__)

        logger.info("Message persisted", sender_id="u-1", length=12)
        logger.error("Store unavailable", exc_info=True)
    """
    return logging.getLogger(name)  # type: ignore


security_audit_logger = get_logger("security.audit")


# =============================================================================
# Security Audit Logging
# =============================================================================


def audit_ws_connection(
    event_type: str,
    endpoint: str,
    user_id: str | None = None,
    origin: str | None = None,
    reason: str | None = None,
    **extra: Any,
) -> None:
    """
    Record a WebSocket connection event on the security audit logger.

    Args:
        event_type: CONNECT, DISCONNECT, AUTH_FAILED or CONNECT_REJECTED
        endpoint: /ws/guest or /ws/chat
        user_id: Identity ID, once one has been resolved
        origin: Origin header value
        reason: Why the event happened (mostly for failures)
        **extra: Additional context fields
    """
    security_audit_logger.info(
        f"WS_AUDIT: {event_type}",
        event_type=event_type,
        endpoint=endpoint,
        user_id=user_id,
        origin=origin,
        reason=reason,
        **extra,
    )
