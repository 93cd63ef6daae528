"""
Logging setup for the UNO game server.

Provides:
- JSONFormatter for production (one JSON object per line)
- DevelopmentFormatter for local runs (colored, compact)
- Context variables so log lines pick up the room and player being served
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

# Set by the WebSocket loop for the connection currently being handled
connection_id_var: ContextVar[Optional[str]] = ContextVar("connection_id", default=None)
room_code_var: ContextVar[Optional[str]] = ContextVar("room_code", default=None)
player_id_var: ContextVar[Optional[str]] = ContextVar("player_id", default=None)

CONTEXT_FIELDS = ("connection_id", "room_code", "player_id", "game_id")


def _context_values(record: logging.LogRecord) -> dict:
    """Collect context from context variables, overridden by record extras."""
    values = {
        "connection_id": connection_id_var.get(),
        "room_code": room_code_var.get(),
        "player_id": player_id_var.get(),
    }
    for name in CONTEXT_FIELDS:
        extra = getattr(record, name, None)
        if extra:
            values[name] = extra
    return {name: value for name, value in values.items() if value}


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(_context_values(record))

        if record.levelno >= logging.ERROR:
            log_data["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class DevelopmentFormatter(logging.Formatter):
    """
    Human-readable formatter for development.

    Example:
        12:01:44.512 INFO     room [room=ABCD, player=3f2a9c1e] - Alice joined
    """

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        reset = self.RESET if color else ""
        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]

        context = _context_values(record)
        context_parts = []
        if "room_code" in context:
            context_parts.append(f"room={context['room_code']}")
        if "player_id" in context:
            context_parts.append(f"player={context['player_id'][:8]}")
        elif "connection_id" in context:
            context_parts.append(f"conn={context['connection_id'][:8]}")
        context_str = f" [{', '.join(context_parts)}]" if context_parts else ""

        output = (
            f"{timestamp} {color}{record.levelname:8}{reset} "
            f"{record.name}{context_str} - {record.getMessage()}"
        )
        if record.exc_info:
            output += "\n" + self.formatException(record.exc_info)
        return output


def setup_logging(
    level: str = "INFO",
    environment: str = "development",
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        environment: "production" logs JSON, anything else human-readable.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    if environment == "production":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(DevelopmentFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(log_level)

    # Reduce noise from libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("websockets").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured: level={level}, environment={environment}"
    )


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that carries fixed context on every line.

    Usage:
        logger = get_logger(__name__)
        logger.with_context(room_code="ABCD", player_id=pid).info("Player joined")
    """

    def __init__(self, logger: logging.Logger, extra: Optional[dict] = None):
        super().__init__(logger, extra or {})

    def with_context(self, **kwargs) -> "ContextLogger":
        """Return a new adapter with the given context added."""
        return ContextLogger(self.logger, {**self.extra, **kwargs})

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(name: str) -> ContextLogger:
    """Get a context-aware logger (typically get_logger(__name__))."""
    return ContextLogger(logging.getLogger(name))
