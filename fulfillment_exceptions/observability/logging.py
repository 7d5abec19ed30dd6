# ==== STRUCTURED LOGGING WITH LOGURU ==== #

"""
Structured logging for the fulfillment exception engine.

Records are emitted through loguru as JSON with the order, pick and
transaction context bound by the caller, plus the active OpenTelemetry
trace and span ids when a span is recording.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger
from opentelemetry import trace
from opentelemetry.instrumentation.logging import LoggingInstrumentor


class InterceptHandler(logging.Handler):
    """Route standard-library logging records (Prefect, httpx, ...) through loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def init_logging(level: str = "INFO", log_dir: Optional[str] = None) -> None:
    """Initialize structured logging with loguru.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for rotating JSON log files; stdout only when None
    """
    logger.remove()

    logger.add(
        sys.stdout,
        format="{message}",
        serialize=True,
        level=level.upper(),
        enqueue=True,
        colorize=False,
        backtrace=True,
        diagnose=False,
    )

    if log_dir:
        logs_dir = Path(log_dir)
        logs_dir.mkdir(parents=True, exist_ok=True)

        logger.add(
            logs_dir / "exceptions_{time:YYYY-MM-DD}.log",
            rotation="100 MB",
            retention="30 days",
            compression="gz",
            serialize=True,
            level="DEBUG",
            enqueue=True,
            backtrace=True,
        )

        # Errors are kept longer
        logger.add(
            logs_dir / "exceptions_errors_{time:YYYY-MM-DD}.log",
            rotation="50 MB",
            retention="90 days",
            compression="gz",
            serialize=True,
            level="ERROR",
            enqueue=True,
            backtrace=True,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    try:
        LoggingInstrumentor().instrument(set_logging_format=False)
    except Exception as e:
        logger.warning(f"Failed to setup OpenTelemetry logging: {e}")

    logger.info("Structured logging initialized", level=level)


def trace_context() -> Dict[str, str]:
    """Ids of the active OpenTelemetry span, empty when none is recording."""
    span = trace.get_current_span()
    if not span.is_recording():
        return {}
    span_context = span.get_span_context()
    if not span_context.is_valid:
        return {}
    return {
        "trace_id": format(span_context.trace_id, "032x"),
        "span_id": format(span_context.span_id, "016x"),
    }


class ContextualLogger:
    """Loguru logger that binds keyword context onto every record.

    Typical context keys are ``order_type``, ``order_number``, ``pick_id``
    and ``transaction_id``. Context given to ``bind`` is carried by every
    record of the returned logger; context given per call wins over it.
    """

    def __init__(self, name: str, **context: Any):
        self.name = name
        self.context = context

    def bind(self, **context: Any) -> "ContextualLogger":
        return ContextualLogger(self.name, **{**self.context, **context})

    def _log(self, level: str, msg: str, context: Dict[str, Any], exception: bool = False) -> None:
        fields = {"logger_name": self.name, **self.context, **context, **trace_context()}
        # depth=2 attributes the record to the caller of debug()/info()/...
        logger.opt(depth=2, exception=exception).bind(**fields).log(level, msg)

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._log("DEBUG", msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._log("INFO", msg, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        self._log("WARNING", msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self._log("ERROR", msg, kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log at ERROR level with the active exception's traceback."""
        self._log("ERROR", msg, kwargs, exception=True)


def get_logger(name: str) -> ContextualLogger:
    return ContextualLogger(name)


def log_performance(operation: str, duration: float, **context: Any) -> None:
    """Record how long a scheduled run took.

    A run longer than its one-minute cadence overlaps the next one and is
    logged at WARNING; anything faster at DEBUG.
    """
    level = "WARNING" if duration > 60.0 else "DEBUG"
    logger.bind(
        operation=operation,
        duration_seconds=round(duration, 3),
        performance_log=True,
        **context,
    ).log(level, f"{operation} took {duration:.3f}s")
