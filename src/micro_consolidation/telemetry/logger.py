"""Structured logging configuration using structlog.

Log output goes to two places:
- JSON lines in a rotating ``current.jsonl`` file under the log directory
- Console output on stderr at the configured level, pretty-printed or as
  JSON depending on ``APP_LOG_FORMAT``

Background consolidation failures are reported through this channel only,
so every logger returned by :func:`get_logger` must be safe to call from a
done-callback or an ``except`` block.
"""

import logging
import logging.handlers
import os
import pathlib
import sys
from datetime import datetime, timezone
from typing import Any

import structlog


def _get_log_level(default: str = "INFO") -> str:
    """Get log level from APP_LOG_LEVEL without importing settings.

    Settings import the telemetry package, so the level is read straight from
    the environment here. Invalid values fall back to ``default``.
    """
    from micro_consolidation.config.validators import validate_log_level  # noqa: PLC0415

    try:
        return validate_log_level(os.getenv("APP_LOG_LEVEL", default))
    except ValueError:
        return default


def _get_log_format(default: str = "console") -> str:
    """Get console log format (``console`` or ``json``) from APP_LOG_FORMAT."""
    from micro_consolidation.config.validators import validate_log_format  # noqa: PLC0415

    try:
        return validate_log_format(os.getenv("APP_LOG_FORMAT", default))
    except ValueError:
        return default


def _get_log_dir() -> pathlib.Path:
    """Get log directory path.

    Returns:
        Path to the configured log directory, or ``telemetry/logs`` under the
        project root when settings cannot be loaded yet.
    """
    try:
        from micro_consolidation.config.settings import get_settings  # noqa: PLC0415

        return pathlib.Path(str(get_settings().log_dir))
    except Exception:
        # Settings unavailable during bootstrap; fall back to project root
        project_root = pathlib.Path(__file__).parent.parent.parent.parent
        return project_root / "telemetry" / "logs"


def _add_timestamp(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add UTC timestamp to log event."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _add_component(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add component name (last part of the dotted logger name) to log event.

    Works for both stdlib records (``logger.name``) and structlog events
    (``event_dict["logger"]`` set by ``add_logger_name``).
    """
    logger_name = event_dict.get("logger") or getattr(logger, "name", "") or ""
    event_dict["component"] = logger_name.rsplit(".", 1)[-1] if logger_name else "unknown"
    return event_dict


_FOREIGN_PRE_CHAIN = [
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    _add_timestamp,
    _add_component,
]


def _configure_file_handler(log_dir: pathlib.Path) -> logging.handlers.RotatingFileHandler:
    """Configure rotating file handler for JSON logs.

    Args:
        log_dir: Directory for log files (created if missing).

    Returns:
        Configured RotatingFileHandler.
    """
    log_dir.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        filename=str(log_dir / "current.jsonl"),
        maxBytes=50 * 1024 * 1024,  # 50 MB
        backupCount=3,
        encoding="utf-8",
    )
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=_FOREIGN_PRE_CHAIN,  # type: ignore[arg-type]
        )
    )
    return handler


def _configure_console_handler(log_format: str) -> logging.StreamHandler[Any]:
    """Configure console handler.

    Args:
        log_format: ``json`` for JSON lines, anything else for pretty output.
    """
    processor: Any
    if log_format == "json":
        processor = structlog.processors.JSONRenderer()
    else:
        processor = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=processor,
            foreign_pre_chain=_FOREIGN_PRE_CHAIN,  # type: ignore[arg-type]
        )
    )
    return handler


def configure_logging() -> None:
    """Configure structlog for structured logging.

    Call once at application startup. :func:`get_logger` calls it lazily if
    nothing has configured structlog yet.
    """
    log_level = _get_log_level()
    log_format = _get_log_format()
    log_dir = _get_log_dir()

    # Root logger accepts all levels; individual handlers gate output.
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    file_handler = _configure_file_handler(log_dir)
    file_handler.setLevel(logging.INFO)
    root_logger.addHandler(file_handler)

    console_handler = _configure_console_handler(log_format)
    console_handler.setLevel(getattr(logging, log_level, logging.INFO))
    root_logger.addHandler(console_handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            _add_component,  # type: ignore[list-item]
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:  # Returns structlog.stdlib.BoundLogger
    """Get a structured logger instance.

    Args:
        name: Logger name (typically ``__name__`` of the calling module).

    Returns:
        Configured structlog logger instance.

    Example:
        >>> from micro_consolidation.telemetry import get_logger
        >>> log = get_logger(__name__)
        >>> log.info("knowledge_fact_appended", path="knowledge/hippocampus.md")
    """
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(name)
