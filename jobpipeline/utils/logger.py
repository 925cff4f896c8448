"""
Logging Configuration

Structured logging setup using structlog for consistent, JSON-formatted logs
throughout the job pipeline.
"""

import logging
import sys
from typing import Any, Dict, Optional

import structlog
from structlog.stdlib import LoggerFactory
from pythonjsonlogger import jsonlogger


def configure_logging(
    level: str = "INFO",
    debug: bool = False,
    log_file: Optional[str] = None
) -> None:
    """
    Configure structured logging for the pipeline.

    Logs are written to stderr; stdout is reserved for the progress line.

    Args:
        level: Standard library level name
        debug: Render human-friendly console output instead of JSON
        log_file: Optional path for a persistent JSON log
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,

            # JSON formatting for unattended runs, pretty for development
            structlog.dev.ConsoleRenderer() if debug
            else structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )

    # Selenium and urllib3 are chatty at DEBUG
    for noisy in ("selenium", "urllib3", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            jsonlogger.JsonFormatter(
                "%(asctime)s %(name)s %(levelname)s %(message)s"
            )
        )
        logging.getLogger().addHandler(file_handler)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        structlog.stdlib.BoundLogger: Configured logger instance
    """
    return structlog.get_logger(name)


class LoggerMixin:
    """Mixin class to add logging capabilities to any class."""

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        """Get logger for this class."""
        return get_logger(self.__class__.__module__ + "." + self.__class__.__name__)


def log_scraping_activity(
    stage: str,
    action: str,
    job_id: Optional[str] = None,
    url: Optional[str] = None,
    **kwargs
) -> None:
    """
    Log scraping activity.

    Args:
        stage: Pipeline stage (discover, process, login)
        action: Action being performed
        job_id: LinkedIn job ID being handled
        url: URL being scraped
        **kwargs: Additional scraping data
    """
    logger = get_logger("scraping")
    logger.info(
        "Scraping activity",
        stage=stage,
        action=action,
        job_id=job_id,
        url=url,
        **kwargs
    )


def log_error(
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
    **kwargs
) -> None:
    """
    Log error with context.

    Args:
        error: Exception that occurred
        context: Additional context about the error
        **kwargs: Additional error data
    """
    logger = get_logger("errors")
    details = error.to_dict() if hasattr(error, "to_dict") else {}
    logger.error(
        "Error occurred",
        error_type=type(error).__name__,
        error_message=str(error),
        error_details=details,
        context=context or {},
        **kwargs
    )


def log_performance_metric(
    metric_name: str,
    value: float,
    unit: str = "seconds",
    context: Optional[Dict[str, Any]] = None,
    **kwargs
) -> None:
    """
    Log performance metric.

    Args:
        metric_name: Name of the metric
        value: Metric value
        unit: Unit of measurement
        context: Additional context
        **kwargs: Additional metric data
    """
    logger = get_logger("performance")
    logger.info(
        "Performance metric",
        metric=metric_name,
        value=value,
        unit=unit,
        context=context or {},
        **kwargs
    )
