#!/usr/bin/env python3
"""
Logging for routing-stats

Console and rotating file output for the command line and the daemon.
Records may carry dataset context (input source, snapshot version, record
count, duration) which the formatter appends as bracketed tags:

    2024-05-01 12:00:00 - routing-stats.snapshot - INFO - Published snapshot [snapshot v3] [812344 records]
"""

import functools
import logging
import logging.handlers
import platform
import sys
import time
from pathlib import Path
from typing import Dict, Optional

from routing_stats.utils.config import get_config

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Record attribute and its tag, in output order
CONTEXT_TAGS = (
    ("source", "[{}]"),
    ("snapshot_version", "[snapshot v{}]"),
    ("records", "[{} records]"),
    ("duration", "[took {:.3f}s]"),
)


class RoutingStatsFormatter(logging.Formatter):
    """Appends dataset context tags; colours whole lines by level"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None,
                 use_colors: bool = False):
        super().__init__(fmt=fmt or DEFAULT_FORMAT, datefmt=datefmt or DEFAULT_DATE_FORMAT)
        self.use_colors = use_colors

    def formatMessage(self, record):
        formatted = super().formatMessage(record)
        tags = [template.format(getattr(record, attr)) for attr, template in CONTEXT_TAGS
                if getattr(record, attr, None) is not None]
        if tags:
            formatted = f"{formatted} {' '.join(tags)}"
        return formatted

    def format(self, record):
        formatted = super().format(record)
        if self.use_colors and record.levelname in self.COLORS:
            formatted = f"{self.COLORS[record.levelname]}{formatted}{self.RESET}"
        return formatted


class RoutingStatsLogger(logging.LoggerAdapter):
    """
    Logger adapter that attaches dataset context to every record

    Context bound with bind() is merged into each record; ``extra`` given on
    a single call takes precedence over it.
    """

    def __init__(self, logger: logging.Logger, context: Optional[dict] = None):
        super().__init__(logger, context or {})

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs

    def bind(self, **context) -> 'RoutingStatsLogger':
        """A logger for the same channel with additional context"""
        return RoutingStatsLogger(self.logger, {**self.extra, **context})

    def time_operation(self, operation_name: str = None):
        """
        Decorator logging the start, completion or failure of a call

        The completion and failure records carry the call's duration.
        """

        def decorator(func):
            @functools.wraps(func)
            def wrapper(*args, **kwargs):
                op_name = operation_name or f"{self.logger.name}.{func.__name__}"
                start_time = time.time()
                self.info(f"Starting {op_name}")
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    self.error(f"Failed {op_name}: {e}", exc_info=True,
                               extra={"duration": time.time() - start_time})
                    raise
                self.info(f"Completed {op_name}", extra={"duration": time.time() - start_time})
                return result

            return wrapper

        return decorator

    def log_parse_summary(self, source: str, accepted: int, skipped: int, duration: float = None):
        """Log the outcome of reading one input file; nothing accepted is a warning"""
        level = logging.INFO if accepted > 0 else logging.WARNING
        message = f"Read {accepted} records"
        if skipped:
            message += f", skipped {skipped}"
        self.log(level, message, extra={"source": source, "records": accepted, "duration": duration})

    def log_batch_summary(self, operation: str, total: int, successful: int, duration: float):
        failed = total - successful
        message = f"{operation}: {successful}/{total} succeeded"
        if failed > 0:
            self.warning(f"{message}, {failed} failed", extra={"duration": duration})
        else:
            self.info(message, extra={"duration": duration})


def setup_logging(
    config=None,
    level: str = None,
    log_file: str = None,
    console_colors: bool = True,
) -> Dict[str, logging.Handler]:
    """
    Configure the root logger from the logging configuration section

    Args:
        config: RoutingStatsConfig instance (default: global configuration)
        level: Log level override
        log_file: Log file override; enables the rotating file handler
        console_colors: Colour console lines when stderr is a terminal

    Returns:
        Dictionary of configured handlers
    """
    logging_config = (config or get_config()).logging

    level = level or logging_config.level
    if log_file is None and logging_config.log_to_file:
        log_file = logging_config.log_file
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handlers = {}

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(RoutingStatsFormatter(
        logging_config.format, logging_config.date_format,
        use_colors=console_colors and sys.stderr.isatty(),
    ))
    root_logger.addHandler(console_handler)
    handlers["console"] = console_handler

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(RoutingStatsFormatter(logging_config.format, logging_config.date_format))
        root_logger.addHandler(file_handler)
        handlers["file"] = file_handler

    logging.getLogger("routing-stats.logging").debug(
        f"Logging configured: level={level}, handlers={list(handlers)}")
    return handlers


def get_logger(name: str, **context) -> RoutingStatsLogger:
    """Logger for a routing-stats channel, optionally with bound context"""
    return RoutingStatsLogger(logging.getLogger(name), context)


def log_run_context(config=None):
    """Log the inputs and tuning a run will use"""
    config = config or get_config()
    logger = logging.getLogger("routing-stats.run")
    inputs = config.inputs
    validation = config.validation

    logger.info(f"routing-stats on Python {platform.python_version()}, {platform.system()}")
    logger.debug(f"Announcement files: {', '.join(inputs.announcement_files) or 'none'}")
    logger.debug(f"VRP file: {inputs.vrp_file or 'none'}")
    logger.debug(f"Delegation file: {inputs.delegation_file or 'none'}")
    logger.debug(f"Validation: min_peers={validation.min_peers}, max_workers={validation.max_workers}, "
                 f"chunk_size={validation.chunk_size}, parallel_threshold={validation.parallel_threshold}")


class LoggingTimer:
    """Context manager logging a block's start and its duration on exit"""

    def __init__(self, logger, operation: str, level: int = logging.INFO):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.start_time = None
        self.duration = 0.0

    def __enter__(self):
        self.start_time = time.time()
        self.logger.log(self.level, f"Starting {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.time() - self.start_time
        if exc_type is None:
            self.logger.log(self.level, f"Completed {self.operation}", extra={"duration": self.duration})
        else:
            self.logger.error(f"Failed {self.operation}: {exc_val}", extra={"duration": self.duration})
        return False
