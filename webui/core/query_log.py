import logging
from datetime import datetime, timezone
from logging.handlers import TimedRotatingFileHandler
from typing import Optional

from webui.settings import QUERY_LOG_DIR


class QueryFormatter(logging.Formatter):
    def format(self, record):
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        action = record.msg
        resource = getattr(record, 'resource', None)
        result = getattr(record, 'result', 'success')
        version = getattr(record, 'version', None)

        parts = [f"Action: {action}"]
        if resource:
            parts.append(f"Resource: {resource}")
        if version is not None:
            parts.append(f"Snapshot: {version}")
        parts.append(f"Result: {result}")

        return f"{timestamp} - QUERY - {' | '.join(parts)}"


def setup_query_logging(log_dir=QUERY_LOG_DIR):
    """Initialize the query logger; without a directory queries go nowhere"""
    query_logger = logging.getLogger("routing-stats.query")
    query_logger.setLevel(logging.INFO)
    query_logger.propagate = False

    if query_logger.handlers:
        return query_logger

    if log_dir is None:
        query_logger.addHandler(logging.NullHandler())
        return query_logger

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except (PermissionError, OSError) as e:
        logging.getLogger("routing-stats.webui").warning(f"Cannot create log directory {log_dir}: {e}")
        query_logger.addHandler(logging.NullHandler())
        return query_logger

    handler = TimedRotatingFileHandler(
        log_dir / "query.log", when="midnight", interval=1, backupCount=30
    )
    handler.setFormatter(QueryFormatter())
    query_logger.addHandler(handler)
    return query_logger


query_logger = setup_query_logging()


def query_log(action: str, resource: Optional[str] = None, **kwargs):
    """Log one served query"""
    query_logger.info(action, extra={'resource': resource, **kwargs})
