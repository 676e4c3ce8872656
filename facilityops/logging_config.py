"""
structlog setup for the web app and the notification worker.

Request handlers and lifecycle commands log through ``get_logger``; the
worker wraps each outbox tick in an ``OperationContext`` so its start,
outcome and delivery counts share one tick id.
"""
import logging
import logging.config
import os
import sys
import uuid
from datetime import datetime
from typing import Optional

import structlog

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def configure_logging(log_level: str = "INFO", log_file: Optional[str] = None):
    """
    Route structlog through stdlib logging.

    Console output is plain text; LOG_FILE, when set, gets rotating JSON
    lines for shipping.
    """
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": "plain",
            "stream": sys.stdout,
        }
    }
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": log_level,
            "formatter": "json",
            "filename": log_file,
            "maxBytes": LOG_FILE_MAX_BYTES,
            "backupCount": LOG_FILE_BACKUPS,
        }

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {"format": LOG_FORMAT},
            "json": {
                "()": "structlog.stdlib.ProcessorFormatter",
                "processor": structlog.processors.JSONRenderer(),
            },
        },
        "handlers": handlers,
        # Werkzeug and APScheduler log through the root logger
        "root": {"level": log_level, "handlers": list(handlers)},
    })

    logger = structlog.get_logger("facilityops")
    logger.info("Logging configured", level=log_level, file=log_file)
    return logger


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


class OperationContext:
    """
    Log one unit of background work under a short correlation id.

    Keyword arguments (e.g. ``outbox_id`` or ``work_order_id``) are bound to
    every line the context writes. Counters passed to ``record`` are added
    to the completion line.

    Usage:
        with OperationContext("notification_tick", claim_limit=25) as op:
            ...
            op.record(claimed=3, sent=2, failed=1)
    """

    def __init__(self, operation_type: str, operation_id: Optional[str] = None, **context):
        self.operation_type = operation_type
        self.operation_id = operation_id or uuid.uuid4().hex[:8]
        self.context = context
        self.stats = {}
        self.logger = get_logger("facilityops.operations").bind(
            operation_type=operation_type,
            operation_id=self.operation_id,
            **context
        )
        self.start_time = None

    def record(self, **stats):
        self.stats.update(stats)

    def __enter__(self):
        self.start_time = datetime.utcnow()
        self.logger.debug("Operation started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = (datetime.utcnow() - self.start_time).total_seconds()

        if exc_type is None:
            # Operations that recorded no work log at debug
            log = self.logger.info if any(self.stats.values()) else self.logger.debug
            log("Operation completed", duration_seconds=duration, **self.stats)
        else:
            self.logger.error(
                "Operation failed",
                duration_seconds=duration,
                error_type=exc_type.__name__,
                error_message=str(exc_val),
                **self.stats
            )
        return False
