import json
import logging
import logging.config
import sys
from datetime import datetime
from typing import Any, Dict

# Extra attributes copied into JSON log entries when present on the record
STRUCTURED_FIELDS = (
    "request_id", "user_id", "method", "endpoint", "status_code", "duration",
    "event", "review_id", "product_id", "submitter_id", "client_host", "error_id",
)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        for field in STRUCTURED_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        return json.dumps(log_entry, default=str)


class ColoredFormatter(logging.Formatter):
    """Colored formatter for console output"""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'
    }

    def format(self, record: logging.LogRecord) -> str:
        level_color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{level_color}{record.levelname}{self.COLORS['RESET']}"
        return super().format(colored)


def setup_logging(
    log_level: str = "INFO",
    log_to_console: bool = True,
    json_logs: bool = False
) -> None:
    """
    Setup application logging configuration

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_console: Whether to log to console
        json_logs: Emit one JSON object per line instead of colored text
    """
    handlers = ["console"] if log_to_console else []

    config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "colored": {
                "()": ColoredFormatter,
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S"
            },
            "json": {
                "()": JSONFormatter,
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "stream": sys.stdout,
                "formatter": "json" if json_logs else "colored",
                "level": log_level
            }
        },
        "loggers": {
            "": {
                "level": log_level,
                "handlers": handlers,
                "propagate": False
            },
            "reviews_backend": {
                "level": log_level,
                "handlers": handlers,
                "propagate": False
            },
            "audit": {
                "level": "INFO",
                "handlers": handlers,
                "propagate": False
            },
            "core": {
                "level": log_level,
                "handlers": handlers,
                "propagate": False
            },
            "routers": {
                "level": log_level,
                "handlers": handlers,
                "propagate": False
            },
            # Third party loggers (reduce noise)
            "uvicorn": {
                "level": "INFO",
                "handlers": handlers,
                "propagate": False
            },
            "urllib3": {
                "level": "WARNING",
                "handlers": handlers,
                "propagate": False
            },
        }
    }

    logging.config.dictConfig(config)

    logger = logging.getLogger("reviews_backend")
    logger.info("Logging system initialized", extra={
        "log_level": log_level,
        "json_logs": json_logs,
    })


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance"""
    return logging.getLogger(name)


# Utility functions for structured logging
def log_review_event(event: str, success: bool = True, **kwargs):
    """Audit trail for review writes and authentication"""
    audit_logger = logging.getLogger("audit")
    extra = {
        "event": event,
        "success": success,
        **kwargs
    }
    level = logging.INFO if success else logging.WARNING
    audit_logger.log(level, f"Audit event: {event}", extra=extra)


def log_api_request(logger: logging.Logger, method: str, endpoint: str, status_code: int, duration_ms: float, user_id: str = None, **kwargs):
    """Log API requests with structured data"""
    extra = {
        "method": method,
        "endpoint": endpoint,
        "status_code": status_code,
        "duration": duration_ms,
        **kwargs
    }
    if user_id:
        extra["user_id"] = user_id

    level = logging.INFO if status_code < 400 else logging.WARNING if status_code < 500 else logging.ERROR
    logger.log(level, f"{method} {endpoint} - {status_code}", extra=extra)


def log_error(logger: logging.Logger, message: str, exception: Exception = None, **kwargs):
    """Log errors with structured data"""
    extra = kwargs
    if exception:
        logger.error(message, exc_info=exception, extra=extra)
    else:
        logger.error(message, extra=extra)
