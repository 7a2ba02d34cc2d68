"""
Logging setup for the Resume AI API.

Everything logs under the `resume_ai.` namespace; `configure_for_environment`
picks level, handlers and format from ENVIRONMENT / LOG_LEVEL.
"""
import functools
import logging
import logging.config
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

LOG_DIR = Path("logs")
MAX_LOG_BYTES = 10 * 1024 * 1024

FORMATS = {
    "simple": "%(levelname)s - %(name)s - %(message)s",
    "detailed": "%(asctime)s | %(levelname)-8s | %(name)-30s | %(funcName)-20s:%(lineno)-4d | %(message)s",
    "json": '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
}

# environment -> (level, write files, format); None level means LOG_LEVEL
ENVIRONMENT_PROFILES = {
    "production": (None, True, "json"),
    "development": ("DEBUG", True, "detailed"),
    "testing": ("WARNING", False, "simple"),
}

# third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("httpx", "openai", "pymongo")


def _rotating_file(filename: Path, level: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": "app",
        "filename": str(filename),
        "maxBytes": MAX_LOG_BYTES,
        "backupCount": 5,
        "encoding": "utf8",
    }


def setup_logging(level: str = "INFO", enable_file: bool = True, format_style: str = "detailed") -> None:
    """
    Configure the root logger with a stdout handler and, when enable_file is
    set, a daily application log plus an errors-only log under logs/.
    """
    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "app",
            "stream": "ext://sys.stdout",
        }
    }

    if enable_file:
        LOG_DIR.mkdir(exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d")
        handlers["file"] = _rotating_file(LOG_DIR / f"resume_ai_{stamp}.log", level)
        handlers["error_file"] = _rotating_file(LOG_DIR / f"resume_ai_errors_{stamp}.log", "ERROR")

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "app": {
                "format": FORMATS.get(format_style, FORMATS["detailed"]),
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": handlers,
        "root": {"level": level, "handlers": list(handlers)},
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
    })

    get_logger("logging").info(f"Logging configured (level={level}, files={enable_file}, format={format_style})")


def configure_for_environment() -> None:
    environment = os.getenv("ENVIRONMENT", "development").lower()
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    level, enable_file, format_style = ENVIRONMENT_PROFILES.get(environment, (None, True, "detailed"))
    setup_logging(level=level or log_level, enable_file=enable_file, format_style=format_style)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"resume_ai.{name}")


def log_api_call(operation: str):
    """Log start, duration and failure of a route handler, tagged with the request id"""
    def decorator(func):
        logger = get_logger(f"api.{func.__module__}")

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            request = kwargs.get("request")
            request_id = getattr(getattr(request, "state", None), "request_id", "unknown")
            extra = {"request_id": request_id, "operation": operation}
            started = time.perf_counter()

            logger.info(f"API {operation} started", extra=extra)
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                elapsed_ms = (time.perf_counter() - started) * 1000
                logger.error(f"API {operation} failed after {elapsed_ms:.1f}ms: {e}",
                             extra=dict(extra, elapsed_ms=elapsed_ms))
                raise
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info(f"API {operation} completed in {elapsed_ms:.1f}ms", extra=dict(extra, elapsed_ms=elapsed_ms))
            return result

        return wrapper
    return decorator


class PerformanceMonitor:
    """Times a block; warns when it runs past threshold_ms and records elapsed_ms"""

    def __init__(self, operation_name: str, logger: Optional[logging.Logger] = None, threshold_ms: float = 1000):
        self.operation_name = operation_name
        self.logger = logger or get_logger("performance")
        self.threshold_ms = threshold_ms
        self.elapsed_ms: Optional[float] = None
        self._started = 0.0

    def __enter__(self):
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms = (time.perf_counter() - self._started) * 1000
        if exc_type is not None:
            self.logger.error(f"{self.operation_name} failed after {self.elapsed_ms:.1f}ms: {exc_val}")
        elif self.elapsed_ms > self.threshold_ms:
            self.logger.warning(
                f"{self.operation_name} took {self.elapsed_ms:.1f}ms (slow threshold {self.threshold_ms:.0f}ms)"
            )
        else:
            self.logger.debug(f"{self.operation_name} took {self.elapsed_ms:.1f}ms")
        return False
