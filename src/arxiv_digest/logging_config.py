"""Logging setup and helpers for the arXiv digest pipeline."""

import functools
import json
import logging
import logging.handlers
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import colorlog

from .config import LoggingConfig, get_settings

PACKAGE_LOGGER = 'arxiv_digest'
SLOW_STAGE_SECONDS = 10.0

LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}

CONSOLE_FORMAT = '%(asctime)s %(levelname)-8s %(name)s: %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Attributes every LogRecord carries; anything else came in through ``extra``
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord('', 0, '', 0, '', (), None))) | {'message', 'asctime'}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with ``extra`` fields merged in."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'location': f"{record.module}.{record.funcName}:{record.lineno}",
        }
        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)
        entry.update(
            (key, value) for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS
        )
        return json.dumps(entry, ensure_ascii=False, default=str)


def build_formatter(style: str) -> logging.Formatter:
    """Console formatter for a ``LoggingConfig.format`` value."""
    if style == 'json':
        return JSONFormatter()
    if style == 'colored':
        return colorlog.ColoredFormatter(
            '%(log_color)s' + CONSOLE_FORMAT,
            datefmt=DATE_FORMAT,
            log_colors=LOG_COLORS,
        )
    return logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT)


def _rotating_file_handler(config: LoggingConfig) -> Optional[logging.Handler]:
    path = Path(config.file_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=config.max_file_size,
            backupCount=config.backup_count,
            encoding='utf-8',
        )
    except OSError as e:
        logging.getLogger(PACKAGE_LOGGER).error(f"Cannot log to {path}: {e}")
        return None
    handler.setFormatter(JSONFormatter())
    return handler


def setup_logging(config: Optional[LoggingConfig] = None, debug: bool = False) -> None:
    """
    Install handlers on the root logger.

    Console output goes to stderr because the MCP stdio transport owns
    stdout. A rotating JSON log file is added when ``config.file_path`` is set.

    Args:
        config: Logging settings (defaults to the global settings)
        debug: Put the package loggers at DEBUG regardless of the level
    """
    if config is None:
        settings = get_settings()
        config = settings.logging
        debug = debug or settings.server.debug

    level = logging.getLevelName(config.level)
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(build_formatter(config.format))
    root.addHandler(console)

    if config.file_path:
        file_handler = _rotating_file_handler(config)
        if file_handler is not None:
            root.addHandler(file_handler)

    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG if debug else level)
    logging.getLogger('httpx').setLevel(logging.INFO if debug else logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the specified name.

    Module names are rooted at ``arxiv_digest`` whether the package is
    imported installed or from a source checkout.
    """
    if name.startswith('src.'):
        name = name[len('src.'):]
    return logging.getLogger(name)


def log_function_call_decorator(logger_instance=None):
    """Log entry, duration and failure of an async tool function."""
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            func_logger = logger_instance or get_logger(f'{PACKAGE_LOGGER}.tools')
            func_logger.debug(f"Tool call: {func.__name__}")
            started = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                func_logger.error(f"Tool {func.__name__} failed: {e}")
                raise
            finally:
                func_logger.debug(f"Tool {func.__name__} finished in {time.perf_counter() - started:.2f}s")

        return wrapper

    return decorator


def log_api_request(url: str, method: str = 'GET', **kwargs) -> None:
    """Log an outbound request. ``url`` must not carry credentials."""
    get_logger(f'{PACKAGE_LOGGER}.api').debug(
        f"-> {method} {url}",
        extra={'url': url, 'method': method, 'request_details': kwargs},
    )


def log_api_response(url: str, status_code: int, response_time: float) -> None:
    """Log an upstream response; error statuses are logged at WARNING."""
    level = logging.WARNING if status_code >= 400 else logging.DEBUG
    get_logger(f'{PACKAGE_LOGGER}.api').log(
        level,
        f"<- {status_code} {url} ({response_time:.2f}s)",
        extra={'url': url, 'status_code': status_code, 'response_time': response_time},
    )


def log_error(error: Exception, context: Optional[Dict[str, Any]] = None) -> None:
    """
    Log an exception with its traceback and optional context.

    Args:
        error: The exception that occurred
        context: Additional context information
    """
    extra: Dict[str, Any] = {'error_type': type(error).__name__}
    if context:
        extra['context'] = context
    get_logger(f'{PACKAGE_LOGGER}.errors').error(f"{type(error).__name__}: {error}", extra=extra, exc_info=error)


def log_performance(operation: str, duration: float, **kwargs) -> None:
    """Record a stage duration, warning when it exceeds ``SLOW_STAGE_SECONDS``."""
    logger = get_logger(f'{PACKAGE_LOGGER}.performance')
    extra = {'operation': operation, 'duration': duration, **kwargs}
    if duration > SLOW_STAGE_SECONDS:
        logger.warning(f"Slow stage: {operation} took {duration:.2f}s", extra=extra)
    else:
        logger.debug(f"Stage {operation} took {duration:.2f}s", extra=extra)


@contextmanager
def logged_function(func_name: str, **kwargs) -> Iterator[None]:
    """
    Time a pipeline stage.

    Failures are logged with the stage parameters and re-raised; successful
    runs are recorded through ``log_performance``.

    Args:
        func_name: Name of the stage
        **kwargs: Parameters recorded with the log entries
    """
    get_logger(f'{PACKAGE_LOGGER}.stages').debug(
        f"Entering stage: {func_name}", extra={'stage': func_name, 'parameters': kwargs}
    )
    started = time.perf_counter()
    try:
        yield
    except Exception as e:
        log_error(e, context={
            'stage': func_name,
            'parameters': kwargs,
            'duration': time.perf_counter() - started,
        })
        raise
    log_performance(func_name, time.perf_counter() - started, **kwargs)
