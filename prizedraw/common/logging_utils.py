"""Common logging utilities and decorators."""

import contextvars
import functools
import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

_log_context: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "prizedraw_log_context", default={}
)


def current_log_context() -> dict[str, Any]:
    return dict(_log_context.get())


@contextmanager
def bind_log_context(**fields) -> Iterator[dict[str, Any]]:
    """Attach fields such as job or draw_id to every record logged inside the
    block, including records from services called by it."""
    merged = {**_log_context.get(), **fields}
    token = _log_context.set(merged)
    try:
        yield merged
    finally:
        _log_context.reset(token)


class ContextFilter(logging.Filter):
    """Copies the bound context onto records as ``context`` and a printable
    ``context_suffix`` for text formats."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = current_log_context()
        record.context = context
        record.context_suffix = (
            " [" + " ".join(f"{k}={v}" for k, v in context.items()) + "]"
            if context
            else ""
        )
        return True


def log_task_execution(logger: Optional[logging.Logger] = None):
    """Decorator to log scheduled job execution.

    Args:
        logger: Logger instance to use. If None, creates one from the function module.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            actual_logger = (
                logger if logger is not None else logging.getLogger(func.__module__)
            )
            with bind_log_context(job=func.__name__):
                start_time = time.time()
                actual_logger.info(f"Task {func.__name__} started")

                try:
                    result = await func(*args, **kwargs)
                    elapsed = time.time() - start_time
                    actual_logger.info(
                        f"Task {func.__name__} completed successfully in {elapsed:.2f}s"
                    )
                    return result
                except Exception as e:
                    elapsed = time.time() - start_time
                    actual_logger.error(
                        f"Task {func.__name__} failed after {elapsed:.2f}s: {e}",
                        exc_info=True,
                    )
                    raise

        return wrapper

    return decorator


def log_database_operation(logger: Optional[logging.Logger] = None):
    """Decorator to log database operations.

    Args:
        logger: Logger instance to use. If None, creates one from the function module.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            actual_logger = (
                logger if logger is not None else logging.getLogger(func.__module__)
            )
            actual_logger.debug(f"Database operation {func.__name__} started")

            try:
                result = await func(*args, **kwargs)
                actual_logger.debug(f"Database operation {func.__name__} completed")
                return result
            except Exception as e:
                actual_logger.error(
                    f"Database operation {func.__name__} failed: {e}", exc_info=True
                )
                raise

        return wrapper

    return decorator


def log_service_execution(logger: Optional[logging.Logger] = None):
    """Decorator to log service method execution.

    Args:
        logger: Logger instance to use. If None, creates one from the function module.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            actual_logger = (
                logger if logger is not None else logging.getLogger(func.__module__)
            )
            start_time = time.time()
            actual_logger.debug(f"Service method {func.__name__} started")

            try:
                result = await func(*args, **kwargs)
                elapsed = time.time() - start_time
                actual_logger.debug(
                    f"Service method {func.__name__} completed in {elapsed:.2f}s"
                )
                return result
            except Exception as e:
                elapsed = time.time() - start_time
                actual_logger.error(
                    f"Service method {func.__name__} failed after {elapsed:.2f}s: {e}",
                    exc_info=True,
                )
                raise

        return wrapper

    return decorator


class LogContext:
    """Logs the start, end and failure of a unit of work.

    Keyword fields are bound for the duration of the block, so records emitted
    by anything called inside it carry them as well.
    """

    def __init__(self, logger: logging.Logger, operation: str, **context):
        self.logger = logger
        self.operation = operation
        self.context = context
        self.start_time: Optional[float] = None
        self._binding = None

    def __enter__(self):
        self._binding = bind_log_context(**self.context)
        self._binding.__enter__()
        self.start_time = time.time()
        self.logger.info(f"Starting {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed = time.time() - self.start_time if self.start_time is not None else 0.0

        try:
            if exc_type is None:
                self.logger.info(f"Completed {self.operation} in {elapsed:.2f}s")
            else:
                self.logger.error(
                    f"Failed {self.operation} after {elapsed:.2f}s: {exc_val}",
                    exc_info=(exc_type, exc_val, exc_tb),
                )
        finally:
            self._binding.__exit__(None, None, None)
        return False
