"""
Logging setup and call-tracing decorators shared by every podsync component.

Each component writes to its own file under logs/ through setup_logging().
log_function() traces a call's start, end, duration and failure; it accepts
plain functions and coroutine functions alike, timing the awaited body for
the latter.

Usage:
    from podsync.logger import setup_logging, log_function

    logger = setup_logging("orchestrator", "logs/orchestrator.log", verbose=True)

    @log_function(logger_name="orchestrator", log_args=True)
    async def run_job(job, source_url):
        ...
"""

import functools
import inspect
import logging
import time
from pathlib import Path
from typing import Optional, Callable, Any


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    logger_name: str,
    log_file: str = "logs/podsync.log",
    verbose: bool = False,
    level: int = logging.INFO,
) -> logging.Logger:
    """
    Return the named logger, attaching a file handler the first time.

    Args:
        logger_name: Logger name, usually the component ("database", "api")
        log_file: File the records go to; its folder is created if missing
        verbose: Also echo DEBUG and above to the console
        level: Threshold for the file handler

    Returns:
        The configured logger. A logger that already has handlers is
        returned as is.
    """
    logger = logging.getLogger(logger_name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG if verbose else level)

    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    to_file = logging.FileHandler(path)
    to_file.setLevel(level)
    to_file.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(to_file)

    if verbose:
        to_console = logging.StreamHandler()
        to_console.setLevel(logging.DEBUG)
        to_console.setFormatter(logging.Formatter("DEBUG: %(message)s"))
        logger.addHandler(to_console)

    return logger


def _resolve_logger(
    func: Callable, logger_name: Optional[str], log_file: Optional[str], level: int
) -> logging.Logger:
    name = logger_name or func.__module__
    if log_file:
        return setup_logging(f"{name}.{func.__name__}", log_file=log_file, level=level)
    logger = logging.getLogger(name)
    return logger if logger.handlers else setup_logging(name, level=level)


def _describe_call(func: Callable, log_args: bool, args: tuple, kwargs: dict) -> str:
    text = f"Calling {func.__name__}"
    if log_args and (args or kwargs):
        shown = [repr(a) for a in args] + [f"{k}={v!r}" for k, v in kwargs.items()]
        text += f" with args: {', '.join(shown)}"
    return text


class _CallTrace:
    """Start/finish/failure messages for one decorated call."""

    def __init__(self, func, logger, level, log_args, log_result, log_execution_time, args, kwargs):
        self.func = func
        self.logger = logger
        self.level = level
        self.log_result = log_result
        self.log_execution_time = log_execution_time
        logger.log(level, _describe_call(func, log_args, args, kwargs))
        self.started = time.perf_counter()

    @property
    def elapsed(self) -> float:
        return time.perf_counter() - self.started

    def finished(self, result: Any) -> Any:
        text = f"Completed {self.func.__name__}"
        if self.log_execution_time:
            text += f" in {self.elapsed:.2f}s"
        if self.log_result:
            text += f" with result: {result!r}"
        self.logger.log(self.level, text)
        return result

    def failed(self, exc: BaseException) -> None:
        self.logger.error(
            f"Exception in {self.func.__name__} after {self.elapsed:.2f}s: {type(exc).__name__}: {exc}",
            exc_info=True,
        )


def log_function(
    logger_name: Optional[str] = None,
    log_file: Optional[str] = None,
    level: int = logging.INFO,
    log_args: bool = False,
    log_result: bool = False,
    log_execution_time: bool = True,
) -> Callable:
    """
    Trace calls to the decorated function.

    Coroutine functions get an async wrapper. Exceptions are logged with
    their traceback and re-raised untouched.

    Args:
        logger_name: Logger to write to; defaults to the function's module
        log_file: Dedicated file for this function's records
        level: Level of the start/finish records
        log_args: Include the call arguments in the start record
        log_result: Include the return value in the finish record
        log_execution_time: Include the duration in the finish record

    Example:
        @log_function(logger_name="pipeline", log_args=True)
        async def process(item):
            ...
    """

    def decorator(func: Callable) -> Callable:
        def trace(args, kwargs) -> _CallTrace:
            logger = _resolve_logger(func, logger_name, log_file, level)
            return _CallTrace(func, logger, level, log_args, log_result, log_execution_time, args, kwargs)

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs) -> Any:
                call = trace(args, kwargs)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    call.failed(e)
                    raise
                return call.finished(result)

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            call = trace(args, kwargs)
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                call.failed(e)
                raise
            return call.finished(result)

        return wrapper

    return decorator


def log_with_timer(logger_name: Optional[str] = None) -> Callable:
    """Shorthand for log_function with timing only."""
    return log_function(logger_name=logger_name, log_execution_time=True)
