import time
import inspect
import functools
import logging
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp; every stored datetime uses this form."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def timeit(label: str = "function"):
    """
    Decorator to log execution time for a function (sync or async).

    Usage:
        @timeit()
        def foo():
            ...

        @timeit("sweep_expired")
        async def bar():
            await ...
    """

    def _decorate(func):
        name = label or getattr(func, "__qualname__", getattr(func, "__name__", "function"))
        logger = logging.getLogger(func.__module__)

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def _aw(*args, **kwargs):
                start = time.perf_counter()
                try:
                    return await func(*args, **kwargs)
                finally:
                    elapsed_ms = (time.perf_counter() - start) * 1000.0
                    logger.debug(f"[timing] {name} took {elapsed_ms:.2f} ms")

            return _aw

        @functools.wraps(func)
        def _w(*args, **kwargs):
            start = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000.0
                logger.debug(f"[timing] {name} took {elapsed_ms:.2f} ms")

        return _w

    return _decorate
