"""Reusable decorators for training utilities."""

import functools
import logging
import time
from collections.abc import Callable

log = logging.getLogger(__name__)


def measure_time[**P, R](func: Callable[P, R]) -> Callable[P, R]:
    """Log wall-clock duration of the wrapped callable."""

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        # report the duration even when the call raises
        finally:
            elapsed = time.perf_counter() - start
            log.info(f"{func.__qualname__} finished in {elapsed:.2f} s ({elapsed / 60:.2f} mins)")

    return wrapper
